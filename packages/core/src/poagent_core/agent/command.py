"""Agent definitions and command-line construction."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

KNOWN_AGENT_KINDS = ("claude", "codex", "opencode", "gemini", "qwen", "echo")

# Per kind: arguments showing the user already chose an output format, and the
# arguments that switch the CLI to its JSON-Lines stream.
_STREAM_FLAGS: dict[str, tuple[tuple[str, ...], list[str]]] = {
    "claude": (("--output-format", "-o"), ["--verbose", "--output-format", "stream-json"]),
    "codex": (("--json",), ["--json"]),
    "opencode": (("--format",), ["--format", "json"]),
    "gemini": (("--output-format", "-o"), ["--output-format", "stream-json"]),
    "qwen": (("--output-format", "-o"), ["--output-format", "stream-json"]),
}


@dataclass
class AgentSpec:
    """One entry of the ``agents`` config section."""

    name: str
    cmd: list[str] = field(default_factory=list)
    kind: str = ""
    output: str = ""

    @property
    def streaming(self) -> bool:
        return normalize_output_format(self.output) == "json" and self.kind in _STREAM_FLAGS


def normalize_output_format(value: str | None) -> str:
    """``stream_json``, ``stream-json`` and ``json`` all mean the JSON-Lines stream."""
    normalized = (value or "").replace("_", "-")
    if normalized == "stream-json":
        return "json"
    return normalized or "default"


def resolve_kind(name: str, cmd: list[str], kind: str | None = None) -> str:
    """Work out an agent's kind from its config, its name, or its executable."""
    if kind:
        if kind not in KNOWN_AGENT_KINDS:
            raise ValueError(
                f"Agent {name!r} has unknown kind {kind!r} (must be one of: {', '.join(KNOWN_AGENT_KINDS)})."
            )
        return kind
    candidates = [name.lower()]
    if cmd:
        candidates.append(Path(cmd[0]).name.lower())
    for candidate in candidates:
        if candidate in KNOWN_AGENT_KINDS:
            return candidate
    raise ValueError(
        f"Agent {name!r} has unknown kind (cmd={cmd}). Add a 'kind' field "
        f"({', '.join(KNOWN_AGENT_KINDS)}) to the agent in your config."
    )


def replace_placeholders(template: str, values: dict[str, str]) -> str:
    """Substitute ``{prompt}``, ``{source}``, ``{commit}`` and friends in one argument."""
    for key, value in values.items():
        template = template.replace("{" + key + "}", value)
    return template


def build_agent_command(agent: AgentSpec, values: dict[str, str]) -> list[str]:
    """Resolve placeholders and add the vendor's streaming flag when output is json."""
    cmd = [replace_placeholders(arg, values) for arg in agent.cmd]
    if not agent.streaming:
        return cmd
    markers, flags = _STREAM_FLAGS[agent.kind]
    if any(arg in markers for arg in cmd):
        logger.debug("Agent %s already selects its output format; leaving command as is", agent.name)
        return cmd
    return cmd + flags
