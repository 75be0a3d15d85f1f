import copy
import logging
from pathlib import Path
from typing import Optional

import yaml

from poagent_core.agent.command import AgentSpec, resolve_kind

logger = logging.getLogger(__name__)

DEFAULT_CONFIG: dict = {
    "agents": {
        "claude": {"cmd": ["claude", "-p", "{prompt}"], "kind": "claude", "output": "json"},
    },
    "default_agent": None,  # None = the only configured agent
    "prompt": {"review": None},  # None = use the built-in prompt; set to a path string to override
    "runs": 1,
    "display": {
        "max_bytes": 4096,
        "max_lines": 10,
        "wrap_width": 99,
        "indent": "   ",
        "command_head": 128,
        "command_tail": 32,
        "tool_value_max": 100,
    },
    "max_line_bytes": 10 * 1024 * 1024,
    "store": "noop",
    "store_path": ".poagent.db",
}

# Sections merged key by key with the defaults instead of being replaced.
_NESTED = ("display", "prompt")

BUILTIN_PROMPTS_DIR = Path(__file__).parent / "prompts"


def load_config(config_path: str = ".poagent.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .poagent.yml in the current directory
      3. CLI argument overrides
    """
    config = copy.deepcopy(DEFAULT_CONFIG)

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        if not isinstance(file_config, dict):
            raise ValueError(f"Config file {config_path} must contain a mapping, got {type(file_config).__name__}")
        for key, value in file_config.items():
            if key in _NESTED and isinstance(value, dict):
                config[key].update(value)
            else:
                config[key] = value
        logger.debug("Loaded config from %s", path)

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    return config


def select_agent(config: dict, name: Optional[str] = None) -> AgentSpec:
    """Pick the agent to run.

    Without a name, ``default_agent`` is used, or the only configured agent.
    """
    agents = config.get("agents") or {}
    name = name or config.get("default_agent")
    if not name:
        if not agents:
            raise ValueError("No agents configured. Add at least one agent to the 'agents' section.")
        if len(agents) > 1:
            raise ValueError(f"Multiple agents configured ({', '.join(agents)}); choose one with --agent.")
        name = next(iter(agents))

    if name not in agents:
        raise ValueError(f"Agent {name!r} not found in configuration. Available agents: {', '.join(agents) or 'none'}")

    entry = agents[name] or {}
    cmd = entry.get("cmd") or []
    if isinstance(cmd, str):
        cmd = cmd.split()
    cmd = [str(arg) for arg in cmd]
    return AgentSpec(name=name, cmd=cmd, kind=resolve_kind(name, cmd, entry.get("kind")), output=entry.get("output") or "")


def load_prompt(config: dict, action: str = "review") -> str:
    """
    Load the prompt for an action.

    If ``prompt.<action>`` is set in config, loads from that path (relative to cwd).
    Otherwise falls back to the built-in prompt.
    """
    custom_path = (config.get("prompt") or {}).get(action)
    if custom_path:
        p = Path(custom_path)
        if not p.exists():
            raise FileNotFoundError(f"Prompt file not found: {custom_path}")
        return p.read_text()

    builtin = BUILTIN_PROMPTS_DIR / f"{action}.md"
    if builtin.exists():
        return builtin.read_text()

    raise FileNotFoundError(f"No {action} prompt configured and the built-in prompt is missing.")
