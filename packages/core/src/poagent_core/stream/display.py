"""Console trace formatting for agent streams.

All size limits live in DisplayLimits, which is built from the ``display``
section of the configuration file.
"""

from __future__ import annotations

from dataclasses import dataclass, fields

from rich.console import Console

HEADER_RULE = "=" * 42


@dataclass(frozen=True)
class DisplayLimits:
    max_bytes: int = 4096
    max_lines: int = 10
    wrap_width: int = 99
    indent: str = "   "
    command_head: int = 128
    command_tail: int = 32
    tool_value_max: int = 100

    @classmethod
    def from_config(cls, config: dict | None) -> DisplayLimits:
        """Build limits from a ``display`` config mapping, ignoring unknown keys."""
        if not config:
            return cls()
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in config.items() if k in known and v is not None})


def truncate_text(text: str, max_bytes: int = 4096, max_lines: int = 10) -> str:
    """Limit text to ``max_lines`` lines and ``max_bytes`` UTF-8 bytes.

    A shortened text ends in ``...`` and never has newlines right before it.
    """
    clipped = False
    if max_lines > 0:
        lines = text.split("\n")
        if len(lines) > max_lines:
            text = "\n".join(lines[:max_lines])
            clipped = True

    data = text.encode("utf-8")
    if not clipped and len(data) <= max_bytes:
        return text.rstrip("\n")
    if len(data) > max_bytes - 3:
        # errors="ignore" drops a multi-byte character cut in half
        text = data[: max(max_bytes - 3, 0)].decode("utf-8", errors="ignore")
    return text.rstrip("\n") + "..."


def truncate_command(text: str, head: int = 128, tail: int = 32) -> str:
    """Shorten a one-line command to its head and tail around ``...``."""
    if len(text) <= head + tail:
        return text
    return text[:head] + "..." + text[len(text) - tail :]


def _wrap_at(line: str, width: int) -> list[str]:
    out = []
    while len(line) > width:
        chunk = line[:width]
        cut = max(chunk.rfind(" "), chunk.rfind("\t")) + 1
        if cut == 0:
            cut = width
        out.append(line[:cut].rstrip(" \t"))
        line = line[cut:].lstrip(" \t")
    if line:
        out.append(line)
    return out


def indent_subsequent_lines(text: str, width: int = 99, indent: str = "   ") -> str:
    """Wrap text at ``width`` columns and indent every line after the first."""
    content_width = width - len(indent)
    result: list[str] = []
    for i, line in enumerate(text.split("\n")):
        for j, part in enumerate(_wrap_at(line, width) or [""]):
            if i == 0 and j == 0:
                result.append(part)
                continue
            for sub in _wrap_at(part, content_width) or [""]:
                result.append(indent + sub if sub else "")
    if len(result) <= 1:
        return text
    return "\n".join(result)


class TracePrinter:
    """Writes the icon-prefixed live trace of an agent run."""

    def __init__(self, console: Console | None = None, limits: DisplayLimits | None = None):
        self.console = console or Console()
        self.limits = limits or DisplayLimits()

    def line(self, text: str = "") -> None:
        # Agent output is printed verbatim: no rich markup, highlighting or emoji codes.
        self.console.print(text, markup=False, highlight=False, emoji=False, soft_wrap=True)

    def item(self, icon: str, text: str) -> None:
        wrapped = indent_subsequent_lines(text, self.limits.wrap_width, self.limits.indent)
        self.line(f"{icon} {wrapped}")

    def text(self, icon: str, text: str) -> None:
        self.item(icon, truncate_text(text, self.limits.max_bytes, self.limits.max_lines))

    def command(self, icon: str, text: str) -> None:
        self.item(icon, truncate_command(text, self.limits.command_head, self.limits.command_tail))

    def block(self, title: str, rows: list[tuple[str, str]], body: list[str] | None = None) -> None:
        self.line()
        self.line(title)
        self.line(HEADER_RULE)
        for key, value in rows:
            self.line(f"**{key}:** {value}")
        for body_line in body or []:
            self.line(body_line)
        self.line(HEADER_RULE)
        self.line()
