"""Vendor-neutral events produced by the stream decoders.

Events are ephemeral: a decoder turns one JSON line into zero or more of
them and the parser consumes them immediately.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

from poagent_core.stream.results import Usage


@dataclass
class SessionInit:
    """Start of an agent session. ``fields`` become the header block lines."""

    title: str
    session_id: str = ""
    fields: list[tuple[str, str]] = field(default_factory=list)


@dataclass
class TurnStart:
    session_id: str = ""


@dataclass
class TurnFinish:
    usage: Usage | None = None
    # None leaves the duration alone, 0 means "use the elapsed wall time".
    duration_ms: int | None = 0
    reason: str = ""
    show_usage: bool = False


@dataclass
class TextChunk:
    text: str
    display: str | None = None  # shown instead of text when set
    thinking: bool = False
    to_result: bool = True


@dataclass
class ToolInvocation:
    display: str
    record: str = ""  # appended to the content when non-empty


@dataclass
class ToolResult:
    label: str
    failed: bool = False
    record: str = ""


@dataclass
class FinalResult:
    """Explicit terminal result event; its text supersedes the accumulated text."""

    text: str = ""
    usage: Usage | None = None
    num_turns: int = 0
    duration_ms: int = 0
    session_id: str = ""


@dataclass
class Unknown:
    type: str
    raw: str = ""
    summary: str = ""  # printed as-is instead of following the vendor's unknown-type policy


StreamEvent = Union[SessionInit, TurnStart, TurnFinish, TextChunk, ToolInvocation, ToolResult, FinalResult, Unknown]
