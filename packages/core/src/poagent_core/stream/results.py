"""Unified result model returned by every agent stream parser.

Each vendor gets its own RunResult subclass so callers can tell where a
result came from, but downstream code only ever relies on the shared
fields and on get_num_turns().
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar


@dataclass
class Usage:
    """Token usage reported by an agent."""

    input_tokens: int = 0
    output_tokens: int = 0
    cached_tokens: int = 0
    total_tokens: int = 0

    def is_empty(self) -> bool:
        return not (self.input_tokens or self.output_tokens or self.cached_tokens or self.total_tokens)


@dataclass
class RunResult:
    """Summary of one agent invocation, built incrementally while parsing."""

    vendor: ClassVar[str] = ""

    num_turns: int = 0
    usage: Usage | None = None
    duration_ms: int = 0
    result_text: str = ""
    session_id: str = ""

    def get_num_turns(self) -> int:
        return self.num_turns


class ClaudeRunResult(RunResult):
    vendor = "claude"


class CodexRunResult(RunResult):
    vendor = "codex"

    @property
    def thread_id(self) -> str:
        """Codex calls its session a thread."""
        return self.session_id


class OpenCodeRunResult(RunResult):
    vendor = "opencode"


class GeminiRunResult(RunResult):
    vendor = "gemini"


def num_turns(result: RunResult | None) -> int:
    """Return the turn count of a result, or 0 when there is no result."""
    if result is None:
        return 0
    return result.get_num_turns()
