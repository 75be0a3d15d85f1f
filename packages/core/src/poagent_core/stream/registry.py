"""Lookup of stream decoders by agent kind."""

from __future__ import annotations

from poagent_core.stream.base import BaseDecoder
from poagent_core.stream.claude import ClaudeDecoder
from poagent_core.stream.codex import CodexDecoder
from poagent_core.stream.display import DisplayLimits, TracePrinter
from poagent_core.stream.gemini import GeminiDecoder
from poagent_core.stream.opencode import OpenCodeDecoder
from poagent_core.stream.parser import MAX_LINE_BYTES, StreamParser

DECODERS: dict[str, type[BaseDecoder]] = {
    "claude": ClaudeDecoder,
    "codex": CodexDecoder,
    "opencode": OpenCodeDecoder,
    "gemini": GeminiDecoder,
    "qwen": GeminiDecoder,  # Qwen Code is a Gemini CLI fork with the same stream format
}


def get_parser(
    kind: str,
    printer: TracePrinter | None = None,
    limits: DisplayLimits | None = None,
    max_line_bytes: int = MAX_LINE_BYTES,
) -> StreamParser:
    """Return a StreamParser for an agent kind ("claude", "codex", ...)."""
    try:
        decoder_cls = DECODERS[kind]
    except KeyError:
        raise ValueError(f"No stream parser for agent kind {kind!r}. Choose one of: {', '.join(DECODERS)}.") from None
    limits = limits or (printer.limits if printer else None)
    return StreamParser(decoder_cls(limits), printer=printer, max_line_bytes=max_line_bytes)


def detect_kind(first_line: str) -> str:
    """Guess the agent kind from the first line of a saved stream log."""
    if "claude_code_version" in first_line:
        return "claude"
    if '"type":"step_start"' in first_line.replace(" ", ""):
        return "opencode"
    if "thread.started" in first_line:
        return "codex"
    return "gemini"
