"""Generic JSON-Lines state machine shared by every agent vendor.

One StreamParser instance is driven by one vendor decoder. The decoder turns
each line into vendor-neutral events; the parser owns everything that is the
same for all vendors: reading lines, the Idle/InTurn state, accumulating the
text result and usage, and printing the live trace.

Per-line problems never abort a parse. Only a failure to read the stream ends
it early, and even then the partial content and result are returned.
"""

from __future__ import annotations

import io
import json
import logging
import time
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import IO, Callable, Iterator

from poagent_core.stream.base import BaseDecoder, EventDecodeError, TextPolicy, UnknownDisplay, UsageMode
from poagent_core.stream.display import TracePrinter
from poagent_core.stream.events import (
    FinalResult,
    SessionInit,
    StreamEvent,
    TextChunk,
    ToolInvocation,
    ToolResult,
    TurnFinish,
    TurnStart,
    Unknown,
)
from poagent_core.stream.results import RunResult, Usage

logger = logging.getLogger(__name__)

MAX_LINE_BYTES = 10 * 1024 * 1024


class StreamReadError(OSError):
    """The agent stream could not be read to the end."""


@dataclass
class StreamOutcome:
    content: str = ""
    result: RunResult | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class Phase(Enum):
    IDLE = "idle"
    IN_TURN = "in_turn"


@dataclass
class _ParseState:
    started: float
    phase: Phase = Phase.IDLE
    result: RunResult | None = None
    content: list[str] = field(default_factory=list)
    turn_text: list[str] = field(default_factory=list)
    last_message: str = ""
    final_text: str = ""


# Events hidden outside a turn for vendors that bracket their turns.
_TURN_SCOPED = (TextChunk, ToolInvocation, ToolResult, Unknown)


class StreamParser:
    """Parse one vendor's JSON-Lines stream into a RunResult and a console trace."""

    def __init__(
        self,
        decoder: BaseDecoder,
        printer: TracePrinter | None = None,
        max_line_bytes: int = MAX_LINE_BYTES,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.decoder = decoder
        self.profile = decoder.profile
        self.printer = printer or TracePrinter(limits=decoder.limits)
        self.max_line_bytes = max_line_bytes
        self.clock = clock

    # ------------------------------------------------------------------ #
    # Public interface                                                     #
    # ------------------------------------------------------------------ #

    def parse(self, stream: IO) -> StreamOutcome:
        """Consume ``stream`` (text or binary) until EOF."""
        state = _ParseState(started=self.clock())
        error: Exception | None = None
        try:
            for line in self._lines(stream):
                if line:
                    self._feed(state, line)
        except OSError as exc:
            logger.debug("%s: stream read failed: %s", self.profile.name, exc)
            error = exc

        content = self._content(state)
        if state.result is not None:
            if self.profile.elapsed_at_eof:
                state.result.duration_ms = self._elapsed_ms(state)
            state.result.result_text = state.final_text or content
        return StreamOutcome(content=content, result=state.result, error=error)

    def parse_text(self, text: str) -> StreamOutcome:
        return self.parse(io.StringIO(text))

    # ------------------------------------------------------------------ #
    # Line handling                                                        #
    # ------------------------------------------------------------------ #

    def _lines(self, stream: IO) -> Iterator[str]:
        limit = self.max_line_bytes
        while True:
            raw = stream.readline(limit + 1)
            if not raw:
                return
            if isinstance(raw, bytes):
                if len(raw) > limit and not raw.endswith(b"\n"):
                    raise StreamReadError(f"line exceeds the {limit} byte limit")
                raw = raw.decode("utf-8", errors="replace")
            elif len(raw) > limit and not raw.endswith("\n"):
                raise StreamReadError(f"line exceeds the {limit} character limit")
            yield raw.strip()

    def _feed(self, state: _ParseState, line: str) -> None:
        try:
            obj = json.loads(line)
        except ValueError:
            obj = None
        if not isinstance(obj, dict) or not isinstance(obj.get("type", ""), str):
            logger.debug("%s: non-JSON line: %s", self.profile.name, line)
            self._on_opaque(state, line)
            return

        event_type = obj.get("type", "")
        try:
            events = self.decoder.decode(event_type, obj, line)
        except EventDecodeError as exc:
            logger.debug("%s: failed to parse %r message: %s", self.profile.name, event_type, exc)
            return
        for event in events:
            self._apply(state, event)

    def _on_opaque(self, state: _ParseState, line: str) -> None:
        if self.profile.opaque_raw:
            self.printer.line(line)
            self._accumulate(state, line + "\n")
        else:
            self.printer.item("❓", line)

    # ------------------------------------------------------------------ #
    # State machine                                                        #
    # ------------------------------------------------------------------ #

    def _apply(self, state: _ParseState, event: StreamEvent) -> None:
        if self.profile.bracketed and state.phase is Phase.IDLE and isinstance(event, _TURN_SCOPED):
            logger.debug("%s: %s outside of a turn (suppressed)", self.profile.name, type(event).__name__)
            return
        if not isinstance(event, Unknown):
            self._ensure_result(state)

        if isinstance(event, SessionInit):
            self._on_session(state, event)
        elif isinstance(event, TurnStart):
            self._on_turn_start(state, event)
        elif isinstance(event, TurnFinish):
            self._on_turn_finish(state, event)
        elif isinstance(event, TextChunk):
            self._on_text(state, event)
        elif isinstance(event, ToolInvocation):
            self.printer.command("🔧", event.display)
            if event.record:
                self._accumulate(state, event.record)
        elif isinstance(event, ToolResult):
            self.printer.item("❌" if event.failed else "💬", event.label)
            if event.record:
                self._accumulate(state, event.record)
        elif isinstance(event, FinalResult):
            self._on_final(state, event)
        elif isinstance(event, Unknown):
            self._on_unknown(state, event)

    def _ensure_result(self, state: _ParseState) -> RunResult:
        if state.result is None:
            state.result = self.profile.result_type()
        return state.result

    def _on_session(self, state: _ParseState, event: SessionInit) -> None:
        if event.session_id:
            state.result.session_id = event.session_id
        self.printer.block(event.title, event.fields)

    def _on_turn_start(self, state: _ParseState, event: TurnStart) -> None:
        result = state.result
        result.num_turns += 1
        if event.session_id and not result.session_id:
            result.session_id = event.session_id
        state.phase = Phase.IN_TURN
        state.turn_text = []
        logger.debug("%s: turn %d", self.profile.name, result.num_turns)

    def _on_turn_finish(self, state: _ParseState, event: TurnFinish) -> None:
        result = state.result
        self._merge_usage(result, event.usage, self.profile.usage_mode)
        if event.duration_ms is not None:
            result.duration_ms = event.duration_ms if event.duration_ms > 0 else self._elapsed_ms(state)
        if event.show_usage and event.usage is not None:
            parts = [
                f"{name}={value}"
                for name, value in (
                    ("input_tokens", event.usage.input_tokens),
                    ("output_tokens", event.usage.output_tokens),
                    ("cached_input_tokens", event.usage.cached_tokens),
                )
                if value > 0
            ]
            if parts:
                self.printer.line("📊 " + ", ".join(parts))
        if event.reason == "stop":
            self.printer.line("✅ Step complete (reason: stop)")
        state.phase = Phase.IDLE

    def _on_text(self, state: _ParseState, event: TextChunk) -> None:
        display = event.text if event.display is None else event.display
        if display:
            self.printer.text("🤔" if event.thinking else "🤖", display)
        if not event.to_result or not event.text:
            return
        if self.profile.text_policy is TextPolicy.LAST_MESSAGE:
            state.last_message = event.text
        else:
            self._accumulate(state, event.text)

    def _on_final(self, state: _ParseState, event: FinalResult) -> None:
        result = state.result
        self.printer.line(f"🤖 return result ({len(event.text.encode('utf-8'))} bytes)")
        self._merge_usage(result, event.usage, self.profile.usage_mode)
        if event.duration_ms > 0:
            result.duration_ms = event.duration_ms
        if event.num_turns > result.num_turns:
            result.num_turns = event.num_turns
        if event.session_id and not result.session_id:
            result.session_id = event.session_id
        if event.text:
            state.final_text = event.text
            self.printer.block("✅ Final Result", [], event.text.rstrip("\n").split("\n"))
            self._accumulate(state, event.text)

    def _on_unknown(self, state: _ParseState, event: Unknown) -> None:
        if event.summary:
            self.printer.item("❓", event.summary)
            return
        mode = self.profile.unknown_display
        logger.debug("%s: unknown message type: %s", self.profile.name, event.type)
        if mode is UnknownDisplay.RAW:
            self.printer.line(event.raw)
            self._accumulate(state, event.raw + "\n")
        elif mode is UnknownDisplay.SUMMARY:
            self.printer.item("❓", f"{event.type}: ... {len(event.raw.encode('utf-8'))} bytes ...")

    # ------------------------------------------------------------------ #
    # Accumulation                                                         #
    # ------------------------------------------------------------------ #

    def _accumulate(self, state: _ParseState, text: str) -> None:
        if self.profile.text_policy is TextPolicy.LAST_TURN:
            state.turn_text.append(text)
        elif self.profile.text_policy is TextPolicy.CONCAT:
            state.content.append(text)

    def _content(self, state: _ParseState) -> str:
        policy = self.profile.text_policy
        if policy is TextPolicy.LAST_MESSAGE:
            return state.last_message
        if policy is TextPolicy.LAST_TURN:
            return "".join(state.turn_text)
        return "".join(state.content)

    def _elapsed_ms(self, state: _ParseState) -> int:
        return int((self.clock() - state.started) * 1000)

    @staticmethod
    def _merge_usage(result: RunResult, usage: Usage | None, mode: UsageMode) -> None:
        if usage is None:
            return
        if mode is UsageMode.LATEST:
            result.usage = replace(usage)
            return
        if result.usage is None:
            result.usage = Usage()
        current = result.usage
        for f in fields(Usage):
            value = getattr(usage, f.name)
            if value <= 0:
                continue
            if mode is UsageMode.SUM:
                setattr(current, f.name, getattr(current, f.name) + value)
            else:
                setattr(current, f.name, value)
