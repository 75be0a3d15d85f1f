"""Decoder for ``opencode run --format json`` output."""

from __future__ import annotations

from poagent_core.stream.base import (
    BaseDecoder,
    TextPolicy,
    UnknownDisplay,
    UsageMode,
    VendorProfile,
    format_tool_call,
    get_dict,
    get_int,
    get_optional_dict,
    get_str,
)
from poagent_core.stream.events import StreamEvent, TextChunk, ToolInvocation, ToolResult, TurnFinish, TurnStart
from poagent_core.stream.results import OpenCodeRunResult, Usage


class OpenCodeDecoder(BaseDecoder):
    profile = VendorProfile(
        name="opencode",
        result_type=OpenCodeRunResult,
        bracketed=True,
        usage_mode=UsageMode.LATEST,
        text_policy=TextPolicy.CONCAT,
        unknown_display=UnknownDisplay.RAW,
    )
    handlers = {
        "step_start": "on_step_start",
        "step_finish": "on_step_finish",
        "text": "on_text",
        "tool_use": "on_tool_use",
    }

    def on_step_start(self, obj: dict, line: str) -> list[StreamEvent]:
        return [TurnStart(session_id=get_str(obj, "sessionID"))]

    def on_step_finish(self, obj: dict, line: str) -> list[StreamEvent]:
        part = get_dict(obj, "part")
        tokens = get_optional_dict(part, "tokens")
        usage = None
        # token counts are cumulative; a zero total means nothing was reported
        if tokens is not None and get_int(tokens, "total") > 0:
            usage = Usage(
                input_tokens=get_int(tokens, "input"),
                output_tokens=get_int(tokens, "output"),
                total_tokens=get_int(tokens, "total"),
            )
        return [TurnFinish(usage=usage, duration_ms=0, reason=get_str(part, "reason"))]

    def on_text(self, obj: dict, line: str) -> list[StreamEvent]:
        text = get_str(get_dict(obj, "part"), "text")
        if not text:
            return []
        return [TextChunk(text=text)]

    def on_tool_use(self, obj: dict, line: str) -> list[StreamEvent]:
        part = get_dict(obj, "part")
        state = get_optional_dict(part, "state")
        if state is None:
            return []
        call = format_tool_call(
            get_str(part, "tool") or "unknown",
            get_dict(state, "input"),
            value_max=self.limits.tool_value_max,
            sort=True,
        )
        events: list[StreamEvent] = [ToolInvocation(display=call, record=call + "\n")]
        output = get_str(state, "output")
        if output:
            size = len(output.encode("utf-8"))
            events.append(ToolResult(label=f"... {size} bytes ...", record=output))
        return events
