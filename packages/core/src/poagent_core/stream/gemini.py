"""Decoder for Gemini CLI (and Qwen Code) ``--output-format stream-json`` output."""

from __future__ import annotations

from poagent_core.stream.base import (
    BaseDecoder,
    TextPolicy,
    UnknownDisplay,
    UsageMode,
    VendorProfile,
    get_dict,
    get_list,
    get_optional_dict,
    get_str,
    usage_from,
)
from poagent_core.stream.events import SessionInit, StreamEvent, ToolResult, TurnFinish, TurnStart
from poagent_core.stream.results import GeminiRunResult


class GeminiDecoder(BaseDecoder):
    profile = VendorProfile(
        name="gemini",
        result_type=GeminiRunResult,
        bracketed=False,
        usage_mode=UsageMode.SUM,
        text_policy=TextPolicy.LAST_TURN,
        unknown_display=UnknownDisplay.SILENT,
        elapsed_at_eof=True,
    )
    handlers = {
        "system": "on_system",
        "assistant": "on_assistant",
        "user": "on_user",
    }

    def on_system(self, obj: dict, line: str) -> list[StreamEvent]:
        if get_str(obj, "subtype") != "init":
            return []
        rows = []
        for label, key in (("Model", "model"), ("Session ID", "session_id"), ("Working Directory", "cwd")):
            value = get_str(obj, key)
            if value:
                rows.append((label, value))
        tools = [str(t) for t in get_list(obj, "tools")]
        if tools:
            rows.append(("Tools", ", ".join(tools)))
        return [SessionInit(title="🚀 Session Initialized", session_id=get_str(obj, "session_id"), fields=rows)]

    def on_assistant(self, obj: dict, line: str) -> list[StreamEvent]:
        message = get_dict(obj, "message")
        usage = usage_from(get_optional_dict(message, "usage"), total_key="total_tokens")
        return [
            TurnStart(session_id=get_str(obj, "session_id")),
            *self.content_blocks(get_list(message, "content")),
            TurnFinish(usage=usage, duration_ms=None),
        ]

    def on_user(self, obj: dict, line: str) -> list[StreamEvent]:
        message = get_dict(obj, "message")
        size = len(line.encode("utf-8"))
        other = next(
            (
                block["type"]
                for block in get_list(message, "content")
                if isinstance(block, dict) and isinstance(block.get("type"), str) and block["type"] != "tool_result"
            ),
            "tool_result",
        )
        return [ToolResult(label=f"{other}: ... {size} bytes ...")]
