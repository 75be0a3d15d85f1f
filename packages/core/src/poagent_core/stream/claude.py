"""Decoder for Claude Code ``--output-format stream-json`` output."""

from __future__ import annotations

from poagent_core.stream.base import (
    BaseDecoder,
    TextPolicy,
    UnknownDisplay,
    UsageMode,
    VendorProfile,
    get_dict,
    get_int,
    get_list,
    get_optional_dict,
    get_str,
    usage_from,
)
from poagent_core.stream.events import FinalResult, SessionInit, StreamEvent, ToolResult, TurnStart
from poagent_core.stream.results import ClaudeRunResult


class ClaudeDecoder(BaseDecoder):
    profile = VendorProfile(
        name="claude",
        result_type=ClaudeRunResult,
        bracketed=False,
        usage_mode=UsageMode.LAST_NONZERO,
        text_policy=TextPolicy.CONCAT,
        opaque_raw=True,
        unknown_display=UnknownDisplay.RAW,
    )
    handlers = {
        "system": "on_system",
        "assistant": "on_assistant",
        "user": "on_user",
        "result": "on_result",
    }

    def on_system(self, obj: dict, line: str) -> list[StreamEvent]:
        rows = []
        for label, key in (("Session ID", "session_id"), ("Model", "model"), ("Working Dir", "cwd")):
            value = get_str(obj, key)
            if value:
                rows.append((label, value))
        version = get_str(obj, "claude_code_version")
        if version:
            rows.append(("Version", version))
        for label, key in (("Tools", "tools"), ("Agents", "agents")):
            items = get_list(obj, key)
            if items:
                rows.append((label, str(len(items))))
        return [SessionInit(title="🤖 System Initialization", session_id=get_str(obj, "session_id"), fields=rows)]

    def on_assistant(self, obj: dict, line: str) -> list[StreamEvent]:
        message = get_dict(obj, "message")
        return [TurnStart(session_id=get_str(obj, "session_id")), *self.content_blocks(get_list(message, "content"))]

    def on_user(self, obj: dict, line: str) -> list[StreamEvent]:
        message = get_dict(obj, "message")
        size = len(line.encode("utf-8"))
        other = next(
            (
                block["type"]
                for block in get_list(message, "content")
                if isinstance(block, dict) and isinstance(block.get("type"), str) and block["type"] != "tool_result"
            ),
            None,
        )
        label = f"... {size} bytes ..." if other is None else f"{other}: ... {size} bytes ..."
        return [ToolResult(label=label)]

    def on_result(self, obj: dict, line: str) -> list[StreamEvent]:
        return [
            FinalResult(
                text=get_str(obj, "result"),
                usage=usage_from(get_optional_dict(obj, "usage")),
                num_turns=get_int(obj, "num_turns"),
                duration_ms=get_int(obj, "duration_api_ms"),
                session_id=get_str(obj, "session_id"),
            )
        ]
