"""Decoder for ``codex exec --json`` output."""

from __future__ import annotations

import json
import logging

from poagent_core.stream.base import (
    BaseDecoder,
    EventDecodeError,
    TextPolicy,
    UnknownDisplay,
    UsageMode,
    VendorProfile,
    get_int,
    get_optional_dict,
    get_str,
    usage_from,
)
from poagent_core.stream.events import (
    SessionInit,
    StreamEvent,
    TextChunk,
    ToolInvocation,
    ToolResult,
    TurnFinish,
    TurnStart,
    Unknown,
)
from poagent_core.stream.results import CodexRunResult

logger = logging.getLogger(__name__)


def strip_think_tags(text: str) -> str:
    """Remove one ``<think>...</think>`` pair, keeping the surrounding and inner text."""
    text = text.strip()
    lower = text.lower()
    start = lower.find("<think>")
    if start == -1:
        return text
    end = lower.find("</think>", start)
    if end == -1:
        return text
    parts = [text[:start].strip(), text[start + len("<think>") : end].strip(), text[end + len("</think>") :].strip()]
    return "\n\n".join(p for p in parts if p)


def has_think_tags(text: str) -> bool:
    lower = text.strip().lower()
    return "<think>" in lower and "</think>" in lower


class CodexDecoder(BaseDecoder):
    profile = VendorProfile(
        name="codex",
        result_type=CodexRunResult,
        bracketed=True,
        usage_mode=UsageMode.LAST_NONZERO,
        text_policy=TextPolicy.LAST_MESSAGE,
        unknown_display=UnknownDisplay.SUMMARY,
    )
    handlers = {
        "thread.started": "on_thread_started",
        "turn.started": "on_turn_started",
        "turn.completed": "on_turn_completed",
        "item.started": "on_item_started",
        "item.completed": "on_item_completed",
    }

    def unknown(self, event_type: str, obj: dict, line: str) -> list[StreamEvent]:
        if len(obj) <= 1:
            logger.debug("codex: skipping %r message with no payload", event_type)
            return []
        return super().unknown(event_type, obj, line)

    def on_thread_started(self, obj: dict, line: str) -> list[StreamEvent]:
        thread_id = get_str(obj, "thread_id")
        rows = [("Thread ID", thread_id)] if thread_id else []
        return [SessionInit(title="🤖 Session Started", session_id=thread_id, fields=rows)]

    def on_turn_started(self, obj: dict, line: str) -> list[StreamEvent]:
        return [TurnStart()]

    def on_turn_completed(self, obj: dict, line: str) -> list[StreamEvent]:
        usage = usage_from(get_optional_dict(obj, "usage"), cached_key="cached_input_tokens")
        return [TurnFinish(usage=usage, duration_ms=get_int(obj, "duration_ms"), show_usage=True)]

    def on_item_started(self, obj: dict, line: str) -> list[StreamEvent]:
        item = self._item(obj)
        item_type = item.get("type", "")
        if item_type == "command_execution":
            return [ToolInvocation(display=get_str(item, "command"))]
        if item_type == "agent_message":
            # reported once it completes
            return []
        return [self._other_item(item_type, item)]

    def on_item_completed(self, obj: dict, line: str) -> list[StreamEvent]:
        item = self._item(obj)
        item_type = item.get("type", "")
        if item_type == "command_execution":
            size = len(get_str(item, "aggregated_output").encode("utf-8"))
            exit_code = item.get("exit_code")
            failed = exit_code is not None and exit_code != 0
            return [ToolResult(label=f"... {size} bytes ...", failed=failed)]
        if item_type == "agent_message":
            text = get_str(item, "text")
            if not text.strip():
                return []
            return [TextChunk(text=text, display=strip_think_tags(text), thinking=has_think_tags(text))]
        return [self._other_item(item_type, item)]

    @staticmethod
    def _other_item(item_type, item: dict) -> Unknown:
        size = len(json.dumps(item, ensure_ascii=False).encode("utf-8"))
        return Unknown(type=str(item_type), summary=f"{item_type}: ... {size} bytes ...")

    @staticmethod
    def _item(obj: dict) -> dict:
        item = obj.get("item")
        if not isinstance(item, dict):
            raise EventDecodeError("'item' is missing or not an object")
        return item
