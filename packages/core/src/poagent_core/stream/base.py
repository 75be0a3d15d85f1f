"""Base event decoder implementing the Template Method pattern.

Every vendor decoder shares the same dispatch:
    decode() → handler registered for the line's ``type``   ← differs per vendor
             → unknown() for anything else

Subclasses declare a VendorProfile and a ``handlers`` table mapping each
recognised ``type`` discriminant to a method name. Handlers raise
EventDecodeError when a recognised line has the wrong shape; the parser logs
and skips such lines.
"""

from __future__ import annotations

import json
from abc import ABC
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar

from poagent_core.stream.display import DisplayLimits
from poagent_core.stream.events import StreamEvent, TextChunk, ToolInvocation, Unknown
from poagent_core.stream.results import RunResult, Usage


class EventDecodeError(ValueError):
    """A line with a recognised type could not be decoded."""


class UsageMode(Enum):
    LAST_NONZERO = "last_nonzero"  # a later zero never overwrites an earlier value
    LATEST = "latest"  # usage is already cumulative, newest report wins
    SUM = "sum"  # usage arrives as per-turn deltas


class TextPolicy(Enum):
    CONCAT = "concat"
    LAST_MESSAGE = "last_message"
    LAST_TURN = "last_turn"


class UnknownDisplay(Enum):
    RAW = "raw"  # echo the line and keep it in the content
    SUMMARY = "summary"  # "❓ type: ... N bytes ..."
    SILENT = "silent"


@dataclass(frozen=True)
class VendorProfile:
    name: str
    result_type: type[RunResult]
    bracketed: bool = False
    usage_mode: UsageMode = UsageMode.LAST_NONZERO
    text_policy: TextPolicy = TextPolicy.CONCAT
    opaque_raw: bool = False
    unknown_display: UnknownDisplay = UnknownDisplay.RAW
    elapsed_at_eof: bool = False


class BaseDecoder(ABC):
    profile: ClassVar[VendorProfile]
    handlers: ClassVar[dict[str, str]] = {}

    def __init__(self, limits: DisplayLimits | None = None):
        self.limits = limits or DisplayLimits()

    # ------------------------------------------------------------------ #
    # Public interface                                                     #
    # ------------------------------------------------------------------ #

    def decode(self, event_type: str, obj: dict, line: str) -> list[StreamEvent]:
        name = self.handlers.get(event_type)
        if name is None:
            return self.unknown(event_type, obj, line)
        return getattr(self, name)(obj, line)

    def unknown(self, event_type: str, obj: dict, line: str) -> list[StreamEvent]:
        return [Unknown(type=event_type, raw=line)]

    # ------------------------------------------------------------------ #
    # Shared helpers                                                       #
    # ------------------------------------------------------------------ #

    def content_blocks(self, blocks: list) -> list[StreamEvent]:
        """Decode Anthropic-style assistant content blocks (claude and gemini)."""
        events: list[StreamEvent] = []
        for block in blocks:
            if not isinstance(block, dict) or not isinstance(block.get("type", ""), str):
                continue
            kind = block.get("type", "")
            if kind == "text":
                events.append(TextChunk(text=get_str(block, "text")))
            elif kind == "thinking":
                events.append(TextChunk(text=get_str(block, "thinking"), thinking=True, to_result=False))
            elif kind == "tool_use":
                events.append(ToolInvocation(display=format_tool_call(get_str(block, "name"), get_dict(block, "input"))))
            else:
                size = len(json.dumps(block, ensure_ascii=False).encode("utf-8"))
                events.append(Unknown(type=kind, summary=f"... {size} bytes ..."))
        return events


def format_value(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False)


def format_tool_call(name: str, arguments: dict, value_max: int | None = None, sort: bool = False) -> str:
    """Render a tool call as ``name: k=v, k=v``."""
    pairs = []
    for key, value in arguments.items():
        text = format_value(value)
        if value_max is not None and len(text) > value_max:
            text = text[: value_max - 3] + "..."
        pairs.append(f"{key}={text}")
    if sort:
        pairs.sort()
    if not pairs:
        return name
    return f"{name}: {', '.join(pairs)}"


def _typed(obj: dict, key: str, kinds: tuple, default: Any) -> Any:
    value = obj.get(key)
    if value is None:
        return default
    # bool is an int subclass but never a valid count
    if not isinstance(value, kinds) or (isinstance(value, bool) and bool not in kinds):
        raise EventDecodeError(f"field {key!r} has unexpected type {type(value).__name__}")
    return value


def get_str(obj: dict, key: str) -> str:
    return _typed(obj, key, (str,), "")


def get_int(obj: dict, key: str) -> int:
    value = _typed(obj, key, (int, float), 0)
    return int(value)


def get_dict(obj: dict, key: str) -> dict:
    return _typed(obj, key, (dict,), {})


def get_list(obj: dict, key: str) -> list:
    return _typed(obj, key, (list,), [])


def get_optional_dict(obj: dict, key: str) -> dict | None:
    return _typed(obj, key, (dict,), None)


def usage_from(obj: dict | None, *, cached_key: str = "", total_key: str = "") -> Usage | None:
    if obj is None:
        return None
    return Usage(
        input_tokens=get_int(obj, "input_tokens"),
        output_tokens=get_int(obj, "output_tokens"),
        cached_tokens=get_int(obj, cached_key) if cached_key else 0,
        total_tokens=get_int(obj, total_key) if total_key else 0,
    )
