"""Record normalization: one decoded JSON value in, one canonical event out.

Log producers overlap in the shapes they emit, so records are matched by an
ordered chain of shape matchers. Explicit markers beat field sniffing:

1. ``record_type`` / ``type`` discriminator (state, tool call, tool output,
   reasoning with a summary)
2. a ``reasoning.summary`` string
3. a nested ``function_call`` object, then ``function_call_output`` /
   ``tool_output``
4. a ``message.role`` / ``role`` of user, assistant or system with
   non-empty content

Records that match nothing are dropped without being counted as errors;
errors are reserved for lines that are not JSON at all.

``reasoning.content`` is never read: chain-of-thought detail stays out of
canonical events even when the source record carries it.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
from typing import Any

from agentlog.lib.json import dumps
from agentlog.lib.timestamps import now_ms, parse_timestamp_ms
from agentlog.models import (
    Attachment,
    CanonicalEvent,
    MessageEvent,
    MetaEvent,
    MetaKind,
    Role,
    ToolCallEvent,
    ToolResultEvent,
    is_allowed_image_url,
)

Record = dict[str, Any]
Matcher = Callable[[Record, int], "CanonicalEvent | None"]

_TOOL_CALL_TYPES = frozenset({"function_call", "tool_call"})
_TOOL_OUTPUT_TYPES = frozenset({"function_call_output", "tool_result", "tool_output"})
_TEXT_ITEM_TYPES = frozenset({"input_text", "output_text", "text"})


def _first(mapping: Record, *keys: str) -> Any:
    """First value under ``keys`` that is present and not null."""
    for key in keys:
        value = mapping.get(key)
        if value is not None:
            return value
    return None


def _name(value: Any) -> str:
    if isinstance(value, str):
        return value
    if value is None or value is False or value == 0:
        return ""
    return dumps(value)


def _nonblank(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _timestamp(record: Record, now: Callable[[], int]) -> int:
    ts = parse_timestamp_ms(_first(record, "ts", "time", "timestamp"))
    return ts if ts is not None else now()


def _match_discriminator(record: Record, ts: int) -> CanonicalEvent | None:
    raw = _first(record, "record_type", "type")
    if not isinstance(raw, str):
        return None
    rec_type = raw.lower()

    if rec_type == "state":
        return MetaEvent(ts=ts, kind=MetaKind.INFO, summary="state")
    if rec_type in _TOOL_CALL_TYPES:
        return ToolCallEvent(ts=ts, name=_name(record.get("name")), args=_first(record, "arguments", "args"))
    if rec_type in _TOOL_OUTPUT_TYPES:
        output = _first(record, "output", "result")
        return ToolResultEvent(
            ts=ts,
            name=_name(record.get("name")),
            output=output if output is not None else record,
        )
    if rec_type == "reasoning" and _nonblank(record.get("summary")):
        return MetaEvent(ts=ts, kind=MetaKind.REASONING_SUMMARY, summary=record["summary"])
    return None


def _match_reasoning(record: Record, ts: int) -> CanonicalEvent | None:
    reasoning = record.get("reasoning")
    if isinstance(reasoning, dict) and _nonblank(reasoning.get("summary")):
        return MetaEvent(ts=ts, kind=MetaKind.REASONING_SUMMARY, summary=reasoning["summary"])
    return None


def _match_function_call(record: Record, ts: int) -> CanonicalEvent | None:
    call = record.get("function_call")
    if not isinstance(call, dict):
        return None
    args = _first(call, "arguments", "args")
    return ToolCallEvent(ts=ts, name=_name(call.get("name")), args=args if args is not None else {})


def _match_function_output(record: Record, ts: int) -> CanonicalEvent | None:
    out = _first(record, "function_call_output", "tool_output")
    if not isinstance(out, dict):
        return None
    output = _first(out, "output", "result")
    return ToolResultEvent(ts=ts, name=_name(out.get("name")), output=output if output is not None else out)


def _image_url(item: Record) -> str:
    raw = item.get("image_url") or item.get("url")
    # OpenAI-style {"image_url": {"url": "..."}}
    if isinstance(raw, dict):
        raw = raw.get("url")
    return raw if isinstance(raw, str) else ""


def _item_text(item: Record) -> str:
    text = item.get("text")
    if isinstance(text, str):
        return text
    content = item.get("content")
    if isinstance(content, str):
        return content
    return dumps(item)


def parse_content(content: Any) -> tuple[str, list[Attachment]]:
    """Convert a message ``content`` value into display text plus attachments.

    String content is used as-is. List items are strings (verbatim), text
    parts, image parts, or arbitrary objects; their text contributions are
    joined with a blank line. Image parts whose URL is not inline
    (``data:image/`` or ``blob:``) are dropped silently.
    """
    attachments: list[Attachment] = []
    if content is None:
        return "", attachments
    if isinstance(content, str):
        return content, attachments
    if isinstance(content, dict):
        return dumps(content), attachments
    if not isinstance(content, list):
        return dumps(content), attachments

    parts: list[str] = []
    for item in content:
        if isinstance(item, str):
            parts.append(item)
            continue
        if isinstance(item, list):
            parts.append(dumps(item))
            continue
        if not isinstance(item, dict):
            continue

        item_type = item.get("type")
        item_type = item_type.lower() if isinstance(item_type, str) else None
        if item_type in _TEXT_ITEM_TYPES:
            parts.append(_item_text(item))
            continue
        if item_type is not None and "image" in item_type:
            url = _image_url(item)
            if is_allowed_image_url(url):
                alt = item.get("alt")
                attachments.append(Attachment(url=url, alt=alt if isinstance(alt, str) else None))
            continue
        parts.append(_item_text(item))

    return "\n\n".join(parts), attachments


def _match_message(record: Record, ts: int) -> CanonicalEvent | None:
    message = record.get("message")
    if not isinstance(message, dict):
        message = {}
    role_value = _first(message, "role")
    role = Role.coerce(role_value if role_value is not None else record.get("role"))
    if role is None:
        return None

    content = message.get("content")
    if content is None:
        content = record.get("content")
    text, attachments = parse_content(content)
    if not text:
        return None
    return MessageEvent(type=role.value, ts=ts, text=text, attachments=attachments)


# Order is load-bearing: explicit markers first, heuristics last.
MATCHERS: tuple[Matcher, ...] = (
    _match_discriminator,
    _match_reasoning,
    _match_function_call,
    _match_function_output,
    _match_message,
)


def normalize(record: Any, *, now: Callable[[], int] | None = None) -> CanonicalEvent | None:
    """Map one decoded JSON value to a canonical event, or None to drop it.

    Args:
        record: Any decoded JSON value; only objects can produce events
        now: Clock used when the record carries no usable timestamp

    Returns:
        The first matching canonical event, or None
    """
    if not isinstance(record, dict):
        return None
    ts = _timestamp(record, now or now_ms)
    for matcher in MATCHERS:
        event = matcher(record, ts)
        if event is not None:
            return event
    return None


def normalize_many(records: Iterable[Any], *, now: Callable[[], int] | None = None) -> Iterator[CanonicalEvent]:
    for record in records:
        event = normalize(record, now=now)
        if event is not None:
            yield event


__all__ = ["MATCHERS", "normalize", "normalize_many", "parse_content"]
