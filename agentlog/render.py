"""Terminal rendering of canonical events.

Redaction is applied here, at display time, and never written back to the
events themselves.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from rich.console import Group
from rich.panel import Panel
from rich.text import Text

from agentlog.lib.json import dumps
from agentlog.models import CanonicalEvent, MessageEvent, MetaEvent, ToolCallEvent, ToolResultEvent
from agentlog.redaction import RedactionOptions, redact, redact_value

_STYLES = {
    "user": "cyan",
    "assistant": "green",
    "system": "magenta",
    "tool_call": "yellow",
    "tool_result": "yellow",
    "meta": "bright_black",
}


def format_ts(ts: int) -> str:
    try:
        return datetime.fromtimestamp(ts / 1000, tz=timezone.utc).isoformat(timespec="seconds")
    except (OverflowError, OSError, ValueError):
        return str(ts)


def display_text(event: CanonicalEvent, options: RedactionOptions | None = None) -> str:
    """The text a viewer shows (or copies) for ``event``, redacted per ``options``."""
    options = options or RedactionOptions()
    if isinstance(event, MessageEvent):
        return redact(event.text, options)
    if isinstance(event, ToolCallEvent):
        return dumps(redact_value(event.args, options), indent=True)
    if isinstance(event, ToolResultEvent):
        return dumps(redact_value(event.output, options), indent=True)
    if isinstance(event, MetaEvent):
        if event.summary is not None:
            return redact(event.summary, options)
        return dumps(redact_value(event.data, options), indent=True)
    raise TypeError(f"Unknown event type: {type(event).__name__}")


def redacted_dump(event: CanonicalEvent, options: RedactionOptions | None = None) -> dict[str, Any]:
    """JSON-ready dict of ``event`` with its text-bearing fields redacted.

    Attachment URLs are left alone; they are inline images, not text.
    """
    options = options or RedactionOptions()
    payload = event.model_dump(mode="json")
    for key in ("text", "summary"):
        if isinstance(payload.get(key), str):
            payload[key] = redact(payload[key], options)
    for key in ("args", "output", "data"):
        if key in payload:
            payload[key] = redact_value(payload[key], options)
    return payload


def event_title(event: CanonicalEvent) -> str:
    if isinstance(event, (ToolCallEvent, ToolResultEvent)):
        label = "tool call" if isinstance(event, ToolCallEvent) else "tool result"
        return f"{label}: {event.name}" if event.name else label
    if isinstance(event, MetaEvent):
        return "reasoning summary" if event.kind == "reasoning_summary" else event.kind.value
    return event.type


def render_event(event: CanonicalEvent, options: RedactionOptions | None = None) -> Panel:
    body: list[Text] = [Text(display_text(event, options))]
    if isinstance(event, MessageEvent):
        for attachment in event.attachments:
            label = attachment.alt or attachment.url.split(",", 1)[0]
            body.append(Text(f"[image] {label}", style="italic"))
    return Panel(
        Group(*body),
        title=event_title(event),
        subtitle=format_ts(event.ts),
        title_align="left",
        subtitle_align="right",
        border_style=_STYLES.get(event.type, "white"),
    )


__all__ = ["display_text", "event_title", "format_ts", "redacted_dump", "render_event"]
