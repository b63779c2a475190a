"""Canonical event models.

Every log record that survives normalization becomes exactly one of these
frozen models. The set is closed: UI code can switch on ``type`` without a
fallback branch.

- `MessageEvent`: user / assistant / system text, with optional image
  attachments
- `ToolCallEvent`: a function/tool invocation with opaque JSON arguments
- `ToolResultEvent`: the matching output, also opaque JSON
- `MetaEvent`: reasoning summaries and informational markers

Example:
    events = EventListAdapter.validate_python([
        {"type": "user", "ts": 1735689600000, "text": "Hi"},
        {"type": "tool_call", "ts": 1735689601000, "name": "ls", "args": {}},
    ])
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

_ALLOWED_IMAGE_PREFIXES = ("data:image/", "blob:")


def is_allowed_image_url(url: str | None) -> bool:
    """Only inline ``data:image/`` and ``blob:`` URLs may be displayed.

    Anything fetchable (http, https, protocol-relative, file) is refused so
    that rendering a log never triggers a request to a third party.
    """
    if not url:
        return False
    return url.lower().startswith(_ALLOWED_IMAGE_PREFIXES)


class Role(str, Enum):
    """Message roles that produce a `MessageEvent`."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"

    @classmethod
    def coerce(cls, value: object) -> Role | None:
        """Case-insensitive exact match, None for anything else."""
        if not isinstance(value, str):
            return None
        try:
            return cls(value.lower())
        except ValueError:
            return None


class MetaKind(str, Enum):
    REASONING_SUMMARY = "reasoning_summary"
    INFO = "info"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class Attachment(_Frozen):
    kind: Literal["image"] = "image"
    url: str
    alt: str | None = None

    @field_validator("url")
    @classmethod
    def _check_url(cls, v: str) -> str:
        if not is_allowed_image_url(v):
            raise ValueError("attachment url must be a data:image/ or blob: URI")
        return v


class MessageEvent(_Frozen):
    type: Literal["user", "assistant", "system"]
    ts: int
    text: str
    attachments: list[Attachment] = Field(default_factory=list)

    @property
    def role(self) -> Role:
        return Role(self.type)


class ToolCallEvent(_Frozen):
    type: Literal["tool_call"] = "tool_call"
    ts: int
    name: str = ""
    args: Any = None


class ToolResultEvent(_Frozen):
    type: Literal["tool_result"] = "tool_result"
    ts: int
    name: str = ""
    output: Any = None


class MetaEvent(_Frozen):
    type: Literal["meta"] = "meta"
    ts: int
    kind: MetaKind
    summary: str | None = None
    data: Any = None


CanonicalEvent = Annotated[
    Union[MessageEvent, ToolCallEvent, ToolResultEvent, MetaEvent],
    Field(discriminator="type"),
]

EventListAdapter: TypeAdapter[list[CanonicalEvent]] = TypeAdapter(list[CanonicalEvent])


class ParseError(_Frozen):
    """A textual record that failed JSON decoding."""

    line_number: int = Field(ge=1)
    message: str


__all__ = [
    "Attachment",
    "CanonicalEvent",
    "EventListAdapter",
    "MessageEvent",
    "MetaEvent",
    "MetaKind",
    "ParseError",
    "Role",
    "ToolCallEvent",
    "ToolResultEvent",
    "is_allowed_image_url",
]
