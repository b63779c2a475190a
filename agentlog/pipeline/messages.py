"""Worker protocol messages.

The ingestion worker and the pipeline client share no state; they talk
only through these frozen dataclasses, passed over an asyncio queue.

Inbound (client → worker):

    ParseFromUrl     : stream a log from an http(s) URL
    ParseFromFile    : read a log from a byte source (local file or upload)

Outbound (worker → client), each tagged with the ``run_id`` it belongs to:

    BatchMessage     : a group of canonical events, in record order
    ProgressMessage  : cumulative bytes read, total size when known
    DoneMessage      : terminal: run completed, with the error summary
    ErrorMessage     : terminal: run failed

Within a run, the terminal message is always the last one posted. The
client drops any message whose ``run_id`` is not the current run.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, Union

from agentlog.models import CanonicalEvent, ParseError
from agentlog.sources import ByteSource


@dataclass(frozen=True)
class ParseFromUrl:
    op: ClassVar[str] = "parse-from-url"

    url: str


@dataclass(frozen=True)
class ParseFromFile:
    op: ClassVar[str] = "parse-from-file"

    source: ByteSource


InboundMessage = Union[ParseFromUrl, ParseFromFile]


@dataclass(frozen=True)
class WorkerMessage:
    """Base class for messages posted by the worker."""

    op: ClassVar[str] = ""

    run_id: int


@dataclass(frozen=True)
class BatchMessage(WorkerMessage):
    op: ClassVar[str] = "batch"

    events: tuple[CanonicalEvent, ...] = ()


@dataclass(frozen=True)
class ProgressMessage(WorkerMessage):
    op: ClassVar[str] = "progress"

    bytes_read: int = 0
    total_bytes: int | None = None


@dataclass(frozen=True)
class DoneMessage(WorkerMessage):
    op: ClassVar[str] = "done"

    error_count: int = 0
    error_samples: tuple[ParseError, ...] = ()


@dataclass(frozen=True)
class ErrorMessage(WorkerMessage):
    op: ClassVar[str] = "error"

    message: str = ""
    error_samples: tuple[ParseError, ...] = ()


OutboundMessage = Union[BatchMessage, ProgressMessage, DoneMessage, ErrorMessage]

TERMINAL_MESSAGES: tuple[type[WorkerMessage], ...] = (DoneMessage, ErrorMessage)


def is_terminal(message: WorkerMessage) -> bool:
    return isinstance(message, TERMINAL_MESSAGES)


def to_wire(message: WorkerMessage) -> dict[str, Any]:
    """JSON-ready form of an outbound message, e.g. for ``--json`` output or logs."""
    payload: dict[str, Any] = {"op": message.op, "run_id": message.run_id}
    if isinstance(message, BatchMessage):
        payload["events"] = [event.model_dump(mode="json") for event in message.events]
    elif isinstance(message, ProgressMessage):
        payload["bytes_read"] = message.bytes_read
        payload["total_bytes"] = message.total_bytes
    elif isinstance(message, DoneMessage):
        payload["error_count"] = message.error_count
        payload["error_samples"] = [sample.model_dump() for sample in message.error_samples]
    elif isinstance(message, ErrorMessage):
        payload["message"] = message.message
        payload["error_samples"] = [sample.model_dump() for sample in message.error_samples]
    return payload


__all__ = [
    "BatchMessage",
    "DoneMessage",
    "ErrorMessage",
    "InboundMessage",
    "OutboundMessage",
    "ParseFromFile",
    "ParseFromUrl",
    "ProgressMessage",
    "TERMINAL_MESSAGES",
    "WorkerMessage",
    "is_terminal",
    "to_wire",
]
