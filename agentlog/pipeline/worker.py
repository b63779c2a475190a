"""Ingestion worker: byte source in, protocol messages out.

One worker owns one run. It acquires the byte source, frames and decodes
records, normalizes them, batches the resulting events and posts protocol
messages on its channel. Reading the next chunk is the only suspension
point; everything between two reads runs to completion synchronously, so
no record is ever observed half-processed.

Data flow:
    [ByteSource] → LineFramer / decode_document → normalize → BatchAccumulator → channel
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import aclosing
from enum import Enum
from typing import Any

import httpx

from agentlog.config import PipelineSettings
from agentlog.errors import AgentlogError, DocumentParseError
from agentlog.framing import (
    INVALID_DOCUMENT_MESSAGE,
    FramingMode,
    LineFramer,
    TextRecord,
    decode_document,
    decode_record,
    detect_mode,
    first_significant_byte,
)
from agentlog.lib.json import JSONDecodeError
from agentlog.lib.log import get_logger
from agentlog.models import CanonicalEvent, ParseError
from agentlog.normalize import normalize
from agentlog.pipeline.batching import BatchAccumulator
from agentlog.pipeline.messages import (
    BatchMessage,
    DoneMessage,
    ErrorMessage,
    InboundMessage,
    ParseFromFile,
    ParseFromUrl,
    ProgressMessage,
    WorkerMessage,
)
from agentlog.sources import ByteSource, HttpSource

logger = get_logger(__name__)

__all__ = ["IngestionWorker", "WorkerState"]


class WorkerState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class IngestionWorker:
    """Runs one ingestion from a byte source to a terminal message.

    Example:
        channel: asyncio.Queue[WorkerMessage] = asyncio.Queue()
        worker = IngestionWorker(channel, run_id=1)
        state = await worker.run(ParseFromFile(FileSource("session.jsonl")))
    """

    def __init__(
        self,
        channel: asyncio.Queue[WorkerMessage],
        run_id: int,
        settings: PipelineSettings | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._channel = channel
        self.run_id = run_id
        self.settings = settings or PipelineSettings()
        self._http_client = http_client
        self.state = WorkerState.IDLE
        self.error_count = 0
        self.error_samples: list[ParseError] = []
        self.bytes_read = 0
        self.events_emitted = 0
        self._log = logger.bind(run_id=run_id)
        self._batches: BatchAccumulator | None = None

    # -- posting ---------------------------------------------------------

    def _post(self, message: WorkerMessage) -> None:
        self._channel.put_nowait(message)

    def _emit_batch(self, events: list[CanonicalEvent]) -> None:
        self.events_emitted += len(events)
        self._post(BatchMessage(run_id=self.run_id, events=tuple(events)))

    def _report_progress(self, chunk: bytes, total: int | None) -> None:
        self.bytes_read += len(chunk)
        self._post(ProgressMessage(run_id=self.run_id, bytes_read=self.bytes_read, total_bytes=total))

    # -- record handling -------------------------------------------------

    def _enqueue(self, raw: Any) -> None:
        event = normalize(raw)
        if event is not None and self._batches is not None:
            self._batches.add(event)

    def _record_error(self, line_number: int, message: str) -> None:
        self.error_count += 1
        if len(self.error_samples) < self.settings.error_sample_limit:
            self.error_samples.append(ParseError(line_number=line_number, message=message))

    def _process_line(self, record: TextRecord) -> None:
        try:
            raw = decode_record(record)
        except JSONDecodeError as exc:
            self._log.debug("record_decode_failed", line=record.line_number, error=str(exc))
            self._record_error(record.line_number, str(exc))
            return
        self._enqueue(raw)

    # -- modes -----------------------------------------------------------

    async def _peek(self, chunks: AsyncIterator[bytes], source: ByteSource) -> list[bytes]:
        """Read until the first non-whitespace byte (or the end); chunks are kept, not re-read."""
        head: list[bytes] = []
        async for chunk in chunks:
            self._report_progress(chunk, source.size)
            head.append(chunk)
            if first_significant_byte(b"".join(head)) is not None:
                break
        return head

    async def _run_streamed(self, head: list[bytes], chunks: AsyncIterator[bytes], source: ByteSource) -> None:
        framer = LineFramer()
        for chunk in head:
            for record in framer.feed(chunk):
                self._process_line(record)
        async for chunk in chunks:
            self._report_progress(chunk, source.size)
            for record in framer.feed(chunk):
                self._process_line(record)
        for record in framer.finish():
            self._process_line(record)

    async def _run_document(self, head: list[bytes], chunks: AsyncIterator[bytes], source: ByteSource) -> None:
        buffer = bytearray().join(head)
        async for chunk in chunks:
            self._report_progress(chunk, source.size)
            buffer.extend(chunk)
        for raw in decode_document(bytes(buffer)):
            self._enqueue(raw)

    async def _ingest(self, source: ByteSource) -> None:
        async with aclosing(source.stream()) as chunks:
            head = await self._peek(chunks, source)
            if not head:
                self._log.info("ingest_empty_source", source=source.name)
                return
            mode = detect_mode(source.name, b"".join(head))
            self._log.info("ingest_mode_selected", source=source.name, mode=mode.value)
            if mode is FramingMode.DOCUMENT:
                await self._run_document(head, chunks, source)
            else:
                await self._run_streamed(head, chunks, source)

    # -- entry point -----------------------------------------------------

    def _finish(self, terminal: WorkerMessage) -> None:
        if self._batches is not None:
            self._batches.close()
        self._post(terminal)

    async def run(self, command: InboundMessage) -> WorkerState:
        """Execute one run and post its terminal message.

        Returns:
            COMPLETED or FAILED. Cancellation propagates after closing the
            byte source; nothing further is posted for a cancelled run.

        Raises:
            RuntimeError: If this worker has already run
        """
        if self.state is not WorkerState.IDLE:
            raise RuntimeError("IngestionWorker.run() may only be called once")
        self.state = WorkerState.RUNNING
        self._batches = BatchAccumulator(
            self._emit_batch,
            max_size=self.settings.batch_size,
            max_delay=self.settings.batch_interval,
        )
        self._log.info("ingest_started", op=getattr(command, "op", None))

        owned_client: httpx.AsyncClient | None = None
        try:
            if isinstance(command, ParseFromUrl):
                client = self._http_client
                if client is None:
                    owned_client = client = httpx.AsyncClient(
                        timeout=httpx.Timeout(None, connect=self.settings.http_connect_timeout),
                        follow_redirects=True,
                    )
                source: ByteSource = HttpSource(command.url, client, chunk_size=self.settings.chunk_size)
            elif isinstance(command, ParseFromFile):
                source = command.source
            else:
                raise TypeError(f"Unsupported command: {type(command).__name__}")
            await self._ingest(source)
        except asyncio.CancelledError:
            self._batches.discard()
            self._log.info("ingest_cancelled", bytes_read=self.bytes_read)
            raise
        except DocumentParseError as exc:
            self._fail(str(exc), (ParseError(line_number=1, message=INVALID_DOCUMENT_MESSAGE),))
        except (AgentlogError, httpx.HTTPError, OSError) as exc:
            self._fail(str(exc) or type(exc).__name__)
        except Exception as exc:
            self._log.exception("ingest_crashed")
            self._fail(str(exc) or type(exc).__name__)
        else:
            self.state = WorkerState.COMPLETED
            self._finish(
                DoneMessage(
                    run_id=self.run_id,
                    error_count=self.error_count,
                    error_samples=tuple(self.error_samples),
                )
            )
            self._log.info(
                "ingest_completed",
                events=self.events_emitted,
                errors=self.error_count,
                bytes_read=self.bytes_read,
            )
        finally:
            if owned_client is not None:
                await owned_client.aclose()
        return self.state

    def _fail(self, message: str, samples: tuple[ParseError, ...] = ()) -> None:
        self.state = WorkerState.FAILED
        self._log.warning("ingest_failed", error=message)
        self._finish(ErrorMessage(run_id=self.run_id, message=message, error_samples=samples))
