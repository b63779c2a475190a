"""Consumer-side controller for ingestion runs.

`PipelineClient` owns at most one worker task at a time and is the only
writer of `RunState`. Every run gets a fresh generation number; messages
tagged with any other generation are dropped, so a superseded run can
never leak events into the current one even though all runs share a
single channel.

Example:
    async with PipelineClient() as client:
        client.start_from_file("logs/session.jsonl")
        state = await client.wait()
        print(len(state.events), state.error_count)
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

import httpx

from agentlog.config import PipelineSettings
from agentlog.lib.log import get_logger
from agentlog.models import CanonicalEvent, ParseError
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
from agentlog.pipeline.worker import IngestionWorker
from agentlog.sources import ByteSource, FileSource

logger = get_logger(__name__)

__all__ = ["PipelineClient", "RunState", "RunStatus"]


class RunStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    DONE = "done"
    ERROR = "error"


@dataclass
class RunState:
    """Accumulated state of one run, as seen by the consumer."""

    run_id: int = 0
    status: RunStatus = RunStatus.IDLE
    events: list[CanonicalEvent] = field(default_factory=list)
    error_count: int = 0
    error_samples: list[ParseError] = field(default_factory=list)
    bytes_read: int = 0
    total_bytes: int | None = None
    error_message: str | None = None

    @property
    def finished(self) -> bool:
        return self.status in (RunStatus.DONE, RunStatus.ERROR)

    @property
    def progress(self) -> float | None:
        """Fraction of the source read, when its size is known."""
        if not self.total_bytes:
            return None
        return min(self.bytes_read / self.total_bytes, 1.0)


class PipelineClient:
    """Starts, supersedes and resets ingestion runs; applies their messages."""

    def __init__(
        self,
        settings: PipelineSettings | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
        on_update: Callable[[RunState], None] | None = None,
        on_message: Callable[[WorkerMessage], None] | None = None,
    ) -> None:
        self.settings = settings or PipelineSettings()
        self._http_client = http_client
        self._on_update = on_update
        self._on_message = on_message
        self._channel: asyncio.Queue[WorkerMessage] = asyncio.Queue()
        self._generation = 0
        self._task: asyncio.Task[object] | None = None
        self.state = RunState()

    async def __aenter__(self) -> PipelineClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    @property
    def run_id(self) -> int:
        return self.state.run_id

    # -- run control -----------------------------------------------------

    def _abandon(self) -> None:
        """Stop applying the current run; cancelling the task closes its source."""
        task, self._task = self._task, None
        if task is not None and not task.done():
            logger.debug("Abandoning run", run_id=self.state.run_id)
            task.cancel()

    def start(self, command: InboundMessage) -> int:
        """Supersede any current run and start a new one. Must be called from a running loop.

        Returns:
            The new run's id
        """
        self._abandon()
        self._generation += 1
        run_id = self._generation
        self.state = RunState(run_id=run_id, status=RunStatus.LOADING)
        worker = IngestionWorker(self._channel, run_id, self.settings, http_client=self._http_client)
        self._task = asyncio.get_running_loop().create_task(worker.run(command), name=f"agentlog-run-{run_id}")
        self._notify()
        return run_id

    def start_from_url(self, url: str) -> int:
        return self.start(ParseFromUrl(url=url))

    def start_from_file(self, source: ByteSource | Path | str) -> int:
        if isinstance(source, (str, Path)):
            source = FileSource(source, chunk_size=self.settings.chunk_size)
        return self.start(ParseFromFile(source=source))

    def reset(self) -> None:
        """Abandon the current run and return to an empty idle state."""
        self._abandon()
        self._generation += 1
        self.state = RunState(run_id=self._generation)
        self._notify()

    async def aclose(self) -> None:
        task = self._task
        self._abandon()
        if task is not None:
            # Let the cancelled worker close its byte source before returning
            await asyncio.gather(task, return_exceptions=True)

    # -- message application ---------------------------------------------

    def _notify(self) -> None:
        if self._on_update is not None:
            self._on_update(self.state)

    def apply(self, message: WorkerMessage) -> bool:
        """Apply one worker message to the current state.

        Returns:
            False if the message was dropped (stale run, or the run is
            already frozen), True otherwise
        """
        state = self.state
        if message.run_id != state.run_id or state.status is not RunStatus.LOADING:
            return False

        if isinstance(message, BatchMessage):
            state.events.extend(message.events)
        elif isinstance(message, ProgressMessage):
            state.bytes_read = message.bytes_read
            state.total_bytes = message.total_bytes
        elif isinstance(message, DoneMessage):
            state.error_count = message.error_count
            state.error_samples = list(message.error_samples)
            state.status = RunStatus.DONE
        elif isinstance(message, ErrorMessage):
            state.error_count = len(message.error_samples)
            state.error_samples = list(message.error_samples)
            state.error_message = message.message
            state.status = RunStatus.ERROR
        else:
            return False

        if self._on_message is not None:
            self._on_message(message)
        self._notify()
        return True

    def drain(self) -> int:
        """Apply every message already queued without waiting; returns how many were applied."""
        applied = 0
        while True:
            try:
                message = self._channel.get_nowait()
            except asyncio.QueueEmpty:
                return applied
            if self.apply(message):
                applied += 1

    async def wait(self) -> RunState:
        """Consume messages until the current run is done or failed."""
        while self.state.status is RunStatus.LOADING:
            message = await self._channel.get()
            self.apply(message)
        return self.state
