"""Size- and time-bounded event batching.

Events are buffered and handed to ``emit`` as one batch when either the
buffer reaches ``max_size`` or ``max_delay`` seconds have passed since the
first unflushed event was added. The timer runs on the event loop, so it
can only fire while the producer is suspended (awaiting its next chunk).
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable

from agentlog.models import CanonicalEvent

DEFAULT_BATCH_SIZE = 200
DEFAULT_BATCH_DELAY = 0.05


class BatchAccumulator:
    """Buffers canonical events and emits them in bounded batches.

    Example:
        acc = BatchAccumulator(lambda batch: channel.put_nowait(batch))
        for event in events:
            acc.add(event)
        acc.close()  # final flush
    """

    def __init__(
        self,
        emit: Callable[[list[CanonicalEvent]], None],
        *,
        max_size: int = DEFAULT_BATCH_SIZE,
        max_delay: float = DEFAULT_BATCH_DELAY,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self._emit = emit
        self._max_size = max_size
        self._max_delay = max_delay
        self._loop = loop
        self._buffer: list[CanonicalEvent] = []
        self._timer: asyncio.TimerHandle | None = None
        self._closed = False
        self.batches_emitted = 0

    def __len__(self) -> int:
        return len(self._buffer)

    def _start_timer(self) -> None:
        loop = self._loop or asyncio.get_running_loop()
        self._timer = loop.call_later(self._max_delay, self._on_timer)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_timer(self) -> None:
        self._timer = None
        self.flush()

    def add(self, event: CanonicalEvent) -> None:
        if self._closed:
            raise RuntimeError("BatchAccumulator is closed")
        self._buffer.append(event)
        if len(self._buffer) >= self._max_size:
            self.flush()
        elif self._timer is None:
            self._start_timer()

    def flush(self) -> None:
        """Emit the buffered events as one batch; no-op when empty."""
        self._cancel_timer()
        if not self._buffer:
            return
        batch, self._buffer = self._buffer, []
        self.batches_emitted += 1
        self._emit(batch)

    def close(self) -> None:
        """Final flush; no further events are accepted."""
        self.flush()
        self._closed = True

    def discard(self) -> None:
        """Drop buffered events without emitting them (abandoned run)."""
        self._cancel_timer()
        self._buffer = []
        self._closed = True


__all__ = ["BatchAccumulator", "DEFAULT_BATCH_DELAY", "DEFAULT_BATCH_SIZE"]
