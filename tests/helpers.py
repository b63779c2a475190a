"""Shared test helpers."""

from __future__ import annotations

import asyncio

from agentlog.lib.json import dumps
from agentlog.models import MessageEvent


def jsonl(*records: object) -> bytes:
    """Encode records as newline-terminated JSON lines."""
    return "".join(dumps(record) + "\n" for record in records).encode("utf-8")


def drain(channel: asyncio.Queue) -> list:
    """Everything currently queued on ``channel``, in order."""
    messages = []
    while not channel.empty():
        messages.append(channel.get_nowait())
    return messages


def make_message(i: int, role: str = "user") -> MessageEvent:
    return MessageEvent(type=role, ts=1735689600000 + i, text=f"message {i}")


class SlowSource:
    """Byte source that yields one chunk, then blocks until released."""

    name = "slow.jsonl"
    size = None

    def __init__(self, first: bytes, rest: bytes = b"") -> None:
        self.first = first
        self.rest = rest
        self.release = asyncio.Event()
        self.closed = False

    async def stream(self):
        try:
            yield self.first
            await self.release.wait()
            if self.rest:
                yield self.rest
        finally:
            self.closed = True
