"""Byte sources consumed by the ingestion worker.

A byte source is anything with a ``name``, an optional ``size`` and a
``stream()`` method returning an async iterator of byte chunks:

- `FileSource`: a local file read with aiofiles
- `BytesSource`: an in-memory upload
- `HttpSource`: a streamed HTTP response body (httpx)

Streams are async generators. Closing the generator (``aclose()``, or
cancelling the task iterating it) closes the underlying file handle or
HTTP response.
"""

from __future__ import annotations

import os
from collections.abc import AsyncIterator
from pathlib import Path
from typing import Protocol, runtime_checkable
from urllib.parse import parse_qs, unquote, urlparse

import aiofiles
import httpx

from agentlog.errors import SourceError
from agentlog.lib.log import get_logger

logger = get_logger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024

_STREAMABLE_CONTENT_TYPES = frozenset(
    {
        "text/plain",
        "application/json",
        "application/x-ndjson",
        "application/jsonl",
        "application/x-jsonlines",
        "application/octet-stream",
    }
)


@runtime_checkable
class ByteSource(Protocol):
    """Protocol for objects the ingestion worker can read from."""

    name: str

    @property
    def size(self) -> int | None: ...

    def stream(self) -> AsyncIterator[bytes]: ...


class FileSource:
    """A local file, read in fixed-size chunks."""

    def __init__(self, path: Path | str, *, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        self.path = Path(path)
        self.name = self.path.name
        self.chunk_size = chunk_size
        self._size: int | None = None

    @property
    def size(self) -> int | None:
        if self._size is None:
            try:
                self._size = self.path.stat().st_size
            except OSError:
                return None
        return self._size

    def check_readable(self) -> None:
        """Raise SourceError unless the path is a readable regular file."""
        if not self.path.is_file():
            raise SourceError(f"File not found: {self.name}")
        if not os.access(self.path, os.R_OK):
            raise SourceError(f"File is not readable: {self.name}")

    async def stream(self) -> AsyncIterator[bytes]:
        self.check_readable()
        try:
            async with aiofiles.open(self.path, "rb") as handle:
                while True:
                    chunk = await handle.read(self.chunk_size)
                    if not chunk:
                        break
                    yield chunk
        except OSError as exc:
            raise SourceError(f"Unable to read {self.name}: {exc.strerror or exc}") from exc


class BytesSource:
    """An in-memory payload, e.g. an uploaded file."""

    def __init__(self, data: bytes, name: str = "upload", *, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        self.data = data
        self.name = name
        self.chunk_size = chunk_size

    @property
    def size(self) -> int | None:
        return len(self.data)

    async def stream(self) -> AsyncIterator[bytes]:
        view = memoryview(self.data)
        for start in range(0, len(view), self.chunk_size):
            yield bytes(view[start : start + self.chunk_size])


def _content_type(resp: httpx.Response) -> str | None:
    raw = resp.headers.get("content-type")
    if not raw:
        return None
    return raw.split(";", 1)[0].strip().lower()


def _raise_for_status(resp: httpx.Response, url: str) -> None:
    """Raise SourceError for non-2xx responses and non-text bodies."""
    if not resp.is_success:
        raise SourceError(f"HTTP {resp.status_code} fetching {url}")
    content_type = _content_type(resp)
    if content_type is not None and content_type not in _STREAMABLE_CONTENT_TYPES:
        raise SourceError(f"Invalid stream: unsupported content type {content_type!r}")


def _name_from_url(url: str) -> str:
    """Basename of the URL path, or of a ``?path=`` query when present."""
    parsed = urlparse(url)
    query_path = parse_qs(parsed.query).get("path")
    path = query_path[0] if query_path else unquote(parsed.path)
    return path.rstrip("/").rsplit("/", 1)[-1] or url


class HttpSource:
    """A streamed HTTP response body.

    ``size`` is known only once the response headers have arrived, i.e.
    after the first chunk has been requested.
    """

    def __init__(self, url: str, client: httpx.AsyncClient, *, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        self.url = url
        self.client = client
        self.chunk_size = chunk_size
        self.name = _name_from_url(url)
        self._size: int | None = None

    @property
    def size(self) -> int | None:
        return self._size

    async def stream(self) -> AsyncIterator[bytes]:
        async with self.client.stream("GET", self.url) as resp:
            _raise_for_status(resp, self.url)
            length = resp.headers.get("content-length")
            if length and length.isdigit():
                self._size = int(length) or None
            logger.debug("http_source_opened", url=self.url, size=self._size)
            async for chunk in resp.aiter_bytes(chunk_size=self.chunk_size):
                if chunk:
                    yield chunk


__all__ = ["ByteSource", "BytesSource", "DEFAULT_CHUNK_SIZE", "FileSource", "HttpSource"]
