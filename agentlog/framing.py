"""Framing: byte chunks to textual records.

Two modes:

- ``STREAMED``: newline-delimited records. Bytes are decoded incrementally,
  so a multi-byte character split across two chunks still decodes
  correctly; the partial last line is held until the next chunk.
- ``DOCUMENT``: the whole payload is one JSON document. An array yields
  one record per element, any other value yields exactly one record.
"""

from __future__ import annotations

import codecs
from dataclasses import dataclass
from enum import Enum
from typing import Any

from agentlog.errors import DocumentParseError
from agentlog.lib.json import JSONDecodeError, loads

_STREAMED_SUFFIXES = (".jsonl", ".ndjson", ".jsonl.txt")
_DOCUMENT_SUFFIXES = (".json",)
_WHITESPACE = b" \t\r\n"
_UTF8_BOM = codecs.BOM_UTF8

INVALID_DOCUMENT_MESSAGE = "Invalid JSON content"


class FramingMode(str, Enum):
    STREAMED = "streamed"
    DOCUMENT = "document"


@dataclass(frozen=True)
class TextRecord:
    """One physical line; ``line_number`` counts from 1 and includes blank lines."""

    line_number: int
    text: str


class LineFramer:
    """Incremental newline framer.

    Example:
        framer = LineFramer()
        for chunk in chunks:
            for record in framer.feed(chunk):
                ...
        for record in framer.finish():
            ...
    """

    def __init__(self) -> None:
        # utf-8-sig drops a leading BOM; bad bytes become U+FFFD
        self._decoder = codecs.getincrementaldecoder("utf-8-sig")(errors="replace")
        self._pending = ""
        self._line_number = 0
        self._finished = False

    @property
    def line_number(self) -> int:
        return self._line_number

    def _emit(self, lines: list[str]) -> list[TextRecord]:
        records: list[TextRecord] = []
        for line in lines:
            self._line_number += 1
            if not line.strip():
                continue
            records.append(TextRecord(self._line_number, line))
        return records

    def feed(self, chunk: bytes) -> list[TextRecord]:
        if self._finished:
            raise RuntimeError("LineFramer.feed() called after finish()")
        text = self._pending + self._decoder.decode(chunk)
        *lines, self._pending = text.split("\n")
        return self._emit(lines)

    def finish(self) -> list[TextRecord]:
        """Flush the decoder and yield the unterminated last line, if any."""
        if self._finished:
            return []
        self._finished = True
        tail = self._pending + self._decoder.decode(b"", final=True)
        self._pending = ""
        if not tail.strip():
            return []
        self._line_number += 1
        return [TextRecord(self._line_number, tail)]


def decode_record(record: TextRecord) -> Any:
    """Decode one framed line.

    Raises:
        JSONDecodeError: If the line is not valid JSON
    """
    return loads(record.text)


def decode_document(data: bytes) -> list[Any]:
    """Decode a whole-document payload into its raw records.

    Raises:
        DocumentParseError: If the payload is not valid JSON
    """
    if data.startswith(_UTF8_BOM):
        data = data[len(_UTF8_BOM):]
    try:
        parsed = loads(data)
    except JSONDecodeError as exc:
        raise DocumentParseError(INVALID_DOCUMENT_MESSAGE) from exc
    if isinstance(parsed, list):
        return parsed
    return [parsed]


def first_significant_byte(head: bytes) -> bytes | None:
    """First non-whitespace byte after an optional BOM, None if there is none yet."""
    if head.startswith(_UTF8_BOM):
        head = head[len(_UTF8_BOM):]
    stripped = head.lstrip(_WHITESPACE)
    return stripped[:1] or None


def detect_mode(name: str, head: bytes) -> FramingMode:
    """Pick the framing mode from the source name, then the peeked prefix.

    ``.jsonl``/``.ndjson`` are always streamed and ``.json`` is always a
    single document. For anything else (typically a URL) a prefix starting
    with ``[`` is a JSON array document.
    """
    lowered = name.lower()
    if lowered.endswith(_STREAMED_SUFFIXES):
        return FramingMode.STREAMED
    if lowered.endswith(_DOCUMENT_SUFFIXES):
        return FramingMode.DOCUMENT
    if first_significant_byte(head) == b"[":
        return FramingMode.DOCUMENT
    return FramingMode.STREAMED


__all__ = [
    "INVALID_DOCUMENT_MESSAGE",
    "FramingMode",
    "LineFramer",
    "TextRecord",
    "decode_document",
    "decode_record",
    "detect_mode",
    "first_significant_byte",
]
