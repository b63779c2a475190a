"""JSON encoding and decoding for log records, backed by orjson.

Decoding is strict RFC 8259: trailing commas, comments and NaN literals
are decode errors, which is what per-line error counting relies on.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

import orjson

# orjson.JSONDecodeError subclasses ValueError
JSONDecodeError = orjson.JSONDecodeError

_COMPACT = orjson.OPT_NON_STR_KEYS
_PRETTY = orjson.OPT_NON_STR_KEYS | orjson.OPT_INDENT_2


def _encode_extra(obj: Any) -> Any:
    if isinstance(obj, Decimal):
        return float(obj)
    if isinstance(obj, (set, frozenset)):
        return sorted(obj, key=repr)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def dumps(obj: Any, *, indent: bool = False) -> str:
    """Serialize ``obj``; compact by default, two-space indented for display."""
    return orjson.dumps(obj, default=_encode_extra, option=_PRETTY if indent else _COMPACT).decode("utf-8")


def loads(data: str | bytes | bytearray | memoryview) -> Any:
    """Parse one JSON value.

    Raises:
        JSONDecodeError: If ``data`` is not exactly one valid JSON value
    """
    return orjson.loads(data)


__all__ = ["JSONDecodeError", "dumps", "loads"]
