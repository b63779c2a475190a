"""Timestamp normalization to epoch milliseconds.

Log producers disagree on how they stamp records:
- Unix epoch in seconds or milliseconds, as int/float
- Unix epoch as an all-digit string
- ISO 8601 strings, with or without a trailing ``Z``

Numeric epochs below ``1e12`` are taken to be seconds and scaled by 1000.
1e12 ms is September 2001, so any millisecond stamp from a modern log is
above the threshold, while second stamps stay below it until the year
33658. All operations use UTC.
"""

from __future__ import annotations

import math
import time
from datetime import datetime, timezone

SECONDS_THRESHOLD = 1e12


def now_ms() -> int:
    """Current time in epoch milliseconds."""
    return int(time.time() * 1000)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def normalize_epoch(value: int | float) -> int:
    """Scale a numeric epoch to milliseconds (seconds below 1e12)."""
    if value < SECONDS_THRESHOLD:
        return _round_half_up(value * 1000)
    return _round_half_up(value)


def parse_timestamp_ms(value: object) -> int | None:
    """Parse a timestamp from various formats to epoch milliseconds.

    Args:
        value: Epoch (int/float/digit string) or ISO 8601 string

    Returns:
        Epoch milliseconds, or None if the value is absent or unparsable
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        try:
            if not math.isfinite(value):
                return None
            return normalize_epoch(value)
        except OverflowError:
            return None

    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None

    # All-digit strings are epochs, not years
    if text.replace(".", "", 1).isdigit():
        try:
            return normalize_epoch(float(text))
        except (ValueError, OverflowError):
            return None

    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00").replace("z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    try:
        return _round_half_up(parsed.timestamp() * 1000)
    except (OverflowError, OSError):
        return None


__all__ = ["SECONDS_THRESHOLD", "now_ms", "normalize_epoch", "parse_timestamp_ms"]
