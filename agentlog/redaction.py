"""Display-time masking of sensitive substrings.

Redaction never touches stored canonical events: consumers call `redact`
right before showing or copying text, so toggling it needs no re-parse.
Passes run in a fixed order and each one re-scans the output of the
previous pass.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Pattern

_EMAIL_RE = re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")
_TOKEN_RE = re.compile(r"(?<![A-Za-z0-9_-])[A-Za-z0-9_-]{20,}(?![A-Za-z0-9_-])")
_LONG_DIGITS_RE = re.compile(r"(?<![0-9])[0-9]{16,}(?![0-9])")

EMAIL_MASK = "***@***"
TOKEN_MASK = "[REDACTED_TOKEN]"


@dataclass(frozen=True)
class RedactionOptions:
    emails: bool = True
    tokens: bool = True
    long_digits: bool = True

    @classmethod
    def none(cls) -> RedactionOptions:
        return cls(emails=False, tokens=False, long_digits=False)

    @property
    def enabled(self) -> bool:
        return self.emails or self.tokens or self.long_digits


def _mask_digits(match: re.Match[str]) -> str:
    return f"[REDACTED_{len(match.group(0))}D]"


def _passes(options: RedactionOptions) -> list[tuple[Pattern[str], Any]]:
    passes: list[tuple[Pattern[str], Any]] = []
    if options.emails:
        passes.append((_EMAIL_RE, EMAIL_MASK))
    if options.tokens:
        passes.append((_TOKEN_RE, TOKEN_MASK))
    if options.long_digits:
        passes.append((_LONG_DIGITS_RE, _mask_digits))
    return passes


def redact(text: str, options: RedactionOptions | None = None) -> str:
    """Mask emails, token-like strings and long digit runs in ``text``."""
    redacted = text
    for pattern, replacement in _passes(options or RedactionOptions()):
        redacted = pattern.sub(replacement, redacted)
    return redacted


def redact_value(value: Any, options: RedactionOptions | None = None) -> Any:
    """Redact every string inside an opaque JSON value (keys included)."""
    if isinstance(value, str):
        return redact(value, options)
    if isinstance(value, list):
        return [redact_value(item, options) for item in value]
    if isinstance(value, dict):
        return {redact(str(k), options): redact_value(v, options) for k, v in value.items()}
    return value


__all__ = ["EMAIL_MASK", "TOKEN_MASK", "RedactionOptions", "redact", "redact_value"]
