"""agentlog error hierarchy.

All project exceptions inherit from AgentlogError, enabling:
- ``except AgentlogError`` at top-level boundaries (CLI, HTTP endpoints)
- Fine-grained catches deeper in the stack (``except PathTraversalError``)

Hierarchy:
    AgentlogError
    ├── ConfigError
    ├── SourceError                  # byte source unavailable/unreadable/wrong type
    │   ├── UnsupportedFileTypeError
    │   └── DataDirUnavailableError
    ├── PathTraversalError           # path escapes the configured data dir
    └── DocumentParseError           # whole-document payload is not JSON

Per-record decode failures are not exceptions of this hierarchy: they are
counted and sampled by the ingestion worker and never unwind a run.
"""

from __future__ import annotations


class AgentlogError(Exception):
    """Base class for all agentlog errors."""


class ConfigError(AgentlogError):
    """Raised when configuration values are invalid."""


class SourceError(AgentlogError):
    """A byte source could not be opened or read."""


class UnsupportedFileTypeError(SourceError):
    """The requested file does not have an allowed extension."""


class DataDirUnavailableError(SourceError):
    """The configured data directory does not exist or cannot be listed.

    Kept distinct from an empty listing so callers can fall back to a
    local upload.
    """


class PathTraversalError(AgentlogError):
    """A client-supplied path resolves outside the configured data directory."""


class DocumentParseError(AgentlogError):
    """A whole-document payload failed to parse as JSON."""


__all__ = [
    "AgentlogError",
    "ConfigError",
    "SourceError",
    "UnsupportedFileTypeError",
    "DataDirUnavailableError",
    "PathTraversalError",
    "DocumentParseError",
]
