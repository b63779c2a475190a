"""Structured logging for the CLI, the server and the ingestion worker.

Logs always go to stderr so that stdout stays free for event output
(``agentlog view --json``) and protocol traces (``--protocol``).
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import Processor


class _StderrProxy:
    """Writes to whatever ``sys.stderr`` is at call time.

    PrintLoggerFactory keeps the file object it was given; click's
    CliRunner and pytest's capsys replace sys.stderr per invocation.
    """

    def write(self, message: str) -> int:
        return sys.stderr.write(message)

    def flush(self) -> None:
        sys.stderr.flush()


def _level(verbose: bool, quiet: bool) -> int:
    if verbose:
        return logging.DEBUG
    if quiet:
        return logging.WARNING
    return logging.INFO


def _renderers(json_logs: bool) -> list[Processor]:
    if json_logs:
        return [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    return [structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())]


def configure_logging(verbose: bool = False, json_logs: bool = False, quiet: bool = False) -> None:
    """Configure structlog once per process entry point.

    Args:
        verbose: Emit debug events (per-record decode failures, source opens)
        json_logs: One JSON object per line instead of the console renderer
        quiet: Only warnings and errors; ignored when ``verbose`` is set
    """
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.dev.set_exc_info,
            structlog.processors.StackInfoRenderer(),
            *_renderers(json_logs),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(_level(verbose, quiet)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=_StderrProxy()),  # type: ignore[arg-type]
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> Any:
    """Lazy module logger; bind run context at call time, not import time."""
    return structlog.get_logger(name)


__all__ = ["configure_logging", "get_logger"]
