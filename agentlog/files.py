"""Sandboxed browsing of the configured data directory.

Everything a client asks for is a path relative to the data root; any path
that resolves outside it is refused with `PathTraversalError`. Only
directories and ``.json`` / ``.jsonl`` files are visible.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import BaseModel

from agentlog.errors import DataDirUnavailableError, SourceError, UnsupportedFileTypeError
from agentlog.lib.log import get_logger
from agentlog.lib.security import resolve_safe_path, to_relative
from agentlog.sources import DEFAULT_CHUNK_SIZE, FileSource

logger = get_logger(__name__)

ALLOWED_EXTENSIONS = frozenset({".json", ".jsonl"})

SortKey = Literal["name", "date"]


class FsEntry(BaseModel):
    name: str
    type: Literal["file", "dir"]
    size: int
    mtime_ms: float


class DirListing(BaseModel):
    path: str
    entries: list[FsEntry]


def sort_entries(entries: list[FsEntry], key: SortKey = "name") -> list[FsEntry]:
    """Directories first, then by name (case-aware) or newest first."""
    if key == "date":
        ordered = sorted(entries, key=lambda e: e.mtime_ms, reverse=True)
    else:
        ordered = sorted(entries, key=lambda e: (e.name.casefold(), e.name))
    # sorted() is stable, so the secondary order survives
    return sorted(ordered, key=lambda e: e.type != "dir")


def _is_listable(entry: FsEntry) -> bool:
    return entry.type == "dir" or Path(entry.name).suffix.lower() in ALLOWED_EXTENSIONS


def scan_dir(path: Path) -> list[FsEntry]:
    """Entries of ``path`` with basic metadata; hidden and unstat-able entries are skipped."""
    entries: list[FsEntry] = []
    for child in path.iterdir():
        if child.name.startswith("."):
            continue
        try:
            stat = child.stat()
            is_dir = child.is_dir()
        except OSError as exc:
            logger.debug("Skipping unreadable entry", path=str(child), error=str(exc))
            continue
        entries.append(
            FsEntry(
                name=child.name,
                type="dir" if is_dir else "file",
                size=0 if is_dir else stat.st_size,
                mtime_ms=stat.st_mtime * 1000,
            )
        )
    return entries


class DataDir:
    """The sandbox root for browsing and streaming log files."""

    def __init__(self, root: Path | str, *, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        self.root = Path(root).expanduser().resolve()
        self.chunk_size = chunk_size

    def resolve(self, rel: str | None) -> Path:
        return resolve_safe_path(self.root, rel)

    def relative(self, path: Path) -> str:
        return to_relative(self.root, path)

    def ensure_available(self) -> None:
        if not self.root.is_dir():
            raise DataDirUnavailableError("Data directory unavailable")

    def list(self, rel: str | None = None, sort: SortKey = "name") -> DirListing:
        """List a directory inside the data root.

        Raises:
            PathTraversalError: If ``rel`` escapes the root
            DataDirUnavailableError: If the root itself is missing
            SourceError: If ``rel`` is missing or not a directory
        """
        target = self.resolve(rel)
        self.ensure_available()
        try:
            entries = scan_dir(target)
        except FileNotFoundError as exc:
            raise SourceError(f"No such directory: {self.relative(target)}") from exc
        except NotADirectoryError as exc:
            raise SourceError(f"Not a directory: {self.relative(target)}") from exc
        except OSError as exc:
            raise SourceError(f"Unable to list {self.relative(target)}: {exc.strerror or exc}") from exc
        visible = [entry for entry in entries if _is_listable(entry)]
        return DirListing(path=self.relative(target), entries=sort_entries(visible, sort))

    def open_source(self, rel: str) -> FileSource:
        """Byte source for an allowed log file inside the data root.

        Raises:
            PathTraversalError: If ``rel`` escapes the root
            UnsupportedFileTypeError: If the extension is not .json/.jsonl
            SourceError: If the file is missing or unreadable
        """
        target = self.resolve(rel)
        if target.suffix.lower() not in ALLOWED_EXTENSIONS:
            raise UnsupportedFileTypeError("Unsupported file type")
        source = FileSource(target, chunk_size=self.chunk_size)
        source.check_readable()
        return source


__all__ = ["ALLOWED_EXTENSIONS", "DataDir", "DirListing", "FsEntry", "SortKey", "scan_dir", "sort_entries"]
