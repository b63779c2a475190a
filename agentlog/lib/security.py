"""Path sandboxing for client-supplied relative paths."""

from __future__ import annotations

from pathlib import Path

from agentlog.errors import PathTraversalError


def _strip_client_path(rel: str | None) -> str:
    if rel is None:
        return ""
    # Remove null bytes and control characters (ASCII < 32 and 127)
    cleaned = "".join(c for c in rel if ord(c) >= 32 and ord(c) != 127)
    if cleaned.strip() in ("", "/"):
        return ""
    return cleaned.lstrip("/")


def is_within(root: Path, target: Path) -> bool:
    """True if ``target`` is ``root`` or lies below it (both resolved)."""
    return target == root or root in target.parents


def resolve_safe_path(root: Path, rel: str | None) -> Path:
    """Resolve a client-provided path safely within ``root``.

    ``None``, ``""`` and ``"/"`` mean the root itself; leading slashes are
    ignored so ``/sub/file.jsonl`` is relative to the root. Symlinks are
    resolved before the containment check.

    Raises:
        PathTraversalError: If the path escapes the root
    """
    base = root.resolve()
    target = (base / _strip_client_path(rel)).resolve()
    if not is_within(base, target):
        raise PathTraversalError("Path traversal detected or outside configured data directory")
    return target


def to_relative(root: Path, path: Path) -> str:
    """Render ``path`` relative to ``root`` as ``/a/b`` (``/`` for the root)."""
    rel = path.resolve().relative_to(root.resolve())
    parts = rel.parts
    return "/" + "/".join(parts) if parts else "/"


__all__ = ["is_within", "resolve_safe_path", "to_relative"]
