from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version as metadata_version


def _resolve_version() -> str:
    """Resolve the agentlog version from package metadata."""
    try:
        return metadata_version("agentlog")
    except PackageNotFoundError:
        return "0.0.0+unknown"


VERSION = _resolve_version()

__all__ = ["VERSION"]
