from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse

from agentlog.errors import (
    DataDirUnavailableError,
    PathTraversalError,
    SourceError,
    UnsupportedFileTypeError,
)
from agentlog.files import DataDir, DirListing
from agentlog.lib.log import get_logger
from agentlog.server.deps import get_data_dir

router = APIRouter()
logger = get_logger(__name__)


@router.get("/fs/list", response_model=DirListing)
def list_directory(
    path: str | None = Query(default=None),
    sort: Literal["name", "date"] = Query(default="name"),
    data_dir: DataDir = Depends(get_data_dir),
) -> DirListing:
    try:
        return data_dir.list(path, sort)
    except DataDirUnavailableError as exc:
        # 503 lets the client fall back to a local upload
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    except (PathTraversalError, SourceError) as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.get("/fs/stream")
def stream_file(path: str = Query(...), data_dir: DataDir = Depends(get_data_dir)) -> StreamingResponse:
    try:
        source = data_dir.open_source(path)
    except UnsupportedFileTypeError as exc:
        raise HTTPException(status_code=415, detail=str(exc)) from exc
    except (PathTraversalError, SourceError) as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    headers = {"Cache-Control": "no-store"}
    if source.size is not None:
        headers["Content-Length"] = str(source.size)
    logger.debug("Streaming file", path=path, size=source.size)
    return StreamingResponse(
        source.stream(),
        media_type="text/plain; charset=utf-8",
        headers=headers,
    )
