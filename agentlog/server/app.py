from __future__ import annotations

from fastapi import FastAPI

from agentlog.version import VERSION

from . import api


def create_app() -> FastAPI:
    app = FastAPI(
        title="agentlog",
        description="Browse and stream agent session logs",
        version=VERSION,
    )
    app.include_router(api.router, prefix="/api")
    return app


app = create_app()
