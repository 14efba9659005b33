"""FastAPI server exposing the usage snapshot."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from claude_battery import __version__
from claude_battery.api.routes import router
from claude_battery.usage.service import UsageService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize shared resources on startup."""
    service = UsageService()
    app.state.service = service
    logger.info(
        "Usage service ready (logs=%s, window=%dh)",
        service.config.projects_dir,
        service.config.window_hours,
    )
    yield


def create_app() -> FastAPI:
    app = FastAPI(
        title="claude-battery",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "PUT", "DELETE"],
        allow_headers=["*"],
    )

    app.include_router(router, prefix="/api")
    return app


app = create_app()
