"""FastAPI application with lifespan and router mounting."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from herald.api.routes import health, jobs
from herald.core.config import AppSettings
from herald.core.logging import configure_logging
from herald.persistence import create_persistence


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Initialize and tear down application resources."""
    settings = getattr(app.state, "settings", None) or AppSettings()
    configure_logging(settings.log_level)
    job_store, detail_store, cache = create_persistence(settings)
    app.state.settings = settings
    app.state.job_store = job_store
    app.state.detail_store = detail_store
    app.state.cache = cache
    yield


def create_app(settings: AppSettings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Herald Step Dispatch",
        version="0.1.0",
        lifespan=lifespan,
    )
    if settings is not None:
        app.state.settings = settings
    app.include_router(health.router)
    app.include_router(jobs.router, prefix="/jobs")
    return app
