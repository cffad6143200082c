"""Health check endpoints."""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from herald.core.exceptions import CacheError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "healthy"}


@router.get("/ready")
async def ready(request: Request) -> JSONResponse:
    """Report readiness; unready (503) when the cache backend does not answer a ping."""
    settings = request.app.state.settings
    body = {"environment": settings.environment, "persistence": settings.persistence}
    try:
        await asyncio.to_thread(request.app.state.cache.ping)
    except CacheError:
        logger.warning("cache backend ping failed", exc_info=True)
        return JSONResponse(status_code=503, content={"status": "unavailable", "cache": "down", **body})
    return JSONResponse(status_code=200, content={"status": "ready", "cache": "up", **body})
