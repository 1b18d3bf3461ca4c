"""
PropDesk Backend — Health Check Route
=======================================

What:  Health check endpoint for monitoring and load balancer probes.
How:   Runs lightweight probes against both backing services.

    Database:     SELECT 1 on the shared engine
    Object store: HEAD bucket (S3) or a writable-directory check (local)

    Status levels:
    - healthy:   both dependencies reachable
    - degraded:  object store unreachable (reads still work)
    - unhealthy: database unreachable
"""

import logging
import time

from fastapi import APIRouter, Request
from sqlalchemy import text

from propdesk import __version__
from propdesk.schemas.property import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(request: Request) -> HealthResponse:
    db_status = "connected"
    store_status = "available"
    overall = "healthy"

    # A failing probe is reported in the body, not raised
    engine = getattr(request.app.state, "engine", None)
    try:
        if engine is None:
            raise RuntimeError("database engine not initialized")
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    object_store = getattr(request.app.state, "object_store", None)
    if object_store is None or not await object_store.health_check():
        store_status = "unavailable"
        overall = "degraded" if overall != "unhealthy" else overall

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        object_store=store_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
