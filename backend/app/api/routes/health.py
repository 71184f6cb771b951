"""Health check endpoints. No authentication required.

- /health       — status, enabled features, read-only flag
- /health/live  — liveness probe (always 200)
- /health/ready — readiness probe (checks PostgreSQL)
- /metrics      — Prometheus exposition
"""

import asyncio
import time

import structlog
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from app.api.deps import get_postgres_client, get_settings
from app.core.config import Settings
from app.core.metrics import store_health_check_duration_seconds, store_health_status
from app.core.postgres import PostgresClient

router = APIRouter()
logger = structlog.stdlib.get_logger("sbsh.health")

# Timeout for the readiness ping (seconds)
_HEALTH_CHECK_TIMEOUT = 3.0


@router.get("/health")
async def health_check(settings: Settings = Depends(get_settings)):
    return {
        "status": "ok",
        "service": "sbsh",
        "features": sorted(settings.features),
        "read_only": settings.read_only,
    }


@router.get("/health/live")
async def liveness():
    """Liveness probe — process is alive."""
    return {"status": "live"}


async def _check_postgresql(postgres: PostgresClient) -> dict:
    """Check PostgreSQL connectivity."""
    start = time.monotonic()
    try:
        ok = await asyncio.wait_for(postgres.ping(), timeout=_HEALTH_CHECK_TIMEOUT)
    except asyncio.TimeoutError:
        ok = False
        logger.warning("readiness_check_timed_out", dependency="postgresql")
    elapsed = time.monotonic() - start
    store_health_check_duration_seconds.labels(store="postgresql").observe(elapsed)
    store_health_status.labels(store="postgresql").set(1 if ok else 0)
    if ok:
        return {"status": "ok", "_healthy": True}
    return {"status": "error", "_healthy": False}


@router.get("/health/ready")
async def readiness(postgres: PostgresClient = Depends(get_postgres_client)):
    """Readiness probe — checks PostgreSQL.

    PostgREST is not checked; it is only used by the passthrough tool.
    """
    result = await _check_postgresql(postgres)
    healthy = result.pop("_healthy")
    return JSONResponse(
        content={"status": "ready" if healthy else "not_ready", "checks": {"postgresql": result}},
        status_code=200 if healthy else 503,
    )


@router.get("/metrics")
async def metrics():
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
