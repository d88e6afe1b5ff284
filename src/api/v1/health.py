"""Health check endpoints for SarkarMitra API v1.

Liveness and readiness probes.  Readiness reports whether the catalog is
loaded, which recommendation store is in use and whether AI scoring is
wired up; recommendations still work rule-only without it.
"""

from __future__ import annotations

import time

import structlog
from fastapi import APIRouter, Request
from pydantic import BaseModel

from src.services.stores import RedisRecommendationStore

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

router = APIRouter(prefix="/health", tags=["health"])


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class HealthResponse(BaseModel):
    """Basic health check response."""

    status: str
    version: str
    uptime_seconds: float


class ReadinessResponse(BaseModel):
    """Readiness check response with individual component statuses."""

    status: str
    checks: dict[str, str]


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get("", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """Liveness probe.

    Returns 200 if the application process is running and able to
    handle requests.  Does *not* check downstream dependencies.
    """
    start_time: float = getattr(request.app.state, "start_time", time.time())
    uptime = time.time() - start_time

    return HealthResponse(
        status="healthy",
        version=request.app.version,
        uptime_seconds=round(uptime, 2),
    )


@router.get("/ready", response_model=ReadinessResponse)
async def readiness_check(request: Request) -> ReadinessResponse:
    """Readiness probe."""
    checks: dict[str, str] = {}
    all_ok = True

    # -- Scheme catalog ----------------------------------------------------
    catalog = getattr(request.app.state, "catalog", None)
    schemes = await catalog.get_all() if catalog is not None else []
    if schemes:
        checks["catalog"] = f"ok ({len(schemes)} schemes loaded)"
    else:
        checks["catalog"] = "no_data"
        all_ok = False

    # -- Recommendation store ----------------------------------------------
    store = getattr(request.app.state, "recommendation_store", None)
    if isinstance(store, RedisRecommendationStore):
        if await store.ping():
            checks["recommendation_store"] = "ok (redis)"
        else:
            checks["recommendation_store"] = "error: redis unreachable"
            all_ok = False
    elif store is not None:
        checks["recommendation_store"] = "ok (memory)"
    else:
        checks["recommendation_store"] = "not_initialised"
        all_ok = False

    # -- AI scoring (optional) ---------------------------------------------
    scorer = getattr(request.app.state, "ai_scorer", None)
    checks["ai_scoring"] = "ok" if scorer is not None else "disabled"

    status = "ready" if all_ok else "degraded"

    logger.info("health.readiness_check", status=status, checks=checks)

    return ReadinessResponse(status=status, checks=checks)
