"""Health check endpoints.

Liveness plus a readiness check that verifies the store and engines were
wired up during application startup.
"""

from __future__ import annotations

import time

import structlog
from fastapi import APIRouter, Request
from pydantic import BaseModel

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

router = APIRouter(prefix="/health", tags=["health"])


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: float


class ReadinessResponse(BaseModel):
    status: str
    checks: dict[str, str]


@router.get("", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """Liveness check; does *not* check downstream dependencies."""
    start_time: float = getattr(request.app.state, "start_time", time.time())
    return HealthResponse(
        status="healthy",
        version=request.app.version,
        uptime_seconds=round(time.time() - start_time, 2),
    )


@router.get("/ready", response_model=ReadinessResponse)
async def readiness_check(request: Request) -> ReadinessResponse:
    checks: dict[str, str] = {}
    for name in ("store", "notifications", "triage", "case_linkage", "intake"):
        checks[name] = "ok" if getattr(request.app.state, name, None) is not None else "not_initialised"

    cache = getattr(request.app.state, "candidate_cache", None)
    checks["candidate_cache"] = "ok" if cache is not None else "disabled"

    all_ok = all(value in ("ok", "disabled") for value in checks.values())
    status = "ready" if all_ok else "degraded"
    logger.info("health.readiness_check", status=status, checks=checks)
    return ReadinessResponse(status=status, checks=checks)
