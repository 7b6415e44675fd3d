"""Main API router combining all v1 route modules under ``/api/v1``.

Includes:
    * Health: liveness and readiness checks
    * Complaints: submission with inline triage, triage preview
    * Cases: duplicate suggestions and link management
"""

from __future__ import annotations

from fastapi import APIRouter

from src.api.v1 import cases, complaints, health

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(health.router)
api_router.include_router(complaints.router)
api_router.include_router(cases.router)
