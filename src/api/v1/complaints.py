"""Complaint submission and triage API endpoints."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from src.models.complaint import Complaint
from src.models.triage import TriageResult
from src.services.store import ComplaintNotFoundError

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

router = APIRouter(tags=["complaints"])


class ComplaintSubmitRequest(BaseModel):
    citizen_id: int = Field(..., gt=0)
    category_id: int = Field(..., gt=0)
    title: str = Field(..., min_length=3, max_length=200)
    description: str = Field(..., min_length=10, max_length=5000)
    location: str = Field(default="", max_length=300)
    latitude: float | None = Field(default=None, ge=-90.0, le=90.0)
    longitude: float | None = Field(default=None, ge=-180.0, le=180.0)


class ComplaintSubmitResponse(BaseModel):
    complaint: Complaint
    triaged: bool


@router.post("/complaints", response_model=ComplaintSubmitResponse, status_code=201)
async def submit_complaint(body: ComplaintSubmitRequest, request: Request) -> ComplaintSubmitResponse:
    """Create a complaint; triage runs inline but never blocks creation."""
    intake = getattr(request.app.state, "intake", None)
    if intake is None:
        raise HTTPException(status_code=503, detail="Complaint intake not available")

    complaint, outcome = await intake.submit(
        citizen_id=body.citizen_id,
        category_id=body.category_id,
        title=body.title,
        description=body.description,
        location=body.location,
        latitude=body.latitude,
        longitude=body.longitude,
    )
    return ComplaintSubmitResponse(complaint=complaint, triaged=outcome.ok)


@router.get("/triage/{complaint_id}", response_model=TriageResult)
async def assess_complaint(complaint_id: int, request: Request) -> TriageResult:
    """Preview the triage assessment without persisting it."""
    triage = getattr(request.app.state, "triage", None)
    if triage is None:
        raise HTTPException(status_code=503, detail="Triage not available")

    try:
        return await triage.assess_complaint(complaint_id)
    except ComplaintNotFoundError:
        raise HTTPException(status_code=404, detail="Complaint not found") from None
    except Exception:
        logger.error("api.triage.assess_failed", complaint_id=complaint_id, exc_info=True)
        raise HTTPException(status_code=500, detail="Triage failed") from None
