"""Case management API endpoints.

Duplicate suggestions and link-graph actions for the admin and staff
screens.  Link operations answer with a generic failure message on
rejection; the reason is only logged.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from src.models.case import DuplicateReport, LinkedComplaint
from src.models.enums import LinkType, UserType
from src.services.store import ComplaintNotFoundError

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

router = APIRouter(prefix="/cases", tags=["case-management"])


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class LinkRequest(BaseModel):
    source_complaint_id: int = Field(..., gt=0)
    target_complaint_id: int = Field(..., gt=0)
    link_type: LinkType = LinkType.RELATED
    notes: str | None = Field(default=None, max_length=500)
    user_id: int = Field(..., gt=0)
    user_type: UserType = UserType.ADMIN


class MarkDuplicateRequest(BaseModel):
    original_complaint_id: int = Field(..., gt=0)
    duplicate_complaint_id: int = Field(..., gt=0)
    user_id: int = Field(..., gt=0)
    user_type: UserType = UserType.ADMIN


class ActionResponse(BaseModel):
    success: bool
    message: str


def _engine(request: Request):
    engine = getattr(request.app.state, "case_linkage", None)
    if engine is None:
        raise HTTPException(status_code=503, detail="Case management not available")
    return engine


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get("/{complaint_id}/duplicates", response_model=DuplicateReport)
async def find_duplicates(complaint_id: int, request: Request) -> DuplicateReport:
    """Complaints in the same category and time window that look like duplicates."""
    engine = _engine(request)
    try:
        return await engine.find_potential_duplicates(complaint_id)
    except ComplaintNotFoundError:
        raise HTTPException(status_code=404, detail="Complaint not found") from None


@router.get("/{complaint_id}/links", response_model=list[LinkedComplaint])
async def linked_complaints(complaint_id: int, request: Request) -> list[LinkedComplaint]:
    return await _engine(request).get_linked_complaints(complaint_id)


@router.post("/link", response_model=ActionResponse)
async def link_complaints(body: LinkRequest, request: Request) -> ActionResponse:
    linked = await _engine(request).link_complaints(
        body.source_complaint_id,
        body.target_complaint_id,
        body.link_type,
        body.notes,
        body.user_id,
        body.user_type,
    )
    if not linked:
        raise HTTPException(status_code=409, detail="Could not link complaints")
    return ActionResponse(success=True, message="Complaints linked")


@router.delete("/links/{link_id}", response_model=ActionResponse)
async def unlink_complaints(link_id: int, request: Request) -> ActionResponse:
    if not await _engine(request).unlink_complaints(link_id):
        raise HTTPException(status_code=404, detail="Could not unlink complaints")
    return ActionResponse(success=True, message="Link removed")


@router.post("/mark-duplicate", response_model=ActionResponse)
async def mark_duplicate(body: MarkDuplicateRequest, request: Request) -> ActionResponse:
    marked = await _engine(request).mark_as_duplicate(
        body.original_complaint_id,
        body.duplicate_complaint_id,
        body.user_id,
        body.user_type,
    )
    if not marked:
        raise HTTPException(status_code=409, detail="Could not mark complaint as duplicate")
    return ActionResponse(success=True, message="Complaint closed as duplicate")
