"""Read models for duplicate detection and the complaint link graph."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from src.models.enums import ComplaintStatus, LinkType, Priority


class SimilarityBreakdown(BaseModel):
    """Per-component similarity between two complaints, each on 0-100."""

    title: float = Field(..., ge=0.0, le=100.0)
    description: float = Field(..., ge=0.0, le=100.0)
    location: float = Field(..., ge=0.0, le=100.0)
    time: float = Field(..., ge=0.0, le=100.0)
    total: float = Field(..., ge=0.0, le=100.0)


class DuplicateCandidate(BaseModel):
    complaint_id: int
    title: str
    description: str
    location: str
    status: ComplaintStatus
    category_name: str = ""
    submitted_at: datetime
    similarity_score: float
    similarity_reason: str
    is_already_linked: bool = False


class DuplicateReport(BaseModel):
    """Potential duplicates of one complaint, highest score first."""

    original_complaint_id: int
    original_title: str
    original_description: str
    original_location: str
    original_submitted_at: datetime
    potential_duplicates: list[DuplicateCandidate] = Field(default_factory=list)


class LinkedComplaint(BaseModel):
    """A complaint seen from the other end of a link."""

    link_id: int
    complaint_id: int
    title: str
    description: str
    status: ComplaintStatus
    priority: Priority
    category_name: str = ""
    submitted_at: datetime
    link_type: LinkType
    similarity_score: float | None = None
    notes: str | None = None
    linked_at: datetime
    linked_by_user_type: str
