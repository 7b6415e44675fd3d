"""Complaint aggregate and the reference records the engines read.

``Complaint`` is the aggregate root.  ``Category``, ``Citizen`` and
``Department`` are read-only to the triage and linkage engines; they are
mutated only by admin configuration elsewhere.  ``ComplaintLink`` is an
independent directed edge between two complaints.
"""

from __future__ import annotations

from datetime import UTC, date, datetime

from pydantic import BaseModel, Field, model_validator

from src.models.enums import ComplaintStatus, LinkType, Priority, RiskLevel


class Category(BaseModel):
    category_id: int
    category_name: str = ""
    risk_level: RiskLevel = RiskLevel.LOW
    default_department_id: int | None = None
    sla_target_hours: int = Field(default=72, ge=0)


class Department(BaseModel):
    department_id: int
    department_name: str
    active_staff_count: int = Field(default=0, ge=0)


class Citizen(BaseModel):
    """Vulnerability-relevant fields of a registered citizen."""

    citizen_id: int
    full_name: str = ""
    is_vulnerable: bool = False
    has_disability: bool = False
    date_of_birth: date | None = None


class Complaint(BaseModel):
    """A citizen complaint as seen by the triage and linkage engines."""

    model_config = {"frozen": False, "validate_assignment": True}

    complaint_id: int
    title: str
    description: str = ""
    location: str = ""
    latitude: float | None = Field(default=None, ge=-90.0, le=90.0)
    longitude: float | None = Field(default=None, ge=-180.0, le=180.0)
    status: ComplaintStatus = ComplaintStatus.PENDING
    priority: Priority = Priority.MEDIUM
    severity_score: int = Field(default=0, ge=0, le=100)
    auto_assigned: bool = False
    triage_notes: str | None = None
    category_id: int
    department_id: int | None = None
    citizen_id: int
    submitted_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime | None = None
    sla_due_at: datetime | None = None

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None


class ComplaintLink(BaseModel):
    """Directed edge ``source -> target`` in the complaint link graph."""

    link_id: int = 0
    source_complaint_id: int
    target_complaint_id: int
    link_type: LinkType
    similarity_score: float | None = Field(default=None, ge=0.0, le=100.0)
    notes: str | None = None
    created_by_user_id: int
    created_by_user_type: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @model_validator(mode="after")
    def _reject_self_link(self) -> ComplaintLink:
        if self.source_complaint_id == self.target_complaint_id:
            raise ValueError("a complaint cannot be linked to itself")
        return self

    def connects(self, complaint_id_1: int, complaint_id_2: int) -> bool:
        """Return *True* if this link joins the two complaints in either direction."""
        return {self.source_complaint_id, self.target_complaint_id} == {complaint_id_1, complaint_id_2}

    def other_end(self, complaint_id: int) -> int:
        if complaint_id == self.source_complaint_id:
            return self.target_complaint_id
        return self.source_complaint_id
