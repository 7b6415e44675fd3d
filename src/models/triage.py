"""Result models produced by the triage engine."""

from __future__ import annotations

from pydantic import BaseModel, Field

from src.models.enums import Priority


class TriageResult(BaseModel):
    """Advisory triage metadata for one complaint.

    The submission workflow persists ``severity_score``, ``priority``,
    ``department_id`` and ``triage_notes`` onto the complaint and sets its
    ``auto_assigned`` flag iff a department was chosen.
    """

    complaint_id: int
    severity_score: int = Field(..., ge=0, le=100)
    priority: Priority
    department_id: int | None = None
    triage_notes: str
    is_vulnerable: bool = False

    @property
    def auto_assigned(self) -> bool:
        return self.department_id is not None


class TriageOutcome(BaseModel):
    """Either a :class:`TriageResult` or the error that prevented one.

    Callers treat any error as "no triage metadata available"; the
    complaint stays valid without it.
    """

    model_config = {"arbitrary_types_allowed": True}

    complaint_id: int
    result: TriageResult | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.result is not None
