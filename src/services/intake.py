"""Complaint submission workflow.

Persists a new complaint with its SLA due date, runs triage as a
best-effort side computation, writes the triage metadata back, and tells
the admin inbox about the new complaint.  A triage failure, including a
failure to write the triage result back, never fails the submission: the
complaint simply stays without severity, routing, or notes until an
operator handles it.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import structlog

from src.models.complaint import Complaint
from src.models.enums import ComplaintStatus, Priority
from src.models.triage import TriageOutcome

if TYPE_CHECKING:
    from src.models.triage import TriageResult
    from src.services.candidate_cache import CandidateCache
    from src.services.notifications import NotificationSink
    from src.services.store import ComplaintStore
    from src.services.triage import TriageEngine

logger = structlog.get_logger(__name__)


def apply_triage(complaint: Complaint, result: TriageResult) -> Complaint:
    """Copy triage output onto *complaint* without touching its status.

    ``auto_assigned`` is only decided when the complaint had no department
    yet; a kept department keeps whatever flag it was assigned with.
    """
    if complaint.department_id is None:
        complaint.auto_assigned = result.auto_assigned
    complaint.severity_score = result.severity_score
    complaint.priority = result.priority
    complaint.department_id = result.department_id
    complaint.triage_notes = result.triage_notes
    complaint.updated_at = datetime.now(UTC)
    return complaint


class ComplaintIntakeService:
    __slots__ = ("_cache", "_notifications", "_store", "_triage")

    def __init__(
        self,
        store: ComplaintStore,
        triage: TriageEngine,
        notifications: NotificationSink,
        cache: CandidateCache | None = None,
    ) -> None:
        self._store = store
        self._triage = triage
        self._notifications = notifications
        self._cache = cache

    async def submit(
        self,
        *,
        citizen_id: int,
        category_id: int,
        title: str,
        description: str,
        location: str = "",
        latitude: float | None = None,
        longitude: float | None = None,
        priority: Priority = Priority.MEDIUM,
        submitted_at: datetime | None = None,
    ) -> tuple[Complaint, TriageOutcome]:
        """Create a complaint and triage it.

        Returns the stored complaint (with triage metadata when triage
        succeeded) together with the triage outcome so the caller can tell
        the two cases apart.
        """
        submitted_at = submitted_at or datetime.now(UTC)
        category = await self._store.get_category(category_id)
        sla_due_at = (
            submitted_at + timedelta(hours=category.sla_target_hours) if category is not None else None
        )

        complaint = await self._store.add_complaint(
            Complaint(
                complaint_id=0,
                citizen_id=citizen_id,
                category_id=category_id,
                title=title,
                description=description,
                location=location,
                latitude=latitude,
                longitude=longitude,
                priority=priority,
                status=ComplaintStatus.PENDING,
                submitted_at=submitted_at,
                sla_due_at=sla_due_at,
            )
        )
        logger.info("intake.complaint_created", complaint_id=complaint.complaint_id, category_id=category_id)

        outcome = await self._triage.try_assess(complaint.complaint_id)
        if outcome.result is not None:
            triaged = apply_triage(complaint.model_copy(), outcome.result)
            try:
                await self._store.save_complaint(triaged)
            except Exception as exc:
                outcome = TriageOutcome(complaint_id=complaint.complaint_id, error=exc)
            else:
                complaint = triaged

        if outcome.error is not None:
            logger.warning(
                "intake.triage_skipped",
                complaint_id=complaint.complaint_id,
                error=str(outcome.error),
                error_type=type(outcome.error).__name__,
            )

        if self._cache is not None:
            await self._cache.invalidate_category(category_id)

        await self._notifications.send(
            f"New complaint submitted: {complaint.title} "
            f"[Priority: {complaint.priority}, Severity: {complaint.severity_score}/100]",
            complaint.complaint_id,
        )
        return complaint, outcome

    async def retriage(self, complaint_id: int) -> TriageOutcome:
        """Re-run triage and write it back unless the complaint is closed.

        Routing is idempotent, so an assigned department is kept.
        """
        outcome = await self._triage.try_assess(complaint_id)
        if outcome.result is None:
            return outcome

        complaint = await self._store.get_complaint(complaint_id)
        if complaint is None or complaint.status.is_terminal:
            logger.info("intake.retriage_not_applied", complaint_id=complaint_id)
            return outcome

        await self._store.save_complaint(apply_triage(complaint, outcome.result))
        return outcome
