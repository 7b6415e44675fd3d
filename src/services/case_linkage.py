"""Duplicate detection and the complaint link graph.

Duplicate detection compares one complaint against the complaints in the
same category submitted within a symmetric window around it (7 days by
default) and surfaces those whose weighted similarity reaches the
threshold (70 by default).  See :mod:`src.services.similarity` for the
scoring.

The link graph is a set of directed ``ComplaintLink`` edges of type
Duplicate, Related or FollowUp.  An unordered pair carries at most one
link created through :meth:`CaseLinkageEngine.link_complaints`.
:meth:`CaseLinkageEngine.mark_as_duplicate` is deliberately unguarded
(it always records a fresh audit link) and is the only code path that
closes a complaint as ``Closed - Duplicate``.

Expected failures (missing complaint, self-link, existing link) return
``False`` rather than raising; only :meth:`find_potential_duplicates`
raises :class:`ComplaintNotFoundError`.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Final

import structlog

from src.models.case import DuplicateCandidate, DuplicateReport, LinkedComplaint
from src.models.complaint import Complaint, ComplaintLink
from src.models.enums import ComplaintStatus, LinkType
from src.services.similarity import similarity_reason, similarity_score
from src.services.store import ComplaintNotFoundError

if TYPE_CHECKING:
    from config.settings import Settings
    from src.services.candidate_cache import CandidateCache
    from src.services.notifications import NotificationSink
    from src.services.store import ComplaintStore

logger = structlog.get_logger(__name__)

DUPLICATE_LINK_NOTE: Final[str] = "Marked as duplicate and auto-closed"


@dataclass(slots=True, frozen=True)
class LinkageConfig:
    similarity_threshold: float = 70.0
    window_days: int = 7

    @classmethod
    def from_settings(cls, settings: Settings) -> LinkageConfig:
        return cls(
            similarity_threshold=settings.duplicate_similarity_threshold,
            window_days=settings.duplicate_window_days,
        )


class CaseLinkageEngine:
    """Finds likely duplicates and maintains links between complaints."""

    __slots__ = ("_cache", "_config", "_notifications", "_store")

    def __init__(
        self,
        store: ComplaintStore,
        notifications: NotificationSink,
        config: LinkageConfig | None = None,
        cache: CandidateCache | None = None,
    ) -> None:
        self._store = store
        self._notifications = notifications
        self._config = config or LinkageConfig()
        self._cache = cache

    # ------------------------------------------------------------------
    # Duplicate detection
    # ------------------------------------------------------------------

    async def find_potential_duplicates(self, complaint_id: int) -> DuplicateReport:
        """Score every complaint in the candidate window against *complaint_id*.

        Raises
        ------
        ComplaintNotFoundError
            If the complaint does not exist.
        """
        complaint = await self._store.get_complaint(complaint_id)
        if complaint is None:
            raise ComplaintNotFoundError(complaint_id)

        linked_ids = {link.other_end(complaint_id) for link in await self._store.list_links_for(complaint_id)}
        candidates = await self._candidate_window(complaint)

        category = await self._store.get_category(complaint.category_id)
        category_name = category.category_name if category is not None else ""

        duplicates: list[DuplicateCandidate] = []
        for candidate in candidates:
            score = similarity_score(complaint, candidate)
            if score < self._config.similarity_threshold:
                continue
            duplicates.append(
                DuplicateCandidate(
                    complaint_id=candidate.complaint_id,
                    title=candidate.title,
                    description=candidate.description,
                    location=candidate.location,
                    status=candidate.status,
                    category_name=category_name,
                    submitted_at=candidate.submitted_at,
                    similarity_score=round(score, 2),
                    similarity_reason=similarity_reason(complaint, candidate),
                    is_already_linked=candidate.complaint_id in linked_ids,
                )
            )

        duplicates.sort(key=lambda d: d.similarity_score, reverse=True)
        logger.info(
            "case_linkage.duplicates_scanned",
            complaint_id=complaint_id,
            candidates=len(candidates),
            matches=len(duplicates),
        )
        return DuplicateReport(
            original_complaint_id=complaint.complaint_id,
            original_title=complaint.title,
            original_description=complaint.description,
            original_location=complaint.location,
            original_submitted_at=complaint.submitted_at,
            potential_duplicates=duplicates,
        )

    async def _candidate_window(self, complaint: Complaint) -> list[Complaint]:
        if self._cache is not None:
            cached = await self._cache.get(complaint.category_id, complaint.complaint_id)
            if cached is not None:
                return cached

        window = timedelta(days=self._config.window_days)
        candidates = await self._store.list_candidates(
            complaint.category_id,
            complaint.submitted_at - window,
            complaint.submitted_at + window,
            exclude_id=complaint.complaint_id,
        )
        if self._cache is not None:
            await self._cache.put(complaint.category_id, complaint.complaint_id, candidates)
        return candidates

    # ------------------------------------------------------------------
    # Link graph
    # ------------------------------------------------------------------

    async def are_complaints_linked(self, complaint_id_1: int, complaint_id_2: int) -> bool:
        return await self._store.link_exists(complaint_id_1, complaint_id_2)

    async def link_complaints(
        self,
        source_complaint_id: int,
        target_complaint_id: int,
        link_type: LinkType | str,
        notes: str | None,
        user_id: int,
        user_type: str,
    ) -> bool:
        source = await self._store.get_complaint(source_complaint_id)
        target = await self._store.get_complaint(target_complaint_id)
        if source is None or target is None:
            return self._reject("missing_complaint", source_complaint_id, target_complaint_id)

        if source_complaint_id == target_complaint_id:
            return self._reject("self_link", source_complaint_id, target_complaint_id)

        if await self.are_complaints_linked(source_complaint_id, target_complaint_id):
            return self._reject("already_linked", source_complaint_id, target_complaint_id)

        try:
            link_type = LinkType(link_type)
        except ValueError:
            return self._reject("unknown_link_type", source_complaint_id, target_complaint_id)

        link = await self._store.add_link(
            ComplaintLink(
                source_complaint_id=source_complaint_id,
                target_complaint_id=target_complaint_id,
                link_type=link_type,
                notes=notes,
                created_by_user_id=user_id,
                created_by_user_type=user_type,
            )
        )
        logger.info(
            "case_linkage.linked",
            link_id=link.link_id,
            source_complaint_id=source_complaint_id,
            target_complaint_id=target_complaint_id,
            link_type=link_type,
        )

        await self._notifications.send(
            f"Your complaint has been linked to another complaint (#{target_complaint_id}) as {link_type}",
            source_complaint_id,
            citizen_id=source.citizen_id,
        )
        return True

    async def unlink_complaints(self, link_id: int) -> bool:
        removed = await self._store.delete_link(link_id)
        if removed:
            logger.info("case_linkage.unlinked", link_id=link_id)
        else:
            logger.info("case_linkage.unlink_missing", link_id=link_id)
        return removed

    async def mark_as_duplicate(
        self,
        original_complaint_id: int,
        duplicate_complaint_id: int,
        user_id: int,
        user_type: str,
    ) -> bool:
        """Close *duplicate_complaint_id* as a duplicate of *original_complaint_id*.

        Records a Duplicate link ``original -> duplicate`` carrying the
        pair's similarity score, closes the duplicate, and tells its
        citizen where to follow up.  Both writes commit together.
        """
        duplicate = await self._store.get_complaint(duplicate_complaint_id)
        if duplicate is None:
            return self._reject("missing_complaint", original_complaint_id, duplicate_complaint_id)

        original = await self._store.get_complaint(original_complaint_id)
        if original is None:
            return self._reject("missing_complaint", original_complaint_id, duplicate_complaint_id)

        if original_complaint_id == duplicate_complaint_id:
            return self._reject("self_link", original_complaint_id, duplicate_complaint_id)

        # No existing-link guard here: every closure gets its own audit record.
        if await self.are_complaints_linked(original_complaint_id, duplicate_complaint_id):
            logger.warning(
                "case_linkage.duplicate_relinked",
                original_complaint_id=original_complaint_id,
                duplicate_complaint_id=duplicate_complaint_id,
            )

        score = round(similarity_score(original, duplicate), 2)
        now = datetime.now(UTC)

        async with self._store.transaction():
            link = await self._store.add_link(
                ComplaintLink(
                    source_complaint_id=original_complaint_id,
                    target_complaint_id=duplicate_complaint_id,
                    link_type=LinkType.DUPLICATE,
                    similarity_score=score,
                    notes=DUPLICATE_LINK_NOTE,
                    created_by_user_id=user_id,
                    created_by_user_type=user_type,
                    created_at=now,
                )
            )
            duplicate.status = ComplaintStatus.CLOSED_DUPLICATE
            duplicate.updated_at = now
            await self._store.save_complaint(duplicate)

        if self._cache is not None:
            await self._cache.invalidate_category(original.category_id, duplicate.category_id)

        logger.info(
            "case_linkage.marked_duplicate",
            link_id=link.link_id,
            original_complaint_id=original_complaint_id,
            duplicate_complaint_id=duplicate_complaint_id,
            similarity_score=score,
        )

        await self._notifications.send(
            f"Your complaint has been marked as a duplicate of complaint #{original_complaint_id} "
            "and has been closed. Please refer to the original complaint for updates.",
            duplicate_complaint_id,
            citizen_id=duplicate.citizen_id,
        )
        return True

    async def get_linked_complaints(self, complaint_id: int) -> list[LinkedComplaint]:
        """Complaints linked to *complaint_id* in either direction, newest link first."""
        linked: list[LinkedComplaint] = []
        category_names: dict[int, str] = {}

        for link in await self._store.list_links_for(complaint_id):
            other = await self._store.get_complaint(link.other_end(complaint_id))
            if other is None:
                continue
            if other.category_id not in category_names:
                category = await self._store.get_category(other.category_id)
                category_names[other.category_id] = category.category_name if category is not None else ""

            linked.append(
                LinkedComplaint(
                    link_id=link.link_id,
                    complaint_id=other.complaint_id,
                    title=other.title,
                    description=other.description,
                    status=other.status,
                    priority=other.priority,
                    category_name=category_names[other.category_id],
                    submitted_at=other.submitted_at,
                    link_type=link.link_type,
                    similarity_score=link.similarity_score,
                    notes=link.notes,
                    linked_at=link.created_at,
                    linked_by_user_type=link.created_by_user_type,
                )
            )

        linked.sort(key=lambda item: (item.linked_at, item.link_id), reverse=True)
        return linked

    @staticmethod
    def _reject(reason: str, complaint_id_1: int, complaint_id_2: int) -> bool:
        logger.info(
            "case_linkage.link_rejected",
            reason=reason,
            complaint_id_1=complaint_id_1,
            complaint_id_2=complaint_id_2,
        )
        return False
