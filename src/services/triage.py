"""Automatic complaint triage: severity, priority, routing, and notes.

Given a freshly submitted complaint, the engine produces an advisory
:class:`TriageResult`:

1. **Severity score** (0-100) -- base score plus keyword-tier bonuses,
   the category's risk level, and a repeat-complainant signal.
2. **Vulnerability** -- admin flag, disability flag, or age >= 65.
3. **Priority** -- thresholds on the score; vulnerable reporters are
   never assigned Low.
4. **Department routing** -- keep an existing assignment, otherwise the
   category's default department, redirected to the least-loaded staffed
   department only when the default is overloaded *and* the alternative
   is substantially lighter.
5. **Notes** -- a human-readable summary of the above.

The engine only reads from the store.  Persisting the result is the
caller's job, and triage is best-effort: callers should use
:meth:`TriageEngine.try_assess` and treat a failed outcome as "no triage
metadata available".
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, date, datetime
from typing import TYPE_CHECKING, Final

import structlog

from src.models.enums import Priority, RiskLevel
from src.models.triage import TriageOutcome, TriageResult
from src.services.store import ComplaintNotFoundError

if TYPE_CHECKING:
    from config.settings import Settings
    from src.services.store import ComplaintStore

logger = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Keyword tiers
# ---------------------------------------------------------------------------
# Each tier contributes its bonus at most once.  Tiers share no keywords,
# but one text can still earn bonuses from several tiers.

URGENT_KEYWORDS: Final[tuple[str, ...]] = (
    "emergency",
    "urgent",
    "danger",
    "critical",
    "immediate",
    "asap",
    "life-threatening",
    "injury",
    "injured",
    "accident",
    "severe",
    "flooding",
    "fire",
    "gas leak",
    "explosion",
    "electrical hazard",
)

HIGH_KEYWORDS: Final[tuple[str, ...]] = (
    "broken",
    "unsafe",
    "hazard",
    "risk",
    "damaged",
    "blocked",
    "overflowing",
    "major",
    "serious",
)

MODERATE_KEYWORDS: Final[tuple[str, ...]] = (
    "repair",
    "fix",
    "problem",
    "issue",
    "concern",
    "needs attention",
    "faulty",
    "not working",
    "malfunctioning",
)

URGENT_BONUS: Final[int] = 20
HIGH_BONUS: Final[int] = 10
MODERATE_BONUS: Final[int] = 5

_KEYWORD_TIERS: Final[tuple[tuple[tuple[str, ...], int], ...]] = (
    (URGENT_KEYWORDS, URGENT_BONUS),
    (HIGH_KEYWORDS, HIGH_BONUS),
    (MODERATE_KEYWORDS, MODERATE_BONUS),
)

_RISK_BONUS: Final[dict[RiskLevel, int]] = {
    RiskLevel.HIGH: 15,
    RiskLevel.MEDIUM: 5,
    RiskLevel.LOW: 0,
}


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class TriageConfig:
    """Tunable thresholds for scoring and load-balanced routing."""

    base_score: int = 30
    repeat_complainant_threshold: int = 3
    repeat_complainant_bonus: int = 10
    department_overload_threshold: int = 50
    department_rebalance_ratio: float = 0.7
    vulnerable_age: int = 65

    @classmethod
    def from_settings(cls, settings: Settings) -> TriageConfig:
        return cls(
            base_score=settings.triage_base_score,
            repeat_complainant_threshold=settings.repeat_complainant_threshold,
            repeat_complainant_bonus=settings.repeat_complainant_bonus,
            department_overload_threshold=settings.department_overload_threshold,
            department_rebalance_ratio=settings.department_rebalance_ratio,
            vulnerable_age=settings.vulnerable_age,
        )


def keyword_bonus(text: str) -> int:
    """Sum of tier bonuses for *text*; each tier counts at most once."""
    lowered = text.lower()
    return sum(
        bonus for keywords, bonus in _KEYWORD_TIERS if any(keyword in lowered for keyword in keywords)
    )


def determine_auto_priority(severity_score: int, is_vulnerable: bool) -> Priority:
    """Map a severity score to a priority.

    Vulnerable reporters: >= 50 High, otherwise Medium.
    Everyone else: >= 70 High, >= 40 Medium, otherwise Low.
    """
    if is_vulnerable:
        if severity_score >= 50:
            return Priority.HIGH
        return Priority.MEDIUM

    if severity_score >= 70:
        return Priority.HIGH
    if severity_score >= 40:
        return Priority.MEDIUM
    return Priority.LOW


def age_in_years(date_of_birth: date, today: date | None = None) -> int:
    """Calendar-year difference, matching how the intake forms record age."""
    today = today or datetime.now(UTC).date()
    return today.year - date_of_birth.year


# ---------------------------------------------------------------------------
# Triage Engine
# ---------------------------------------------------------------------------


class TriageEngine:
    """Stateless, request-scoped triage over a :class:`ComplaintStore`."""

    __slots__ = ("_config", "_store")

    def __init__(self, store: ComplaintStore, config: TriageConfig | None = None) -> None:
        self._store = store
        self._config = config or TriageConfig()

    @property
    def config(self) -> TriageConfig:
        return self._config

    # ------------------------------------------------------------------
    # Orchestration
    # ------------------------------------------------------------------

    async def assess_complaint(self, complaint_id: int) -> TriageResult:
        """Run the full triage pipeline for one complaint.

        Raises
        ------
        ComplaintNotFoundError
            If the complaint does not exist.
        """
        complaint = await self._store.get_complaint(complaint_id)
        if complaint is None:
            raise ComplaintNotFoundError(complaint_id)

        severity_score = await self.calculate_severity_score(
            complaint.title,
            complaint.description,
            complaint.category_id,
            complaint.citizen_id,
        )
        is_vulnerable = await self.check_vulnerable_reporter(complaint.citizen_id)
        priority = determine_auto_priority(severity_score, is_vulnerable)
        department_id = await self.route_to_most_suitable_department(
            complaint.category_id,
            complaint.department_id,
        )
        triage_notes = await self.generate_triage_notes(
            severity_score,
            is_vulnerable,
            priority,
            department_id,
        )

        logger.info(
            "triage.assessed",
            complaint_id=complaint_id,
            severity_score=severity_score,
            priority=priority,
            department_id=department_id,
            is_vulnerable=is_vulnerable,
        )
        return TriageResult(
            complaint_id=complaint_id,
            severity_score=severity_score,
            priority=priority,
            department_id=department_id,
            triage_notes=triage_notes,
            is_vulnerable=is_vulnerable,
        )

    async def try_assess(self, complaint_id: int) -> TriageOutcome:
        """Like :meth:`assess_complaint` but never raises.

        Any failure is returned on the outcome so the caller can carry on
        without triage metadata.
        """
        try:
            result = await self.assess_complaint(complaint_id)
        except Exception as exc:
            logger.warning(
                "triage.assessment_failed",
                complaint_id=complaint_id,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            return TriageOutcome(complaint_id=complaint_id, error=exc)
        return TriageOutcome(complaint_id=complaint_id, result=result)

    # ------------------------------------------------------------------
    # Individual steps
    # ------------------------------------------------------------------

    async def calculate_severity_score(
        self,
        title: str,
        description: str,
        category_id: int,
        citizen_id: int,
    ) -> int:
        score = self._config.base_score
        score += keyword_bonus(f"{title} {description}")

        category = await self._store.get_category(category_id)
        if category is not None:
            score += _RISK_BONUS.get(category.risk_level, 0)

        unresolved = await self._store.count_unresolved_by_citizen(citizen_id)
        if unresolved > self._config.repeat_complainant_threshold:
            score += self._config.repeat_complainant_bonus

        return max(0, min(score, 100))

    async def check_vulnerable_reporter(self, citizen_id: int) -> bool:
        citizen = await self._store.get_citizen(citizen_id)
        if citizen is None:
            return False
        if citizen.is_vulnerable or citizen.has_disability:
            return True
        if citizen.date_of_birth is not None:
            return age_in_years(citizen.date_of_birth) >= self._config.vulnerable_age
        return False

    async def determine_auto_priority(self, severity_score: int, is_vulnerable: bool) -> Priority:
        return determine_auto_priority(severity_score, is_vulnerable)

    async def route_to_most_suitable_department(
        self,
        category_id: int,
        current_department_id: int | None,
    ) -> int | None:
        """Pick a department for a complaint in *category_id*.

        An existing assignment is always kept, so re-triage never moves a
        complaint.  ``None`` means the category has no default department
        and an operator must assign one.
        """
        if current_department_id is not None:
            return current_department_id

        category = await self._store.get_category(category_id)
        if category is None or category.default_department_id is None:
            return None

        default_id = category.default_department_id
        default_load = await self._store.count_open_by_department(default_id)
        if default_load <= self._config.department_overload_threshold:
            return default_id

        best_id: int | None = None
        best_load: int | None = None
        for department in await self._store.list_departments_with_active_staff():
            load = await self._store.count_open_by_department(department.department_id)
            if best_load is None or load < best_load:
                best_id, best_load = department.department_id, load

        if best_id is not None and best_load is not None:
            if best_load < default_load * self._config.department_rebalance_ratio:
                logger.info(
                    "triage.department_rebalanced",
                    category_id=category_id,
                    default_department_id=default_id,
                    default_load=default_load,
                    department_id=best_id,
                    load=best_load,
                )
                return best_id

        return default_id

    async def generate_triage_notes(
        self,
        severity_score: int,
        is_vulnerable: bool,
        priority: Priority,
        department_id: int | None,
    ) -> str:
        notes = [
            f"Auto-triaged with severity score: {severity_score}/100.",
            f"Priority set to: {priority}.",
        ]
        if is_vulnerable:
            notes.append("Reporter flagged as vulnerable - priority elevated.")

        if department_id is not None:
            department = await self._store.get_department(department_id)
            if department is not None:
                notes.append(f"Routed to: {department.department_name}.")
        else:
            notes.append("No department routing configured.")

        return " ".join(notes)
