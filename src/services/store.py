"""Data-store boundary for the triage and case-linkage engines.

The engines never talk to a database directly.  They depend on the
:class:`ComplaintStore` protocol, which names exactly the reads and writes
they need.  :class:`InMemoryComplaintStore` is the process-local
implementation used by the API service and the test-suite; a relational
implementation only has to satisfy the same protocol.

Every read returns a *copy* of the stored record, so callers must write
changes back through :meth:`ComplaintStore.save_complaint`, the same way
an ORM session would require a flush.
"""

from __future__ import annotations

import asyncio
import contextlib
import copy
from collections.abc import AsyncIterator
from datetime import datetime
from typing import Protocol, runtime_checkable

import structlog

from src.models.complaint import Category, Citizen, Complaint, ComplaintLink, Department
from src.models.enums import ComplaintStatus

logger = structlog.get_logger(__name__)


class ComplaintNotFoundError(LookupError):
    """The referenced complaint does not exist."""

    def __init__(self, complaint_id: int) -> None:
        super().__init__(f"Complaint with ID {complaint_id} not found")
        self.complaint_id = complaint_id


def is_open(status: ComplaintStatus) -> bool:
    """Open means anything not yet Resolved; used for workload counts."""
    return status != ComplaintStatus.RESOLVED


# ---------------------------------------------------------------------------
# Store protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class ComplaintStore(Protocol):
    """Async persistence interface consumed by the engines."""

    async def get_complaint(self, complaint_id: int) -> Complaint | None: ...

    async def get_category(self, category_id: int) -> Category | None: ...

    async def get_citizen(self, citizen_id: int) -> Citizen | None: ...

    async def get_department(self, department_id: int) -> Department | None: ...

    async def count_unresolved_by_citizen(self, citizen_id: int) -> int: ...

    async def count_open_by_department(self, department_id: int) -> int: ...

    async def list_departments_with_active_staff(self) -> list[Department]: ...

    async def list_candidates(
        self,
        category_id: int,
        start: datetime,
        end: datetime,
        *,
        exclude_id: int,
    ) -> list[Complaint]: ...

    async def add_complaint(self, complaint: Complaint) -> Complaint: ...

    async def save_complaint(self, complaint: Complaint) -> None: ...

    async def add_link(self, link: ComplaintLink) -> ComplaintLink: ...

    async def get_link(self, link_id: int) -> ComplaintLink | None: ...

    async def delete_link(self, link_id: int) -> bool: ...

    async def list_links_for(self, complaint_id: int) -> list[ComplaintLink]: ...

    async def link_exists(self, complaint_id_1: int, complaint_id_2: int) -> bool: ...

    def transaction(self) -> contextlib.AbstractAsyncContextManager[None]: ...


# ---------------------------------------------------------------------------
# In-memory implementation
# ---------------------------------------------------------------------------


class InMemoryComplaintStore:
    """Dict-backed :class:`ComplaintStore`.

    Individual operations never yield to the event loop while mutating,
    so they are atomic under asyncio.  :meth:`transaction` serialises
    multi-write units with an :class:`asyncio.Lock` and rolls complaints
    and links back to their snapshot if the block raises.
    """

    __slots__ = (
        "_categories",
        "_citizens",
        "_complaints",
        "_departments",
        "_links",
        "_next_complaint_id",
        "_next_link_id",
        "_tx_lock",
    )

    def __init__(self) -> None:
        self._complaints: dict[int, Complaint] = {}
        self._categories: dict[int, Category] = {}
        self._citizens: dict[int, Citizen] = {}
        self._departments: dict[int, Department] = {}
        self._links: dict[int, ComplaintLink] = {}
        self._next_complaint_id = 1
        self._next_link_id = 1
        self._tx_lock = asyncio.Lock()

    # -- Seeding (admin configuration) -------------------------------------

    def add_category(self, category: Category) -> Category:
        self._categories[category.category_id] = category.model_copy(deep=True)
        return category

    def add_citizen(self, citizen: Citizen) -> Citizen:
        self._citizens[citizen.citizen_id] = citizen.model_copy(deep=True)
        return citizen

    def add_department(self, department: Department) -> Department:
        self._departments[department.department_id] = department.model_copy(deep=True)
        return department

    # -- Reads --------------------------------------------------------------

    async def get_complaint(self, complaint_id: int) -> Complaint | None:
        complaint = self._complaints.get(complaint_id)
        return complaint.model_copy(deep=True) if complaint is not None else None

    async def get_category(self, category_id: int) -> Category | None:
        category = self._categories.get(category_id)
        return category.model_copy(deep=True) if category is not None else None

    async def get_citizen(self, citizen_id: int) -> Citizen | None:
        citizen = self._citizens.get(citizen_id)
        return citizen.model_copy(deep=True) if citizen is not None else None

    async def get_department(self, department_id: int) -> Department | None:
        department = self._departments.get(department_id)
        return department.model_copy(deep=True) if department is not None else None

    async def count_unresolved_by_citizen(self, citizen_id: int) -> int:
        return sum(
            1 for c in self._complaints.values() if c.citizen_id == citizen_id and is_open(c.status)
        )

    async def count_open_by_department(self, department_id: int) -> int:
        return sum(
            1
            for c in self._complaints.values()
            if c.department_id == department_id and is_open(c.status)
        )

    async def list_departments_with_active_staff(self) -> list[Department]:
        return [
            d.model_copy(deep=True)
            for _, d in sorted(self._departments.items())
            if d.active_staff_count > 0
        ]

    async def list_candidates(
        self,
        category_id: int,
        start: datetime,
        end: datetime,
        *,
        exclude_id: int,
    ) -> list[Complaint]:
        """Complaints in *category_id* submitted within ``[start, end]``."""
        return [
            c.model_copy(deep=True)
            for _, c in sorted(self._complaints.items())
            if c.complaint_id != exclude_id
            and c.category_id == category_id
            and start <= c.submitted_at <= end
        ]

    # -- Complaint writes ---------------------------------------------------

    async def add_complaint(self, complaint: Complaint) -> Complaint:
        """Insert *complaint*, allocating an id when it carries ``0``."""
        if complaint.complaint_id <= 0:
            complaint = complaint.model_copy(update={"complaint_id": self._next_complaint_id})
        self._next_complaint_id = max(self._next_complaint_id, complaint.complaint_id + 1)
        self._complaints[complaint.complaint_id] = complaint.model_copy(deep=True)
        return complaint

    async def save_complaint(self, complaint: Complaint) -> None:
        if complaint.complaint_id not in self._complaints:
            raise ComplaintNotFoundError(complaint.complaint_id)
        self._complaints[complaint.complaint_id] = complaint.model_copy(deep=True)

    # -- Link graph ---------------------------------------------------------

    async def add_link(self, link: ComplaintLink) -> ComplaintLink:
        stored = link.model_copy(update={"link_id": self._next_link_id})
        self._next_link_id += 1
        self._links[stored.link_id] = stored
        return stored.model_copy(deep=True)

    async def get_link(self, link_id: int) -> ComplaintLink | None:
        link = self._links.get(link_id)
        return link.model_copy(deep=True) if link is not None else None

    async def delete_link(self, link_id: int) -> bool:
        return self._links.pop(link_id, None) is not None

    async def list_links_for(self, complaint_id: int) -> list[ComplaintLink]:
        return [
            link.model_copy(deep=True)
            for link in self._links.values()
            if complaint_id in (link.source_complaint_id, link.target_complaint_id)
        ]

    async def link_exists(self, complaint_id_1: int, complaint_id_2: int) -> bool:
        return any(link.connects(complaint_id_1, complaint_id_2) for link in self._links.values())

    # -- Unit of work ---------------------------------------------------------

    @contextlib.asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        async with self._tx_lock:
            complaints = copy.deepcopy(self._complaints)
            links = copy.deepcopy(self._links)
            next_link_id = self._next_link_id
            try:
                yield
            except BaseException:
                self._complaints = complaints
                self._links = links
                self._next_link_id = next_link_id
                logger.warning("store.transaction_rolled_back")
                raise

    @property
    def link_count(self) -> int:
        return len(self._links)
