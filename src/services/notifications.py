"""Notification sink for complaint events.

The engines emit fire-and-forget messages through the
:class:`NotificationSink` protocol: a message about one complaint,
addressed to a citizen, a staff member, an admin, or any combination.
Delivery (email, SMS, push) is not handled here.

:class:`NotificationService` is the in-process inbox implementation.  It
stores :class:`Notification` records that the staff and citizen
dashboards list, and that a delivery layer can drain.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Protocol, runtime_checkable
from uuid import uuid4

import structlog
from pydantic import BaseModel, Field

logger = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Notification model
# ---------------------------------------------------------------------------


class Notification(BaseModel):
    """A single message about a complaint."""

    notification_id: str = Field(default_factory=lambda: uuid4().hex)
    message: str
    complaint_id: int
    citizen_id: int | None = None
    staff_id: int | None = None
    admin_id: int | None = None
    is_read: bool = False
    sent_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


# ---------------------------------------------------------------------------
# Sink protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class NotificationSink(Protocol):
    async def send(
        self,
        message: str,
        complaint_id: int,
        *,
        citizen_id: int | None = None,
        staff_id: int | None = None,
        admin_id: int | None = None,
    ) -> None: ...


# ---------------------------------------------------------------------------
# Notification Service
# ---------------------------------------------------------------------------


class NotificationService:
    """In-memory notification inbox.

    Messages with no recipient at all are admin broadcasts; they show up
    in :meth:`for_admin` for every admin.
    """

    __slots__ = ("_notifications",)

    def __init__(self) -> None:
        # Insertion order is send order; production would use a table or queue
        self._notifications: list[Notification] = []

    async def send(
        self,
        message: str,
        complaint_id: int,
        *,
        citizen_id: int | None = None,
        staff_id: int | None = None,
        admin_id: int | None = None,
    ) -> None:
        notification = Notification(
            message=message,
            complaint_id=complaint_id,
            citizen_id=citizen_id,
            staff_id=staff_id,
            admin_id=admin_id,
        )
        self._notifications.append(notification)
        logger.info(
            "notification.queued",
            notification_id=notification.notification_id,
            complaint_id=complaint_id,
            citizen_id=citizen_id,
            staff_id=staff_id,
            admin_id=admin_id,
        )

    # ------------------------------------------------------------------
    # Inbox queries
    # ------------------------------------------------------------------

    def for_citizen(self, citizen_id: int) -> list[Notification]:
        return self._newest_first(n for n in self._notifications if n.citizen_id == citizen_id)

    def for_staff(self, staff_id: int) -> list[Notification]:
        return self._newest_first(n for n in self._notifications if n.staff_id == staff_id)

    def for_admin(self, admin_id: int) -> list[Notification]:
        return self._newest_first(
            n
            for n in self._notifications
            if n.admin_id == admin_id
            or (n.citizen_id is None and n.staff_id is None and n.admin_id is None)
        )

    def for_complaint(self, complaint_id: int) -> list[Notification]:
        return self._newest_first(n for n in self._notifications if n.complaint_id == complaint_id)

    def unread_count(self, *, citizen_id: int | None = None) -> int:
        pool = self._notifications if citizen_id is None else self.for_citizen(citizen_id)
        return sum(1 for n in pool if not n.is_read)

    def mark_as_read(self, notification_id: str) -> bool:
        for notification in self._notifications:
            if notification.notification_id == notification_id:
                notification.is_read = True
                return True
        return False

    @property
    def queue_size(self) -> int:
        return len(self._notifications)

    @staticmethod
    def _newest_first(notifications) -> list[Notification]:
        # Later sends win ties on equal timestamps
        return sorted(list(notifications)[::-1], key=lambda n: n.sent_at, reverse=True)
