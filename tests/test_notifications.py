"""Tests for the in-process notification inbox.

Covers addressing (citizen, staff, admin, broadcast), newest-first
ordering, unread counts, and marking notifications as read.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from src.services.notifications import Notification, NotificationService, NotificationSink


@pytest.fixture
def service() -> NotificationService:
    return NotificationService()


class TestNotificationModel:
    def test_defaults(self) -> None:
        notification = Notification(message="hello", complaint_id=4)
        assert notification.is_read is False, "new notifications should be unread"
        assert notification.citizen_id is None, "no recipient by default"
        assert len(notification.notification_id) == 32, "id should be a uuid4 hex string"
        assert notification.sent_at.tzinfo is not None, "send time should be timezone-aware"

    def test_ids_are_unique(self) -> None:
        ids = {Notification(message="m", complaint_id=1).notification_id for _ in range(50)}
        assert len(ids) == 50, "every notification should get a distinct id"


class TestNotificationService:
    def test_satisfies_sink_protocol(self, service: NotificationService) -> None:
        assert isinstance(service, NotificationSink), "service should satisfy the NotificationSink protocol"

    async def test_send_to_citizen(self, service: NotificationService) -> None:
        await service.send("Your complaint was updated", 12, citizen_id=3)
        inbox = service.for_citizen(3)
        assert len(inbox) == 1, "citizen should have one notification"
        assert inbox[0].message == "Your complaint was updated", "message should be stored verbatim"
        assert inbox[0].complaint_id == 12, "notification should reference the complaint"
        assert service.for_citizen(4) == [], "other citizens should see nothing"
        assert service.queue_size == 1, "queue should hold one notification"

    async def test_staff_and_complaint_queries(self, service: NotificationService) -> None:
        await service.send("Assigned to you", 1, staff_id=8)
        await service.send("Citizen update", 1, citizen_id=2)
        await service.send("Other complaint", 2, staff_id=8)

        assert [n.complaint_id for n in service.for_staff(8)] == [2, 1], "staff inbox should be newest first"
        assert {n.message for n in service.for_complaint(1)} == {"Assigned to you", "Citizen update"}, (
            "complaint view should include every recipient"
        )

    async def test_broadcast_reaches_every_admin(self, service: NotificationService) -> None:
        await service.send("New complaint submitted", 5)
        await service.send("Escalation", 6, admin_id=1)
        await service.send("For a citizen", 7, citizen_id=1)

        assert [n.complaint_id for n in service.for_admin(1)] == [6, 5], (
            "admin 1 should see its own and the broadcast"
        )
        assert [n.complaint_id for n in service.for_admin(2)] == [5], "admin 2 should see only the broadcast"

    async def test_newest_first(self, service: NotificationService) -> None:
        await service.send("first", 1, citizen_id=1)
        await service.send("second", 2, citizen_id=1)
        inbox = service._notifications
        inbox[0].sent_at = datetime(2025, 1, 1, tzinfo=UTC) + timedelta(days=1)
        inbox[1].sent_at = datetime(2025, 1, 1, tzinfo=UTC)
        assert [n.message for n in service.for_citizen(1)] == ["first", "second"], (
            "ordering should follow send time, not insertion"
        )

    async def test_equal_timestamps_list_later_sends_first(self, service: NotificationService) -> None:
        await service.send("first", 1, citizen_id=1)
        await service.send("second", 2, citizen_id=1)
        for notification in service._notifications:
            notification.sent_at = datetime(2025, 1, 1, tzinfo=UTC)
        assert [n.message for n in service.for_citizen(1)] == ["second", "first"], (
            "ties on send time should list the later send first"
        )

    async def test_unread_and_mark_as_read(self, service: NotificationService) -> None:
        await service.send("a", 1, citizen_id=1)
        await service.send("b", 2, citizen_id=1)
        await service.send("c", 3, citizen_id=2)
        assert service.unread_count() == 3, "all notifications start unread"
        assert service.unread_count(citizen_id=1) == 2, "citizen 1 should have two unread"

        target = service.for_citizen(1)[0]
        assert service.mark_as_read(target.notification_id) is True, "marking a known notification should succeed"
        assert service.unread_count(citizen_id=1) == 1, "citizen 1 should have one unread left"
        assert service.unread_count() == 2, "overall unread count should drop by one"

    def test_mark_unknown_notification(self, service: NotificationService) -> None:
        assert service.mark_as_read("does-not-exist") is False, "an unknown id should return False"
