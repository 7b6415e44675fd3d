from __future__ import annotations

from enum import StrEnum


class ComplaintStatus(StrEnum):
    __slots__ = ()

    PENDING = "Pending"
    IN_PROGRESS = "In Progress"
    RESOLVED = "Resolved"
    REJECTED = "Rejected"
    CLOSED_DUPLICATE = "Closed - Duplicate"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_STATUSES


_TERMINAL_STATUSES = frozenset(
    {ComplaintStatus.RESOLVED, ComplaintStatus.REJECTED, ComplaintStatus.CLOSED_DUPLICATE}
)


class Priority(StrEnum):
    __slots__ = ()

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {Priority.LOW: 0, Priority.MEDIUM: 1, Priority.HIGH: 2}


class RiskLevel(StrEnum):
    """Category risk level, used additively in severity scoring."""

    __slots__ = ()

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class LinkType(StrEnum):
    __slots__ = ()

    DUPLICATE = "Duplicate"
    RELATED = "Related"
    FOLLOW_UP = "FollowUp"


class UserType(StrEnum):
    __slots__ = ()

    ADMIN = "Admin"
    STAFF = "Staff"
    CITIZEN = "Citizen"
