"""Complaint desk service layer -- triage, case linkage, and their collaborators.

Everything here is pure Python over the :class:`ComplaintStore` and
:class:`NotificationSink` protocols; the Redis client used by the
candidate cache is imported lazily, only when a Redis URL is configured.
"""

from __future__ import annotations

from src.services.candidate_cache import CandidateCache, InMemoryCandidateBackend
from src.services.case_linkage import CaseLinkageEngine, LinkageConfig
from src.services.intake import ComplaintIntakeService, apply_triage
from src.services.notifications import Notification, NotificationService, NotificationSink
from src.services.store import ComplaintNotFoundError, ComplaintStore, InMemoryComplaintStore
from src.services.triage import TriageConfig, TriageEngine, determine_auto_priority

__all__ = [
    "CandidateCache",
    "CaseLinkageEngine",
    "ComplaintIntakeService",
    "ComplaintNotFoundError",
    "ComplaintStore",
    "InMemoryCandidateBackend",
    "InMemoryComplaintStore",
    "LinkageConfig",
    "Notification",
    "NotificationService",
    "NotificationSink",
    "TriageConfig",
    "TriageEngine",
    "apply_triage",
    "determine_auto_priority",
]
