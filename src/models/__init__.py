from src.models.case import (
    DuplicateCandidate,
    DuplicateReport,
    LinkedComplaint,
    SimilarityBreakdown,
)
from src.models.complaint import Category, Citizen, Complaint, ComplaintLink, Department
from src.models.enums import ComplaintStatus, LinkType, Priority, RiskLevel, UserType
from src.models.triage import TriageOutcome, TriageResult

__all__ = [
    "Category",
    "Citizen",
    "Complaint",
    "ComplaintLink",
    "ComplaintStatus",
    "Department",
    "DuplicateCandidate",
    "DuplicateReport",
    "LinkType",
    "LinkedComplaint",
    "Priority",
    "RiskLevel",
    "SimilarityBreakdown",
    "TriageOutcome",
    "TriageResult",
    "UserType",
]
