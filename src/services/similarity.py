"""Pairwise complaint similarity used by duplicate detection.

Four components, each on a 0-100 scale, are blended into one score:

    score = 0.4 * title + 0.3 * description + 0.2 * location + 0.1 * time

* **title / description** -- normalised Levenshtein similarity of the
  lower-cased, trimmed strings.
* **location** -- Levenshtein similarity of the free-text location,
  averaged with a GPS proximity score when both complaints carry
  coordinates.  The GPS score falls to zero at about 1 km.
* **time** -- stepped proximity of the submission timestamps.

All functions here are pure; the engine decides which complaints to compare.
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import Final

from src.models.case import SimilarityBreakdown
from src.models.complaint import Complaint

_EARTH_RADIUS_KM: Final[float] = 6371.0

TITLE_WEIGHT: Final[float] = 0.4
DESCRIPTION_WEIGHT: Final[float] = 0.3
LOCATION_WEIGHT: Final[float] = 0.2
TIME_WEIGHT: Final[float] = 0.1

# (upper bound in days, score); first bound the gap falls under wins
_TIME_STEPS: Final[tuple[tuple[float, float], ...]] = (
    (1.0, 100.0),
    (3.0, 75.0),
    (7.0, 50.0),
    (14.0, 25.0),
)

# Reason-string thresholds (strictly greater than)
_REASON_TITLE_MIN: Final[float] = 70.0
_REASON_DESCRIPTION_MIN: Final[float] = 60.0
_REASON_LOCATION_MIN: Final[float] = 70.0


# ---------------------------------------------------------------------------
# Text
# ---------------------------------------------------------------------------


def levenshtein_distance(s1: str, s2: str) -> int:
    """Classic edit distance; insertions, deletions and substitutions cost 1."""
    if len(s1) < len(s2):
        s1, s2 = s2, s1
    if not s2:
        return len(s1)

    previous = list(range(len(s2) + 1))
    for i, ch1 in enumerate(s1, start=1):
        current = [i]
        for j, ch2 in enumerate(s2, start=1):
            cost = 0 if ch1 == ch2 else 1
            current.append(
                min(
                    previous[j] + 1,  # deletion
                    current[j - 1] + 1,  # insertion
                    previous[j - 1] + cost,  # substitution
                )
            )
        previous = current
    return previous[-1]


def text_similarity(text1: str | None, text2: str | None) -> float:
    """Case-insensitive similarity of two strings on a 0-100 scale.

    Blank or whitespace-only input scores 0.  Identical strings (after
    lower-casing and trimming) score 100; otherwise the score is
    ``max(0, (1 - distance / max_length) * 100)``.
    """
    if not text1 or not text2 or not text1.strip() or not text2.strip():
        return 0.0

    a = text1.lower().strip()
    b = text2.lower().strip()
    if a == b:
        return 100.0

    distance = levenshtein_distance(a, b)
    max_length = max(len(a), len(b))
    return max(0.0, (1.0 - distance / max_length) * 100.0)


# ---------------------------------------------------------------------------
# Geography
# ---------------------------------------------------------------------------


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two points in kilometres.

    Parameters
    ----------
    lat1, lon1:
        Latitude and longitude of point 1 in decimal degrees.
    lat2, lon2:
        Latitude and longitude of point 2 in decimal degrees.
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)

    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(dlon / 2) ** 2
    )
    # Clamp float drift for antipodal points
    a = min(1.0, max(0.0, a))
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return _EARTH_RADIUS_KM * c


def gps_proximity(distance_km: float) -> float:
    return max(0.0, 100.0 - distance_km * 100.0)


def location_similarity(complaint1: Complaint, complaint2: Complaint) -> float:
    """Location component: text score, averaged with GPS score when available."""
    if not complaint1.location.strip() or not complaint2.location.strip():
        return 0.0

    text_score = text_similarity(complaint1.location, complaint2.location)

    if complaint1.has_coordinates and complaint2.has_coordinates:
        distance = haversine_km(
            complaint1.latitude,  # type: ignore[arg-type]
            complaint1.longitude,  # type: ignore[arg-type]
            complaint2.latitude,  # type: ignore[arg-type]
            complaint2.longitude,  # type: ignore[arg-type]
        )
        return (text_score + gps_proximity(distance)) / 2

    return text_score


# ---------------------------------------------------------------------------
# Time
# ---------------------------------------------------------------------------


def days_between(date1: datetime, date2: datetime) -> float:
    return abs((date1 - date2).total_seconds()) / 86_400


def time_proximity(date1: datetime, date2: datetime) -> float:
    diff = days_between(date1, date2)
    for upper_bound, score in _TIME_STEPS:
        if diff < upper_bound:
            return score
    return 0.0


# ---------------------------------------------------------------------------
# Composite
# ---------------------------------------------------------------------------


def similarity_breakdown(complaint1: Complaint, complaint2: Complaint) -> SimilarityBreakdown:
    title = text_similarity(complaint1.title, complaint2.title)
    description = text_similarity(complaint1.description, complaint2.description)
    location = location_similarity(complaint1, complaint2)
    time_score = time_proximity(complaint1.submitted_at, complaint2.submitted_at)

    total = (
        title * TITLE_WEIGHT
        + description * DESCRIPTION_WEIGHT
        + location * LOCATION_WEIGHT
        + time_score * TIME_WEIGHT
    )
    return SimilarityBreakdown(
        title=title,
        description=description,
        location=location,
        time=time_score,
        total=min(100.0, max(0.0, total)),
    )


def similarity_score(complaint1: Complaint, complaint2: Complaint) -> float:
    """Weighted similarity of two complaints, 0-100 (unrounded)."""
    return similarity_breakdown(complaint1, complaint2).total


def similarity_reason(complaint1: Complaint, complaint2: Complaint) -> str:
    """Human-readable explanation of why two complaints look alike."""
    reasons: list[str] = []

    title = text_similarity(complaint1.title, complaint2.title)
    if title > _REASON_TITLE_MIN:
        reasons.append(f"Similar titles ({title:.0f}%)")

    description = text_similarity(complaint1.description, complaint2.description)
    if description > _REASON_DESCRIPTION_MIN:
        reasons.append(f"Similar descriptions ({description:.0f}%)")

    if complaint1.location.strip() and complaint2.location.strip():
        location = text_similarity(complaint1.location, complaint2.location)
        if location > _REASON_LOCATION_MIN:
            reasons.append(f"Same location ({location:.0f}%)")

    diff = days_between(complaint1.submitted_at, complaint2.submitted_at)
    if diff < 1:
        reasons.append("Submitted same day")
    elif diff < 3:
        reasons.append(f"Submitted {diff:.0f} days apart")

    return ", ".join(reasons) if reasons else "Multiple similarities detected"
