"""Tests for pairwise complaint similarity: text, location, time, and the weighted blend."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from src.models.complaint import Complaint
from src.services.similarity import (
    gps_proximity,
    haversine_km,
    levenshtein_distance,
    location_similarity,
    similarity_breakdown,
    similarity_reason,
    similarity_score,
    text_similarity,
    time_proximity,
)

_BASE_TIME = datetime(2025, 3, 10, 9, 0, tzinfo=UTC)


def _complaint(
    complaint_id: int = 1,
    title: str = "Pothole on Elm Street",
    description: str = "Deep pothole near the school gate",
    location: str = "Elm Street, Ward 4",
    latitude: float | None = None,
    longitude: float | None = None,
    submitted_at: datetime = _BASE_TIME,
) -> Complaint:
    return Complaint(
        complaint_id=complaint_id,
        title=title,
        description=description,
        location=location,
        latitude=latitude,
        longitude=longitude,
        category_id=1,
        citizen_id=1,
        submitted_at=submitted_at,
    )


# -----------------------------------------------------------------------
# Levenshtein / text similarity
# -----------------------------------------------------------------------


class TestLevenshteinDistance:
    @pytest.mark.parametrize(
        ("s1", "s2", "expected"),
        [
            ("kitten", "sitting", 3),
            ("flaw", "lawn", 2),
            ("", "abc", 3),
            ("abc", "", 3),
            ("same", "same", 0),
            ("a", "b", 1),
        ],
    )
    def test_known_distances(self, s1: str, s2: str, expected: int) -> None:
        assert levenshtein_distance(s1, s2) == expected, f"distance({s1!r}, {s2!r}) should be {expected}"

    def test_distance_is_symmetric(self) -> None:
        assert levenshtein_distance("streetlight", "street light") == levenshtein_distance(
            "street light", "streetlight"
        ), "edit distance should not depend on argument order"


class TestTextSimilarity:
    def test_identical_strings_score_100(self) -> None:
        assert text_similarity("Broken streetlight", "Broken streetlight") == 100.0, (
            "identical strings should score 100"
        )

    def test_case_and_whitespace_are_ignored(self) -> None:
        assert text_similarity("  Pothole on Elm Street ", "pothole on elm street") == 100.0, (
            "comparison should ignore case and surrounding whitespace"
        )

    def test_single_substitution(self) -> None:
        assert text_similarity("abc", "abd") == pytest.approx(100.0 * 2 / 3), (
            "one substitution in three characters should score two thirds"
        )

    def test_completely_different_strings_floor_at_zero(self) -> None:
        assert text_similarity("abc", "xyz") == 0.0, "fully different strings should score 0"

    @pytest.mark.parametrize(
        ("a", "b"),
        [
            ("", "anything"),
            ("anything", ""),
            (None, "anything"),
            ("   ", "   "),
            ("\t", " \n"),
        ],
    )
    def test_empty_input_scores_zero(self, a: str | None, b: str | None) -> None:
        assert text_similarity(a, b) == 0.0, f"blank input {a!r} / {b!r} should score 0"

    @pytest.mark.parametrize(
        ("a", "b"),
        [
            ("water leak", "Water leakage"),
            ("garbage not collected", "garbage collection missed"),
            ("x", "a much longer complaint title"),
            ("   ", "blank"),
        ],
    )
    def test_symmetry(self, a: str, b: str) -> None:
        assert text_similarity(a, b) == text_similarity(b, a), "similarity should be symmetric"

    @pytest.mark.parametrize("s", ["a", "Street light out", " padded ", "ÄÖÜ"])
    def test_identity(self, s: str) -> None:
        assert text_similarity(s, s) == 100.0, f"{s!r} compared to itself should score 100"

    def test_range(self) -> None:
        for a, b in [("a", "bbbbbbbb"), ("pothole", "potholes"), ("q", "q ")]:
            score = text_similarity(a, b)
            assert 0.0 <= score <= 100.0, f"score for {a!r}/{b!r} should be within 0-100, got {score}"


# -----------------------------------------------------------------------
# Geography
# -----------------------------------------------------------------------


class TestHaversine:
    def test_same_point_is_zero(self) -> None:
        assert haversine_km(28.6139, 77.2090, 28.6139, 77.2090) == pytest.approx(0.0), (
            "distance from a point to itself should be 0"
        )

    def test_one_degree_of_latitude(self) -> None:
        assert haversine_km(0.0, 0.0, 1.0, 0.0) == pytest.approx(111.195, rel=1e-3), (
            "one degree of latitude should be about 111.2 km"
        )

    def test_antipodal_points(self) -> None:
        assert haversine_km(0.0, 0.0, 0.0, 180.0) == pytest.approx(20015.09, rel=1e-3), (
            "antipodal points should be half the circumference apart"
        )

    def test_gps_proximity_scale(self) -> None:
        assert gps_proximity(0.0) == 100.0, "co-located points should score 100"
        assert gps_proximity(0.5) == pytest.approx(50.0), "500 m should score 50"
        assert gps_proximity(1.0) == pytest.approx(0.0), "1 km should score 0"
        assert gps_proximity(12.0) == 0.0, "far points should floor at 0"


class TestLocationSimilarity:
    def test_empty_location_scores_zero(self) -> None:
        assert location_similarity(_complaint(location=""), _complaint(location="Elm Street")) == 0.0, (
            "a missing location should score 0"
        )
        assert location_similarity(_complaint(location="   "), _complaint(location="   ")) == 0.0, (
            "whitespace-only locations should score 0"
        )

    def test_text_only_when_no_coordinates(self) -> None:
        a = _complaint(location="Elm Street")
        b = _complaint(location="elm street")
        assert location_similarity(a, b) == 100.0, "text score alone should be used without GPS"

    def test_text_only_when_one_side_lacks_coordinates(self) -> None:
        a = _complaint(location="Elm Street", latitude=12.97, longitude=77.59)
        b = _complaint(location="Elm Street")
        assert location_similarity(a, b) == 100.0, "GPS should only count when both sides have it"

    def test_averages_text_and_gps(self) -> None:
        # ~0.5 km apart along a meridian
        offset = 0.5 / 111.195
        a = _complaint(location="Elm Street", latitude=12.97, longitude=77.59)
        b = _complaint(location="Elm Street", latitude=12.97 + offset, longitude=77.59)
        assert location_similarity(a, b) == pytest.approx((100.0 + 50.0) / 2, abs=0.2), (
            "text and GPS scores should be averaged"
        )

    def test_far_apart_coordinates_halve_the_score(self) -> None:
        a = _complaint(location="Elm Street", latitude=12.97, longitude=77.59)
        b = _complaint(location="Elm Street", latitude=13.97, longitude=77.59)
        assert location_similarity(a, b) == pytest.approx(50.0), "a zero GPS score should halve the text score"


# -----------------------------------------------------------------------
# Time proximity
# -----------------------------------------------------------------------


class TestTimeProximity:
    @pytest.mark.parametrize(
        ("gap", "expected"),
        [
            (timedelta(hours=2), 100.0),
            (timedelta(days=1), 75.0),
            (timedelta(days=2, hours=23), 75.0),
            (timedelta(days=3), 50.0),
            (timedelta(days=6), 50.0),
            (timedelta(days=7), 25.0),
            (timedelta(days=13), 25.0),
            (timedelta(days=14), 0.0),
            (timedelta(days=40), 0.0),
        ],
    )
    def test_steps(self, gap: timedelta, expected: float) -> None:
        assert time_proximity(_BASE_TIME, _BASE_TIME + gap) == expected, f"a gap of {gap} should score {expected}"
        assert time_proximity(_BASE_TIME + gap, _BASE_TIME) == expected, "time proximity should be symmetric"


# -----------------------------------------------------------------------
# Weighted score and reasons
# -----------------------------------------------------------------------


class TestSimilarityScore:
    def test_case_only_title_difference_two_hours_apart(self) -> None:
        a = _complaint(1, title="Pothole on Elm Street")
        b = _complaint(2, title="Pothole on elm street", submitted_at=_BASE_TIME + timedelta(hours=2))
        breakdown = similarity_breakdown(a, b)
        assert breakdown.title == 100.0, "case-only title difference should score 100"
        assert breakdown.time == 100.0, "two hours apart should score 100 on time"
        assert breakdown.location == 100.0, "same location text should score 100"
        assert breakdown.total >= 70.0, "the pair should clear the duplicate threshold"

    def test_identical_complaints_score_100(self) -> None:
        assert similarity_score(_complaint(1), _complaint(2)) == pytest.approx(100.0), (
            "identical complaints should score 100"
        )

    def test_weights(self) -> None:
        a = _complaint(1, description="aaaa", location="")
        b = _complaint(2, description="zzzz", location="", submitted_at=_BASE_TIME + timedelta(days=30))
        # title only: 0.4 * 100
        assert similarity_score(a, b) == pytest.approx(40.0), "title should carry 40% of the score"

    def test_score_within_range(self) -> None:
        pairs = [
            (_complaint(1), _complaint(2, title="x", description="y", location="z")),
            (
                _complaint(1, latitude=0.0, longitude=0.0),
                _complaint(2, latitude=0.0, longitude=0.0),
            ),
            (_complaint(1, location=""), _complaint(2, submitted_at=_BASE_TIME + timedelta(days=20))),
        ]
        for a, b in pairs:
            score = similarity_score(a, b)
            assert 0.0 <= score <= 100.0, f"score should be within 0-100, got {score}"

    def test_score_is_symmetric(self) -> None:
        a = _complaint(1, title="Streetlight broken", location="MG Road")
        b = _complaint(2, title="Street light broken", location="M.G. Road", submitted_at=_BASE_TIME + timedelta(days=2))
        assert similarity_score(a, b) == pytest.approx(similarity_score(b, a)), "score should be symmetric"


class TestSimilarityReason:
    def test_all_reasons(self) -> None:
        a = _complaint(1)
        b = _complaint(2, submitted_at=_BASE_TIME + timedelta(hours=3))
        assert similarity_reason(a, b) == (
            "Similar titles (100%), Similar descriptions (100%), Same location (100%), Submitted same day"
        ), "every matching component should be listed in order"

    def test_days_apart(self) -> None:
        a = _complaint(1)
        b = _complaint(2, submitted_at=_BASE_TIME + timedelta(days=2))
        assert "Submitted 2 days apart" in similarity_reason(a, b), "a two-day gap should be described"

    def test_fallback_reason(self) -> None:
        a = _complaint(1, title="abc", description="def", location="")
        b = _complaint(2, title="xyz", description="uvw", location="", submitted_at=_BASE_TIME + timedelta(days=5))
        assert similarity_reason(a, b) == "Multiple similarities detected", (
            "no individual reason should fall back to the generic text"
        )
