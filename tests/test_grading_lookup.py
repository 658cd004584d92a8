import math

import pytest

from app.api.v1.grading_system.lookup import UNGRADED, GradeBand, GradingTable, validate_bands
from app.core.exceptions import NotConfiguredError, ValidationError


BANDS = [
    GradeBand("D1", 80, 100, "Excellent"),
    GradeBand("C3", 60, 79, "Good"),
    GradeBand("P7", 40, 59, "Pass"),
    GradeBand("F9", 0, 39, "Fail"),
]


def test_grade_for_picks_band_containing_mark() -> None:
    table = GradingTable(BANDS)
    assert table.grade_for(100) == "D1"
    assert table.grade_for(80) == "D1"
    assert table.grade_for(79) == "C3"
    assert table.grade_for(45.5) == "P7"
    assert table.grade_for(0) == "F9"


def test_bands_sorted_descending_regardless_of_input_order() -> None:
    table = GradingTable(list(reversed(BANDS)))
    assert [b.grade for b in table.bands] == ["D1", "C3", "P7", "F9"]


def test_mark_outside_every_band_is_ungraded() -> None:
    table = GradingTable([GradeBand("A", 70, 100), GradeBand("B", 50, 60)])
    assert table.grade_for(65) == UNGRADED
    assert table.grade_for(120) == UNGRADED


def test_empty_table_is_not_configured() -> None:
    table = GradingTable([])
    assert not table.is_configured
    with pytest.raises(NotConfiguredError):
        table.grade_for(50)


def test_non_finite_mark_rejected() -> None:
    table = GradingTable(BANDS)
    with pytest.raises(ValidationError):
        table.grade_for(math.nan)
    with pytest.raises(ValidationError):
        table.grade_for(math.inf)


def test_points_follow_rank_unless_band_sets_them() -> None:
    table = GradingTable(BANDS, ungraded_points=9)
    assert table.points_for("D1") == 1
    assert table.points_for("F9") == 4
    assert table.points_for(UNGRADED) == 9
    assert table.points_for("ZZ") == 9

    explicit = GradingTable([GradeBand("D1", 80, 100, points=1), GradeBand("F9", 0, 79, points=9)])
    assert explicit.points_for("F9") == 9


def test_comment_for_grade() -> None:
    table = GradingTable(BANDS)
    assert table.comment_for("C3") == "Good"
    assert table.comment_for(UNGRADED) is None


def test_validate_bands_accepts_contiguous_scale() -> None:
    assert validate_bands(BANDS) == []


def test_validate_bands_reports_overlap_gap_and_coverage() -> None:
    errors = validate_bands(
        [
            GradeBand("A", 75, 95),
            GradeBand("B", 60, 80),
            GradeBand("C", 30, 50),
        ]
    )
    assert any("Overlap between grades B and A" in e for e in errors)
    assert any(e.startswith("Gap between grades C") for e in errors)
    assert any("below 30" in e for e in errors)
    assert any("above 95" in e for e in errors)


def test_validate_bands_empty() -> None:
    assert validate_bands([]) == ["Grading system is empty"]
