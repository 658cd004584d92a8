"""
Grade lookup over the configured grading thresholds.

Bands are ordered by min_mark descending and the first band whose
[min_mark, max_mark] contains the mark wins. A mark outside every band
yields UNGRADED instead of an error so aggregation can carry on and
report it.
"""

import math
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from app.core.config import settings
from app.core.exceptions import NotConfiguredError, ValidationError


UNGRADED = "UNGRADED"


@dataclass(frozen=True)
class GradeBand:
    grade: str
    min_mark: float
    max_mark: float
    comment: Optional[str] = None
    points: Optional[int] = None

    def contains(self, mark: float) -> bool:
        return self.min_mark <= mark <= self.max_mark


def _as_band(row) -> GradeBand:
    if isinstance(row, GradeBand):
        return row
    return GradeBand(
        grade=row.grade,
        min_mark=float(row.min_mark),
        max_mark=float(row.max_mark),
        comment=getattr(row, "comment", None),
        points=getattr(row, "points", None),
    )


class GradingTable:
    """Loaded grading thresholds. Accepts GradeBand values or GradingThreshold rows."""

    def __init__(self, bands: Iterable, ungraded_points: Optional[int] = None) -> None:
        self.bands: List[GradeBand] = sorted(
            (_as_band(b) for b in bands), key=lambda b: b.min_mark, reverse=True
        )
        self.ungraded_points = settings.ungraded_points if ungraded_points is None else ungraded_points

    @property
    def is_configured(self) -> bool:
        return bool(self.bands)

    def grade_for(self, mark: float) -> str:
        if not self.bands:
            raise NotConfiguredError()
        if mark is None or not math.isfinite(float(mark)):
            raise ValidationError(f"Mark must be a finite number, got {mark!r}")
        for band in self.bands:
            if band.contains(float(mark)):
                return band.grade
        return UNGRADED

    def band_for(self, grade: str) -> Optional[GradeBand]:
        for band in self.bands:
            if band.grade == grade:
                return band
        return None

    def points_for(self, grade: str) -> int:
        """Aggregate points of a grade: explicit band points, else 1-based rank (best band = 1)."""
        for rank, band in enumerate(self.bands, start=1):
            if band.grade == grade:
                return band.points if band.points is not None else rank
        return self.ungraded_points

    def comment_for(self, grade: str) -> Optional[str]:
        band = self.band_for(grade)
        return band.comment if band else None


def validate_bands(bands: Sequence) -> List[str]:
    """Report overlaps, gaps and 0-100 coverage problems. Empty list means the table is sound."""
    items = sorted((_as_band(b) for b in bands), key=lambda b: b.min_mark)
    if not items:
        return ["Grading system is empty"]

    errors: List[str] = []
    for band in items:
        if band.min_mark > band.max_mark:
            errors.append(f"Grade {band.grade} has min_mark above max_mark")
    for current, nxt in zip(items, items[1:]):
        if current.max_mark >= nxt.min_mark:
            errors.append(f"Overlap between grades {current.grade} and {nxt.grade}")
        elif current.max_mark + 1 < nxt.min_mark:
            errors.append(
                f"Gap between grades {current.grade} ({current.max_mark:g}) and {nxt.grade} ({nxt.min_mark:g})"
            )

    lowest = min(b.min_mark for b in items)
    highest = max(b.max_mark for b in items)
    if lowest > 0:
        errors.append(f"Grading system doesn't cover marks below {lowest:g}")
    if highest < 100:
        errors.append(f"Grading system doesn't cover marks above {highest:g}")
    return errors
