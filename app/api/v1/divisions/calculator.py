"""
Division assignment from a student's per-subject scores for one exam sitting.

Three aggregation methods are supported:

- POINTS: each subject score is graded, the grade converted to points (lower is
  better) and the best `best_of` subjects summed. Fewer graded subjects than
  `best_of` gives no division.
- SUM / AVERAGE: raw scores (optionally the best `best_of`) summed or averaged;
  higher is better.

A student without any score for the sitting gets no division (None), never a
zero aggregate.
"""

from dataclasses import dataclass, field
from typing import Dict, Hashable, Iterable, List, Mapping, Optional, Sequence, Tuple

from app.api.v1.grading_system.lookup import GradingTable
from app.core.config import Settings, settings
from app.core.enums import AggregationMethod, DivisionType
from app.core.exceptions import NotConfiguredError


DIVISION_LABELS: Dict[DivisionType, str] = {
    DivisionType.DIVISION_1: "Division I",
    DivisionType.DIVISION_2: "Division II",
    DivisionType.DIVISION_3: "Division III",
    DivisionType.DIVISION_4: "Division IV",
    DivisionType.UNGRADED: "U",
    DivisionType.FAIL: "X",
}


@dataclass(frozen=True)
class DivisionBand:
    """Aggregate range [low, high) mapped to a division. high=None means unbounded."""

    division: DivisionType
    low: float
    high: Optional[float] = None

    def contains(self, aggregate: float) -> bool:
        if aggregate < self.low:
            return False
        return self.high is None or aggregate < self.high


# Aggregate of the best four subjects: 4-12, 13-24, 25-32, 33-35, 36, 37+ fails
DEFAULT_POINTS_BANDS: Tuple[DivisionBand, ...] = (
    DivisionBand(DivisionType.DIVISION_1, 4, 13),
    DivisionBand(DivisionType.DIVISION_2, 13, 25),
    DivisionBand(DivisionType.DIVISION_3, 25, 33),
    DivisionBand(DivisionType.DIVISION_4, 33, 36),
    DivisionBand(DivisionType.UNGRADED, 36, 37),
)

# Mean mark out of 100; below 40 fails
DEFAULT_AVERAGE_BANDS: Tuple[DivisionBand, ...] = (
    DivisionBand(DivisionType.DIVISION_1, 70),
    DivisionBand(DivisionType.DIVISION_2, 60, 70),
    DivisionBand(DivisionType.DIVISION_3, 50, 60),
    DivisionBand(DivisionType.DIVISION_4, 40, 50),
)


@dataclass(frozen=True)
class DivisionScheme:
    method: AggregationMethod = AggregationMethod.POINTS
    bands: Tuple[DivisionBand, ...] = DEFAULT_POINTS_BANDS
    best_of: Optional[int] = 4
    fallback: DivisionType = DivisionType.FAIL

    @classmethod
    def from_settings(cls, config: Settings = settings) -> "DivisionScheme":
        method = config.division_aggregation
        best_of = config.division_best_of
        if method == AggregationMethod.POINTS:
            return cls(method=method, bands=DEFAULT_POINTS_BANDS, best_of=best_of or 4)
        if method == AggregationMethod.AVERAGE:
            return cls(method=method, bands=DEFAULT_AVERAGE_BANDS, best_of=best_of)
        if not best_of:
            raise ValueError("DIVISION_BEST_OF is required for SUM aggregation")
        scaled = tuple(
            DivisionBand(b.division, b.low * best_of, None if b.high is None else b.high * best_of)
            for b in DEFAULT_AVERAGE_BANDS
        )
        return cls(method=method, bands=scaled, best_of=best_of)

    def division_for(self, aggregate: float) -> DivisionType:
        for band in self.bands:
            if band.contains(aggregate):
                return band.division
        return self.fallback


@dataclass(frozen=True)
class SubjectScore:
    subject_id: Hashable
    score: float


@dataclass(frozen=True)
class SubjectResult:
    subject_id: Hashable
    score: float
    grade: Optional[str] = None
    points: Optional[int] = None


@dataclass
class DivisionResult:
    division: DivisionType
    aggregate: float
    subjects_counted: int
    subjects: List[SubjectResult] = field(default_factory=list)

    @property
    def label(self) -> str:
        return DIVISION_LABELS[self.division]


def _average_per_subject(scores: Iterable[SubjectScore]) -> List[Tuple[Hashable, float]]:
    grouped: Dict[Hashable, List[float]] = {}
    for s in scores:
        if s.score is None:
            continue
        grouped.setdefault(s.subject_id, []).append(float(s.score))
    return [(subject_id, sum(values) / len(values)) for subject_id, values in grouped.items()]


def _points_result(
    per_subject: Sequence[Tuple[Hashable, float]],
    table: GradingTable,
    scheme: DivisionScheme,
) -> Optional[DivisionResult]:
    if table is None:
        raise NotConfiguredError()
    graded = []
    for subject_id, score in per_subject:
        grade = table.grade_for(score)
        graded.append(SubjectResult(subject_id, score, grade, table.points_for(grade)))
    graded.sort(key=lambda r: (r.points, -r.score))
    best_of = scheme.best_of or len(graded)
    if len(graded) < best_of:
        return None
    counted = graded[:best_of]
    aggregate = float(sum(r.points for r in counted))
    return DivisionResult(scheme.division_for(aggregate), aggregate, len(counted), counted)


def _score_result(
    per_subject: Sequence[Tuple[Hashable, float]],
    table: Optional[GradingTable],
    scheme: DivisionScheme,
) -> Optional[DivisionResult]:
    ranked = sorted(per_subject, key=lambda item: item[1], reverse=True)
    if scheme.best_of:
        if len(ranked) < scheme.best_of:
            return None
        ranked = ranked[: scheme.best_of]
    subjects = [
        SubjectResult(
            subject_id,
            score,
            table.grade_for(score) if table is not None and table.is_configured else None,
        )
        for subject_id, score in ranked
    ]
    total = sum(score for _, score in ranked)
    aggregate = total if scheme.method == AggregationMethod.SUM else total / len(ranked)
    return DivisionResult(scheme.division_for(aggregate), round(aggregate, 2), len(ranked), subjects)


def calculate_student_division(
    subject_scores: Iterable[SubjectScore],
    table: Optional[GradingTable],
    scheme: DivisionScheme,
) -> Optional[DivisionResult]:
    """Division for one student's scores in one sitting, or None when there is nothing to rank."""
    per_subject = _average_per_subject(subject_scores)
    if not per_subject:
        return None
    if scheme.method == AggregationMethod.POINTS:
        return _points_result(per_subject, table, scheme)
    return _score_result(per_subject, table, scheme)


def calculate_divisions(
    scores_by_student: Mapping[Hashable, Iterable[SubjectScore]],
    table: Optional[GradingTable],
    scheme: DivisionScheme,
) -> Dict[Hashable, Optional[DivisionResult]]:
    return {
        student_id: calculate_student_division(scores, table, scheme)
        for student_id, scores in scores_by_student.items()
    }
