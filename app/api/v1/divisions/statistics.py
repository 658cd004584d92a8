from typing import Any, Dict, Mapping, Optional

from app.core.enums import DivisionType

from .calculator import DivisionResult


def summarize_divisions(divisions: Mapping[Any, Optional[DivisionResult]]) -> Dict[str, Any]:
    """
    Counts per division tier for a class sitting.

    Students mapped to None have no aggregate and are counted as excluded only.
    Every tier is present in `divisions` (zero when unused). Any tier other than
    FAIL counts as a pass.
    """
    counts = {d.value: 0 for d in DivisionType}
    total = 0
    excluded = 0
    for result in divisions.values():
        if result is None:
            excluded += 1
            continue
        total += 1
        counts[result.division.value] += 1

    failed = counts[DivisionType.FAIL.value]
    passed = total - failed
    return {
        "total_students": total,
        "excluded": excluded,
        "divisions": counts,
        "passed": passed,
        "failed": failed,
        "pass_rate": round(passed / total * 100, 2) if total else 0.0,
    }
