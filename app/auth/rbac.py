from typing import Dict, FrozenSet, Tuple

from fastapi import Depends, HTTPException, status

from app.auth.dependencies import get_current_user
from app.auth.schemas import CurrentUser
from app.core.enums import Role


ADMIN = Role.ADMIN
HEADTEACHER = Role.HEADTEACHER
CLASS_TEACHER = Role.CLASS_TEACHER
SECRETARY = Role.SECRETARY
PARENT = Role.PARENT

STAFF = frozenset({ADMIN, HEADTEACHER, CLASS_TEACHER, SECRETARY})
EVERYONE = STAFF | {PARENT}
MANAGEMENT = frozenset({ADMIN, HEADTEACHER})

# (module, action) -> roles allowed to perform it. Pairs missing from the table are denied.
PERMISSIONS: Dict[Tuple[str, str], FrozenSet[Role]] = {
    ("academic_years", "read"): STAFF,
    ("academic_years", "create"): MANAGEMENT,
    ("academic_years", "update"): MANAGEMENT,
    ("academic_years", "delete"): MANAGEMENT,
    ("terms", "read"): STAFF,
    ("terms", "create"): MANAGEMENT,
    ("terms", "delete"): MANAGEMENT,
    ("classes", "read"): STAFF,
    ("classes", "create"): MANAGEMENT,
    ("classes", "assign_teacher"): MANAGEMENT,
    ("subjects", "read"): STAFF,
    ("subjects", "create"): MANAGEMENT,
    ("students", "read"): STAFF,
    ("students", "create"): frozenset({ADMIN, HEADTEACHER, SECRETARY}),
    ("users", "read"): frozenset({ADMIN}),
    ("users", "create"): frozenset({ADMIN}),
    ("users", "update"): frozenset({ADMIN}),
    ("grading_system", "read"): EVERYONE,
    ("grading_system", "create"): MANAGEMENT,
    ("grading_system", "update"): MANAGEMENT,
    ("grading_system", "delete"): MANAGEMENT,
    ("marks", "read"): frozenset({ADMIN, HEADTEACHER, SECRETARY, CLASS_TEACHER}),
    ("marks", "write"): frozenset({ADMIN, SECRETARY, CLASS_TEACHER}),
    ("divisions", "read"): frozenset({ADMIN, HEADTEACHER, CLASS_TEACHER}),
    ("report_cards", "read"): EVERYONE,
    ("report_cards", "by_term"): STAFF,
    ("report_cards", "write"): frozenset({ADMIN, HEADTEACHER, CLASS_TEACHER}),
    ("report_cards", "review"): MANAGEMENT,
    ("report_cards", "approve"): MANAGEMENT,
    ("report_cards", "delete"): MANAGEMENT,
    ("report_cards", "parent_access"): frozenset({ADMIN}),
    ("report_cards", "stats"): MANAGEMENT,
    ("report_cards", "document"): frozenset({ADMIN, HEADTEACHER, CLASS_TEACHER}),
    ("next_term_schedules", "read"): EVERYONE,
    ("next_term_schedules", "create"): MANAGEMENT,
    ("next_term_schedules", "update"): MANAGEMENT,
    ("next_term_schedules", "delete"): MANAGEMENT,
    ("subject_teachers", "read"): STAFF,
    ("subject_teachers", "create"): MANAGEMENT,
    ("subject_teachers", "delete"): MANAGEMENT,
    ("attendance", "mark"): frozenset({ADMIN, HEADTEACHER, CLASS_TEACHER}),
    ("attendance", "read"): STAFF,
    ("attendance", "stats"): MANAGEMENT,
    ("attendance", "children"): frozenset({PARENT}),
}


def is_allowed(role: Role, module: str, action: str) -> bool:
    return role in PERMISSIONS.get((module, action), frozenset())


def check_permission(module: str, action: str):
    """
    Dependency factory to enforce a specific permission.

    Example:
        Depends(check_permission("report_cards", "approve"))
    """

    async def _checker(current_user: CurrentUser = Depends(get_current_user)) -> None:
        if not is_allowed(current_user.role, module, action):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={"error": "Unauthorized", "message": "Insufficient permissions"},
            )

    return _checker
