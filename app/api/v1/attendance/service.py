"""Daily attendance: class marking, day view, records report, stats and the parent view."""

import calendar
import logging
from collections import Counter
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.academic_years.service import require_academic_year
from app.auth.schemas import CurrentUser
from app.core.enums import AttendanceStatus, Role
from app.core.exceptions import ConflictError, NotFoundError, UnauthorizedError, ValidationError
from app.core.models import AcademicYear, Attendance, SchoolClass, Student, Term

from .schemas import (
    AttendanceBulkMark,
    AttendanceMarkResult,
    AttendanceRecord,
    AttendanceStats,
    ChildAttendance,
    ClassAttendanceRow,
    ClassDayRow,
    ClassDaySummary,
    DayTrend,
)

logger = logging.getLogger(__name__)

STATUSES = tuple(s.value for s in AttendanceStatus)
CHILD_RECORD_LIMIT = 50
TREND_DAYS = 7


def attendance_rate(attended: int, total: int) -> int:
    """Whole percent of attended over total, rounded half up; 0 for an empty class."""
    if total <= 0:
        return 0
    return (attended * 200 + total) // (2 * total)


def tally(statuses: Iterable[str]) -> Dict[str, int]:
    counts = Counter(statuses)
    return {s: counts.get(s, 0) for s in STATUSES}


def _to_record(a: Attendance) -> AttendanceRecord:
    return AttendanceRecord(
        id=a.id,
        student_id=a.student_id,
        student_name=a.student.full_name if a.student else None,
        class_id=a.class_id,
        class_name=a.school_class.name if a.school_class else None,
        term_id=a.term_id,
        academic_year_id=a.academic_year_id,
        date=a.date,
        status=a.status,
        created_at=a.created_at,
        updated_at=a.updated_at,
    )


async def _own_class(db: AsyncSession, teacher_id: UUID) -> SchoolClass:
    result = await db.execute(select(SchoolClass).where(SchoolClass.class_teacher_id == teacher_id))
    school_class = result.scalars().first()
    if not school_class:
        raise NotFoundError("No class assigned to teacher")
    return school_class


async def _resolve_class(db: AsyncSession, current_user: CurrentUser, class_id: Optional[UUID]) -> SchoolClass:
    """A class teacher works on the class they lead; other staff must name the class."""
    if current_user.role == Role.CLASS_TEACHER:
        own = await _own_class(db, current_user.id)
        if class_id is not None and class_id != own.id:
            raise UnauthorizedError("You can only take attendance for your own class")
        return own
    if class_id is None:
        raise ValidationError("class_id is required")
    school_class = await db.get(SchoolClass, class_id)
    if not school_class:
        raise NotFoundError("Class not found")
    return school_class


async def _resolve_term(
    db: AsyncSession,
    academic_year: AcademicYear,
    att_date: date,
    term_id: Optional[UUID],
) -> Term:
    if term_id is not None:
        term = await db.get(Term, term_id)
        if not term:
            raise NotFoundError("Term not found")
        if term.academic_year_id != academic_year.id:
            raise ValidationError("Term does not belong to the active academic year")
        return term
    result = await db.execute(
        select(Term).where(
            Term.academic_year_id == academic_year.id,
            Term.start_date <= att_date,
            Term.end_date >= att_date,
        )
    )
    term = result.scalars().first()
    if not term:
        raise NotFoundError(f"No term of the active academic year covers {att_date}")
    return term


async def mark_attendance(
    db: AsyncSession,
    payload: AttendanceBulkMark,
    current_user: CurrentUser,
) -> AttendanceMarkResult:
    """
    Record the status of each listed student for the date. A student already
    marked that day gets the new status; nobody gets a second row.
    """
    if payload.date > date.today():
        raise ValidationError("Cannot mark attendance for future dates")
    academic_year = await require_academic_year(db, None)
    if payload.date < academic_year.start_date or payload.date > academic_year.end_date:
        raise ValidationError(
            f"Date {payload.date} is outside academic year range "
            f"({academic_year.start_date} to {academic_year.end_date})"
        )
    school_class = await _resolve_class(db, current_user, payload.class_id)
    if school_class.academic_year_id != academic_year.id:
        raise ValidationError("Class is not in the active academic year")
    term = await _resolve_term(db, academic_year, payload.date, payload.term_id)

    student_ids = [r.student_id for r in payload.records]
    if len(set(student_ids)) != len(student_ids):
        raise ValidationError("Each student may appear only once per date")
    in_class = set(
        (
            await db.execute(
                select(Student.id).where(Student.id.in_(student_ids), Student.class_id == school_class.id)
            )
        ).scalars().all()
    )
    for student_id in student_ids:
        if student_id not in in_class:
            raise ValidationError(f"Student {student_id} is not in class {school_class.name}")

    existing = {
        a.student_id: a
        for a in (
            await db.execute(
                select(Attendance).where(Attendance.student_id.in_(student_ids), Attendance.date == payload.date)
            )
        ).scalars().all()
    }
    created = updated = 0
    for rec in payload.records:
        row = existing.get(rec.student_id)
        if row is not None:
            row.status = rec.status.value
            row.class_id = school_class.id
            row.term_id = term.id
            row.academic_year_id = academic_year.id
            updated += 1
        else:
            db.add(
                Attendance(
                    student_id=rec.student_id,
                    class_id=school_class.id,
                    term_id=term.id,
                    academic_year_id=academic_year.id,
                    date=payload.date,
                    status=rec.status.value,
                    created_by_id=current_user.id,
                )
            )
            created += 1
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError(f"Attendance for {payload.date} was saved by someone else; reload and retry")

    logger.info(
        "Attendance for class %s on %s: %d created, %d updated", school_class.name, payload.date, created, updated
    )
    return AttendanceMarkResult(
        class_id=school_class.id,
        term_id=term.id,
        date=payload.date,
        created=created,
        updated=updated,
        totals=tally(r.status.value for r in payload.records),
    )


async def class_day(
    db: AsyncSession,
    current_user: CurrentUser,
    class_id: Optional[UUID] = None,
    att_date: Optional[date] = None,
) -> ClassDaySummary:
    school_class = await _resolve_class(db, current_user, class_id)
    att_date = att_date or date.today()
    students = (
        await db.execute(select(Student).where(Student.class_id == school_class.id).order_by(Student.full_name))
    ).scalars().all()
    statuses: Dict[UUID, str] = {}
    if students:
        result = await db.execute(
            select(Attendance.student_id, Attendance.status).where(
                Attendance.student_id.in_([s.id for s in students]),
                Attendance.date == att_date,
            )
        )
        statuses = dict(result.all())
    rows = [ClassDayRow(student_id=s.id, full_name=s.full_name, status=statuses.get(s.id)) for s in students]
    return ClassDaySummary(
        class_id=school_class.id,
        class_name=school_class.name,
        date=att_date,
        students=rows,
        totals=tally(statuses.values()),
        unmarked=sum(1 for r in rows if r.status is None),
    )


async def list_attendance(
    db: AsyncSession,
    current_user: CurrentUser,
    class_id: Optional[UUID] = None,
    student_id: Optional[UUID] = None,
    att_date: Optional[date] = None,
    search: Optional[str] = None,
    academic_year_id: Optional[UUID] = None,
) -> List[AttendanceRecord]:
    """Records of the (given or active) year, newest first; a class teacher sees only their class."""
    academic_year = await require_academic_year(db, academic_year_id)
    if current_user.role == Role.CLASS_TEACHER:
        class_id = (await _resolve_class(db, current_user, class_id)).id

    stmt = (
        select(Attendance)
        .join(Student, Student.id == Attendance.student_id)
        .where(Attendance.academic_year_id == academic_year.id)
    )
    if class_id is not None:
        stmt = stmt.where(Attendance.class_id == class_id)
    if student_id is not None:
        stmt = stmt.where(Attendance.student_id == student_id)
    if att_date is not None:
        stmt = stmt.where(Attendance.date == att_date)
    if search and search.strip():
        stmt = stmt.where(Student.full_name.ilike(f"%{search.strip()}%"))
    stmt = stmt.order_by(Attendance.date.desc(), Student.full_name)
    result = await db.execute(stmt)
    return [_to_record(a) for a in result.unique().scalars().all()]


async def attendance_stats(
    db: AsyncSession,
    class_id: Optional[UUID] = None,
    att_date: Optional[date] = None,
    academic_year_id: Optional[UUID] = None,
) -> AttendanceStats:
    """Day totals and rate, a seven-day trend ending on the day and, school-wide, one row per class."""
    academic_year = await require_academic_year(db, academic_year_id)
    att_date = att_date or date.today()

    student_scope = select(func.count(Student.id)).where(Student.academic_year_id == academic_year.id)
    record_scope = [Attendance.academic_year_id == academic_year.id]
    if class_id is not None:
        student_scope = student_scope.where(Student.class_id == class_id)
        record_scope.append(Attendance.class_id == class_id)
    total_students = (await db.execute(student_scope)).scalar_one()

    first_day = att_date - timedelta(days=TREND_DAYS - 1)
    grouped = (
        await db.execute(
            select(Attendance.date, Attendance.status, func.count(Attendance.id))
            .where(*record_scope, Attendance.date >= first_day, Attendance.date <= att_date)
            .group_by(Attendance.date, Attendance.status)
        )
    ).all()
    by_day: Dict[date, Dict[str, int]] = {}
    for day, status, count in grouped:
        by_day.setdefault(day, {})[status] = count

    weekly_trend = []
    for offset in range(TREND_DAYS):
        day = first_day + timedelta(days=offset)
        counts = by_day.get(day, {})
        weekly_trend.append(DayTrend(date=day, **{s.lower(): counts.get(s, 0) for s in STATUSES}))

    today = by_day.get(att_date, {})
    present = today.get(AttendanceStatus.PRESENT.value, 0)
    late = today.get(AttendanceStatus.LATE.value, 0)

    class_rows: List[ClassAttendanceRow] = []
    if class_id is None:
        classes = (
            await db.execute(
                select(SchoolClass).where(SchoolClass.academic_year_id == academic_year.id).order_by(SchoolClass.name)
            )
        ).scalars().all()
        sizes = dict(
            (
                await db.execute(
                    select(Student.class_id, func.count(Student.id))
                    .where(Student.academic_year_id == academic_year.id)
                    .group_by(Student.class_id)
                )
            ).all()
        )
        per_class: Dict[UUID, Dict[str, int]] = {}
        for cid, status, count in (
            await db.execute(
                select(Attendance.class_id, Attendance.status, func.count(Attendance.id))
                .where(*record_scope, Attendance.date == att_date)
                .group_by(Attendance.class_id, Attendance.status)
            )
        ).all():
            per_class.setdefault(cid, {})[status] = count
        for c in classes:
            counts = per_class.get(c.id, {})
            size = sizes.get(c.id, 0)
            class_rows.append(
                ClassAttendanceRow(
                    class_id=c.id,
                    class_name=c.name,
                    total_students=size,
                    rate=attendance_rate(
                        counts.get(AttendanceStatus.PRESENT.value, 0) + counts.get(AttendanceStatus.LATE.value, 0),
                        size,
                    ),
                    **{s.lower(): counts.get(s, 0) for s in STATUSES},
                )
            )

    return AttendanceStats(
        date=att_date,
        total_students=total_students,
        present=present,
        absent=today.get(AttendanceStatus.ABSENT.value, 0),
        late=late,
        excused=today.get(AttendanceStatus.EXCUSED.value, 0),
        attendance_rate=attendance_rate(present + late, total_students),
        weekly_trend=weekly_trend,
        class_attendance=class_rows,
    )


async def children_attendance(
    db: AsyncSession,
    current_user: CurrentUser,
    student_id: Optional[UUID] = None,
    year: Optional[int] = None,
    month: Optional[int] = None,
) -> List[ChildAttendance]:
    """A parent's children with their latest records, optionally narrowed to one child or one month."""
    if month is not None and year is None:
        raise ValidationError("year is required when month is given")

    stmt = select(Student).where(Student.parent_id == current_user.id).order_by(Student.full_name)
    if student_id is not None:
        stmt = stmt.where(Student.id == student_id)
    children = (await db.execute(stmt)).scalars().all()
    if student_id is not None and not children:
        raise NotFoundError("Student not found")

    window = []
    if year is not None:
        if month is not None:
            start = date(year, month, 1)
            end = date(year, month, calendar.monthrange(year, month)[1])
        else:
            start, end = date(year, 1, 1), date(year, 12, 31)
        window = [Attendance.date >= start, Attendance.date <= end]

    out = []
    for child in children:
        records = (
            await db.execute(
                select(Attendance)
                .where(Attendance.student_id == child.id, *window)
                .order_by(Attendance.date.desc())
                .limit(CHILD_RECORD_LIMIT)
            )
        ).unique().scalars().all()
        out.append(
            ChildAttendance(
                student_id=child.id,
                full_name=child.full_name,
                class_name=child.school_class.name if child.school_class else None,
                totals=tally(a.status for a in records),
                records=[_to_record(a) for a in records],
            )
        )
    return out
