from datetime import date
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.core.models import AcademicYear, NextTermSchedule, Term

from .schemas import NextTermScheduleCreate, NextTermScheduleResponse, NextTermScheduleUpdate

DUPLICATE_MESSAGE = "Schedule already exists for this academic year and term"


def _to_response(
    s: NextTermSchedule,
    academic_year: Optional[AcademicYear] = None,
    term: Optional[Term] = None,
) -> NextTermScheduleResponse:
    academic_year = academic_year or s.academic_year
    term = term or s.term
    return NextTermScheduleResponse(
        id=s.id,
        academic_year_id=s.academic_year_id,
        academic_year=academic_year.year if academic_year else None,
        academic_year_is_active=bool(academic_year and academic_year.is_active),
        term_id=s.term_id,
        term_name=term.name if term else None,
        next_term_start_date=s.next_term_start_date,
        next_term_end_date=s.next_term_end_date,
        created_at=s.created_at,
        updated_at=s.updated_at,
    )


async def _require_scope(db: AsyncSession, academic_year_id: UUID, term_id: UUID) -> Tuple[AcademicYear, Term]:
    academic_year = await db.get(AcademicYear, academic_year_id)
    if not academic_year:
        raise NotFoundError("Academic year not found")
    term = await db.get(Term, term_id)
    if not term:
        raise NotFoundError("Term not found")
    if term.academic_year_id != academic_year_id:
        raise ValidationError("Term does not belong to the given academic year")
    return academic_year, term


def _validate_dates(start: Optional[date], end: Optional[date]) -> None:
    if start is not None and end is not None and end <= start:
        raise ValidationError("next_term_end_date must be after next_term_start_date")


async def find_schedule(db: AsyncSession, academic_year_id: UUID, term_id: UUID) -> Optional[NextTermSchedule]:
    """Schedule following (academic year, term), if one was set."""
    result = await db.execute(
        select(NextTermSchedule).where(
            NextTermSchedule.academic_year_id == academic_year_id,
            NextTermSchedule.term_id == term_id,
        )
    )
    return result.scalars().first()


async def create_schedule(db: AsyncSession, payload: NextTermScheduleCreate) -> NextTermScheduleResponse:
    academic_year, term = await _require_scope(db, payload.academic_year_id, payload.term_id)
    _validate_dates(payload.next_term_start_date, payload.next_term_end_date)
    if await find_schedule(db, payload.academic_year_id, payload.term_id):
        raise ConflictError(DUPLICATE_MESSAGE)

    obj = NextTermSchedule(
        academic_year_id=payload.academic_year_id,
        term_id=payload.term_id,
        next_term_start_date=payload.next_term_start_date,
        next_term_end_date=payload.next_term_end_date,
    )
    db.add(obj)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError(DUPLICATE_MESSAGE)
    return _to_response(obj, academic_year, term)


async def list_schedules(db: AsyncSession) -> List[NextTermScheduleResponse]:
    """Newest academic year first, then terms by name."""
    result = await db.execute(
        select(NextTermSchedule)
        .join(AcademicYear, AcademicYear.id == NextTermSchedule.academic_year_id)
        .join(Term, Term.id == NextTermSchedule.term_id)
        .order_by(AcademicYear.year.desc(), Term.name)
    )
    return [_to_response(s) for s in result.unique().scalars().all()]


async def update_schedule(
    db: AsyncSession,
    schedule_id: UUID,
    payload: NextTermScheduleUpdate,
) -> NextTermScheduleResponse:
    obj = await db.get(NextTermSchedule, schedule_id)
    if not obj:
        raise NotFoundError("Next term schedule not found")
    academic_year, term = await _require_scope(db, payload.academic_year_id, payload.term_id)
    _validate_dates(payload.next_term_start_date, payload.next_term_end_date)
    other = await find_schedule(db, payload.academic_year_id, payload.term_id)
    if other is not None and other.id != obj.id:
        raise ConflictError(DUPLICATE_MESSAGE)

    obj.academic_year_id = payload.academic_year_id
    obj.term_id = payload.term_id
    obj.next_term_start_date = payload.next_term_start_date
    obj.next_term_end_date = payload.next_term_end_date
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError(DUPLICATE_MESSAGE)
    return _to_response(obj, academic_year, term)


async def delete_schedule(db: AsyncSession, schedule_id: UUID) -> None:
    obj = await db.get(NextTermSchedule, schedule_id)
    if not obj:
        raise NotFoundError("Next term schedule not found")
    await db.delete(obj)
    await db.commit()
