from datetime import date
from typing import List, Optional
from uuid import UUID

from sqlalchemy import case, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.core.models import AcademicYear, Attendance, Mark, ReportCard, SchoolClass, Student, Term

from .schemas import AcademicYearCreate, AcademicYearResponse, AcademicYearUpdate


def _to_response(ay: AcademicYear) -> AcademicYearResponse:
    return AcademicYearResponse.model_validate(ay)


def _validate_dates(start_date: date, end_date: date) -> None:
    if end_date <= start_date:
        raise ValidationError("end_date must be after start_date")


async def _activate_only(db: AsyncSession, academic_year_id: UUID) -> None:
    """Single set-based write: the given year becomes the only active one."""
    await db.execute(
        update(AcademicYear)
        .values(is_active=case((AcademicYear.id == academic_year_id, True), else_=False))
        .execution_options(synchronize_session=False)
    )


async def get_academic_year_model(db: AsyncSession, academic_year_id: UUID) -> Optional[AcademicYear]:
    return await db.get(AcademicYear, academic_year_id)


async def get_active_academic_year_model(db: AsyncSession) -> Optional[AcademicYear]:
    """The active academic year, used as default scope for marks and report pulls."""
    result = await db.execute(select(AcademicYear).where(AcademicYear.is_active.is_(True)))
    return result.scalars().first()


async def require_academic_year(db: AsyncSession, academic_year_id: Optional[UUID]) -> AcademicYear:
    """Resolve the given year, or the active one when academic_year_id is None."""
    if academic_year_id is not None:
        ay = await get_academic_year_model(db, academic_year_id)
        if not ay:
            raise NotFoundError("Academic year not found")
        return ay
    ay = await get_active_academic_year_model(db)
    if not ay:
        raise NotFoundError("No active academic year found")
    return ay


async def create_academic_year(db: AsyncSession, payload: AcademicYearCreate) -> AcademicYearResponse:
    """Create academic year. If is_active=true, every other year is deactivated (same transaction)."""
    _validate_dates(payload.start_date, payload.end_date)
    label = payload.year.strip()
    existing = await db.execute(select(AcademicYear).where(AcademicYear.year == label))
    if existing.scalar_one_or_none():
        raise ConflictError(f"Academic year '{label}' already exists")

    ay = AcademicYear(
        year=label,
        start_date=payload.start_date,
        end_date=payload.end_date,
        is_active=False,
    )
    db.add(ay)
    try:
        await db.flush()
        if payload.is_active:
            await _activate_only(db, ay.id)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError(f"Academic year '{label}' already exists")
    await db.refresh(ay)
    return _to_response(ay)


async def list_academic_years(db: AsyncSession) -> List[AcademicYearResponse]:
    result = await db.execute(select(AcademicYear).order_by(AcademicYear.start_date.desc()))
    return [_to_response(ay) for ay in result.scalars().all()]


async def get_academic_year(db: AsyncSession, academic_year_id: UUID) -> Optional[AcademicYearResponse]:
    ay = await get_academic_year_model(db, academic_year_id)
    return _to_response(ay) if ay else None


async def get_active_academic_year(db: AsyncSession) -> Optional[AcademicYearResponse]:
    ay = await get_active_academic_year_model(db)
    return _to_response(ay) if ay else None


async def update_academic_year(
    db: AsyncSession,
    academic_year_id: UUID,
    payload: AcademicYearUpdate,
) -> AcademicYearResponse:
    ay = await get_academic_year_model(db, academic_year_id)
    if not ay:
        raise NotFoundError("Academic year not found")
    if payload.year is not None:
        label = payload.year.strip()
        other = await db.execute(
            select(AcademicYear).where(AcademicYear.year == label, AcademicYear.id != academic_year_id)
        )
        if other.scalar_one_or_none():
            raise ConflictError(f"Academic year '{label}' already exists")
        ay.year = label
    if payload.start_date is not None:
        ay.start_date = payload.start_date
    if payload.end_date is not None:
        ay.end_date = payload.end_date
    _validate_dates(ay.start_date, ay.end_date)
    if payload.is_active is False:
        ay.is_active = False
    await db.flush()
    if payload.is_active:
        await _activate_only(db, ay.id)
    await db.commit()
    await db.refresh(ay)
    return _to_response(ay)


async def activate_academic_year(db: AsyncSession, academic_year_id: UUID) -> AcademicYearResponse:
    """Make this the active year. All others become is_active=false."""
    ay = await get_academic_year_model(db, academic_year_id)
    if not ay:
        raise NotFoundError("Academic year not found")
    await _activate_only(db, ay.id)
    await db.commit()
    await db.refresh(ay)
    return _to_response(ay)


async def delete_academic_year(db: AsyncSession, academic_year_id: UUID) -> None:
    """Delete a year that nothing references. Dependents must be reassigned first."""
    ay = await get_academic_year_model(db, academic_year_id)
    if not ay:
        raise NotFoundError("Academic year not found")
    for model, label in (
        (Term, "terms"),
        (SchoolClass, "classes"),
        (Student, "students"),
        (Mark, "marks"),
        (ReportCard, "report cards"),
        (Attendance, "attendance records"),
    ):
        count = await db.scalar(
            select(func.count()).select_from(model).where(model.academic_year_id == academic_year_id)
        )
        if count:
            raise ConflictError(f"Academic year still has {count} {label}; reassign or remove them first")
    await db.delete(ay)
    await db.commit()
