from typing import List, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.core.models import AcademicYear, Attendance, Mark, ReportCard, Student, Term

from .schemas import TermCreate, TermResponse


async def create_term(db: AsyncSession, payload: TermCreate) -> TermResponse:
    if payload.end_date <= payload.start_date:
        raise ValidationError("end_date must be after start_date")
    ay = await db.get(AcademicYear, payload.academic_year_id)
    if not ay:
        raise NotFoundError("Academic year not found")
    term = Term(
        name=payload.name.strip(),
        start_date=payload.start_date,
        end_date=payload.end_date,
        academic_year_id=payload.academic_year_id,
    )
    db.add(term)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError(f"Term '{payload.name.strip()}' already exists for this academic year")
    await db.refresh(term)
    return TermResponse.model_validate(term)


async def list_terms(db: AsyncSession, academic_year_id: Optional[UUID] = None) -> List[TermResponse]:
    stmt = select(Term)
    if academic_year_id is not None:
        stmt = stmt.where(Term.academic_year_id == academic_year_id)
    stmt = stmt.order_by(Term.start_date)
    result = await db.execute(stmt)
    return [TermResponse.model_validate(t) for t in result.scalars().all()]


async def delete_term(db: AsyncSession, term_id: UUID) -> None:
    term = await db.get(Term, term_id)
    if not term:
        raise NotFoundError("Term not found")
    for model, label in (
        (Student, "students"),
        (Mark, "marks"),
        (ReportCard, "report cards"),
        (Attendance, "attendance records"),
    ):
        count = await db.scalar(select(func.count()).select_from(model).where(model.term_id == term_id))
        if count:
            raise ConflictError(f"Term still has {count} {label}")
    await db.delete(term)
    await db.commit()
