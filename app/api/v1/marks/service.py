import io
import logging
import math
from typing import Iterable, List, Optional, Tuple
from uuid import UUID

from openpyxl import Workbook
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.academic_years.service import require_academic_year
from app.api.v1.grading_system.lookup import GradingTable
from app.api.v1.grading_system.service import load_grading_table
from app.auth.schemas import CurrentUser
from app.core.enums import ExamType
from app.core.exceptions import NotFoundError, ServiceError, ValidationError
from app.core.models import Mark, SchoolClass, Student, Subject, Term

from .schemas import BulkItemResult, BulkMarkItem, BulkMarkResponse, MarkResponse, MarkUpsert

logger = logging.getLogger(__name__)

EXAM_FIELDS = {
    ExamType.BOT: "bot",
    ExamType.MID: "midterm",
    ExamType.END: "eot",
}
COMPONENT_FIELDS = ("assessment1", "assessment2", "assessment3", "bot", "midterm", "eot")
EXPORT_HEADERS = ("student", "subject", "code", "bot", "midterm", "eot", "total", "grade")


def exam_field(exam_type: ExamType) -> str:
    return EXAM_FIELDS[ExamType(exam_type)]


def compute_total(bot: Optional[float], midterm: Optional[float], eot: Optional[float]) -> Optional[float]:
    """Mean of the exam sittings present, rounded half up to a whole mark. None when none present."""
    present = [v for v in (bot, midterm, eot) if v is not None]
    if not present:
        return None
    return float(math.floor(sum(present) / len(present) + 0.5))


def _to_response(m: Mark) -> MarkResponse:
    return MarkResponse(
        id=m.id,
        student_id=m.student_id,
        subject_id=m.subject_id,
        subject_name=m.subject.name if m.subject else None,
        term_id=m.term_id,
        academic_year_id=m.academic_year_id,
        assessment1=m.assessment1,
        assessment2=m.assessment2,
        assessment3=m.assessment3,
        bot=m.bot,
        midterm=m.midterm,
        eot=m.eot,
        total=m.total,
        grade=m.grade,
        updated_at=m.updated_at,
    )


def _regrade(mark: Mark, table: GradingTable) -> None:
    mark.total = compute_total(mark.bot, mark.midterm, mark.eot)
    if mark.total is None:
        mark.grade = None
    elif table.is_configured:
        mark.grade = table.grade_for(mark.total)
    else:
        logger.warning(
            "Grading system is not configured; mark for student %s stored without grade",
            mark.student_id,
        )
        mark.grade = None


async def _find_mark(db: AsyncSession, student_id: UUID, subject_id: UUID, term_id: UUID) -> Optional[Mark]:
    result = await db.execute(
        select(Mark).where(
            Mark.student_id == student_id,
            Mark.subject_id == subject_id,
            Mark.term_id == term_id,
        )
    )
    return result.scalars().first()


async def _check_refs(db: AsyncSession, student_id: UUID, subject_id: UUID, term_id: UUID) -> Subject:
    if not await db.get(Student, student_id):
        raise NotFoundError("Student not found")
    subject = await db.get(Subject, subject_id)
    if not subject:
        raise NotFoundError("Subject not found")
    if not await db.get(Term, term_id):
        raise NotFoundError("Term not found")
    return subject


async def _write_mark(
    db: AsyncSession,
    *,
    student_id: UUID,
    subject: Subject,
    term_id: UUID,
    academic_year_id: UUID,
    values: dict,
    table: GradingTable,
    created_by_id: Optional[UUID],
) -> Mark:
    """Insert or update the (student, subject, term) row inside a savepoint; a lost insert race updates instead."""
    mark = await _find_mark(db, student_id, subject.id, term_id)
    if mark is None:
        mark = Mark(
            student_id=student_id,
            subject_id=subject.id,
            subject=subject,
            term_id=term_id,
            academic_year_id=academic_year_id,
            created_by_id=created_by_id,
            **values,
        )
        _regrade(mark, table)
        try:
            async with db.begin_nested():
                db.add(mark)
        except IntegrityError:
            mark = await _find_mark(db, student_id, subject.id, term_id)
            if mark is None:
                raise
        else:
            return mark

    for field, value in values.items():
        setattr(mark, field, value)
    _regrade(mark, table)
    await db.flush()
    return mark


async def upsert_mark(db: AsyncSession, payload: MarkUpsert, current_user: CurrentUser) -> MarkResponse:
    """Create or update marks for (student, subject, term) in the active academic year."""
    academic_year = await require_academic_year(db, None)
    subject = await _check_refs(db, payload.student_id, payload.subject_id, payload.term_id)
    table = await load_grading_table(db)
    values = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if k in COMPONENT_FIELDS}

    mark = await _write_mark(
        db,
        student_id=payload.student_id,
        subject=subject,
        term_id=payload.term_id,
        academic_year_id=academic_year.id,
        values=values,
        table=table,
        created_by_id=current_user.id,
    )
    await db.commit()
    return _to_response(mark)


def _validate_bulk_item(item: BulkMarkItem) -> Tuple[UUID, UUID, UUID]:
    missing = [f for f in ("student_id", "subject_id", "term_id") if getattr(item, f) is None]
    if missing:
        raise ValidationError(f"Missing required field(s): {', '.join(missing)}")
    if not math.isfinite(item.mark) or not 0 <= item.mark <= 100:
        raise ValidationError("Mark must be between 0 and 100")
    return item.student_id, item.subject_id, item.term_id


async def bulk_enter_marks(
    db: AsyncSession,
    items: Iterable[BulkMarkItem],
    current_user: CurrentUser,
) -> BulkMarkResponse:
    """
    Enter one exam sitting per item. Items are independent: a failing item is rolled back
    to its savepoint and reported, the rest are committed.
    """
    academic_year = await require_academic_year(db, None)
    table = await load_grading_table(db)
    results: List[BulkItemResult] = []

    for index, item in enumerate(items):
        try:
            student_id, subject_id, term_id = _validate_bulk_item(item)
            subject = await _check_refs(db, student_id, subject_id, term_id)
            async with db.begin_nested():
                mark = await _write_mark(
                    db,
                    student_id=student_id,
                    subject=subject,
                    term_id=term_id,
                    academic_year_id=academic_year.id,
                    values={exam_field(item.exam_type): item.mark},
                    table=table,
                    created_by_id=current_user.id,
                )
            results.append(BulkItemResult(index=index, student_id=student_id, success=True, id=mark.id))
        except (ServiceError, IntegrityError) as e:
            reason = e.message if isinstance(e, ServiceError) else "Failed to store mark"
            logger.warning("Bulk mark item %d failed: %s", index, reason)
            results.append(BulkItemResult(index=index, student_id=item.student_id, success=False, error=reason))

    await db.commit()
    successful = sum(1 for r in results if r.success)
    return BulkMarkResponse(
        processed=len(results),
        successful=successful,
        failed=len(results) - successful,
        results=results,
    )


async def list_marks(
    db: AsyncSession,
    student_id: Optional[UUID] = None,
    class_id: Optional[UUID] = None,
    term_id: Optional[UUID] = None,
    academic_year_id: Optional[UUID] = None,
) -> List[MarkResponse]:
    """Marks in the given (or active) academic year, optionally narrowed by student, class and term."""
    academic_year = await require_academic_year(db, academic_year_id)
    stmt = select(Mark).where(Mark.academic_year_id == academic_year.id)
    if student_id is not None:
        stmt = stmt.where(Mark.student_id == student_id)
    if class_id is not None:
        stmt = stmt.join(Student, Student.id == Mark.student_id).where(Student.class_id == class_id)
    if term_id is not None:
        stmt = stmt.where(Mark.term_id == term_id)
    result = await db.execute(stmt.order_by(Mark.created_at))
    return [_to_response(m) for m in result.unique().scalars().all()]


async def export_marks(db: AsyncSession, class_id: UUID, term_id: UUID) -> bytes:
    """Build an Excel workbook of a class's marks for a term."""
    school_class = await db.get(SchoolClass, class_id)
    if not school_class:
        raise NotFoundError("Class not found")
    if not await db.get(Term, term_id):
        raise NotFoundError("Term not found")

    result = await db.execute(
        select(Mark, Student.full_name)
        .join(Student, Student.id == Mark.student_id)
        .where(Student.class_id == class_id, Mark.term_id == term_id)
        .order_by(Student.full_name)
    )
    rows = result.unique().all()

    wb = Workbook()
    ws = wb.active
    ws.title = f"{school_class.name} marks"[:31]
    ws.append(list(EXPORT_HEADERS))
    for mark, student_name in rows:
        ws.append(
            [
                student_name,
                mark.subject.name if mark.subject else "",
                mark.subject.code if mark.subject else "",
                mark.bot,
                mark.midterm,
                mark.eot,
                mark.total,
                mark.grade,
            ]
        )

    bio = io.BytesIO()
    wb.save(bio)
    return bio.getvalue()
