import logging
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.academic_years.service import require_academic_year
from app.api.v1.grading_system.service import load_grading_table
from app.api.v1.marks.service import exam_field
from app.core.enums import ExamType, SubjectCategory
from app.core.models import Mark, SchoolClass, Student, Subject, Term

from .calculator import DivisionResult, DivisionScheme, SubjectScore, calculate_divisions
from .schemas import ClassDivisionsResponse, DivisionInfo, DivisionStatistics, StudentDivisions
from .statistics import summarize_divisions

logger = logging.getLogger(__name__)


async def _class_students(db: AsyncSession, class_id: UUID) -> List[Student]:
    result = await db.execute(
        select(Student).where(Student.class_id == class_id).order_by(Student.full_name)
    )
    return list(result.scalars().all())


async def calculate_class_divisions(
    db: AsyncSession,
    class_id: UUID,
    term_id: UUID,
    exam_type: ExamType,
    academic_year_id: UUID,
    scheme: Optional[DivisionScheme] = None,
) -> Dict[UUID, Optional[DivisionResult]]:
    """
    Division per student of the class for one sitting. Only GENERAL subjects of the class count.
    Students without marks map to None. Unknown class or term gives an empty mapping. Read-only.
    """
    if not await db.get(SchoolClass, class_id) or not await db.get(Term, term_id):
        return {}
    scheme = scheme or DivisionScheme.from_settings()
    field_name = exam_field(exam_type)
    score_column = getattr(Mark, field_name)

    students = await _class_students(db, class_id)
    scores: Dict[UUID, List[SubjectScore]] = {s.id: [] for s in students}
    if not scores:
        return {}

    result = await db.execute(
        select(Mark.student_id, Mark.subject_id, score_column)
        .join(Subject, Subject.id == Mark.subject_id)
        .where(
            Mark.student_id.in_(list(scores)),
            Mark.term_id == term_id,
            Mark.academic_year_id == academic_year_id,
            Subject.class_id == class_id,
            Subject.category == SubjectCategory.GENERAL.value,
            score_column.is_not(None),
        )
    )
    for student_id, subject_id, score in result.all():
        scores[student_id].append(SubjectScore(subject_id, score))

    table = await load_grading_table(db)
    return calculate_divisions(scores, table, scheme)


def _info(result: Optional[DivisionResult]) -> Optional[DivisionInfo]:
    if result is None:
        return None
    return DivisionInfo(
        division=result.division,
        label=result.label,
        aggregate=result.aggregate,
        subjects_counted=result.subjects_counted,
    )


async def class_division_statistics(
    db: AsyncSession,
    class_id: UUID,
    term_id: UUID,
    exam_type: ExamType,
    academic_year_id: Optional[UUID] = None,
) -> DivisionStatistics:
    academic_year = await require_academic_year(db, academic_year_id)
    divisions = await calculate_class_divisions(db, class_id, term_id, exam_type, academic_year.id)
    return DivisionStatistics(**summarize_divisions(divisions))


async def class_divisions_overview(
    db: AsyncSession,
    class_id: UUID,
    term_id: UUID,
    academic_year_id: Optional[UUID] = None,
) -> ClassDivisionsResponse:
    """BOT, MID and END divisions for every student of the class, with per-sitting statistics."""
    academic_year = await require_academic_year(db, academic_year_id)
    scheme = DivisionScheme.from_settings()
    by_exam = {
        exam_type: await calculate_class_divisions(db, class_id, term_id, exam_type, academic_year.id, scheme)
        for exam_type in ExamType
    }
    students = await _class_students(db, class_id) if by_exam[ExamType.END] else []

    rows = [
        StudentDivisions(
            student_id=s.id,
            full_name=s.full_name,
            bot=_info(by_exam[ExamType.BOT].get(s.id)),
            mid=_info(by_exam[ExamType.MID].get(s.id)),
            end=_info(by_exam[ExamType.END].get(s.id)),
        )
        for s in students
    ]
    logger.debug("Computed divisions for class %s term %s (%d students)", class_id, term_id, len(rows))
    return ClassDivisionsResponse(
        class_id=class_id,
        term_id=term_id,
        academic_year_id=academic_year.id,
        students=rows,
        statistics={
            exam_type.value: DivisionStatistics(**summarize_divisions(divisions))
            for exam_type, divisions in by_exam.items()
        },
    )
