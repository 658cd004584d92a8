from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import User
from app.core.enums import Role
from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.core.models import AcademicYear, SchoolClass, Subject, SubjectTeacher, Term

from .schemas import SubjectTeacherCreate, SubjectTeacherResponse

TEACHING_ROLES = (Role.CLASS_TEACHER.value, Role.HEADTEACHER.value)
DUPLICATE_MESSAGE = "A teacher is already assigned to this subject for the specified term and academic year"


def _to_response(
    st: SubjectTeacher,
    teacher: Optional[User] = None,
    subject: Optional[Subject] = None,
    school_class: Optional[SchoolClass] = None,
    term: Optional[Term] = None,
) -> SubjectTeacherResponse:
    teacher = teacher or st.teacher
    subject = subject or st.subject
    school_class = school_class or st.school_class
    term = term or st.term
    return SubjectTeacherResponse(
        id=st.id,
        teacher_id=st.teacher_id,
        teacher_name=teacher.full_name if teacher else None,
        teacher_email=teacher.email if teacher else None,
        subject_id=st.subject_id,
        subject_name=subject.name if subject else None,
        subject_code=subject.code if subject else None,
        subject_category=subject.category if subject else None,
        class_id=st.class_id,
        class_name=school_class.name if school_class else None,
        term_id=st.term_id,
        term_name=term.name if term else None,
        academic_year_id=st.academic_year_id,
        created_at=st.created_at,
    )


async def create_subject_teacher(db: AsyncSession, payload: SubjectTeacherCreate) -> SubjectTeacherResponse:
    """Link a teacher to a class subject for one term; one teacher per (subject, class, term, year)."""
    teacher = await db.get(User, payload.teacher_id)
    if not teacher:
        raise NotFoundError("Teacher not found")
    if teacher.role not in TEACHING_ROLES:
        raise ValidationError("Only a CLASS_TEACHER or HEADTEACHER can take a subject")
    school_class = await db.get(SchoolClass, payload.class_id)
    if not school_class:
        raise NotFoundError("Class not found")
    subject = await db.get(Subject, payload.subject_id)
    if not subject:
        raise NotFoundError("Subject not found")
    if subject.class_id != payload.class_id:
        raise ValidationError("Subject does not belong to this class")
    if not await db.get(AcademicYear, payload.academic_year_id):
        raise NotFoundError("Academic year not found")
    term = await db.get(Term, payload.term_id)
    if not term:
        raise NotFoundError("Term not found")
    if term.academic_year_id != payload.academic_year_id:
        raise ValidationError("Term does not belong to the given academic year")

    existing = await db.execute(
        select(SubjectTeacher.id).where(
            SubjectTeacher.subject_id == payload.subject_id,
            SubjectTeacher.class_id == payload.class_id,
            SubjectTeacher.term_id == payload.term_id,
            SubjectTeacher.academic_year_id == payload.academic_year_id,
        )
    )
    if existing.scalar_one_or_none():
        raise ConflictError(DUPLICATE_MESSAGE)

    obj = SubjectTeacher(
        teacher_id=payload.teacher_id,
        subject_id=payload.subject_id,
        class_id=payload.class_id,
        term_id=payload.term_id,
        academic_year_id=payload.academic_year_id,
    )
    db.add(obj)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError(DUPLICATE_MESSAGE)
    return _to_response(obj, teacher, subject, school_class, term)


async def list_subject_teachers(
    db: AsyncSession,
    class_id: Optional[UUID] = None,
    term_id: Optional[UUID] = None,
    academic_year_id: Optional[UUID] = None,
    teacher_id: Optional[UUID] = None,
) -> List[SubjectTeacherResponse]:
    stmt = (
        select(SubjectTeacher)
        .join(SchoolClass, SchoolClass.id == SubjectTeacher.class_id)
        .join(Subject, Subject.id == SubjectTeacher.subject_id)
    )
    if class_id is not None:
        stmt = stmt.where(SubjectTeacher.class_id == class_id)
    if term_id is not None:
        stmt = stmt.where(SubjectTeacher.term_id == term_id)
    if academic_year_id is not None:
        stmt = stmt.where(SubjectTeacher.academic_year_id == academic_year_id)
    if teacher_id is not None:
        stmt = stmt.where(SubjectTeacher.teacher_id == teacher_id)
    stmt = stmt.order_by(SchoolClass.name, Subject.name)
    result = await db.execute(stmt)
    return [_to_response(st) for st in result.unique().scalars().all()]


async def teacher_names_by_subject(
    db: AsyncSession,
    class_id: UUID,
    term_id: UUID,
    academic_year_id: UUID,
) -> Dict[UUID, str]:
    """subject_id -> name of the teacher taking it in this class for the term."""
    result = await db.execute(
        select(SubjectTeacher.subject_id, User.full_name)
        .join(User, User.id == SubjectTeacher.teacher_id)
        .where(
            SubjectTeacher.class_id == class_id,
            SubjectTeacher.term_id == term_id,
            SubjectTeacher.academic_year_id == academic_year_id,
        )
    )
    return {subject_id: name for subject_id, name in result.all()}


async def delete_subject_teacher(db: AsyncSession, subject_teacher_id: UUID) -> None:
    obj = await db.get(SubjectTeacher, subject_teacher_id)
    if not obj:
        raise NotFoundError("Subject teacher assignment not found")
    await db.delete(obj)
    await db.commit()
