from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import User
from app.core.enums import Role
from app.core.exceptions import NotFoundError, ValidationError
from app.core.models import AcademicYear, SchoolClass, Student, Term

from .schemas import StudentCreate, StudentResponse


def _to_response(s: Student) -> StudentResponse:
    return StudentResponse(
        id=s.id,
        full_name=s.full_name,
        gender=s.gender,
        date_of_birth=s.date_of_birth,
        class_id=s.class_id,
        term_id=s.term_id,
        academic_year_id=s.academic_year_id,
        parent_id=s.parent_id,
        class_name=s.school_class.name if s.school_class else None,
        created_at=s.created_at,
    )


async def create_student(db: AsyncSession, payload: StudentCreate) -> StudentResponse:
    """Register a student under a (class, term, academic year) triple."""
    school_class = await db.get(SchoolClass, payload.class_id)
    if not school_class:
        raise NotFoundError("Class not found")
    term = await db.get(Term, payload.term_id)
    if not term:
        raise NotFoundError("Term not found")
    if not await db.get(AcademicYear, payload.academic_year_id):
        raise NotFoundError("Academic year not found")
    if term.academic_year_id != payload.academic_year_id:
        raise ValidationError("Term does not belong to the given academic year")
    if payload.parent_id is not None:
        parent = await db.get(User, payload.parent_id)
        if not parent or parent.role != Role.PARENT.value:
            raise ValidationError("parent_id must reference a PARENT account")

    student = Student(
        full_name=payload.full_name.strip(),
        gender=payload.gender,
        date_of_birth=payload.date_of_birth,
        class_id=payload.class_id,
        term_id=payload.term_id,
        academic_year_id=payload.academic_year_id,
        parent_id=payload.parent_id,
        school_class=school_class,
    )
    db.add(student)
    await db.commit()
    return _to_response(student)


async def list_students(db: AsyncSession, class_id: Optional[UUID] = None) -> List[StudentResponse]:
    stmt = select(Student)
    if class_id is not None:
        stmt = stmt.where(Student.class_id == class_id)
    stmt = stmt.order_by(Student.full_name)
    result = await db.execute(stmt)
    return [_to_response(s) for s in result.scalars().all()]


async def get_student(db: AsyncSession, student_id: UUID) -> Optional[StudentResponse]:
    student = await db.get(Student, student_id)
    return _to_response(student) if student else None
