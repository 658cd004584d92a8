from typing import List, Optional
from uuid import UUID

from sqlalchemy import case, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import User
from app.core.enums import Role
from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.core.models import AcademicYear, SchoolClass

from .schemas import ClassCreate, ClassResponse


def _class_to_response(c: SchoolClass) -> ClassResponse:
    return ClassResponse.model_validate(c)


async def get_class_by_id(db: AsyncSession, class_id: UUID) -> Optional[SchoolClass]:
    return await db.get(SchoolClass, class_id)


async def _require_class_teacher(db: AsyncSession, teacher_id: UUID) -> User:
    teacher = await db.get(User, teacher_id)
    if not teacher:
        raise NotFoundError("Teacher not found")
    if teacher.role != Role.CLASS_TEACHER.value:
        raise ValidationError("Only a CLASS_TEACHER can lead a class")
    return teacher


async def _set_class_teacher(db: AsyncSession, class_id: UUID, teacher_id: UUID) -> None:
    """
    One UPDATE over the target class and any class the teacher currently leads:
    the target gets the teacher, the others lose them.
    """
    await db.execute(
        update(SchoolClass)
        .where(or_(SchoolClass.id == class_id, SchoolClass.class_teacher_id == teacher_id))
        .values(class_teacher_id=case((SchoolClass.id == class_id, teacher_id), else_=None))
        .execution_options(synchronize_session=False)
    )


async def create_class(db: AsyncSession, payload: ClassCreate) -> ClassResponse:
    ay = await db.get(AcademicYear, payload.academic_year_id)
    if not ay:
        raise NotFoundError("Academic year not found")
    if payload.class_teacher_id is not None:
        await _require_class_teacher(db, payload.class_teacher_id)
    obj = SchoolClass(name=payload.name.strip(), academic_year_id=payload.academic_year_id)
    db.add(obj)
    try:
        await db.flush()
        if payload.class_teacher_id is not None:
            await _set_class_teacher(db, obj.id, payload.class_teacher_id)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Class name already exists for this academic year")
    await db.refresh(obj)
    return _class_to_response(obj)


async def list_classes(db: AsyncSession, academic_year_id: Optional[UUID] = None) -> List[ClassResponse]:
    stmt = select(SchoolClass)
    if academic_year_id is not None:
        stmt = stmt.where(SchoolClass.academic_year_id == academic_year_id)
    stmt = stmt.order_by(SchoolClass.name)
    result = await db.execute(stmt)
    return [_class_to_response(c) for c in result.scalars().all()]


async def assign_class_teacher(db: AsyncSession, class_id: UUID, teacher_id: UUID) -> ClassResponse:
    """Assign teacher to class, evicting them from any class they led before."""
    obj = await get_class_by_id(db, class_id)
    if not obj:
        raise NotFoundError("Class not found")
    await _require_class_teacher(db, teacher_id)
    await _set_class_teacher(db, class_id, teacher_id)
    await db.commit()
    await db.refresh(obj)
    return _class_to_response(obj)
