from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictError, NotFoundError
from app.core.models import SchoolClass, Subject

from .schemas import SubjectCreate, SubjectResponse


async def create_subject(db: AsyncSession, payload: SubjectCreate) -> SubjectResponse:
    if not await db.get(SchoolClass, payload.class_id):
        raise NotFoundError("Class not found")
    obj = Subject(
        name=payload.name.strip(),
        code=payload.code.strip().upper(),
        class_id=payload.class_id,
        category=payload.category.value,
    )
    db.add(obj)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError(f"Subject code '{obj.code}' already exists for this class")
    await db.refresh(obj)
    return SubjectResponse.model_validate(obj)


async def list_subjects(db: AsyncSession, class_id: Optional[UUID] = None) -> List[SubjectResponse]:
    stmt = select(Subject)
    if class_id is not None:
        stmt = stmt.where(Subject.class_id == class_id)
    stmt = stmt.order_by(Subject.name)
    result = await db.execute(stmt)
    return [SubjectResponse.model_validate(s) for s in result.scalars().all()]
