from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.rbac import check_permission
from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import AssignTeacherRequest, ClassCreate, ClassResponse
from . import service

router = APIRouter(prefix="/api/v1/classes", tags=["classes"])


@router.post(
    "",
    response_model=ClassResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(check_permission("classes", "create"))],
)
async def create_class(
    payload: ClassCreate,
    db: AsyncSession = Depends(get_db),
) -> ClassResponse:
    try:
        return await service.create_class(db, payload)
    except ServiceError as e:
        raise e.to_http()


@router.get(
    "",
    response_model=List[ClassResponse],
    dependencies=[Depends(check_permission("classes", "read"))],
)
async def list_classes(
    academic_year_id: Optional[UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> List[ClassResponse]:
    return await service.list_classes(db, academic_year_id)


@router.post(
    "/{class_id}/assign-teacher",
    response_model=ClassResponse,
    dependencies=[Depends(check_permission("classes", "assign_teacher"))],
)
async def assign_class_teacher(
    class_id: UUID,
    payload: AssignTeacherRequest,
    db: AsyncSession = Depends(get_db),
) -> ClassResponse:
    """Make teacher_id the class teacher. A teacher leads one class at a time."""
    try:
        return await service.assign_class_teacher(db, class_id, payload.teacher_id)
    except ServiceError as e:
        raise e.to_http()
