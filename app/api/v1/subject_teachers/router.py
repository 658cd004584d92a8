from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.rbac import check_permission
from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import SubjectTeacherCreate, SubjectTeacherResponse
from . import service

router = APIRouter(prefix="/api/v1/subject-teachers", tags=["subject-teachers"])


@router.post(
    "",
    response_model=SubjectTeacherResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(check_permission("subject_teachers", "create"))],
)
async def create_subject_teacher(
    payload: SubjectTeacherCreate,
    db: AsyncSession = Depends(get_db),
) -> SubjectTeacherResponse:
    try:
        return await service.create_subject_teacher(db, payload)
    except ServiceError as e:
        raise e.to_http()


@router.get(
    "",
    response_model=List[SubjectTeacherResponse],
    dependencies=[Depends(check_permission("subject_teachers", "read"))],
)
async def list_subject_teachers(
    class_id: Optional[UUID] = Query(None),
    term_id: Optional[UUID] = Query(None),
    academic_year_id: Optional[UUID] = Query(None),
    teacher_id: Optional[UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> List[SubjectTeacherResponse]:
    return await service.list_subject_teachers(db, class_id, term_id, academic_year_id, teacher_id)


@router.delete(
    "/{subject_teacher_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(check_permission("subject_teachers", "delete"))],
)
async def delete_subject_teacher(
    subject_teacher_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> None:
    try:
        await service.delete_subject_teacher(db, subject_teacher_id)
    except ServiceError as e:
        raise e.to_http()
