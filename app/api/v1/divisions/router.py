from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.rbac import check_permission
from app.core.enums import ExamType
from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import ClassDivisionsResponse, DivisionStatistics
from . import service

router = APIRouter(prefix="/api/v1/divisions", tags=["divisions"])


@router.get(
    "",
    response_model=ClassDivisionsResponse,
    dependencies=[Depends(check_permission("divisions", "read"))],
)
async def class_divisions(
    class_id: UUID = Query(...),
    term_id: UUID = Query(...),
    academic_year_id: Optional[UUID] = Query(None, description="Defaults to the active academic year"),
    db: AsyncSession = Depends(get_db),
) -> ClassDivisionsResponse:
    """Divisions of each student for BOT, MID and END, with statistics per sitting."""
    try:
        return await service.class_divisions_overview(db, class_id, term_id, academic_year_id)
    except ServiceError as e:
        raise e.to_http()


@router.get(
    "/statistics",
    response_model=DivisionStatistics,
    dependencies=[Depends(check_permission("divisions", "read"))],
)
async def division_statistics(
    class_id: UUID = Query(...),
    term_id: UUID = Query(...),
    exam_type: ExamType = Query(ExamType.END),
    academic_year_id: Optional[UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> DivisionStatistics:
    try:
        return await service.class_division_statistics(db, class_id, term_id, exam_type, academic_year_id)
    except ServiceError as e:
        raise e.to_http()
