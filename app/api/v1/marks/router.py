from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user
from app.auth.rbac import check_permission
from app.auth.schemas import CurrentUser
from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import BulkMarkRequest, BulkMarkResponse, MarkResponse, MarkUpsert
from . import service

router = APIRouter(prefix="/api/v1/marks", tags=["marks"])


@router.post(
    "",
    response_model=MarkResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(check_permission("marks", "write"))],
)
async def upsert_mark(
    payload: MarkUpsert,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> MarkResponse:
    """Create or update marks for a student in a subject for the term (active academic year)."""
    try:
        return await service.upsert_mark(db, payload, current_user)
    except ServiceError as e:
        raise e.to_http()


@router.post(
    "/bulk",
    response_model=BulkMarkResponse,
    dependencies=[Depends(check_permission("marks", "write"))],
)
async def bulk_enter_marks(
    payload: BulkMarkRequest,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> BulkMarkResponse:
    """Enter one exam sitting per item. Failed items are reported in `results` with a reason."""
    try:
        return await service.bulk_enter_marks(db, payload.marks, current_user)
    except ServiceError as e:
        raise e.to_http()


@router.get(
    "",
    response_model=List[MarkResponse],
    dependencies=[Depends(check_permission("marks", "read"))],
)
async def list_marks(
    student_id: Optional[UUID] = Query(None),
    class_id: Optional[UUID] = Query(None),
    term_id: Optional[UUID] = Query(None),
    academic_year_id: Optional[UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> List[MarkResponse]:
    try:
        return await service.list_marks(db, student_id, class_id, term_id, academic_year_id)
    except ServiceError as e:
        raise e.to_http()


@router.get(
    "/export",
    dependencies=[Depends(check_permission("marks", "read"))],
)
async def export_marks(
    class_id: UUID = Query(...),
    term_id: UUID = Query(...),
    db: AsyncSession = Depends(get_db),
) -> Response:
    """Download a class's marks for the term as an Excel workbook."""
    try:
        content = await service.export_marks(db, class_id, term_id)
    except ServiceError as e:
        raise e.to_http()
    return Response(
        content=content,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": "attachment; filename=marks.xlsx"},
    )
