from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.rbac import check_permission
from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import NextTermScheduleCreate, NextTermScheduleResponse, NextTermScheduleUpdate
from . import service

router = APIRouter(prefix="/api/v1/next-term-schedules", tags=["next-term-schedules"])


@router.get(
    "",
    response_model=List[NextTermScheduleResponse],
    dependencies=[Depends(check_permission("next_term_schedules", "read"))],
)
async def list_schedules(
    db: AsyncSession = Depends(get_db),
) -> List[NextTermScheduleResponse]:
    return await service.list_schedules(db)


@router.post(
    "",
    response_model=NextTermScheduleResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(check_permission("next_term_schedules", "create"))],
)
async def create_schedule(
    payload: NextTermScheduleCreate,
    db: AsyncSession = Depends(get_db),
) -> NextTermScheduleResponse:
    """One schedule per (academic year, term); a second one is a conflict."""
    try:
        return await service.create_schedule(db, payload)
    except ServiceError as e:
        raise e.to_http()


@router.put(
    "/{schedule_id}",
    response_model=NextTermScheduleResponse,
    dependencies=[Depends(check_permission("next_term_schedules", "update"))],
)
async def update_schedule(
    schedule_id: UUID,
    payload: NextTermScheduleUpdate,
    db: AsyncSession = Depends(get_db),
) -> NextTermScheduleResponse:
    try:
        return await service.update_schedule(db, schedule_id, payload)
    except ServiceError as e:
        raise e.to_http()


@router.delete(
    "/{schedule_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(check_permission("next_term_schedules", "delete"))],
)
async def delete_schedule(
    schedule_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> None:
    try:
        await service.delete_schedule(db, schedule_id)
    except ServiceError as e:
        raise e.to_http()
