from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.rbac import check_permission
from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import (
    GradingThresholdCreate,
    GradingThresholdResponse,
    GradingThresholdUpdate,
    GradingValidationResponse,
)
from . import service

router = APIRouter(prefix="/api/v1/grading-system", tags=["grading-system"])


@router.get(
    "",
    response_model=List[GradingThresholdResponse],
    dependencies=[Depends(check_permission("grading_system", "read"))],
)
async def list_thresholds(
    db: AsyncSession = Depends(get_db),
) -> List[GradingThresholdResponse]:
    """Grading bands, highest min_mark first."""
    return await service.list_thresholds(db)


@router.get(
    "/validate",
    response_model=GradingValidationResponse,
    dependencies=[Depends(check_permission("grading_system", "read"))],
)
async def validate_grading_system(
    db: AsyncSession = Depends(get_db),
) -> GradingValidationResponse:
    """Check the bands for gaps, overlaps and 0-100 coverage."""
    return await service.validate_grading_system(db)


@router.post(
    "",
    response_model=GradingThresholdResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(check_permission("grading_system", "create"))],
)
async def create_threshold(
    payload: GradingThresholdCreate,
    db: AsyncSession = Depends(get_db),
) -> GradingThresholdResponse:
    try:
        return await service.create_threshold(db, payload)
    except ServiceError as e:
        raise e.to_http()


@router.put(
    "/{threshold_id}",
    response_model=GradingThresholdResponse,
    dependencies=[Depends(check_permission("grading_system", "update"))],
)
async def update_threshold(
    threshold_id: UUID,
    payload: GradingThresholdUpdate,
    db: AsyncSession = Depends(get_db),
) -> GradingThresholdResponse:
    try:
        return await service.update_threshold(db, threshold_id, payload)
    except ServiceError as e:
        raise e.to_http()


@router.delete(
    "/{threshold_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(check_permission("grading_system", "delete"))],
)
async def delete_threshold(
    threshold_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> None:
    try:
        await service.delete_threshold(db, threshold_id)
    except ServiceError as e:
        raise e.to_http()
