from typing import List
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.core.models import GradingThreshold

from .lookup import GradingTable, validate_bands
from .schemas import (
    GradingThresholdCreate,
    GradingThresholdResponse,
    GradingThresholdUpdate,
    GradingValidationResponse,
)


async def _list_models(db: AsyncSession) -> List[GradingThreshold]:
    result = await db.execute(select(GradingThreshold).order_by(GradingThreshold.min_mark.desc()))
    return list(result.scalars().all())


async def load_grading_table(db: AsyncSession) -> GradingTable:
    """Current grading thresholds as a lookup table (may be empty)."""
    return GradingTable(await _list_models(db))


async def list_thresholds(db: AsyncSession) -> List[GradingThresholdResponse]:
    return [GradingThresholdResponse.model_validate(t) for t in await _list_models(db)]


async def create_threshold(db: AsyncSession, payload: GradingThresholdCreate) -> GradingThresholdResponse:
    obj = GradingThreshold(
        grade=payload.grade.strip().upper(),
        min_mark=payload.min_mark,
        max_mark=payload.max_mark,
        comment=payload.comment,
        points=payload.points,
    )
    db.add(obj)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError(f"Grade '{obj.grade}' already exists")
    await db.refresh(obj)
    return GradingThresholdResponse.model_validate(obj)


async def update_threshold(
    db: AsyncSession,
    threshold_id: UUID,
    payload: GradingThresholdUpdate,
) -> GradingThresholdResponse:
    obj = await db.get(GradingThreshold, threshold_id)
    if not obj:
        raise NotFoundError("Grading threshold not found")
    if payload.grade is not None:
        obj.grade = payload.grade.strip().upper()
    if payload.min_mark is not None:
        obj.min_mark = payload.min_mark
    if payload.max_mark is not None:
        obj.max_mark = payload.max_mark
    if payload.comment is not None:
        obj.comment = payload.comment
    if payload.points is not None:
        obj.points = payload.points
    if obj.min_mark > obj.max_mark:
        await db.rollback()
        raise ValidationError("min_mark must not exceed max_mark")
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError(f"Grade '{obj.grade}' already exists")
    await db.refresh(obj)
    return GradingThresholdResponse.model_validate(obj)


async def delete_threshold(db: AsyncSession, threshold_id: UUID) -> None:
    obj = await db.get(GradingThreshold, threshold_id)
    if not obj:
        raise NotFoundError("Grading threshold not found")
    await db.delete(obj)
    await db.commit()


async def validate_grading_system(db: AsyncSession) -> GradingValidationResponse:
    errors = validate_bands(await _list_models(db))
    return GradingValidationResponse(is_valid=not errors, errors=errors)
