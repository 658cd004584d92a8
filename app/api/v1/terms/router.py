from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.rbac import check_permission
from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import TermCreate, TermResponse
from . import service

router = APIRouter(prefix="/api/v1/terms", tags=["terms"])


@router.post(
    "",
    response_model=TermResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(check_permission("terms", "create"))],
)
async def create_term(
    payload: TermCreate,
    db: AsyncSession = Depends(get_db),
) -> TermResponse:
    try:
        return await service.create_term(db, payload)
    except ServiceError as e:
        raise e.to_http()


@router.get(
    "",
    response_model=List[TermResponse],
    dependencies=[Depends(check_permission("terms", "read"))],
)
async def list_terms(
    academic_year_id: Optional[UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> List[TermResponse]:
    return await service.list_terms(db, academic_year_id)


@router.delete(
    "/{term_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(check_permission("terms", "delete"))],
)
async def delete_term(
    term_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> None:
    try:
        await service.delete_term(db, term_id)
    except ServiceError as e:
        raise e.to_http()
