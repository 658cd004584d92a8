from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.rbac import check_permission
from app.core.enums import Role
from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import ParentChildrenUpdate, UserCreate, UserResponse
from . import service

router = APIRouter(prefix="/api/v1/users", tags=["users"])


@router.post(
    "",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(check_permission("users", "create"))],
)
async def create_user(
    payload: UserCreate,
    db: AsyncSession = Depends(get_db),
) -> UserResponse:
    """Create a staff or parent account. Parents may be linked to their children on creation."""
    try:
        return await service.create_user(db, payload)
    except ServiceError as e:
        raise e.to_http()


@router.get(
    "",
    response_model=List[UserResponse],
    dependencies=[Depends(check_permission("users", "read"))],
)
async def list_users(
    role: Optional[Role] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> List[UserResponse]:
    return await service.list_users(db, role)


@router.put(
    "/parents/{parent_id}/children",
    response_model=UserResponse,
    dependencies=[Depends(check_permission("users", "update"))],
)
async def set_parent_children(
    parent_id: UUID,
    payload: ParentChildrenUpdate,
    db: AsyncSession = Depends(get_db),
) -> UserResponse:
    try:
        return await service.set_parent_children(db, parent_id, payload.children_ids)
    except ServiceError as e:
        raise e.to_http()
