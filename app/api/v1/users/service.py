from typing import List, Optional
from uuid import UUID

from sqlalchemy import case, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import User
from app.auth.security import hash_password
from app.core.enums import Role
from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.core.models import Student

from .schemas import UserCreate, UserResponse


def _to_response(user: User, children_ids: Optional[List[UUID]] = None) -> UserResponse:
    return UserResponse(
        id=user.id,
        full_name=user.full_name,
        email=user.email,
        phone=user.phone,
        role=user.role,
        status=user.status,
        created_at=user.created_at,
        children_ids=children_ids or [],
    )


async def _children_of(db: AsyncSession, parent_id: UUID) -> List[UUID]:
    result = await db.execute(select(Student.id).where(Student.parent_id == parent_id).order_by(Student.full_name))
    return [row[0] for row in result.all()]


async def _set_children(db: AsyncSession, parent_id: UUID, children_ids: List[UUID]) -> None:
    """Single set-based write: the parent's children become exactly children_ids."""
    ids = list(dict.fromkeys(children_ids))
    if ids:
        found = await db.scalar(select(func.count()).select_from(Student).where(Student.id.in_(ids)))
        if found != len(ids):
            raise NotFoundError("One or more students not found")
    await db.execute(
        update(Student)
        .where(or_(Student.parent_id == parent_id, Student.id.in_(ids)))
        .values(parent_id=case((Student.id.in_(ids), parent_id), else_=None))
        .execution_options(synchronize_session=False)
    )


async def create_user(db: AsyncSession, payload: UserCreate) -> UserResponse:
    email = payload.email.strip().lower()
    existing = await db.execute(select(User).where(func.lower(User.email) == email))
    if existing.scalar_one_or_none():
        raise ConflictError(f"A user with email '{email}' already exists")
    if payload.children_ids and payload.role != Role.PARENT:
        raise ValidationError("Only PARENT accounts can have children")

    user = User(
        full_name=payload.full_name.strip(),
        email=email,
        phone=payload.phone,
        password_hash=hash_password(payload.password),
        role=payload.role.value,
        status="ACTIVE",
    )
    db.add(user)
    try:
        await db.flush()
        if payload.children_ids:
            await _set_children(db, user.id, payload.children_ids)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError(f"A user with email '{email}' already exists")
    children = await _children_of(db, user.id) if payload.role == Role.PARENT else []
    return _to_response(user, children)


async def list_users(db: AsyncSession, role: Optional[Role] = None) -> List[UserResponse]:
    stmt = select(User)
    if role is not None:
        stmt = stmt.where(User.role == role.value)
    stmt = stmt.order_by(User.full_name)
    result = await db.execute(stmt)
    users = result.scalars().all()
    out = []
    for user in users:
        children = await _children_of(db, user.id) if user.role == Role.PARENT.value else []
        out.append(_to_response(user, children))
    return out


async def set_parent_children(db: AsyncSession, parent_id: UUID, children_ids: List[UUID]) -> UserResponse:
    parent = await db.get(User, parent_id)
    if not parent or parent.role != Role.PARENT.value:
        raise NotFoundError("Parent not found")
    await _set_children(db, parent_id, children_ids)
    await db.commit()
    return _to_response(parent, await _children_of(db, parent_id))
