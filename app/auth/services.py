from datetime import datetime, timezone
from typing import Optional

from fastapi import status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import User
from app.auth.schemas import LoginRequest, LoginResponse, UserInfo
from app.auth.security import create_access_token, verify_password
from app.core.exceptions import NotFoundError, ServiceError, UnauthorizedError


async def login_user(db: AsyncSession, payload: LoginRequest) -> LoginResponse:
    # 1. Find user by email (case-insensitive)
    user_stmt = select(User).where(func.lower(User.email) == func.lower(payload.email))
    user_result = await db.execute(user_stmt)
    user: Optional[User] = user_result.scalar_one_or_none()
    if not user:
        raise ServiceError("Invalid credentials", status.HTTP_401_UNAUTHORIZED)

    # 2. Verify password hash
    if not verify_password(payload.password, user.password_hash):
        raise ServiceError("Invalid credentials", status.HTTP_401_UNAUTHORIZED)

    # 3. Check user status
    if user.status != "ACTIVE":
        raise UnauthorizedError("User is inactive")

    issued_at = datetime.now(timezone.utc)
    access_token = create_access_token(user_id=user.id, role=user.role, issued_at=issued_at)
    return LoginResponse(
        access_token=access_token,
        user=UserInfo(id=user.id, full_name=user.full_name, email=user.email, role=user.role),
        issued_at=issued_at,
    )


async def get_account(db: AsyncSession, user_id) -> UserInfo:
    user = await db.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    return UserInfo(id=user.id, full_name=user.full_name, email=user.email, role=user.role)
