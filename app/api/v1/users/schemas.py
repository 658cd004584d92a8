from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from app.core.enums import Role


class UserCreate(BaseModel):
    full_name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    phone: Optional[str] = Field(None, max_length=50)
    password: str = Field(..., min_length=8)
    role: Role
    children_ids: List[UUID] = Field(
        default_factory=list,
        description="PARENT only: students to link to this parent",
    )


class ParentChildrenUpdate(BaseModel):
    """The parent's children become exactly this set; students not listed are unlinked."""

    children_ids: List[UUID]


class UserResponse(BaseModel):
    id: UUID
    full_name: str
    email: EmailStr
    phone: Optional[str] = None
    role: Role
    status: str
    created_at: datetime
    children_ids: List[UUID] = Field(default_factory=list)

    class Config:
        from_attributes = True
