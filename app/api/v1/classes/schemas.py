from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class ClassCreate(BaseModel):
    name: str = Field(..., max_length=50)
    academic_year_id: UUID
    class_teacher_id: Optional[UUID] = None


class AssignTeacherRequest(BaseModel):
    teacher_id: UUID = Field(..., description="User with role CLASS_TEACHER")


class ClassResponse(BaseModel):
    id: UUID
    name: str
    academic_year_id: UUID
    class_teacher_id: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
