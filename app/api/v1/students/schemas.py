from datetime import date, datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class StudentCreate(BaseModel):
    full_name: str = Field(..., min_length=1, max_length=255)
    gender: Optional[str] = Field(None, max_length=20)
    date_of_birth: Optional[date] = None
    class_id: UUID
    term_id: UUID
    academic_year_id: UUID
    parent_id: Optional[UUID] = None


class StudentResponse(BaseModel):
    id: UUID
    full_name: str
    gender: Optional[str] = None
    date_of_birth: Optional[date] = None
    class_id: UUID
    term_id: UUID
    academic_year_id: UUID
    parent_id: Optional[UUID] = None
    class_name: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True
