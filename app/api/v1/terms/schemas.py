from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, Field


class TermCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=50, description="e.g. Term 1")
    start_date: date
    end_date: date
    academic_year_id: UUID


class TermResponse(BaseModel):
    id: UUID
    name: str
    start_date: date
    end_date: date
    academic_year_id: UUID
    created_at: datetime

    class Config:
        from_attributes = True
