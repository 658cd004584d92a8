from datetime import date, datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class AcademicYearCreate(BaseModel):
    """Create academic year. year label must be unique."""

    year: str = Field(..., min_length=1, max_length=50, description="e.g. 2025")
    start_date: date = Field(..., description="Academic year start date")
    end_date: date = Field(..., description="Academic year end date (must be after start_date)")
    is_active: bool = Field(
        False,
        description="Make this the active year? If true, every other year is deactivated.",
    )


class AcademicYearUpdate(BaseModel):
    year: Optional[str] = Field(None, min_length=1, max_length=50)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    is_active: Optional[bool] = None


class AcademicYearResponse(BaseModel):
    id: UUID
    year: str
    start_date: date
    end_date: date
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
