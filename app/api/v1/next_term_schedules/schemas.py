from datetime import date, datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel


class NextTermScheduleCreate(BaseModel):
    academic_year_id: UUID
    term_id: UUID
    next_term_start_date: Optional[date] = None
    next_term_end_date: Optional[date] = None


class NextTermScheduleUpdate(NextTermScheduleCreate):
    pass


class NextTermScheduleResponse(BaseModel):
    id: UUID
    academic_year_id: UUID
    academic_year: Optional[str] = None
    academic_year_is_active: bool = False
    term_id: UUID
    term_name: Optional[str] = None
    next_term_start_date: Optional[date] = None
    next_term_end_date: Optional[date] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
