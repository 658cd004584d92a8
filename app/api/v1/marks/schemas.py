from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.core.enums import ExamType


class MarkUpsert(BaseModel):
    """Marks for one (student, subject, term). Omitted components keep their stored value."""

    student_id: UUID
    subject_id: UUID
    term_id: UUID
    assessment1: Optional[float] = Field(None, ge=0, le=100)
    assessment2: Optional[float] = Field(None, ge=0, le=100)
    assessment3: Optional[float] = Field(None, ge=0, le=100)
    bot: Optional[float] = Field(None, ge=0, le=100)
    midterm: Optional[float] = Field(None, ge=0, le=100)
    eot: Optional[float] = Field(None, ge=0, le=100)


class BulkMarkItem(BaseModel):
    student_id: Optional[UUID] = None
    subject_id: Optional[UUID] = None
    term_id: Optional[UUID] = None
    exam_type: ExamType
    # Range is checked per item so one bad row does not reject the batch
    mark: float


class BulkMarkRequest(BaseModel):
    marks: List[BulkMarkItem] = Field(..., min_length=1)


class MarkResponse(BaseModel):
    id: UUID
    student_id: UUID
    subject_id: UUID
    subject_name: Optional[str] = None
    term_id: UUID
    academic_year_id: UUID
    assessment1: Optional[float] = None
    assessment2: Optional[float] = None
    assessment3: Optional[float] = None
    bot: Optional[float] = None
    midterm: Optional[float] = None
    eot: Optional[float] = None
    total: Optional[float] = None
    grade: Optional[str] = None
    updated_at: Optional[datetime] = None


class BulkItemResult(BaseModel):
    index: int
    student_id: Optional[UUID] = None
    success: bool
    id: Optional[UUID] = None
    error: Optional[str] = None


class BulkMarkResponse(BaseModel):
    processed: int
    successful: int
    failed: int
    results: List[BulkItemResult]
