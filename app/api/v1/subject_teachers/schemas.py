from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel


class SubjectTeacherCreate(BaseModel):
    teacher_id: UUID
    subject_id: UUID
    class_id: UUID
    term_id: UUID
    academic_year_id: UUID


class SubjectTeacherResponse(BaseModel):
    id: UUID
    teacher_id: UUID
    teacher_name: Optional[str] = None
    teacher_email: Optional[str] = None
    subject_id: UUID
    subject_name: Optional[str] = None
    subject_code: Optional[str] = None
    subject_category: Optional[str] = None
    class_id: UUID
    class_name: Optional[str] = None
    term_id: UUID
    term_name: Optional[str] = None
    academic_year_id: UUID
    created_at: datetime
