from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.core.enums import DivisionType


class DivisionInfo(BaseModel):
    division: DivisionType
    label: str
    aggregate: float
    subjects_counted: int


class DivisionStatistics(BaseModel):
    total_students: int = 0
    excluded: int = 0
    divisions: Dict[str, int] = Field(default_factory=dict)
    passed: int = 0
    failed: int = 0
    pass_rate: float = 0.0


class StudentDivisions(BaseModel):
    student_id: UUID
    full_name: str
    bot: Optional[DivisionInfo] = None
    mid: Optional[DivisionInfo] = None
    end: Optional[DivisionInfo] = None


class ClassDivisionsResponse(BaseModel):
    class_id: UUID
    term_id: UUID
    academic_year_id: UUID
    students: List[StudentDivisions]
    statistics: Dict[str, DivisionStatistics]
