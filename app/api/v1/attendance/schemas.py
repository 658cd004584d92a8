from datetime import date, datetime
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.core.enums import AttendanceStatus


class AttendanceMark(BaseModel):
    """Status of one student for the day."""

    student_id: UUID
    status: AttendanceStatus


class AttendanceBulkMark(BaseModel):
    """
    Mark a class for one date. term_id defaults to the term of the active
    academic year that contains the date.
    """

    class_id: Optional[UUID] = None
    date: date
    term_id: Optional[UUID] = None
    records: List[AttendanceMark] = Field(..., min_length=1)


class AttendanceMarkResult(BaseModel):
    class_id: UUID
    term_id: UUID
    date: date
    created: int
    updated: int
    totals: Dict[str, int]


class AttendanceRecord(BaseModel):
    id: UUID
    student_id: UUID
    student_name: Optional[str] = None
    class_id: UUID
    class_name: Optional[str] = None
    term_id: UUID
    academic_year_id: UUID
    date: date
    status: str
    created_at: datetime
    updated_at: datetime


class ClassDayRow(BaseModel):
    student_id: UUID
    full_name: str
    status: Optional[str] = None


class ClassDaySummary(BaseModel):
    """Every student of the class with their status for the day; None when not yet marked."""

    class_id: UUID
    class_name: str
    date: date
    students: List[ClassDayRow]
    totals: Dict[str, int]
    unmarked: int


class DayTrend(BaseModel):
    date: date
    present: int = 0
    absent: int = 0
    late: int = 0
    excused: int = 0


class ClassAttendanceRow(BaseModel):
    class_id: UUID
    class_name: str
    total_students: int
    present: int = 0
    absent: int = 0
    late: int = 0
    excused: int = 0
    rate: int = 0


class AttendanceStats(BaseModel):
    date: date
    total_students: int
    present: int
    absent: int
    late: int
    excused: int
    attendance_rate: int
    weekly_trend: List[DayTrend]
    class_attendance: List[ClassAttendanceRow] = []


class ChildAttendance(BaseModel):
    student_id: UUID
    full_name: str
    class_name: Optional[str] = None
    totals: Dict[str, int]
    records: List[AttendanceRecord]
