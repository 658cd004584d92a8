from datetime import date, datetime
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.api.v1.grading_system.schemas import GradingThresholdResponse
from app.core.enums import AssessmentGrade


class PersonalAssessment(BaseModel):
    discipline: Optional[AssessmentGrade] = None
    cleanliness: Optional[AssessmentGrade] = None
    class_work_presentation: Optional[AssessmentGrade] = None
    adherence_to_school: Optional[AssessmentGrade] = None
    co_curricular_activities: Optional[AssessmentGrade] = None
    consideration_to_others: Optional[AssessmentGrade] = None
    speaking_english: Optional[AssessmentGrade] = None
    class_teacher_comment: Optional[str] = None


class ReportCardSubmission(PersonalAssessment):
    student_id: UUID
    term_id: UUID
    academic_year_id: UUID


class BulkReportCardItem(BaseModel):
    """Grades are plain strings here so a bad letter fails only its own item."""

    student_id: Optional[UUID] = None
    discipline: Optional[str] = None
    cleanliness: Optional[str] = None
    class_work_presentation: Optional[str] = None
    adherence_to_school: Optional[str] = None
    co_curricular_activities: Optional[str] = None
    consideration_to_others: Optional[str] = None
    speaking_english: Optional[str] = None
    class_teacher_comment: Optional[str] = None


class BulkUpsertRequest(BaseModel):
    term_id: UUID
    academic_year_id: UUID
    report_cards: List[BulkReportCardItem] = Field(..., min_length=1)


class BulkCreateRequest(BaseModel):
    report_cards: List[ReportCardSubmission] = Field(..., min_length=1)


class ReportCardReview(BaseModel):
    headteacher_comment: Optional[str] = None
    is_approved: Optional[bool] = None
    approved_at: Optional[datetime] = None


class ReportCardResponse(PersonalAssessment):
    id: UUID
    student_id: UUID
    student_name: Optional[str] = None
    class_name: Optional[str] = None
    term_id: UUID
    academic_year_id: UUID
    headteacher_comment: Optional[str] = None
    is_approved: bool
    approved_at: Optional[datetime] = None
    parent_access_enabled_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class BulkItemResult(BaseModel):
    index: int
    student_id: Optional[UUID] = None
    success: bool
    id: Optional[UUID] = None
    error: Optional[str] = None


class BulkUpsertResponse(BaseModel):
    processed: int
    successful: int
    failed: int
    results: List[BulkItemResult]


class ParentAccessResponse(BaseModel):
    report_card_id: UUID
    parent_access_enabled_at: datetime
    already_enabled: bool


class ClassReportCardRow(BaseModel):
    student_id: UUID
    full_name: str
    report_card: Optional[ReportCardResponse] = None


class ClassReportCount(BaseModel):
    class_name: str
    report_count: int


class ReportStatsResponse(BaseModel):
    total_reports: int
    approved_reports: int
    pending_reports: int
    grade_distribution: Dict[str, int]
    class_distribution: List[ClassReportCount]


class SubjectReportRow(BaseModel):
    subject_id: UUID
    subject_name: str
    code: str
    category: str
    bot: Optional[float] = None
    bot_grade: Optional[str] = None
    midterm: Optional[float] = None
    midterm_grade: Optional[str] = None
    eot: Optional[float] = None
    eot_grade: Optional[str] = None
    total: Optional[float] = None
    grade: Optional[str] = None
    remarks: Optional[str] = None
    teacher_initials: Optional[str] = None


class ReportDocumentStudent(BaseModel):
    id: UUID
    full_name: str
    gender: Optional[str] = None
    class_name: Optional[str] = None
    parent_id: Optional[UUID] = None


class ReportDocument(BaseModel):
    """Everything a renderer needs to print one report card."""

    student: ReportDocumentStudent
    term_name: str
    academic_year: str
    report_card: ReportCardResponse
    grading_system: List[GradingThresholdResponse]
    subjects: List[SubjectReportRow]
    general_subjects: List[SubjectReportRow]
    division: Optional[str] = None
    aggregate: Optional[float] = None
    points_totals: Dict[str, Optional[int]]
    next_term_start_date: Optional[date] = None
    next_term_end_date: Optional[date] = None
