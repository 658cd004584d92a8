from app.core.models.academic_year import AcademicYear
from app.core.models.term import Term
from app.core.models.class_model import SchoolClass
from app.core.models.student import Student
from app.core.models.subject import Subject
from app.core.models.mark import Mark
from app.core.models.report_card import PERSONAL_ASSESSMENT_FIELDS, ReportCard
from app.core.models.grading_threshold import GradingThreshold
from app.core.models.attendance import Attendance
from app.core.models.next_term_schedule import NextTermSchedule
from app.core.models.subject_teacher import SubjectTeacher

__all__ = [
    "AcademicYear",
    "Attendance",
    "GradingThreshold",
    "Mark",
    "NextTermSchedule",
    "PERSONAL_ASSESSMENT_FIELDS",
    "ReportCard",
    "SchoolClass",
    "Student",
    "Subject",
    "SubjectTeacher",
    "Term",
]
