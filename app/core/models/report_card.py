import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.db.session import Base


PERSONAL_ASSESSMENT_FIELDS = (
    "discipline",
    "cleanliness",
    "class_work_presentation",
    "adherence_to_school",
    "co_curricular_activities",
    "consideration_to_others",
    "speaking_english",
)


class ReportCard(Base):
    """
    Personal-assessment report card per (student, term, academic year).
    is_approved flips to true only through a HEADTEACHER/ADMIN action (approved_at set with it).
    Parents see a card only when it is approved and parent_access_enabled_at is set.
    """

    __tablename__ = "report_cards"
    __table_args__ = (
        UniqueConstraint("student_id", "term_id", "academic_year_id", name="uq_report_card_student_term_year"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    student_id = Column(UUID(as_uuid=True), ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    term_id = Column(UUID(as_uuid=True), ForeignKey("terms.id", ondelete="RESTRICT"), nullable=False)
    academic_year_id = Column(
        UUID(as_uuid=True),
        ForeignKey("academic_years.id", ondelete="RESTRICT"),
        nullable=False,
    )
    # Personal assessment: A | B | C | D
    discipline = Column(String(2), nullable=True)
    cleanliness = Column(String(2), nullable=True)
    class_work_presentation = Column(String(2), nullable=True)
    adherence_to_school = Column(String(2), nullable=True)
    co_curricular_activities = Column(String(2), nullable=True)
    consideration_to_others = Column(String(2), nullable=True)
    speaking_english = Column(String(2), nullable=True)
    class_teacher_comment = Column(Text, nullable=True)
    headteacher_comment = Column(Text, nullable=True)
    is_approved = Column(Boolean, nullable=False, default=False)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    parent_access_enabled_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    student = relationship("Student", backref="report_cards", lazy="joined")
    term = relationship("Term", foreign_keys=[term_id])
    academic_year = relationship("AcademicYear", foreign_keys=[academic_year_id])
