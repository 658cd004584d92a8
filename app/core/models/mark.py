import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, Float, ForeignKey, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.db.session import Base


class Mark(Base):
    """
    Marks of one student in one subject for one term. One row per (student, subject, term).
    bot / midterm / eot hold the exam sittings; total is the rounded mean of those present
    and grade is looked up from the grading thresholds.
    """

    __tablename__ = "marks"
    __table_args__ = (
        UniqueConstraint("student_id", "subject_id", "term_id", name="uq_mark_student_subject_term"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    student_id = Column(UUID(as_uuid=True), ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    subject_id = Column(UUID(as_uuid=True), ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False)
    term_id = Column(UUID(as_uuid=True), ForeignKey("terms.id", ondelete="RESTRICT"), nullable=False)
    academic_year_id = Column(
        UUID(as_uuid=True),
        ForeignKey("academic_years.id", ondelete="RESTRICT"),
        nullable=False,
    )
    # Continuous assessment components
    assessment1 = Column(Float, nullable=True)
    assessment2 = Column(Float, nullable=True)
    assessment3 = Column(Float, nullable=True)
    bot = Column(Float, nullable=True)
    midterm = Column(Float, nullable=True)
    eot = Column(Float, nullable=True)
    total = Column(Float, nullable=True)
    grade = Column(String(10), nullable=True)
    created_by_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    student = relationship("Student", backref="marks")
    subject = relationship("Subject", lazy="joined")
