import uuid
from datetime import datetime

from sqlalchemy import Column, Date, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.db.session import Base


class NextTermSchedule(Base):
    """When the term after (academic year, term) opens and closes; printed on report cards."""

    __tablename__ = "next_term_schedules"
    __table_args__ = (UniqueConstraint("academic_year_id", "term_id", name="uq_next_term_schedule_year_term"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    academic_year_id = Column(
        UUID(as_uuid=True),
        ForeignKey("academic_years.id", ondelete="CASCADE"),
        nullable=False,
    )
    term_id = Column(UUID(as_uuid=True), ForeignKey("terms.id", ondelete="CASCADE"), nullable=False)
    next_term_start_date = Column(Date, nullable=True)
    next_term_end_date = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    academic_year = relationship("AcademicYear", lazy="joined")
    term = relationship("Term", lazy="joined")
