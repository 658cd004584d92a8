import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, Float, Integer, String
from sqlalchemy.dialects.postgresql import UUID

from app.db.session import Base


class GradingThreshold(Base):
    """
    One band of the grading system: marks in [min_mark, max_mark] earn grade.
    points is the aggregate weight used for divisions (D1=1 ... F9=9); when null the
    band's rank in descending min_mark order is used.
    """

    __tablename__ = "grading_thresholds"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    grade = Column(String(10), nullable=False, unique=True)
    min_mark = Column(Float, nullable=False)
    max_mark = Column(Float, nullable=False)
    comment = Column(String(255), nullable=True)
    points = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
