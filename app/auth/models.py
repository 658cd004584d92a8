import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, String, Text
from sqlalchemy.dialects.postgresql import UUID

from app.db.session import Base


class User(Base):
    """Staff or parent account. role is one of ADMIN, HEADTEACHER, CLASS_TEACHER, SECRETARY, PARENT."""

    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    full_name = Column(String(255), nullable=False)
    # Email is the login identifier
    email = Column(String(255), nullable=False, unique=True)
    phone = Column(String(50), nullable=True)
    password_hash = Column(Text, nullable=False)
    role = Column(String(50), nullable=False)
    status = Column(String(20), nullable=False, default="ACTIVE")
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
