from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from app.core.enums import SubjectCategory


class SubjectCreate(BaseModel):
    name: str = Field(..., max_length=255)
    code: str = Field(..., max_length=50)
    class_id: UUID
    category: SubjectCategory = Field(
        SubjectCategory.GENERAL,
        description="GENERAL subjects count towards divisions; SUBSIDIARY subjects do not",
    )


class SubjectResponse(BaseModel):
    id: UUID
    name: str
    code: str
    class_id: UUID
    category: SubjectCategory
    created_at: datetime

    class Config:
        from_attributes = True
