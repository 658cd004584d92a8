from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, model_validator


class GradingThresholdCreate(BaseModel):
    grade: str = Field(..., min_length=1, max_length=10, description="e.g. D1, C3, F9")
    min_mark: float = Field(..., ge=0)
    max_mark: float = Field(..., ge=0)
    comment: Optional[str] = Field(None, max_length=255)
    points: Optional[int] = Field(None, ge=0, description="Aggregate points; defaults to the band's rank")

    @model_validator(mode="after")
    def validate_range(self) -> "GradingThresholdCreate":
        if self.min_mark > self.max_mark:
            raise ValueError("min_mark must not exceed max_mark")
        return self


class GradingThresholdUpdate(BaseModel):
    grade: Optional[str] = Field(None, min_length=1, max_length=10)
    min_mark: Optional[float] = Field(None, ge=0)
    max_mark: Optional[float] = Field(None, ge=0)
    comment: Optional[str] = Field(None, max_length=255)
    points: Optional[int] = Field(None, ge=0)


class GradingThresholdResponse(BaseModel):
    id: UUID
    grade: str
    min_mark: float
    max_mark: float
    comment: Optional[str] = None
    points: Optional[int] = None

    class Config:
        from_attributes = True


class GradingValidationResponse(BaseModel):
    is_valid: bool
    errors: List[str] = Field(default_factory=list)
