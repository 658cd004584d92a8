from typing import Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings

from app.core.enums import AggregationMethod


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str = Field(..., alias="DATABASE_URL")

    jwt_secret_key: str = Field(..., alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field("HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(60, alias="ACCESS_TOKEN_EXPIRE_MINUTES")

    log_level: str = Field("INFO", alias="LOG_LEVEL")

    # First ADMIN account, used by app.db.seed_admin
    admin_email: Optional[str] = Field(None, alias="ADMIN_EMAIL")
    admin_password: Optional[str] = Field(None, alias="ADMIN_PASSWORD")

    # Division ranking: POINTS (grade points of best N subjects), SUM or AVERAGE of raw marks
    division_aggregation: AggregationMethod = Field(AggregationMethod.POINTS, alias="DIVISION_AGGREGATION")
    division_best_of: Optional[int] = Field(4, alias="DIVISION_BEST_OF")
    ungraded_points: int = Field(9, alias="UNGRADED_POINTS")

    @field_validator("division_aggregation", mode="before")
    @classmethod
    def _upper_aggregation(cls, value):
        return value.strip().upper() if isinstance(value, str) else value

    @model_validator(mode="after")
    def _sum_needs_best_of(self) -> "Settings":
        if self.division_aggregation == AggregationMethod.SUM and not self.division_best_of:
            raise ValueError("DIVISION_BEST_OF is required for SUM aggregation")
        return self

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()
