"""Application settings and configuration management."""
from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or defaults."""

    DB_PATH: str = Field(default="data/drafts.db")
    EXPORT_DIR: str = Field(default="data/exports")
    DEFAULT_DRAFT_TITLE: str = "Life Story"

    # Approval gate: completed/total ratio and minimum mean rating
    APPROVAL_MIN_COMPLETION: float = Field(default=0.5, ge=0.0, le=1.0)
    APPROVAL_MIN_RATING: float = Field(default=2.0, ge=0.0, le=5.0)
    REJECTION_REASON_MIN_LENGTH: int = Field(default=10, ge=0)

    # Rating movement that re-versions a draft without new interviews
    SIGNIFICANT_RATING_DELTA: float = Field(default=0.3, ge=0.0)
    LENIENT_STAGE_FALLBACK: bool = True
    VERSION_CONFLICT_RETRIES: int = Field(default=3, ge=0)

    model_config = SettingsConfigDict(env_file=".env", validate_assignment=True)


settings = Settings()
