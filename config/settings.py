"""Application settings and configuration management."""
from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or defaults."""

    DB_PATH: str = Field(default="data/assessments.db")
    APP_CONFIG_PATH: str = Field(default="app_config.json")

    ANSWER_MAX_CHARS: int = 5000
    RESUME_MIN_CHARS: int = 100
    RESUME_STORED_CHARS: int = 20000

    model_config = SettingsConfigDict(env_file=".env", validate_assignment=True)


settings = Settings()
