"""Application configuration module."""

from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    """Application settings."""

    # Database settings
    DATABASE_URL: str = "sqlite+aiosqlite:///./gradecore.db"
    SQL_ECHO: bool = False

    # Logging settings
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s | %(levelname)-8s | %(name)-30s | %(message)s"
    LOG_JSON: bool = False
    LOG_FILE: Optional[str] = None

    PROJECT_NAME: str = "GradeCore"

    # Quiz authoring policy
    LOCK_QUIZ_STRUCTURE_AFTER_ATTEMPTS: bool = True

    # Optimistic-concurrency retries for grading
    GRADE_RETRY_ATTEMPTS: int = 1
    GRADE_RETRY_DELAY_SECONDS: float = 0.05

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

# Create global settings instance
settings = Settings()
