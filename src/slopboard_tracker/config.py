"""Application configuration with environment variable support."""

from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Tracker settings with environment variable support.

    Priority: ENV > .env.local > .env > defaults
    Every variable is prefixed with SLOPBOARD_ (e.g. SLOPBOARD_API_KEY).
    """

    model_config = SettingsConfigDict(
        env_prefix="SLOPBOARD_",
        env_file=(".env", ".env.local"),
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Service configuration
    PROJECT_NAME: str = "Slopboard Tracker"
    DEBUG: bool = False
    HOST: str = "localhost"
    PORT: int = 4763
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[Path] = None

    # Remote collector
    API_URL: str = "https://slopboard.dev/api"
    API_KEY: Optional[str] = None
    REQUEST_TIMEOUT: float = 10.0

    # Tracking
    ENABLED: bool = True
    IDLE_THRESHOLD_SECONDS: int = Field(120, gt=0)
    IDLE_CHECK_INTERVAL_SECONDS: float = Field(10.0, gt=0)
    MIN_SESSION_DURATION_SECONDS: int = Field(5, ge=0)

    # Offline queue
    UPLOAD_INTERVAL_SECONDS: int = Field(300, ge=60)
    UPLOAD_BATCH_SIZE: int = Field(10, gt=0)
    DATA_DIR: Path = Path.home() / ".slopboard-tracker"


# Global settings instance
settings = Settings()
