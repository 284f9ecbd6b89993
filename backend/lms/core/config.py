"""Application configuration using Pydantic Settings."""

from enum import Enum
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class AgoSyncMode(str, Enum):
    MOCK = "mock"
    HTTP = "http"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # App
    app_name: str = "LMS"
    debug: bool = False
    api_v1_prefix: str = "/v1"
    log_level: str = "INFO"
    allowed_origins: str = "http://localhost:5173"

    # Database
    database_url: str = "sqlite+aiosqlite:///./lms.db"
    database_echo: bool = False

    # Firebase Auth
    firebase_project_id: Optional[str] = None
    google_application_credentials: Optional[str] = None

    # ArcGIS Online sync
    ago_sync_mode: AgoSyncMode = AgoSyncMode.MOCK
    ago_base_url: Optional[str] = None
    ago_api_token: Optional[str] = None
    ago_timeout_seconds: float = 30.0
    ago_mock_success_rate: float = 0.9

    # Minutes to wait before retry N (index 0 is the delay after attempt 1)
    sync_retry_delays_minutes: list[int] = [15, 30, 60, 120, 240]
    sweep_batch_size: int = 50

    # Outbox
    jobs_max_attempts: int = 3

    @property
    def cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()
