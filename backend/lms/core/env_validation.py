"""
Runtime environment validation.

Validates configuration at application startup. If validation fails the
application refuses to start (hard fail) instead of erroring at runtime.
Debug mode relaxes the production-only checks (SQLite, wildcard CORS).
"""

import logging
import os
import sys
from typing import Optional

from pydantic import ValidationError

from lms.core.config import AgoSyncMode, Settings

logger = logging.getLogger(__name__)


class ProductionSettings(Settings):
    """Settings with the variables a deployment must set explicitly."""

    database_url: str
    allowed_origins: str
    firebase_project_id: Optional[str] = None


def _fail(message: str, hint: Optional[str] = None) -> None:
    logger.critical(f"FATAL: {message}")
    if hint:
        logger.critical(f"   {hint}")
    sys.exit(1)


def validate_environment() -> ProductionSettings:
    """Validate configuration; exits with code 1 on any problem."""
    try:
        settings = ProductionSettings()
    except ValidationError as e:
        logger.critical("FATAL: Environment validation failed")
        for error in e.errors():
            field = " -> ".join(str(loc) for loc in error["loc"])
            logger.critical(f"   {field}: {error['msg']}")
        sys.exit(1)

    if not settings.debug:
        # 1. CORS: no wildcard in production
        if "*" in settings.cors_origins:
            _fail(
                "Wildcard CORS origin (*) detected in production mode.",
                "Set ALLOWED_ORIGINS to specific domains (comma-separated).",
            )

        # 2. Database: PostgreSQL only in production
        if not settings.database_url.startswith("postgresql"):
            _fail(
                "DATABASE_URL must be a PostgreSQL connection string (postgresql+asyncpg://)",
            )

        # 3. Firebase: project id needed to verify tokens
        if not settings.firebase_project_id:
            _fail("FIREBASE_PROJECT_ID is required in production mode.")

    # 4. Firebase: credentials path must exist if provided
    if settings.google_application_credentials and not os.path.exists(settings.google_application_credentials):
        _fail(f"Firebase credentials file not found: {settings.google_application_credentials}")

    # 5. AGO: HTTP mode needs a feature layer URL
    if settings.ago_sync_mode == AgoSyncMode.HTTP and not settings.ago_base_url:
        _fail("AGO_BASE_URL is required when AGO_SYNC_MODE=http")

    if not settings.sync_retry_delays_minutes:
        _fail("SYNC_RETRY_DELAYS_MINUTES must contain at least one delay")

    logger.info("Environment validation passed")
    logger.info(f"   App: {settings.app_name}")
    logger.info(f"   Debug: {settings.debug}")
    logger.info(f"   AGO sync mode: {settings.ago_sync_mode.value}")
    logger.info(f"   CORS Origins: {settings.allowed_origins}")
    return settings
