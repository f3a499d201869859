"""
Application Configuration.

Pydantic Settings model for the Brand Connect marketplace core.
All configuration is loaded from environment variables and .env files.
Inject an AppConfig instance via dependency injection where needed.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings
from pydantic import Field, SecretStr, model_validator


class AppConfig(BaseSettings):
    """Central configuration loaded from environment variables and defaults."""

    # --- Supabase ---
    SUPABASE_URL: str = ""
    SUPABASE_ANON_KEY: SecretStr = SecretStr("")
    SUPABASE_SERVICE_ROLE_KEY: SecretStr = SecretStr("")

    # --- Auth ---
    PASSWORD_RESET_REDIRECT_URL: str = "http://localhost:3000/auth/reset-password"
    # Single bounded wait for the database profile trigger after sign-up.
    PROFILE_TRIGGER_WAIT_S: float = Field(default=1.0, ge=0.0)

    # --- Marketplace defaults ---
    DEFAULT_HOURLY_RATE: int = Field(default=50_000, gt=0)
    DEFAULT_CREATIVE_CATEGORY: str = "General"
    DEFAULT_CREATIVE_TITLE: str = "Creative Professional"
    BOOKING_ADVANCE_DAYS: int = Field(default=90, ge=1)
    NOTES_MAX_LENGTH: int = 500
    NOTIFICATION_PAGE_SIZE: int = 50

    # --- Side-effect retries (notifications, conversation bootstrap) ---
    SIDE_EFFECT_MAX_ATTEMPTS: int = Field(default=3, ge=1)
    SIDE_EFFECT_BACKOFF_S: float = Field(default=0.5, ge=0.0)
    SIDE_EFFECT_TIMEOUT_S: float = Field(default=10.0, gt=0.0)

    # --- Logging ---
    LOG_FILE: str = "brand_connect.log"
    LOG_MAX_BYTES: int = 5_242_880  # 5 MB
    LOG_BACKUP_COUNT: int = 3

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    @model_validator(mode="after")
    def _warn_missing_env(self) -> "AppConfig":
        """Emit a startup warning when critical configuration is empty.

        Pydantic silently falls back to defaults when ``.env`` is missing,
        so operators get a log line instead of a confusing auth failure
        on the first request.
        """
        _log = logging.getLogger("brand_connect.config")

        if not Path(".env").exists():
            _log.warning(
                "No .env file found; all configuration loaded from "
                "environment variables or defaults."
            )

        if not self.SUPABASE_URL:
            _log.warning(
                "SUPABASE_URL is empty. The Supabase adapters cannot be "
                "created until it is set."
            )

        return self

    def validate_supabase_config(self) -> None:
        """Validate that the Supabase connection settings are complete.

        Raises:
            ValueError: If the URL or anon key is missing.
        """
        if not self.SUPABASE_URL:
            raise ValueError("SUPABASE_URL must be set")
        if not self.SUPABASE_ANON_KEY.get_secret_value():
            raise ValueError("SUPABASE_ANON_KEY must be set")


# ---------------------------------------------------------------------------
# Module-level singleton factory
# ---------------------------------------------------------------------------

_config_instance: Optional[AppConfig] = None
_config_lock: threading.Lock = threading.Lock()


def get_config() -> AppConfig:
    """Return a cached ``AppConfig`` singleton.

    Uses a check-lock-check pattern to avoid the lock overhead on the
    fast path while remaining thread-safe during first initialisation.
    Prefer constructor injection of ``AppConfig`` in services; this
    factory exists for the logger and the entry point.
    """
    global _config_instance
    if _config_instance is None:
        with _config_lock:
            if _config_instance is None:
                _config_instance = AppConfig()
    return _config_instance
