"""
Application Configuration

This module provides type-safe configuration loading using Pydantic settings.
Environment variables are loaded from .env file and validated.

Usage:
    from studypulse.config import settings

    # Access settings
    db_url = settings.POSTGRES_URL
    generate_hour = settings.NOTIFICATION_GENERATE_AT_HOUR
"""

from functools import lru_cache
from pathlib import Path
from typing import Any, Optional
from zoneinfo import ZoneInfo

import yaml
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "Study Pulse"
    DEBUG: bool = False

    # PostgreSQL
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "studypulse"
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DB: str = "studypulse"

    @property
    def POSTGRES_URL(self) -> str:
        """Async PostgreSQL connection URL."""
        return f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    # Civil time - every day-boundary decision (streaks, "today's" reminder)
    # is taken in this timezone, never in the server's local time.
    LOCAL_TIMEZONE: str = "America/Santiago"

    @property
    def local_tz(self) -> ZoneInfo:
        """ZoneInfo for LOCAL_TIMEZONE."""
        return ZoneInfo(self.LOCAL_TIMEZONE)

    # Learner defaults
    DEFAULT_WEEKLY_FREQUENCY: int = 3
    DEFAULT_REMINDER_TIME: str = "19:00"  # HH:MM, local time

    # Notification generation / delivery
    NOTIFICATION_GENERATE_AT_HOUR: int = 6
    NOTIFICATION_AUTO_SEND: bool = True
    NOTIFICATION_MAX_RETRIES: int = 3  # Failed sends before dead-lettering
    NOTIFICATION_RETRY_DELAY_MINUTES: int = 5
    NOTIFICATION_BATCH_SIZE: int = 50
    NOTIFICATION_DELIVERY_INTERVAL_MINUTES: int = 60
    NOTIFICATION_HISTORY_LIMIT: int = 50

    # Metrics
    METRICS_RECOMPUTE_HOUR: int = 3
    METRICS_CALCULATION_VERSION: int = 1

    # Push gateway (Expo-compatible HTTP push API)
    PUSH_GATEWAY_URL: str = "https://exp.host/--/api/v2/push/send"
    PUSH_ACCESS_TOKEN: str = ""
    PUSH_TIMEOUT_SECONDS: float = 10.0
    PUSH_SEND_DELAY_SECONDS: float = 0.1
    PUSH_ANDROID_CHANNEL_ID: str = "study_reminders"

    # Scheduler
    SCHEDULER_ENABLED: bool = True
    SCHEDULER_MISFIRE_GRACE_SECONDS: int = 3600

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent.parent.parent / "config" / "default.yaml"


@lru_cache()
def load_yaml_config(config_path: Optional[Path] = None) -> dict[str, Any]:
    """Load application configuration (default: config/default.yaml at the repo root)."""
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    if not config_path.exists():
        return {}

    with open(config_path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


yaml_config: dict[str, Any] = load_yaml_config()
