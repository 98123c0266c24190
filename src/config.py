"""Application settings loaded from environment variables."""

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _env_file() -> str | None:
    if os.getenv("PYTEST_CURRENT_TEST"):
        return None
    return ".env"


class Settings(BaseSettings):
    """Session planner configuration. All values come from environment variables."""

    # Identity of the single local user
    owner_id: str = Field(default="local")

    # Database
    database_path: Path = Field(default=Path("data/planner.db"))

    # Turso (hosted libSQL); when set, overrides local database_path
    turso_database_url: str = Field(default="")
    turso_auth_token: str = Field(default="")

    # Scheduler
    scheduler_timezone: str = Field(default="America/Chicago")
    reminder_poll_seconds: int = Field(default=60, gt=0)
    store_timeout_seconds: float = Field(default=10.0, gt=0)

    # Recurrence
    recurrence_default_occurrences: int = Field(default=52, ge=0)
    recurrence_horizon_days: int = Field(default=365, ge=0)

    # Validation
    reject_past_sessions: bool = Field(default=True)

    # Tags
    default_tag_color: str = Field(default="#808080")

    # Notifications
    default_notification_channel: str = Field(default="log")

    # Logging
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(env_file=_env_file(), env_file_encoding="utf-8")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        if os.getenv("PYTEST_CURRENT_TEST"):
            return (init_settings,)
        return (init_settings, env_settings, dotenv_settings, file_secret_settings)


settings = Settings()
