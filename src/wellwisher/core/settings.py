"""Runtime settings for wellwisher.

Every knob the scheduler needs is read from ``WELLWISHER_*`` environment
variables (or a ``.env`` file) and validated once at startup, so a bad zone
name or an out-of-range hour fails the process before any timer is armed.

Manifesto:
    - **Pydantic validation:** Type-checked at startup, not at first firing
    - **Environment-driven:** Reads from env vars and .env files
    - **Sensible defaults:** Works out of the box for development

Examples:
    >>> from wellwisher.core.settings import WellWisherSettings
    >>> s = WellWisherSettings(timezone="UTC", reminder_hour=9)
    >>> s.zone.key
    'UTC'

Tags:
    settings, configuration, pydantic, environment, wellwisher

Doc-Types:
    - API Reference
    - Configuration Guide
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from wellwisher.core.errors import InvalidConfigError


class WellWisherSettings(BaseSettings):
    """Settings for the scheduler process.

    Fields
    ──────
    database_url          : SQLAlchemy URL of the event store
    timezone              : Zone reminders fire in (IANA name)
    reminder_hour/minute  : Local time-of-day reminders fire at
    purge_after_days      : Retention of archived events before purge
    timer_backend         : ``thread`` (default) or ``apscheduler``
    worker_count          : Size of the pool that runs fired tasks
    notification_backend  : ``smtp`` or ``log``
    """

    model_config = SettingsConfigDict(
        env_prefix="WELLWISHER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Storage ──────────────────────────────────────────────────
    database_url: str = "sqlite:///wellwisher.db"

    # ── Scheduling ───────────────────────────────────────────────
    timezone: str = "Asia/Kathmandu"
    reminder_hour: int = Field(default=7, ge=0, le=23)
    reminder_minute: int = Field(default=0, ge=0, le=59)
    purge_after_days: int = Field(default=30, ge=0)
    timer_backend: Literal["thread", "apscheduler"] = "thread"
    worker_count: int = Field(default=2, ge=1)
    max_timer_sleep_seconds: float = Field(default=60.0, gt=0)
    shutdown_timeout_seconds: float = Field(default=5.0, ge=0)

    # ── Notifications ────────────────────────────────────────────
    notification_backend: Literal["smtp", "log"] = "log"
    smtp_host: str = "localhost"
    smtp_port: int = 587
    smtp_user: str | None = None
    smtp_password: str | None = None
    smtp_use_tls: bool = True
    mail_from: str = "wellwisher@localhost"

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    json_logs: bool | None = None

    @field_validator("timezone")
    @classmethod
    def _known_zone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"unknown time zone {value!r}") from exc
        return value

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level {value!r}")
        return level

    @property
    def zone(self) -> ZoneInfo:
        """The configured zone as a ``ZoneInfo``."""
        return ZoneInfo(self.timezone)


def load_settings(**overrides: Any) -> WellWisherSettings:
    """Build settings, turning validation failures into ``InvalidConfigError``."""
    try:
        return WellWisherSettings(**overrides)
    except ValidationError as exc:
        first = exc.errors()[0]
        field_name = ".".join(str(part) for part in first.get("loc", ())) or None
        raise InvalidConfigError(
            f"Invalid configuration: {first.get('msg', exc)}",
            field_name=field_name,
            cause=exc,
        ) from exc


@lru_cache(maxsize=1)
def get_settings() -> WellWisherSettings:
    """Return a cached settings instance."""
    return load_settings()
