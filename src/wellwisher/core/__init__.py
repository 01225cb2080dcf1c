"""WellWisher Core -- the pieces every other layer builds on.

Architecture::

    errors.py        Structured error hierarchy (WellWisherError and friends)
    logging.py       structlog configuration and helpers
    settings.py      pydantic-settings configuration (WELLWISHER_*)
    timestamps.py    ULID generation + UTC helpers
    models.py        Event dataclass
    store.py         EventStore protocol + SqlEventStore
    orm/             SQLAlchemy 2.0 tables and session factory
"""

from wellwisher.core.errors import (
    ConfigError,
    ErrorCategory,
    ErrorContext,
    EventNotFoundError,
    ExecutionError,
    InvalidConfigError,
    NotificationError,
    RegistrationError,
    ResolutionError,
    StorageUnavailableError,
    WellWisherError,
    is_retryable,
)
from wellwisher.core.models import Event
from wellwisher.core.settings import WellWisherSettings, get_settings, load_settings
from wellwisher.core.store import EventStore, SqlEventStore

__all__ = [
    "ConfigError",
    "ErrorCategory",
    "ErrorContext",
    "Event",
    "EventNotFoundError",
    "EventStore",
    "ExecutionError",
    "InvalidConfigError",
    "NotificationError",
    "RegistrationError",
    "ResolutionError",
    "SqlEventStore",
    "StorageUnavailableError",
    "WellWisherError",
    "WellWisherSettings",
    "get_settings",
    "is_retryable",
    "load_settings",
]
