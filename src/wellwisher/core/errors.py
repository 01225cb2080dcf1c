"""
Structured error types for wellwisher.

Every failure the scheduler can observe falls into one of three buckets:
the firing rule could not be derived, the timer could not be armed, or the
side effect failed when the task fired. None of them may escape into the
request that triggered the scheduling; the typed hierarchy below lets the
hook, bootstrap and executor boundaries catch exactly what they expect and
log it with context.

Manifesto:
    - **Typed Error Hierarchy:** One subclass per failure domain
    - **Explicit Retry Semantics:** Each error knows if it's retryable
    - **Rich Context:** Errors carry the event and task they concern
    - **Error Chaining:** The original exception is kept as ``cause``

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                      WellWisherError                             │
        │             (category, retryable, context, cause)                │
        ├─────────────────────────────────────────────────────────────────┤
        │  ResolutionError      RegistrationError     ExecutionError      │
        │  (RESOLUTION)         (REGISTRATION)        (EXECUTION)         │
        │                                                  │               │
        │  StorageUnavailableError   NotificationError ────┘               │
        │  (STORAGE, retryable)      (NOTIFICATION, retryable)            │
        │                                                                  │
        │  ConfigError ── InvalidConfigError      EventNotFoundError      │
        └─────────────────────────────────────────────────────────────────┘

Tags:
    error-handling, exception-hierarchy, scheduling, wellwisher

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and routing."""

    RESOLUTION = "RESOLUTION"        # Malformed or missing date fields
    REGISTRATION = "REGISTRATION"    # Timer source rejected a rule
    EXECUTION = "EXECUTION"          # Side effect failed when a task fired
    STORAGE = "STORAGE"              # Event store unavailable
    NOTIFICATION = "NOTIFICATION"    # Invitation delivery failed
    CONFIG = "CONFIG"                # Missing/invalid settings
    NOT_FOUND = "NOT_FOUND"          # Requested record does not exist
    INTERNAL = "INTERNAL"            # Bugs, unexpected state


@dataclass
class ErrorContext:
    """Structured metadata attached to an error for logging.

    Attributes:
        event_id: Event the failure concerns
        task: Task identity string (e.g. ``"purge:01J..."``)
        operation: Scheduler operation in progress (``register``, ``bootstrap``...)
        metadata: Additional key-value pairs
    """

    event_id: str | None = None
    task: str | None = None
    operation: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["event_id", "task", "operation"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class WellWisherError(Exception):
    """
    Base exception for all wellwisher errors.

    Subclasses set ``default_category`` and ``default_retryable`` so call
    sites only pass what differs from the domain default.

    Examples:
        >>> err = ResolutionError("message_date is missing")
        >>> err.category
        <ErrorCategory.RESOLUTION: 'RESOLUTION'>
        >>> err.with_context(event_id="evt-1").context.event_id
        'evt-1'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = self.default_retryable if retryable is None else retryable
        self.context = context or ErrorContext()
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> WellWisherError:
        """Attach context fields and return self for chaining."""
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Serialize for structured logs and API payloads."""
        result: dict[str, Any] = {
            "error_type": type(self).__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        ctx = self.context.to_dict()
        if ctx:
            result["context"] = ctx
        if self.cause is not None:
            result["cause"] = f"{type(self.cause).__name__}: {self.cause}"
        return result

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, category={self.category.value})"


class ResolutionError(WellWisherError):
    """A firing rule could not be derived from an event's dates."""

    default_category = ErrorCategory.RESOLUTION


class RegistrationError(WellWisherError):
    """The timer source refused to arm a task."""

    default_category = ErrorCategory.REGISTRATION


class ExecutionError(WellWisherError):
    """A task's side effect failed when it fired."""

    default_category = ErrorCategory.EXECUTION


class StorageUnavailableError(ExecutionError):
    """The event store could not be reached or failed mid-operation."""

    default_category = ErrorCategory.STORAGE
    default_retryable = True


class NotificationError(ExecutionError):
    """The notification sender could not deliver an invitation."""

    default_category = ErrorCategory.NOTIFICATION
    default_retryable = True


class ConfigError(WellWisherError):
    """Configuration is missing or unusable."""

    default_category = ErrorCategory.CONFIG


class InvalidConfigError(ConfigError):
    """A configuration value failed validation."""

    def __init__(self, message: str, *, field_name: str | None = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.field_name = field_name
        if field_name:
            self.context.metadata["field"] = field_name


class EventNotFoundError(WellWisherError):
    """The CRUD layer was asked to change an event that does not exist."""

    default_category = ErrorCategory.NOT_FOUND

    def __init__(self, event_id: str, **kwargs: Any) -> None:
        super().__init__(f"Event not found: {event_id}", **kwargs)
        self.context.event_id = event_id


def is_retryable(error: BaseException) -> bool:
    """Check whether an error is worth retrying by a caller that retries."""
    if isinstance(error, WellWisherError):
        return error.retryable
    return False


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "WellWisherError",
    "ResolutionError",
    "RegistrationError",
    "ExecutionError",
    "StorageUnavailableError",
    "NotificationError",
    "ConfigError",
    "InvalidConfigError",
    "EventNotFoundError",
    "is_retryable",
]
