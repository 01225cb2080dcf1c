"""Timer backend protocol - the Clock/Timer Source.

Manifesto:
    The scheduler should not care whether a timer is a heap entry on a
    daemon thread or a job in APScheduler.  It needs one primitive: "call
    me at or after this instant".  Defining that as a protocol keeps the
    registry testable with a manual backend and lets production pick the
    backend from settings.

┌──────────────────────────────────────────────────────────────────────────────┐
│  TIMER BACKEND PROTOCOL                                                       │
│                                                                               │
│   TimerBackend                                                                │
│   ├── name: str                                                               │
│   ├── start()                      begin delivering callbacks                 │
│   ├── stop()                       stop delivering, drop pending timers       │
│   ├── schedule(fire_at, callback)  → TimerHandle                              │
│   └── health() → dict                                                         │
│                                                                               │
│   TimerHandle                                                                 │
│   ├── fire_at: datetime (UTC)                                                 │
│   ├── cancelled: bool                                                         │
│   └── cancel()                     idempotent                                 │
│                                                                               │
│  Contract:                                                                    │
│  - fire_at <= now fires immediately ("catch-up")                             │
│  - callbacks run on the backend's thread and must return quickly             │
│  - a cancelled handle never invokes its callback afterwards                  │
└──────────────────────────────────────────────────────────────────────────────┘

Tags:
    wellwisher, scheduling, protocol, timers

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol, runtime_checkable

FireCallback = Callable[[], None]
"""Zero-argument callable invoked when a timer fires."""

Clock = Callable[[], datetime]
"""Returns the current time as an aware UTC datetime."""


@runtime_checkable
class TimerHandle(Protocol):
    """A pending timer returned by ``TimerBackend.schedule``."""

    @property
    def fire_at(self) -> datetime:
        ...

    @property
    def cancelled(self) -> bool:
        ...

    def cancel(self) -> None:
        """Prevent the callback from running.  Safe to call repeatedly."""
        ...


@runtime_checkable
class TimerBackend(Protocol):
    """Protocol for one-shot timer sources.

    Implementations:
        - ThreadTimerBackend: Zero-dependency heap + daemon thread (default)
        - APSchedulerTimerBackend: APScheduler 3 date jobs ([apscheduler] extra)
    """

    name: str

    def start(self) -> None:
        """Begin delivering callbacks for due timers."""
        ...

    def stop(self) -> None:
        """Stop delivering callbacks and discard pending timers."""
        ...

    def schedule(self, fire_at: datetime, callback: FireCallback) -> TimerHandle:
        """Arrange for *callback* to run at or after *fire_at*."""
        ...

    def health(self) -> dict[str, Any]:
        """Return backend health status.

        Returns:
            dict with at least:
                - healthy: bool - whether the backend is delivering timers
                - backend: str - backend name
                - pending: int - timers armed and not yet fired/cancelled
                - fired: int - callbacks delivered so far
        """
        ...


@dataclass
class BackendHealth:
    """Structured backend health response."""

    healthy: bool
    backend: str
    pending: int = 0
    fired: int = 0
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "healthy": self.healthy,
            "backend": self.backend,
            "pending": self.pending,
            "fired": self.fired,
            **self.extra,
        }
