"""
Deterministic time for scheduler tests.

``ManualTimerBackend`` never fires on its own.  Tests move the shared
``FakeClock`` forward and call ``fire_due()``; every live timer whose
instant has been reached runs on the calling thread, in instant order.

Usage::

    clock = FakeClock(datetime(2024, 1, 1, tzinfo=UTC))
    backend = ManualTimerBackend(clock)
    backend.schedule(clock() + timedelta(days=1), callback)
    clock.advance(days=1)
    backend.fire_due()
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

from wellwisher.core.timestamps import ensure_utc


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        self._now = ensure_utc(start or datetime(2024, 1, 1, tzinfo=UTC))
        self._lock = threading.Lock()

    def __call__(self) -> datetime:
        with self._lock:
            return self._now

    def set(self, when: datetime) -> None:
        with self._lock:
            self._now = ensure_utc(when)

    def advance(self, **delta: float) -> datetime:
        with self._lock:
            self._now += timedelta(**delta)
            return self._now


class ManualTimer:
    def __init__(self, backend: ManualTimerBackend, fire_at: datetime, callback: Callable[[], None]):
        self._backend = backend
        self.fire_at = fire_at
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualTimerBackend:
    """TimerBackend that fires only from ``fire_due()``."""

    name = "manual"

    def __init__(self, clock: FakeClock) -> None:
        self.clock = clock
        self.timers: list[ManualTimer] = []
        self.started = False
        self.fired = 0
        self._lock = threading.Lock()

    def start(self) -> None:
        self.started = True

    def stop(self) -> None:
        self.started = False
        with self._lock:
            for timer in self.timers:
                timer.cancelled = True

    def schedule(self, fire_at: datetime, callback: Callable[[], None]) -> ManualTimer:
        timer = ManualTimer(self, ensure_utc(fire_at), callback)
        with self._lock:
            self.timers.append(timer)
        return timer

    def live(self) -> list[ManualTimer]:
        with self._lock:
            return [t for t in self.timers if not t.cancelled and not t.fired]

    def fire_due(self) -> int:
        """Run every live timer due at the clock's current time.

        Timers armed by a callback are considered too, so a recurring task
        whose next instant is also due fires again.
        """
        count = 0
        while True:
            now = self.clock()
            due = sorted((t for t in self.live() if t.fire_at <= now), key=lambda t: t.fire_at)
            if not due:
                return count
            timer = due[0]
            timer.fired = True
            self.fired += 1
            count += 1
            timer.callback()

    def health(self) -> dict[str, Any]:
        return {
            "healthy": self.started,
            "backend": self.name,
            "pending": len(self.live()),
            "fired": self.fired,
        }


def fire_and_settle(scheduler: Any, backend: ManualTimerBackend) -> int:
    """Fire every due timer, then wait for the scheduler's worker jobs."""
    fired = backend.fire_due()
    assert scheduler.pool.drain(timeout=5)
    return fired
