"""Zero-dependency threading-based timer backend.

This is the DEFAULT backend for wellwisher scheduling. It uses Python's
stdlib ``threading`` and ``heapq`` modules and has no external dependencies.

┌──────────────────────────────────────────────────────────────────────────────┐
│  THREAD BACKEND ARCHITECTURE                                                  │
│                                                                               │
│   schedule(fire_at, cb) ──► heap[(fire_at, seq, timer)] ──► notify()         │
│                                                                               │
│   Daemon Thread (loop)                                                        │
│      while not stopping:                                                      │
│          drop cancelled timers at the head                                    │
│          head due?  ── yes ──► pop, release lock, callback()                 │
│                     ── no  ──► cond.wait(min(delay, max_sleep))              │
│                                                                               │
│   stop()                                                                      │
│      stopping = True; notify(); thread.join(timeout)                         │
│                                                                               │
│  Key Design Decisions:                                                        │
│  1. One thread for all timers, not one thread per timer                      │
│  2. Lazy cancellation: cancelled entries are skipped when they surface       │
│  3. Capped wait: the clock is re-read at least every max_sleep seconds,      │
│     so a suspended host or a wall-clock jump is noticed                      │
│  4. Injectable clock: tests drive time explicitly and call wakeup()          │
└──────────────────────────────────────────────────────────────────────────────┘
"""

from __future__ import annotations

import heapq
import itertools
import logging
import threading
from datetime import datetime
from typing import Any

from wellwisher.core.timestamps import ensure_utc, utc_now

from .protocol import BackendHealth, Clock, FireCallback

logger = logging.getLogger(__name__)


class ThreadTimer:
    """Handle for a timer armed on ``ThreadTimerBackend``."""

    __slots__ = ("_backend", "_fire_at", "_callback", "_cancelled", "_claimed")

    def __init__(self, backend: ThreadTimerBackend, fire_at: datetime, callback: FireCallback):
        self._backend = backend
        self._fire_at = fire_at
        self._callback = callback
        self._cancelled = False
        self._claimed = False

    @property
    def fire_at(self) -> datetime:
        return self._fire_at

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def fired(self) -> bool:
        return self._claimed

    def cancel(self) -> None:
        self._backend._cancel(self)

    def __repr__(self) -> str:
        state = "cancelled" if self._cancelled else "fired" if self._claimed else "pending"
        return f"ThreadTimer(fire_at={self._fire_at.isoformat()}, {state})"


class ThreadTimerBackend:
    """Zero-dependency threading-based timer backend.

    Example:
        >>> backend = ThreadTimerBackend()
        >>> backend.start()
        >>> handle = backend.schedule(utc_now(), lambda: print("fired"))
        >>> # ... later ...
        >>> backend.stop()
    """

    name = "thread"

    def __init__(self, clock: Clock = utc_now, max_sleep_seconds: float = 60.0) -> None:
        """Initialize thread backend.

        Args:
            clock: Source of the current UTC time.
            max_sleep_seconds: Upper bound on a single wait before the
                clock is re-read.
        """
        self._clock = clock
        self._max_sleep = max_sleep_seconds
        self._cond = threading.Condition()
        self._heap: list[tuple[datetime, int, ThreadTimer]] = []
        self._seq = itertools.count()
        self._thread: threading.Thread | None = None
        self._stopping = False
        self._started = False
        self._fired = 0

    # === Lifecycle ===

    def start(self) -> None:
        """Start delivering timers on a daemon thread."""
        with self._cond:
            if self._started:
                logger.warning("ThreadTimerBackend already started")
                return
            self._stopping = False
            self._thread = threading.Thread(target=self._loop, daemon=True, name="wellwisher-timers")
            self._started = True
        self._thread.start()
        logger.info("ThreadTimerBackend started (max_sleep=%.1fs)", self._max_sleep)

    def stop(self, timeout: float = 5.0) -> None:
        """Stop the timer thread and discard pending timers.

        A callback already running completes on its own.
        """
        with self._cond:
            if not self._started:
                return
            self._stopping = True
            for _, _, timer in self._heap:
                timer._cancelled = True
            self._heap.clear()
            self._cond.notify_all()
            thread = self._thread

        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=timeout)
            if thread.is_alive():
                logger.warning("Timer thread did not stop cleanly")

        with self._cond:
            self._started = False
            self._thread = None
        logger.info("ThreadTimerBackend shutdown complete")

    @property
    def is_running(self) -> bool:
        return self._started and self._thread is not None and self._thread.is_alive()

    # === Timers ===

    def schedule(self, fire_at: datetime, callback: FireCallback) -> ThreadTimer:
        """Arm a one-shot timer.  Past instants fire as soon as possible."""
        timer = ThreadTimer(self, ensure_utc(fire_at), callback)
        with self._cond:
            heapq.heappush(self._heap, (timer.fire_at, next(self._seq), timer))
            self._cond.notify_all()
        return timer

    def wakeup(self) -> None:
        """Make the timer thread re-read the clock now."""
        with self._cond:
            self._cond.notify_all()

    def _cancel(self, timer: ThreadTimer) -> None:
        with self._cond:
            if timer._claimed or timer._cancelled:
                return
            timer._cancelled = True
            self._cond.notify_all()

    def _next_due(self) -> ThreadTimer | None:
        """Block until a timer is due or the backend is stopping."""
        with self._cond:
            while not self._stopping:
                while self._heap and self._heap[0][2].cancelled:
                    heapq.heappop(self._heap)

                if not self._heap:
                    self._cond.wait(self._max_sleep)
                    continue

                fire_at, _, timer = self._heap[0]
                delay = (fire_at - self._clock()).total_seconds()
                if delay <= 0:
                    heapq.heappop(self._heap)
                    timer._claimed = True
                    self._fired += 1
                    return timer

                self._cond.wait(min(delay, self._max_sleep))
            return None

    def _loop(self) -> None:
        while True:
            timer = self._next_due()
            if timer is None:
                break
            try:
                timer._callback()
            except Exception as e:
                logger.exception(f"Timer callback failed: {e}")
        logger.info("ThreadTimerBackend stopped")

    # === Health ===

    def pending_count(self) -> int:
        with self._cond:
            return sum(1 for _, _, t in self._heap if not t.cancelled)

    def health(self) -> dict[str, Any]:
        return self.get_health().to_dict()

    def get_health(self) -> BackendHealth:
        """Return structured health status."""
        pending = self.pending_count()
        return BackendHealth(
            healthy=self.is_running,
            backend=self.name,
            pending=pending,
            fired=self._fired,
            extra={"max_sleep_seconds": self._max_sleep},
        )
