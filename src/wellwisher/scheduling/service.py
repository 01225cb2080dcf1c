"""Task scheduler service - registry, timer backend and worker pool wired together.

Manifesto:
    Each piece of the scheduler is small and testable on its own.  The
    service is where they meet: it resolves events into firing rules,
    registers them, routes firings to executors on the worker pool, and
    keeps the registry honest after a purge removes an event for good.
    It is an ordinary object built at startup and passed to whoever needs
    it; there is no module-level scheduler.

┌──────────────────────────────────────────────────────────────────────────────┐
│  TASK SCHEDULER                                                               │
│                                                                               │
│   schedule_reminder(event) ─► resolve_reminder ─► registry.register          │
│   schedule_purge(event)    ─► resolve_purge    ─► registry.register          │
│                                                                               │
│   TimerBackend ── fires ──► registry._fire ──► _dispatch(task_id, due_at)    │
│                                                    │                          │
│                                                    ▼                          │
│                                    TaskWorkerPool.submit(executor job)        │
│                                                    │                          │
│                                                    ▼                          │
│                         send_reminder / purge_event ──► _record(result)      │
│                              PURGED or SKIPPED_MISSING                        │
│                                  └──► registry.cancel_event(event_id)        │
└──────────────────────────────────────────────────────────────────────────────┘

Tags:
    wellwisher, scheduling, service, orchestration

Doc-Types:
    api-reference, architecture-diagram
"""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from wellwisher.core.errors import RegistrationError
from wellwisher.core.logging import get_logger
from wellwisher.core.models import Event
from wellwisher.core.settings import WellWisherSettings
from wellwisher.core.store import EventStore
from wellwisher.core.timestamps import utc_now
from wellwisher.notifications.protocol import InvitationSender

from .executors import ExecutionOutcome, ExecutionResult, purge_event, send_reminder
from .protocol import Clock, TimerBackend
from .registry import ScheduledTask, TaskId, TaskKind, TaskRegistry
from .resolver import OneShotRule, resolve_purge, resolve_reminder
from .thread_backend import ThreadTimerBackend
from .worker import TaskWorkerPool

logger = get_logger(__name__)


@dataclass
class SchedulerStats:
    """Counters since start (or the last ``reset_stats``)."""

    registered: int = 0
    fired: int = 0
    sent: int = 0
    purged: int = 0
    skipped: int = 0
    failed: int = 0
    last_fired_at: datetime | None = None
    last_error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "registered": self.registered,
            "fired": self.fired,
            "sent": self.sent,
            "purged": self.purged,
            "skipped": self.skipped,
            "failed": self.failed,
            "last_fired_at": self.last_fired_at.isoformat() if self.last_fired_at else None,
            "last_error": self.last_error,
        }


@dataclass
class SchedulerHealth:
    """Health status for the task scheduler."""

    healthy: bool
    backend: dict[str, Any]
    pending_reminders: int = 0
    pending_purges: int = 0
    in_flight: int = 0
    stats: SchedulerStats = field(default_factory=SchedulerStats)

    def to_dict(self) -> dict[str, Any]:
        return {
            "healthy": self.healthy,
            "backend": self.backend,
            "pending_reminders": self.pending_reminders,
            "pending_purges": self.pending_purges,
            "in_flight": self.in_flight,
            "stats": self.stats.to_dict(),
        }


class TaskScheduler:
    """Deferred reminder and purge scheduler.

    Example:
        >>> scheduler = TaskScheduler(store, sender, settings=settings)
        >>> bootstrap(scheduler, store)
        >>> scheduler.start()
        >>> scheduler.schedule_purge(event.archive())
        >>> scheduler.stop()
    """

    def __init__(
        self,
        store: EventStore,
        sender: InvitationSender,
        *,
        backend: TimerBackend | None = None,
        settings: WellWisherSettings | None = None,
        clock: Clock = utc_now,
        pool: TaskWorkerPool | None = None,
        history_size: int = 100,
    ) -> None:
        """Initialize the scheduler.

        Args:
            store: Event storage collaborator
            sender: Invitation delivery collaborator
            backend: Timer source (default: ``ThreadTimerBackend``)
            settings: Zone, reminder time and retention (default: env settings)
            clock: Source of the current UTC time
            pool: Worker pool for executor jobs (default: ``settings.worker_count`` threads)
            history_size: How many recent results ``last_results`` keeps
        """
        if settings is None:
            from wellwisher.core.settings import get_settings

            settings = get_settings()
        self.store = store
        self.sender = sender
        self.settings = settings
        self.backend = backend or ThreadTimerBackend(
            clock=clock, max_sleep_seconds=settings.max_timer_sleep_seconds
        )
        self.pool = pool or TaskWorkerPool(max_workers=settings.worker_count)
        self.registry = TaskRegistry(self.backend, clock=clock)
        self.last_results: deque[ExecutionResult] = deque(maxlen=history_size)

        self._stats = SchedulerStats()
        self._stats_lock = threading.Lock()
        self._running = False

    # === Lifecycle ===

    def start(self) -> None:
        """Start delivering timers.  Tasks registered earlier fire from now on."""
        if self._running:
            logger.warning("scheduler_already_running")
            return
        if self.pool.closed:
            self.pool = TaskWorkerPool(max_workers=self.settings.worker_count)
        self.backend.start()
        self._running = True
        logger.info(
            "scheduler_started",
            backend=self.backend.name,
            reminders=len(self.registry.task_ids(TaskKind.REMINDER)),
            purges=len(self.registry.task_ids(TaskKind.PURGE)),
        )

    def stop(self, timeout: float | None = None) -> None:
        """Stop timers, then wait up to *timeout* seconds for in-flight jobs.

        Pending tasks are dropped; a restarted scheduler is re-populated by
        ``bootstrap``.
        """
        if not self._running:
            return
        if timeout is None:
            timeout = self.settings.shutdown_timeout_seconds
        self.backend.stop()
        self.registry.clear()
        if not self.pool.drain(timeout=timeout):
            logger.warning("scheduler_stop_incomplete", in_flight=self.pool.in_flight)
        self.pool.shutdown(wait=False)
        self._running = False
        logger.info("scheduler_stopped")

    @property
    def is_running(self) -> bool:
        return self._running

    # === Registration ===

    def schedule_reminder(self, event: Event) -> ScheduledTask:
        """Register (or replace) the annual invitation for *event*.

        Raises:
            ResolutionError: if the message date cannot be resolved.
            RegistrationError: if the timer cannot be armed.
        """
        rule = resolve_reminder(
            event.message_date,
            self.settings.timezone,
            hour=self.settings.reminder_hour,
            minute=self.settings.reminder_minute,
        )
        entry = self.registry.register(TaskId.reminder(event.id), rule, self._dispatch)
        self._bump(registered=1)
        logger.info("reminder_scheduled", event_id=event.id, fire_at=entry.fire_at.isoformat(), rule=rule.describe())
        return entry

    def reschedule_reminder(self, event: Event) -> ScheduledTask:
        """Replace the reminder after the message date changed."""
        rule = resolve_reminder(
            event.message_date,
            self.settings.timezone,
            hour=self.settings.reminder_hour,
            minute=self.settings.reminder_minute,
        )
        entry = self.registry.replace(TaskId.reminder(event.id), rule, self._dispatch)
        self._bump(registered=1)
        return entry

    def schedule_purge(self, event: Event) -> ScheduledTask:
        """Register the purge for an archived *event*.

        Raises:
            RegistrationError: if the event is not archived.
            ResolutionError: if ``archived_at`` is unusable.
        """
        if not event.is_archived:
            raise RegistrationError(f"Event {event.id} is not archived").with_context(
                event_id=event.id, task="purge"
            )
        fire_at = resolve_purge(event.archived_at, self.settings.purge_after_days)
        entry = self.registry.register(TaskId.purge(event.id), OneShotRule(fire_at), self._dispatch)
        self._bump(registered=1)
        logger.info("purge_scheduled", event_id=event.id, fire_at=fire_at.isoformat())
        return entry

    def cancel_reminder(self, event_id: str) -> bool:
        return self.registry.cancel(TaskId.reminder(event_id))

    def cancel_purge(self, event_id: str) -> bool:
        return self.registry.cancel(TaskId.purge(event_id))

    def cancel_all(self, event_id: str) -> list[TaskId]:
        """Cancel reminder and purge for *event_id*."""
        return self.registry.cancel_event(event_id)

    def pending(self, kind: TaskKind | None = None) -> list[ScheduledTask]:
        """Live tasks ordered by next firing instant."""
        return [t for t in self.registry.snapshot() if kind is None or t.task_id.kind == kind]

    # === Firing ===

    def _dispatch(self, task_id: TaskId, due_at: datetime) -> None:
        """Timer-thread callback: hand the work to the pool and return."""
        self._bump(fired=1, last_fired_at=due_at)
        if task_id.kind is TaskKind.REMINDER:
            job = lambda: send_reminder(self.store, self.sender, task_id.event_id)  # noqa: E731
        else:
            job = lambda: purge_event(self.store, task_id.event_id)  # noqa: E731
        self.pool.submit(str(task_id), job, on_done=self._record)

    def _record(self, result: ExecutionResult) -> None:
        self.last_results.append(result)
        outcome = result.outcome
        if outcome is ExecutionOutcome.SENT:
            self._bump(sent=1)
        elif outcome is ExecutionOutcome.PURGED:
            self._bump(purged=1)
        elif outcome is ExecutionOutcome.FAILED:
            self._bump(failed=1, last_error=result.error)
        else:
            self._bump(skipped=1)

        if outcome in (ExecutionOutcome.PURGED, ExecutionOutcome.SKIPPED_MISSING):
            cancelled = self.registry.cancel_event(result.event_id)
            if cancelled:
                logger.info("orphan_tasks_cancelled", event_id=result.event_id, tasks=[str(t) for t in cancelled])

    def _bump(self, **changes: Any) -> None:
        with self._stats_lock:
            for name, value in changes.items():
                if isinstance(value, int) and not isinstance(value, bool):
                    setattr(self._stats, name, getattr(self._stats, name) + value)
                else:
                    setattr(self._stats, name, value)

    # === Health & Stats ===

    def health(self) -> SchedulerHealth:
        backend_health = self.backend.health()
        return SchedulerHealth(
            healthy=self._running and bool(backend_health.get("healthy", False)),
            backend=backend_health,
            pending_reminders=len(self.registry.task_ids(TaskKind.REMINDER)),
            pending_purges=len(self.registry.task_ids(TaskKind.PURGE)),
            in_flight=self.pool.in_flight,
            stats=self.get_stats(),
        )

    def get_stats(self) -> SchedulerStats:
        with self._stats_lock:
            return SchedulerStats(**vars(self._stats))

    def reset_stats(self) -> None:
        with self._stats_lock:
            self._stats = SchedulerStats()
