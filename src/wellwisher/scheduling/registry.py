"""Scheduled task registry.

Manifesto:
    Two timers for the same task would send an invitation twice or try to
    purge a record twice.  The registry owns the only mapping from task
    identity to live timer handle and guards it with a single lock, so the
    invariant "at most one live handle per task id" holds no matter whether
    the caller is the bootstrapper, a request thread running a lifecycle
    hook, or a timer firing.

┌──────────────────────────────────────────────────────────────────────────────┐
│  TASK REGISTRY                                                                │
│                                                                               │
│   register(task_id, rule, action)          ┌──────── one RLock ────────┐     │
│      ├── cancel live handle for task_id    │                            │     │
│      ├── fire_at = rule.first_fire(now)    │   _tasks: TaskId →         │     │
│      └── backend.schedule(fire_at, cb)     │           ScheduledTask    │     │
│                                            │                            │     │
│   cancel(task_id)      unknown id → False  │                            │     │
│   replace(...)         = register, logged  └────────────────────────────┘     │
│                                                                               │
│   timer fires ──► _fire(task_id, token)                                      │
│      with lock:                                                               │
│          stale token?   → drop (task was replaced or cancelled)              │
│          recurring?     → re-arm next occurrence under the same lock         │
│          one-shot?      → remove entry                                       │
│      action(task_id, fired_at)            ◄── outside the lock               │
└──────────────────────────────────────────────────────────────────────────────┘

Tags:
    wellwisher, scheduling, registry, concurrency, timers

Doc-Types:
    api-reference, architecture-diagram
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from itertools import count
from typing import Any

from wellwisher.core.errors import RegistrationError, WellWisherError
from wellwisher.core.logging import get_logger
from wellwisher.core.timestamps import utc_now

from .protocol import Clock, TimerBackend, TimerHandle
from .resolver import FiringRule

logger = get_logger(__name__)


class TaskKind(str, Enum):
    """The two kinds of deferred work."""

    REMINDER = "reminder"
    PURGE = "purge"


@dataclass(frozen=True, order=True)
class TaskId:
    """Task identity: one task of each kind per event."""

    kind: TaskKind
    event_id: str

    @classmethod
    def reminder(cls, event_id: str) -> TaskId:
        return cls(TaskKind.REMINDER, event_id)

    @classmethod
    def purge(cls, event_id: str) -> TaskId:
        return cls(TaskKind.PURGE, event_id)

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.event_id}"


TaskAction = Callable[[TaskId, datetime], None]
"""Called with the task id and the instant it was due, outside the registry lock."""


@dataclass
class ScheduledTask:
    """A live registry entry."""

    task_id: TaskId
    rule: FiringRule
    fire_at: datetime
    handle: TimerHandle
    token: int
    registered_at: datetime
    fire_count: int = 0
    action: TaskAction | None = field(default=None, repr=False)

    def to_dict(self) -> dict[str, Any]:
        describe = getattr(self.rule, "describe", None)
        return {
            "task": str(self.task_id),
            "kind": self.task_id.kind.value,
            "event_id": self.task_id.event_id,
            "fire_at": self.fire_at.isoformat(),
            "rule": describe() if describe else repr(self.rule),
            "registered_at": self.registered_at.isoformat(),
            "fire_count": self.fire_count,
        }


class TaskRegistry:
    """Process-wide mapping from task id to its pending timer.

    Example:
        >>> registry = TaskRegistry(ThreadTimerBackend())
        >>> registry.register(TaskId.purge("evt-1"), OneShotRule(deadline), action)
        >>> registry.cancel(TaskId.purge("evt-1"))
        True
        >>> registry.cancel(TaskId.purge("evt-1"))
        False
    """

    def __init__(self, backend: TimerBackend, clock: Clock = utc_now) -> None:
        self.backend = backend
        self._clock = clock
        self._lock = threading.RLock()
        self._tasks: dict[TaskId, ScheduledTask] = {}
        self._tokens = count(1)

    # === Mutations ===

    def register(self, task_id: TaskId, rule: FiringRule, action: TaskAction) -> ScheduledTask:
        """Arm *task_id*, cancelling any live timer it already has.

        Raises:
            RegistrationError: if the rule cannot produce an instant or the
                backend refuses the timer.  The previous timer (if any) is
                cancelled either way.
        """
        with self._lock:
            self._drop(task_id)
            now = self._clock()
            fire_at = self._first_fire(task_id, rule, now)
            entry = self._arm(task_id, rule, action, fire_at, registered_at=now)
            self._tasks[task_id] = entry
        logger.debug("task_registered", task=str(task_id), fire_at=fire_at.isoformat())
        return entry

    def replace(self, task_id: TaskId, rule: FiringRule, action: TaskAction) -> ScheduledTask:
        """Cancel-then-register as one critical section."""
        with self._lock:
            previous = self._tasks.get(task_id)
            entry = self.register(task_id, rule, action)
        logger.info(
            "task_replaced",
            task=str(task_id),
            previous_fire_at=previous.fire_at.isoformat() if previous else None,
            fire_at=entry.fire_at.isoformat(),
        )
        return entry

    def cancel(self, task_id: TaskId) -> bool:
        """Cancel *task_id*.  Returns ``False`` (no error) if nothing was live."""
        with self._lock:
            cancelled = self._drop(task_id)
        if cancelled:
            logger.debug("task_cancelled", task=str(task_id))
        return cancelled

    def cancel_event(self, event_id: str) -> list[TaskId]:
        """Cancel every task kind for *event_id*; returns the ids that were live."""
        cancelled = []
        with self._lock:
            for kind in TaskKind:
                task_id = TaskId(kind, event_id)
                if self._drop(task_id):
                    cancelled.append(task_id)
        return cancelled

    def clear(self) -> int:
        """Cancel all tasks.  Returns how many were live."""
        with self._lock:
            entries = list(self._tasks.values())
            self._tasks.clear()
            for entry in entries:
                entry.handle.cancel()
        return len(entries)

    # === Queries ===

    def get(self, task_id: TaskId) -> ScheduledTask | None:
        with self._lock:
            return self._tasks.get(task_id)

    def __contains__(self, task_id: object) -> bool:
        with self._lock:
            return task_id in self._tasks

    def __len__(self) -> int:
        with self._lock:
            return len(self._tasks)

    def task_ids(self, kind: TaskKind | None = None) -> list[TaskId]:
        with self._lock:
            return sorted(t for t in self._tasks if kind is None or t.kind == kind)

    def snapshot(self) -> list[ScheduledTask]:
        """Live entries ordered by next firing instant."""
        with self._lock:
            return sorted(self._tasks.values(), key=lambda e: (e.fire_at, e.task_id))

    # === Internals ===

    def _drop(self, task_id: TaskId) -> bool:
        entry = self._tasks.pop(task_id, None)
        if entry is None:
            return False
        entry.handle.cancel()
        return True

    def _first_fire(self, task_id: TaskId, rule: FiringRule, now: datetime) -> datetime:
        try:
            return rule.first_fire(now)
        except WellWisherError as exc:
            raise exc.with_context(task=str(task_id), event_id=task_id.event_id)
        except Exception as exc:
            raise RegistrationError(
                f"Rule for {task_id} produced no firing instant", cause=exc
            ).with_context(task=str(task_id), event_id=task_id.event_id) from exc

    def _arm(
        self,
        task_id: TaskId,
        rule: FiringRule,
        action: TaskAction,
        fire_at: datetime,
        *,
        registered_at: datetime,
        fire_count: int = 0,
    ) -> ScheduledTask:
        token = next(self._tokens)
        try:
            handle = self.backend.schedule(fire_at, lambda: self._fire(task_id, token))
        except Exception as exc:
            raise RegistrationError(
                f"Timer backend rejected {task_id} at {fire_at.isoformat()}", cause=exc
            ).with_context(task=str(task_id), event_id=task_id.event_id) from exc
        return ScheduledTask(
            task_id=task_id,
            rule=rule,
            fire_at=fire_at,
            handle=handle,
            token=token,
            registered_at=registered_at,
            fire_count=fire_count,
            action=action,
        )

    def _fire(self, task_id: TaskId, token: int) -> None:
        with self._lock:
            entry = self._tasks.get(task_id)
            if entry is None or entry.token != token:
                logger.debug("stale_timer_ignored", task=str(task_id))
                return

            fired_at = entry.fire_at
            action = entry.action
            del self._tasks[task_id]
            try:
                next_at = entry.rule.next_fire(fired_at)
            except Exception:
                logger.exception("next_fire_failed", task=str(task_id))
                next_at = None
            if next_at is not None:
                try:
                    self._tasks[task_id] = self._arm(
                        task_id,
                        entry.rule,
                        action,
                        next_at,
                        registered_at=entry.registered_at,
                        fire_count=entry.fire_count + 1,
                    )
                except RegistrationError:
                    logger.exception("rearm_failed", task=str(task_id))

        logger.info("task_fired", task=str(task_id), due_at=fired_at.isoformat())
        if action is not None:
            action(task_id, fired_at)
