"""Scheduler package for wellwisher.

Manifesto:
    Two kinds of deferred work hang off every event: an invitation sent on
    the same calendar day each year, and a hard delete 30 days after the
    event is archived.  Neither may block a request, neither may be
    forgotten across a restart, and neither may fire twice because an edit
    raced a timer.  This package derives timers from event data, keeps at
    most one live timer per task, and runs the work off the timer thread.

┌──────────────────────────────────────────────────────────────────────────────┐
│  WELLWISHER SCHEDULER                                                         │
│                                                                               │
│  Quick Start:                                                                 │
│  ┌──────────────────────────────────────────────────────────────────────┐   │
│  │   from wellwisher.scheduling import (                                │   │
│  │       LifecycleHooks, TaskScheduler, bootstrap,                      │   │
│  │   )                                                                  │   │
│  │                                                                      │   │
│  │   scheduler = TaskScheduler(store, sender, settings=settings)        │   │
│  │   bootstrap(scheduler, store)      # before serving requests         │   │
│  │   scheduler.start()                                                  │   │
│  │   hooks = LifecycleHooks(scheduler)                                  │   │
│  └──────────────────────────────────────────────────────────────────────┘   │
│                                                                               │
│  Architecture:                                                                │
│                                                                               │
│   resolver ──► registry ──► TimerBackend ──► worker pool ──► executors       │
│   (rules)      (one lock)   (thread | APS)   (threads)       (store, sender) │
│                                                                               │
│  Dependencies:                                                                │
│  - croniter: yearly reminder recurrence                                      │
│  - apscheduler: APScheduler backend (optional)                               │
└──────────────────────────────────────────────────────────────────────────────┘

Tags:
    wellwisher, scheduling, reminders, purge

Doc-Types:
    api-reference, package-overview
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .bootstrap import BootstrapReport, bootstrap
from .executors import ExecutionOutcome, ExecutionResult, purge_event, send_reminder
from .hooks import LifecycleHooks
from .protocol import BackendHealth, Clock, FireCallback, TimerBackend, TimerHandle
from .registry import ScheduledTask, TaskAction, TaskId, TaskKind, TaskRegistry
from .resolver import FiringRule, OneShotRule, ReminderRule, resolve_purge, resolve_reminder
from .service import SchedulerHealth, SchedulerStats, TaskScheduler
from .thread_backend import ThreadTimer, ThreadTimerBackend
from .worker import TaskWorkerPool

if TYPE_CHECKING:
    from wellwisher.core.settings import WellWisherSettings


def create_timer_backend(settings: WellWisherSettings, clock: Clock | None = None) -> TimerBackend:
    """Build the timer backend named by ``settings.timer_backend``.

    ``apscheduler`` requires the ``[apscheduler]`` extra and ignores *clock*.
    """
    if settings.timer_backend == "apscheduler":
        from .apscheduler_backend import APSchedulerTimerBackend

        return APSchedulerTimerBackend()
    if clock is None:
        return ThreadTimerBackend(max_sleep_seconds=settings.max_timer_sleep_seconds)
    return ThreadTimerBackend(clock=clock, max_sleep_seconds=settings.max_timer_sleep_seconds)


__all__ = [
    # Protocol
    "BackendHealth",
    "Clock",
    "FireCallback",
    "TimerBackend",
    "TimerHandle",
    # Backends
    "ThreadTimer",
    "ThreadTimerBackend",
    "create_timer_backend",
    # Rules
    "FiringRule",
    "OneShotRule",
    "ReminderRule",
    "resolve_purge",
    "resolve_reminder",
    # Registry
    "ScheduledTask",
    "TaskAction",
    "TaskId",
    "TaskKind",
    "TaskRegistry",
    # Execution
    "ExecutionOutcome",
    "ExecutionResult",
    "TaskWorkerPool",
    "purge_event",
    "send_reminder",
    # Service
    "BootstrapReport",
    "LifecycleHooks",
    "SchedulerHealth",
    "SchedulerStats",
    "TaskScheduler",
    "bootstrap",
]
