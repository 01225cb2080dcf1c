"""Scheduler bootstrapper - rebuild the registry from storage at startup.

Timers live in memory only, so a restart forgets every pending reminder and
purge.  The durable record is the event table itself: reminders are derived
from every stored event, purges from every archived event still present.
Purges whose instant passed while the process was down fire as soon as the
scheduler starts.

Bootstrap must complete before the process serves requests, otherwise a
lifecycle hook could register a task that bootstrap then registers again.
Registration replaces, so the result would still be one timer, but the
ordering keeps the log readable.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from wellwisher.core.errors import WellWisherError
from wellwisher.core.logging import get_logger
from wellwisher.core.models import Event
from wellwisher.core.store import EventStore

if TYPE_CHECKING:
    from .service import TaskScheduler

logger = get_logger(__name__)


@dataclass
class BootstrapReport:
    """What a bootstrap pass registered and what it could not."""

    reminders: int = 0
    purges: int = 0
    failures: list[dict[str, Any]] = field(default_factory=list)
    storage_errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures and not self.storage_errors

    def to_dict(self) -> dict[str, Any]:
        return {
            "reminders": self.reminders,
            "purges": self.purges,
            "failures": list(self.failures),
            "storage_errors": list(self.storage_errors),
            "ok": self.ok,
        }


def _load(operation: str, loader: Callable[[], list[Event]], report: BootstrapReport) -> list[Event]:
    try:
        return loader()
    except Exception as exc:
        logger.error("bootstrap_load_failed", operation=operation, error=str(exc))
        report.storage_errors.append(f"{operation}: {exc}")
        return []


def _register_each(
    kind: str,
    events: Iterable[Event],
    register: Callable[[Event], Any],
    report: BootstrapReport,
) -> int:
    registered = 0
    for event in events:
        try:
            register(event)
            registered += 1
        except WellWisherError as exc:
            logger.warning("bootstrap_task_skipped", task=kind, event_id=event.id, error=exc.message)
            report.failures.append({"task": kind, "event_id": event.id, "error": exc.message})
        except Exception as exc:
            logger.exception("bootstrap_task_failed", task=kind, event_id=event.id, error=str(exc))
            report.failures.append({"task": kind, "event_id": event.id, "error": str(exc)})
    return registered


def bootstrap(scheduler: TaskScheduler, store: EventStore) -> BootstrapReport:
    """Register a reminder for every stored event and a purge for every archived one.

    Never raises.  One malformed event does not stop the others, and a store
    that cannot be listed is reported rather than propagated.
    """
    report = BootstrapReport()

    events = _load("list_all_events", store.list_all_events, report)
    report.reminders = _register_each("reminder", events, scheduler.schedule_reminder, report)

    archived = _load("list_archived_unpurged_events", store.list_archived_unpurged_events, report)
    report.purges = _register_each("purge", archived, scheduler.schedule_purge, report)

    logger.info(
        "bootstrap_complete",
        reminders=report.reminders,
        purges=report.purges,
        failures=len(report.failures),
        storage_errors=len(report.storage_errors),
    )
    return report
