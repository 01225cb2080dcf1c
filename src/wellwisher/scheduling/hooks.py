"""Lifecycle hooks - the CRUD layer's only entry point into the scheduler.

Call each hook after the corresponding storage write has committed, so a
task is never armed for data that did not persist.  Hooks never raise: a
scheduling failure must not turn a successful write into a failed request.
The return value tells the caller whether scheduling succeeded.

    on_event_created(event)               → register reminder
    on_event_message_date_changed(event)  → replace reminder
    on_event_archived(event)              → register purge
    on_event_unarchived(event)            → cancel purge
    on_event_hard_deleted(event_id)       → cancel reminder and purge
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from wellwisher.core.errors import WellWisherError
from wellwisher.core.logging import get_logger
from wellwisher.core.models import Event

if TYPE_CHECKING:
    from .service import TaskScheduler

logger = get_logger(__name__)


class LifecycleHooks:
    """Scheduler callbacks for event create/update/archive/delete."""

    def __init__(self, scheduler: TaskScheduler) -> None:
        self.scheduler = scheduler

    def _guard(self, hook: str, event_id: str, action: Callable[[], Any]) -> bool:
        try:
            action()
            return True
        except WellWisherError as exc:
            logger.warning("hook_failed", hook=hook, event_id=event_id, error=exc.message, category=exc.category.value)
        except Exception as exc:
            logger.exception("hook_failed", hook=hook, event_id=event_id, error=str(exc))
        return False

    def on_event_created(self, event: Event) -> bool:
        ok = self._guard("created", event.id, lambda: self.scheduler.schedule_reminder(event))
        if ok and event.is_archived:
            ok = self._guard("created", event.id, lambda: self.scheduler.schedule_purge(event))
        return ok

    def on_event_message_date_changed(self, event: Event) -> bool:
        return self._guard(
            "message_date_changed", event.id, lambda: self.scheduler.reschedule_reminder(event)
        )

    def on_event_archived(self, event: Event) -> bool:
        return self._guard("archived", event.id, lambda: self.scheduler.schedule_purge(event))

    def on_event_unarchived(self, event: Event) -> bool:
        return self._guard("unarchived", event.id, lambda: self.scheduler.cancel_purge(event.id))

    def on_event_hard_deleted(self, event_id: str) -> bool:
        return self._guard("hard_deleted", event_id, lambda: self.scheduler.cancel_all(event_id))
