"""
Event operations.

Create, update, archive, unarchive and delete events.  Every write is
committed to the store first and only then reported to the scheduler through
``LifecycleHooks``, so no timer is ever armed for data that did not persist.
A hook failure is logged by the hook and never fails the write.

Archiving is a soft delete: the record stays until its purge fires.
``delete_event`` is the immediate hard delete.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Any

from wellwisher.core.errors import EventNotFoundError
from wellwisher.core.logging import get_logger
from wellwisher.core.models import Event
from wellwisher.core.store import EventStore
from wellwisher.core.timestamps import ensure_utc, utc_now
from wellwisher.scheduling.hooks import LifecycleHooks

logger = get_logger(__name__)

_UPDATABLE = frozenset(
    {"name", "event_date", "message_date", "all_day", "event_time", "invitees", "message"}
)


class EventService:
    """Event CRUD wired to the scheduler's lifecycle hooks.

    Example:
        >>> events = EventService(store, LifecycleHooks(scheduler))
        >>> event = events.create_event(name="Dashain", event_date=d, message_date=m)
        >>> events.archive_event(event.id)
    """

    def __init__(self, store: EventStore, hooks: LifecycleHooks | None = None) -> None:
        self.store = store
        self.hooks = hooks

    def _require(self, event_id: str) -> Event:
        event = self.store.get_event(event_id)
        if event is None:
            raise EventNotFoundError(event_id)
        return event

    # === Reads ===

    def get_event(self, event_id: str) -> Event:
        return self._require(event_id)

    def list_events(self, *, include_archived: bool = True) -> list[Event]:
        events = self.store.list_all_events()
        if include_archived:
            return events
        return [e for e in events if not e.is_archived]

    # === Writes ===

    def create_event(
        self,
        *,
        name: str,
        event_date: datetime,
        message_date: datetime,
        all_day: bool = False,
        event_time: str | None = None,
        invitees: list[str] | None = None,
        message: str | None = None,
    ) -> Event:
        event = self.store.save_event(
            Event(
                id="",
                name=name,
                event_date=ensure_utc(event_date),
                message_date=ensure_utc(message_date),
                all_day=all_day,
                event_time=event_time,
                invitees=tuple(invitees or ()),
                message=message,
            )
        )
        logger.info("event_created", event_id=event.id)
        if self.hooks is not None:
            self.hooks.on_event_created(event)
        return event

    def update_event(self, event_id: str, **changes: Any) -> Event:
        """Apply *changes* to the editable fields of an event.

        Raises:
            EventNotFoundError: if the event does not exist.
            ValueError: if a change names a field that cannot be edited.
        """
        unknown = set(changes) - _UPDATABLE
        if unknown:
            raise ValueError(f"cannot update fields: {', '.join(sorted(unknown))}")

        current = self._require(event_id)
        for key in ("event_date", "message_date"):
            if changes.get(key) is not None:
                changes[key] = ensure_utc(changes[key])
        updated = self.store.save_event(replace(current, **changes))
        logger.info("event_updated", event_id=event_id, fields=sorted(changes))

        if self.hooks is not None and updated.message_date != current.message_date:
            self.hooks.on_event_message_date_changed(updated)
        return updated

    def archive_event(self, event_id: str, at: datetime | None = None) -> Event:
        """Soft-delete: mark archived now (or at *at*) and schedule the purge."""
        current = self._require(event_id)
        if current.is_archived:
            return current
        archived = self.store.save_event(current.archive(at or utc_now()))
        logger.info("event_archived", event_id=event_id, archived_at=archived.archived_at.isoformat())
        if self.hooks is not None:
            self.hooks.on_event_archived(archived)
        return archived

    def unarchive_event(self, event_id: str) -> Event:
        current = self._require(event_id)
        if not current.is_archived:
            return current
        restored = self.store.save_event(current.unarchive())
        logger.info("event_unarchived", event_id=event_id)
        if self.hooks is not None:
            self.hooks.on_event_unarchived(restored)
        return restored

    def delete_event(self, event_id: str) -> None:
        """Hard delete, cancelling every task for the event."""
        if not self.store.hard_delete_event(event_id):
            raise EventNotFoundError(event_id)
        if self.hooks is not None:
            self.hooks.on_event_hard_deleted(event_id)
