"""
In-memory collaborators for the scheduler: event store and invitation sender.
"""

from __future__ import annotations

import threading
from dataclasses import replace

from wellwisher.core.errors import StorageUnavailableError
from wellwisher.core.models import Event
from wellwisher.core.timestamps import generate_ulid
from wellwisher.notifications.protocol import DeliveryResult


class MemoryEventStore:
    """Dict-backed ``EventStore``."""

    def __init__(self, events: list[Event] | None = None) -> None:
        self._events: dict[str, Event] = {}
        self._lock = threading.Lock()
        self.deleted: list[str] = []
        for event in events or []:
            self.save_event(event)

    def list_all_events(self) -> list[Event]:
        with self._lock:
            return sorted(self._events.values(), key=lambda e: e.id)

    def list_archived_unpurged_events(self) -> list[Event]:
        with self._lock:
            return sorted((e for e in self._events.values() if e.is_archived), key=lambda e: e.id)

    def get_event(self, event_id: str) -> Event | None:
        with self._lock:
            return self._events.get(event_id)

    def hard_delete_event(self, event_id: str) -> bool:
        with self._lock:
            if self._events.pop(event_id, None) is None:
                return False
            self.deleted.append(event_id)
            return True

    def save_event(self, event: Event) -> Event:
        if not event.id:
            event = replace(event, id=generate_ulid())
        with self._lock:
            self._events[event.id] = event
        return event


class FailingStore(MemoryEventStore):
    """Store whose named operations raise ``StorageUnavailableError``."""

    def __init__(self, events: list[Event] | None = None, fail: set[str] | None = None) -> None:
        super().__init__(events)
        self.fail = set(fail or ())

    def _check(self, operation: str) -> None:
        if operation in self.fail:
            raise StorageUnavailableError(f"{operation} unavailable").with_context(operation=operation)

    def list_all_events(self) -> list[Event]:
        self._check("list_all_events")
        return super().list_all_events()

    def list_archived_unpurged_events(self) -> list[Event]:
        self._check("list_archived_unpurged_events")
        return super().list_archived_unpurged_events()

    def get_event(self, event_id: str) -> Event | None:
        self._check("get_event")
        return super().get_event(event_id)

    def hard_delete_event(self, event_id: str) -> bool:
        self._check("hard_delete_event")
        return super().hard_delete_event(event_id)


class RecordingSender:
    """Records invitations.  ``fail_with`` makes every send fail."""

    name = "recording"

    def __init__(self, fail_with: Exception | None = None, raise_on_send: bool = False) -> None:
        self.fail_with = fail_with
        self.raise_on_send = raise_on_send
        self.sent: list[str] = []
        self._lock = threading.Lock()

    def send_invitation(self, event: Event) -> DeliveryResult:
        if self.fail_with is not None:
            if self.raise_on_send:
                raise self.fail_with
            return DeliveryResult.fail(self.name, self.fail_with)
        with self._lock:
            self.sent.append(event.id)
        return DeliveryResult.ok(self.name, recipients=len(event.invitees))
