"""Domain model for events.

``Event`` is the storage-independent shape the scheduler works with.  Only
``id``, ``message_date``, ``is_archived`` and ``archived_at`` influence
scheduling; the remaining fields are payload for the invitation sender.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any

from wellwisher.core.timestamps import ensure_utc, to_iso8601, utc_now


@dataclass(frozen=True)
class Event:
    """A calendar event with an annual invitation and an archive lifecycle.

    Invariant: ``archived_at`` is set if and only if ``is_archived``.
    """

    id: str
    name: str
    event_date: datetime
    message_date: datetime
    all_day: bool = False
    event_time: str | None = None
    invitees: tuple[str, ...] = ()
    message: str | None = None
    is_archived: bool = False
    archived_at: datetime | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "invitees", tuple(self.invitees))
        if self.is_archived and self.archived_at is None:
            raise ValueError(f"archived event {self.id} has no archived_at")
        if not self.is_archived and self.archived_at is not None:
            raise ValueError(f"event {self.id} has archived_at but is not archived")

    def archive(self, at: datetime | None = None) -> Event:
        """Return an archived copy stamped with *at* (default: now)."""
        return replace(self, is_archived=True, archived_at=ensure_utc(at or utc_now()))

    def unarchive(self) -> Event:
        """Return a live copy with the archive stamp cleared."""
        return replace(self, is_archived=False, archived_at=None)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "event_date": to_iso8601(self.event_date),
            "message_date": to_iso8601(self.message_date),
            "all_day": self.all_day,
            "event_time": self.event_time,
            "invitees": list(self.invitees),
            "message": self.message,
            "is_archived": self.is_archived,
            "archived_at": to_iso8601(self.archived_at),
        }
