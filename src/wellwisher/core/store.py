"""Event store: the storage contract the scheduler depends on.

Manifesto:
    The scheduler never queries storage directly; it needs exactly four
    reads and one delete.  Keeping that contract in a ``Protocol`` lets the
    scheduler be exercised against an in-memory double in tests and against
    SQLAlchemy in production, with the same error semantics: every storage
    failure surfaces as ``StorageUnavailableError``.

    ┌──────────────────────────────────────────────────────────────┐
    │  EventStore (Protocol)                                        │
    │   ├── list_all_events()              bootstrap: reminders     │
    │   ├── list_archived_unpurged_events() bootstrap: purges       │
    │   ├── get_event(id)                  executors re-fetch       │
    │   ├── hard_delete_event(id)          purge executor           │
    │   └── save_event(event)              CRUD layer writes        │
    └──────────────────────────────────────────────────────────────┘

Tags:
    wellwisher, storage, repository, sqlalchemy

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Protocol, runtime_checkable

from sqlalchemy import delete, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from wellwisher.core.errors import StorageUnavailableError
from wellwisher.core.logging import get_logger
from wellwisher.core.models import Event
from wellwisher.core.orm import EventTable, WellWisherBase, wellwisher_session_factory
from wellwisher.core.timestamps import ensure_utc, generate_ulid

logger = get_logger(__name__)


@runtime_checkable
class EventStore(Protocol):
    """Storage operations consumed by the scheduler and the CRUD layer.

    All methods may raise ``StorageUnavailableError``.
    """

    def list_all_events(self) -> list[Event]:
        """Every stored (i.e. not yet purged) event."""
        ...

    def list_archived_unpurged_events(self) -> list[Event]:
        """Events that are archived and still stored."""
        ...

    def get_event(self, event_id: str) -> Event | None:
        """Fetch one event, or ``None`` if it does not exist."""
        ...

    def hard_delete_event(self, event_id: str) -> bool:
        """Permanently delete; ``False`` if there was nothing to delete."""
        ...

    def save_event(self, event: Event) -> Event:
        """Insert or update and return the stored event."""
        ...


def _to_event(row: EventTable) -> Event:
    return Event(
        id=row.id,
        name=row.name,
        event_date=ensure_utc(row.event_date),
        message_date=ensure_utc(row.message_date),
        all_day=bool(row.all_day),
        event_time=row.event_time,
        invitees=tuple(row.invitees or ()),
        message=row.message,
        is_archived=bool(row.is_archived),
        archived_at=ensure_utc(row.archived_at) if row.archived_at else None,
    )


def _naive_utc(value):
    return ensure_utc(value).replace(tzinfo=None) if value is not None else None


class SqlEventStore:
    """SQLAlchemy-backed ``EventStore``.

    Each call opens a short-lived session so the store can be shared between
    the request path and the scheduler's worker threads.

    Example:
        >>> engine = create_wellwisher_engine("sqlite:///:memory:")
        >>> store = SqlEventStore(engine, create_schema=True)
        >>> store.list_all_events()
        []
    """

    def __init__(self, engine: Engine, *, create_schema: bool = False) -> None:
        self.engine = engine
        self._sessions = wellwisher_session_factory(engine)
        if create_schema:
            self.create_schema()

    def create_schema(self) -> None:
        try:
            WellWisherBase.metadata.create_all(self.engine)
        except SQLAlchemyError as exc:
            raise StorageUnavailableError(
                "Failed to create event schema", cause=exc
            ).with_context(operation="create_schema") from exc

    @contextmanager
    def _session(self, operation: str) -> Iterator[Session]:
        session = self._sessions()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            logger.error("storage_failed", operation=operation, error=str(exc))
            raise StorageUnavailableError(
                f"Event store failed during {operation}", cause=exc
            ).with_context(operation=operation) from exc
        finally:
            session.close()

    # === Reads ===

    def list_all_events(self) -> list[Event]:
        with self._session("list_all_events") as session:
            rows = session.scalars(select(EventTable).order_by(EventTable.id)).all()
            return [_to_event(r) for r in rows]

    def list_archived_unpurged_events(self) -> list[Event]:
        with self._session("list_archived_unpurged_events") as session:
            stmt = (
                select(EventTable)
                .where(EventTable.is_archived.is_(True))
                .where(EventTable.archived_at.is_not(None))
                .order_by(EventTable.archived_at)
            )
            return [_to_event(r) for r in session.scalars(stmt).all()]

    def get_event(self, event_id: str) -> Event | None:
        with self._session("get_event") as session:
            row = session.get(EventTable, event_id)
            return _to_event(row) if row is not None else None

    # === Writes ===

    def hard_delete_event(self, event_id: str) -> bool:
        with self._session("hard_delete_event") as session:
            result = session.execute(delete(EventTable).where(EventTable.id == event_id))
            deleted = result.rowcount > 0
        if deleted:
            logger.info("event_deleted", event_id=event_id)
        return deleted

    def save_event(self, event: Event) -> Event:
        event_id = event.id or generate_ulid()
        with self._session("save_event") as session:
            row = session.get(EventTable, event_id)
            if row is None:
                row = EventTable(id=event_id)
                session.add(row)
            row.name = event.name
            row.event_date = _naive_utc(event.event_date)
            row.message_date = _naive_utc(event.message_date)
            row.all_day = event.all_day
            row.event_time = event.event_time
            row.invitees = list(event.invitees)
            row.message = event.message
            row.is_archived = event.is_archived
            row.archived_at = _naive_utc(event.archived_at)
            session.flush()
            return _to_event(row)
