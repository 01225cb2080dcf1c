"""SQLAlchemy engine and session factory for the event store.

This module provides:

* ``create_wellwisher_engine``  -- Create a SA engine from a URL.
* ``WellWisherSession``         -- A session with ``expire_on_commit=False``.
* ``wellwisher_session_factory`` -- ``sessionmaker`` producing the above.

Timer firings run on worker threads, so SQLite engines are created with
``check_same_thread=False``; in-memory databases share a single connection
through ``StaticPool`` so every thread sees the same data.

Tags:
    wellwisher, orm, sqlalchemy, session, engine
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import create_engine as _sa_create_engine
from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool


def create_wellwisher_engine(
    url: str = "sqlite:///wellwisher.db",
    *,
    echo: bool = False,
    pool_size: int | None = None,
    max_overflow: int | None = None,
    **kwargs: Any,
) -> Engine:
    """Create a SQLAlchemy engine with sane defaults.

    Parameters
    ----------
    url:
        Database URL (``sqlite:///…``, ``postgresql://…``, etc.)
    echo:
        If ``True``, log all SQL to stdout.
    pool_size, max_overflow:
        Connection pool parameters (ignored for SQLite).
    **kwargs:
        Extra arguments forwarded to ``sqlalchemy.create_engine``.
    """
    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
        if ":memory:" in url or url in ("sqlite://", "sqlite:///"):
            kwargs.setdefault("poolclass", StaticPool)

        engine = _sa_create_engine(url, echo=echo, **kwargs)

        @event.listens_for(engine, "connect")
        def _set_sqlite_pragma(dbapi_connection: Any, _rec: Any) -> None:
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine

    pool_kwargs: dict[str, Any] = {}
    if pool_size is not None:
        pool_kwargs["pool_size"] = pool_size
    if max_overflow is not None:
        pool_kwargs["max_overflow"] = max_overflow

    return _sa_create_engine(url, echo=echo, **pool_kwargs, **kwargs)


class WellWisherSession(Session):
    """Pre-configured session with ``expire_on_commit=False``.

    Rows are converted to ``Event`` dataclasses after commit, so lazy
    reloads would only cost a round trip.
    """

    def __init__(self, bind: Engine | None = None, **kwargs: Any) -> None:
        kwargs.setdefault("expire_on_commit", False)
        super().__init__(bind=bind, **kwargs)


def wellwisher_session_factory(engine: Engine) -> sessionmaker[WellWisherSession]:
    """Return a ``sessionmaker`` bound to *engine* that produces ``WellWisherSession`` instances."""
    return sessionmaker(bind=engine, class_=WellWisherSession)
