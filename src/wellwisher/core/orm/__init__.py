"""SQLAlchemy ORM layer for the event store."""

from wellwisher.core.orm.base import WellWisherBase
from wellwisher.core.orm.session import (
    WellWisherSession,
    create_wellwisher_engine,
    wellwisher_session_factory,
)
from wellwisher.core.orm.tables import EventTable

__all__ = [
    "WellWisherBase",
    "WellWisherSession",
    "create_wellwisher_engine",
    "wellwisher_session_factory",
    "EventTable",
]
