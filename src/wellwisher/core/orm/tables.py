"""ORM table definitions.

Usage::

    from wellwisher.core.orm.base import WellWisherBase
    from wellwisher.core.orm.tables import EventTable

    WellWisherBase.metadata.create_all(engine)
"""

from __future__ import annotations

import datetime

from sqlalchemy import JSON, Boolean, DateTime, Index, Text
from sqlalchemy.orm import Mapped, mapped_column

from wellwisher.core.orm.base import WellWisherBase


class EventTable(WellWisherBase):
    __tablename__ = "events"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    # Stored as naive UTC; the store re-attaches the zone on read
    event_date: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False)
    message_date: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False)
    all_day: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    event_time: Mapped[str | None] = mapped_column(Text)
    invitees: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    message: Mapped[str | None] = mapped_column(Text)
    is_archived: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    archived_at: Mapped[datetime.datetime | None] = mapped_column(DateTime)

    __table_args__ = (Index("ix_events_is_archived", "is_archived"),)
