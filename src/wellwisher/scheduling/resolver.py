"""Recurrence-to-instant resolver.

Manifesto:
    Events store dates, timers need instants.  This module is the only
    place that turns one into the other, so the policies that matter for
    correctness live together: which calendar day a message date means,
    what happens to a Feb 29 reminder in 2025, and how a purge deadline is
    rounded.

┌──────────────────────────────────────────────────────────────────────────────┐
│  FIRING RULES                                                                 │
│                                                                               │
│   resolve_reminder(message_date, zone, hour=7, minute=0)                     │
│        day/month read in UTC, fired at hour:minute in zone                   │
│        └─► ReminderRule(day, month, hour, minute, zone)                      │
│              cron: "0 7 <day|L> <month> *"   (croniter, evaluated in zone)   │
│              first_fire(now)      next occurrence strictly after now         │
│              next_fire(previous)  the occurrence one year later              │
│                                                                               │
│   resolve_purge(archived_at, retention_days=30)                              │
│        └─► archived_at + 30 days, UTC, rounded UP to the minute              │
│              OneShotRule(at): first_fire = at (past → fire now)              │
│                                 next_fire = None                             │
│                                                                               │
│  Short months (clamp policy):                                                 │
│   A day that some year's month lacks fires on that month's last day:         │
│   Feb 29 → Feb 28 in common years, Feb 29 in leap years.                     │
│   Expressed with croniter's "L" (last day of month) day field.               │
└──────────────────────────────────────────────────────────────────────────────┘

Tags:
    wellwisher, scheduling, recurrence, croniter, timezone

Doc-Types:
    api-reference
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Protocol, runtime_checkable
from zoneinfo import ZoneInfo

from croniter import croniter

from wellwisher.core.errors import RegistrationError, ResolutionError
from wellwisher.core.timestamps import ensure_utc

# Fewest days each month has in any year
_MIN_DAYS_IN_MONTH = {
    1: 31, 2: 28, 3: 31, 4: 30, 5: 31, 6: 30,
    7: 31, 8: 31, 9: 30, 10: 31, 11: 30, 12: 31,
}

DEFAULT_REMINDER_HOUR = 7
DEFAULT_PURGE_AFTER_DAYS = 30


@runtime_checkable
class FiringRule(Protocol):
    """When a task fires, abstractly: one-shot or recurring."""

    def first_fire(self, now: datetime) -> datetime:
        """Instant of the first firing for a task registered at *now*."""
        ...

    def next_fire(self, previous: datetime) -> datetime | None:
        """Instant after *previous*, or ``None`` when the task is finished."""
        ...


@dataclass(frozen=True)
class OneShotRule:
    """Fire once at ``at``.  An instant in the past fires immediately."""

    at: datetime

    def first_fire(self, now: datetime) -> datetime:
        return self.at

    def next_fire(self, previous: datetime) -> datetime | None:
        return None

    def describe(self) -> str:
        return f"once at {self.at.isoformat()}"


@dataclass(frozen=True)
class ReminderRule:
    """Fire every year on ``day``/``month`` at ``hour:minute`` local time in ``zone``."""

    day: int
    month: int
    hour: int = DEFAULT_REMINDER_HOUR
    minute: int = 0
    zone: str = "UTC"

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise ResolutionError(f"month out of range: {self.month}")
        if not 1 <= self.day <= 31:
            raise ResolutionError(f"day out of range: {self.day}")
        if not 0 <= self.hour <= 23 or not 0 <= self.minute <= 59:
            raise ResolutionError(f"time of day out of range: {self.hour}:{self.minute}")

    @property
    def clamped(self) -> bool:
        """True when some years fire on the month's last day instead of ``day``."""
        return self.day > _MIN_DAYS_IN_MONTH[self.month]

    @property
    def cron_expression(self) -> str:
        day_field = "L" if self.clamped else str(self.day)
        return f"{self.minute} {self.hour} {day_field} {self.month} *"

    def _next_after(self, after: datetime) -> datetime:
        # croniter walks naive wall-clock time; the zone is attached afterwards
        # so DST offsets come from zoneinfo alone.
        after = ensure_utc(after)
        tz = ZoneInfo(self.zone)
        try:
            it = croniter(self.cron_expression, after.astimezone(tz).replace(tzinfo=None))
            while True:
                local = it.get_next(datetime)
                nxt = local.replace(tzinfo=tz).astimezone(UTC)
                if nxt > after:
                    return nxt
        except (ValueError, KeyError) as exc:
            raise RegistrationError(
                f"Cannot evaluate reminder rule {self.cron_expression!r}", cause=exc
            ) from exc

    def first_fire(self, now: datetime) -> datetime:
        return self._next_after(now)

    def next_fire(self, previous: datetime) -> datetime | None:
        return self._next_after(previous)

    def describe(self) -> str:
        return f"yearly {self.month:02d}-{self.day:02d} {self.hour:02d}:{self.minute:02d} {self.zone}"


def resolve_reminder(
    message_date: datetime | None,
    zone: str | ZoneInfo,
    hour: int = DEFAULT_REMINDER_HOUR,
    minute: int = 0,
) -> ReminderRule:
    """Derive the annual reminder rule from an event's message date.

    The calendar day is the one ``message_date`` falls on in UTC; *zone*
    only sets the wall clock the reminder fires on.

    Raises:
        ResolutionError: if the date is missing or not a datetime, or the
            zone is unknown.
    """
    if message_date is None:
        raise ResolutionError("message_date is missing")
    if not isinstance(message_date, datetime):
        raise ResolutionError(f"message_date is not a datetime: {message_date!r}")

    try:
        tz = zone if isinstance(zone, ZoneInfo) else ZoneInfo(zone)
    except (ValueError, KeyError) as exc:
        raise ResolutionError(f"unknown time zone {zone!r}", cause=exc) from exc

    utc = ensure_utc(message_date)
    return ReminderRule(day=utc.day, month=utc.month, hour=hour, minute=minute, zone=tz.key)


def resolve_purge(
    archived_at: datetime | None,
    retention_days: int = DEFAULT_PURGE_AFTER_DAYS,
) -> datetime:
    """Instant an archived event is purged: ``archived_at + retention_days``.

    The result is UTC at minute resolution, rounded up so a purge never
    fires before its deadline.

    Raises:
        ResolutionError: if ``archived_at`` is missing or not a datetime.
    """
    if archived_at is None:
        raise ResolutionError("archived_at is missing")
    if not isinstance(archived_at, datetime):
        raise ResolutionError(f"archived_at is not a datetime: {archived_at!r}")

    deadline = ensure_utc(archived_at) + timedelta(days=retention_days)
    floored = deadline.replace(second=0, microsecond=0)
    if floored < deadline:
        floored += timedelta(minutes=1)
    return floored.astimezone(UTC)
