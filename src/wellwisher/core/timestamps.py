"""
ULID generation and timestamp utilities (stdlib-only).

SQLite hands back naive datetimes and callers occasionally pass naive values
too; everything inside the scheduler is compared as timezone-aware UTC, so
all conversions funnel through ``ensure_utc``.

Tags:
    timestamps, ulid, utc, datetime, wellwisher
"""

import random
import time
from datetime import UTC, datetime

_ENCODING = "0123456789ABCDEFGHJKMNPQRSTVWXYZ"


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(UTC)


def ensure_utc(dt: datetime) -> datetime:
    """Return *dt* as an aware UTC datetime; naive values are taken to be UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def generate_ulid() -> str:
    """
    Generate a ULID-like identifier.

    Format: 26 characters, base32 encoded, time-sortable.
    """
    timestamp_ms = int(time.time() * 1000)
    timestamp_chars = _encode_base32(timestamp_ms, 10)
    random_part = "".join(random.choices(_ENCODING, k=16))
    return timestamp_chars + random_part


def to_iso8601(dt: datetime | None) -> str | None:
    """Serialize a datetime as ISO-8601 in UTC, passing ``None`` through."""
    if dt is None:
        return None
    return ensure_utc(dt).isoformat()


def _encode_base32(value: int, length: int) -> str:
    chars = []
    for _ in range(length):
        chars.append(_ENCODING[value & 31])
        value >>= 5
    return "".join(reversed(chars))
