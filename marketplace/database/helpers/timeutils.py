"""
Timestamp helpers shared by entities, DAOs and services.

SQLite hands back naive datetimes even for ``DateTime(timezone=True)`` columns,
so every comparison goes through :func:`ensure_aware`.
"""

from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_aware(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes; aware values and None pass through."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def parse_datetime(value) -> Optional[datetime]:
    """
    Parse an ISO-8601 string (a trailing ``Z`` is accepted) or pass a datetime through.

    Raises
    ------
    ValueError
        If the string is not a valid ISO-8601 timestamp.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_aware(value)
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return ensure_aware(datetime.fromisoformat(text))


def isoformat(value: Optional[datetime]) -> Optional[str]:
    """Serialize a datetime as ISO-8601 in UTC, or None."""
    value = ensure_aware(value)
    return value.isoformat() if value else None
