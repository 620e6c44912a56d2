"""Clock helpers — timezone-aware UTC timestamps.

SQLite hands back naive datetimes for DateTime(timezone=True) columns; every
value read from the database goes through ensure_utc before comparison.
"""

from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes; convert aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def isoformat_utc(value: datetime | None) -> str | None:
    normalized = ensure_utc(value)
    return normalized.isoformat() if normalized else None


def parse_iso_datetime(value: str) -> datetime:
    """Parse an ISO-8601 date or datetime string into an aware UTC datetime.

    Raises ValueError for anything unparseable.
    """
    text = value.strip()
    if not text:
        raise ValueError("empty date string")
    return ensure_utc(datetime.fromisoformat(text))
