"""UTC helpers. Timestamps are written as aware UTC and may come back naive from the store."""

from datetime import UTC, datetime


def utcnow():
    return datetime.now(UTC)


def as_utc(moment):
    """Aware UTC datetime; naive values are taken as UTC."""
    if moment is None:
        return None
    if moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC)
