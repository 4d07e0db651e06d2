"""Datetime helpers shared by dispatch and the sweeps."""

from datetime import UTC, datetime


def as_aware(value: datetime | None) -> datetime | None:
    """Treat naive datetimes as UTC.

    Providers may hand back naive values for columns written as aware ones.
    """
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value
