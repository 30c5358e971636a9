"""Time utilities for database models."""

from datetime import UTC, datetime


def utcnow() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(UTC)


def from_unix(seconds: float) -> datetime:
    """Convert Unix seconds to a timezone-aware UTC datetime."""
    return datetime.fromtimestamp(seconds, UTC)
