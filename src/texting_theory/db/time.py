"""Time utilities for database models and the voting window."""

from datetime import UTC, datetime


def utcnow() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(UTC)


def now_ms() -> int:
    """Return the current UTC time as integer milliseconds since the epoch."""
    return int(utcnow().timestamp() * 1000)
