"""Utility functions for datetime operations."""

from datetime import datetime, timezone


def utc_now():
    """Return the current UTC datetime in a timezone-aware format."""
    return datetime.now(timezone.utc)


def epoch_millis(dt=None):
    """Return milliseconds since the epoch for ``dt`` (defaults to now)."""
    dt = dt or utc_now()
    return int(dt.timestamp() * 1000)
