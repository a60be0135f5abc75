"""Centralized datetime utilities for consistent timezone handling.

Timestamps produced by the pipeline are naive UTC so they compare cleanly
with values coming back from storage.

Usage:
    from knowscroll.core.datetime_utils import utc_now

    fetched_at = utc_now()
"""

from datetime import UTC, datetime


def utc_now() -> datetime:
    """Get current UTC time as naive datetime.

    Replaces deprecated datetime.utcnow().
    """
    return datetime.now(UTC).replace(tzinfo=None)
