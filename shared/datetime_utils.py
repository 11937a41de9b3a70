"""
Date/time helpers: framework-agnostic.

Everything in the service works with timezone-aware UTC datetimes; MongoDB
hands back naive datetimes, so values read from storage go through
``ensure_utc`` first.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to a naive datetime, convert an aware one to UTC.

    ``None`` passes through unchanged.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def seconds_until(moment: datetime, now: Optional[datetime] = None) -> int:
    """Whole seconds from *now* until *moment*, never below zero."""
    now = now or utcnow()
    return max(0, int((ensure_utc(moment) - now).total_seconds()))
