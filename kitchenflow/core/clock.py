"""
KitchenFlow — Time Source
Injectable clock so that every "now" reading can be pinned in tests.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """System wall clock, timezone-aware UTC."""
    return datetime.now(timezone.utc)


def ensure_aware(moment: datetime) -> datetime:
    """Interpret naive datetimes as UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment
