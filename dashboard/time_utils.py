"""Timezone helpers for month-stamp logic."""

from __future__ import annotations

from datetime import datetime
from zoneinfo import ZoneInfo

from dashboard.config import get_settings


def now_local() -> datetime:
    """Return the current time in the configured timezone."""
    return datetime.now(tz=ZoneInfo(get_settings().timezone))


def month_stamp(moment: datetime | None = None) -> str:
    """Return the ``YYYY-MM`` stamp for a moment (defaults to now)."""
    if moment is None:
        moment = now_local()
    return f"{moment.year:04d}-{moment.month:02d}"


def epoch_millis(moment: datetime | None = None) -> int:
    """Return the moment as integer milliseconds since the Unix epoch."""
    if moment is None:
        moment = now_local()
    return int(moment.timestamp() * 1000)
