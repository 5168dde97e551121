"""Local time helpers for the deployment timezone."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from .config import get_settings


@dataclass(frozen=True, slots=True)
class Window:
    """Half-open ``[start, end)`` range over naive local timestamps."""

    start: datetime
    end: datetime | None = None


def local_now(tz_name: str | None = None) -> datetime:
    """Current wall-clock time in the configured timezone, without tzinfo."""
    zone = ZoneInfo(tz_name or get_settings().timezone)
    return datetime.now(zone).replace(tzinfo=None)


def today_window(now: datetime) -> Window:
    start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    return Window(start=start, end=start + timedelta(days=1))


def week_window(now: datetime) -> Window:
    """Rolling seven days ending at ``now``."""
    return Window(start=now - timedelta(days=7))


def month_window(now: datetime) -> Window:
    start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    if start.month == 12:
        end = start.replace(year=start.year + 1, month=1)
    else:
        end = start.replace(month=start.month + 1)
    return Window(start=start, end=end)
