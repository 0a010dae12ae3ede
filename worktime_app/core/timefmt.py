# worktime_app/core/timefmt.py
"""
Datetime helpers for the worktime service.

Goals:
- Always store, compare and log instants in UTC.
- Interpret calendar dates and time-of-day strings in the configured local
  timezone (cfg.LOCAL_TIMEZONE).
- Provide the display formats used by the timer API.
"""

from __future__ import annotations

from datetime import date, datetime, timezone, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo

from worktime_app.config import cfg


def utcnow() -> datetime:
    """
    Current time in UTC with tzinfo set.

    This is the default clock of the timer engine.
    """
    return datetime.now(timezone.utc)


def local_tz(name: Optional[str] = None) -> tzinfo:
    """Return the ZoneInfo for `name` or for cfg.LOCAL_TIMEZONE."""
    return ZoneInfo(name or cfg.LOCAL_TIMEZONE or "UTC")


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Normalize a datetime to UTC.

    - If dt is None → None.
    - If dt is naive (no tzinfo) → assume UTC and attach tzinfo.
    - If dt has tzinfo → convert to UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_iso(dt: Optional[datetime]) -> Optional[str]:
    """
    Convert a datetime to an ISO-8601 string in UTC.

    Microseconds are kept when present; event ordering relies on them.
    """
    if dt is None:
        return None
    return ensure_utc(dt).isoformat()


def parse_iso(value, *, naive_tz: Optional[tzinfo] = None) -> Optional[datetime]:
    """
    Parse an ISO-8601 datetime string into a tz-aware datetime.

    Accepts the JavaScript 'Z' suffix and a space instead of 'T'. Naive
    values get `naive_tz` (UTC when not given). datetime objects pass
    through the same normalization. Returns None if parsing fails.
    """
    if not value:
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        text = str(value).strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=naive_tz or timezone.utc)
    return dt


def parse_date(value) -> Optional[date]:
    """Parse 'YYYY-MM-DD' (or a date/datetime) into a date; None on failure."""
    if not value:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError:
        return None


def local_today(now: Optional[datetime] = None, tz: Optional[tzinfo] = None) -> date:
    """Calendar date of `now` (default: current time) in the local timezone."""
    now = now or utcnow()
    return ensure_utc(now).astimezone(tz or local_tz()).date()


def fmt_hms(seconds: int) -> str:
    """Format whole seconds as HH:MM:SS (hours may exceed 24)."""
    seconds = max(0, int(seconds))
    h = seconds // 3600
    m = (seconds % 3600) // 60
    s = seconds % 60
    return f"{h:02}:{m:02}:{s:02}"


def fmt_duration_minutes(minutes: Optional[int]) -> str:
    """'1h 5m' for 65, '12m' for 12."""
    minutes = int(minutes or 0)
    hours, mins = divmod(minutes, 60)
    return f"{hours}h {mins}m" if hours > 0 else f"{mins}m"
