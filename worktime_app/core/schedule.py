# worktime_app/core/schedule.py
"""
Scheduled-time resolver.

Work items carry their schedule in one of three shapes:

    1) slot_start / slot_end      reserved range (full timestamps)
    2) scheduled_time = "2024-01-01T13:00:00Z" or "2024-01-01 13:00"
    3) scheduled_time = "13:00"   (+ optional scheduled_date)

resolve() turns any of them into UTC instants. A reserved range longer than
one hour is fanned out to one instant per hour so the item shows up in every
hourly row it occupies.

Anything that cannot be resolved raises UnresolvableScheduleError; no other
exception leaves this module.
"""

from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta, tzinfo
from typing import List, Optional

from worktime_app.core.errors import UnresolvableScheduleError
from worktime_app.core.models import WorkItem
from worktime_app.core.timefmt import ensure_utc, local_tz, parse_iso

ONE_HOUR = timedelta(hours=1)

_TIME_OF_DAY_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2})(?:\.\d+)?)?$")


def _is_datetime_string(value: str) -> bool:
    return "T" in value or " " in value


def fan_out(start: datetime, end: Optional[datetime]) -> List[datetime]:
    """
    One instant per hour from `start` while still before `end`.

    Ranges of one hour or less (or a missing/inverted end) give [start].
    Sub-hour ranges never fan out, so 13:30-14:15 fills only the 13:00 row.
    """
    if end is None or end - start <= ONE_HOUR:
        return [start]
    instants = []
    current = start
    while current < end:
        instants.append(current)
        current += ONE_HOUR
    return instants


def parse_time_of_day(value: str) -> time:
    """'HH:MM' or 'HH:MM:SS' → time; ValueError when malformed."""
    match = _TIME_OF_DAY_RE.match(value.strip())
    if not match:
        raise ValueError(f"not a time of day: {value!r}")
    hour, minute, second = match.group(1), match.group(2), match.group(3) or "0"
    return time(int(hour), int(minute), int(second))


def _resolve(item: WorkItem, viewing_date: date, tz: tzinfo) -> List[datetime]:
    if item.slot_start:
        start = parse_iso(item.slot_start, naive_tz=tz)
        if start is None:
            raise UnresolvableScheduleError(item.id, f"malformed slot_start {item.slot_start!r}")
        end = parse_iso(item.slot_end, naive_tz=tz) if item.slot_end else None
        start = ensure_utc(start)
        return fan_out(start, ensure_utc(end) if end else None)

    raw = (item.scheduled_time or "").strip()
    if not raw:
        raise UnresolvableScheduleError(item.id, "no slot_start or scheduled_time")

    if _is_datetime_string(raw):
        instant = parse_iso(raw, naive_tz=tz)
        if instant is None:
            raise UnresolvableScheduleError(item.id, f"malformed scheduled_time {raw!r}")
        return [ensure_utc(instant)]

    tod = parse_time_of_day(raw)
    day = item.scheduled_date or viewing_date
    return [ensure_utc(datetime.combine(day, tod, tzinfo=tz))]


def resolve(item: WorkItem, viewing_date: date, tz: Optional[tzinfo] = None) -> List[datetime]:
    """
    Effective scheduled instant(s) of `item`, in UTC.

    `viewing_date` stands in for a missing scheduled_date when only a
    time of day is stored.
    """
    tz = tz or local_tz()
    try:
        return _resolve(item, viewing_date, tz)
    except UnresolvableScheduleError:
        raise
    except (ValueError, TypeError, OverflowError) as exc:
        raise UnresolvableScheduleError(item.id, str(exc)) from exc
