# worktime_app/core/shifts.py
"""
The four daily shift windows.

    A = [00:00, 06:00)   B = [06:00, 12:00)
    C = [12:00, 18:00)   D = [18:00, 24:00)

Windows are built from wall-clock boundaries of the anchor date in the local
timezone, so they tile the calendar day exactly (D ends at the next local
midnight) even on DST transition days.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, tzinfo
from typing import Iterable, List, Optional

from worktime_app.core.models import SHIFT_IDS, Shift
from worktime_app.core.timefmt import ensure_utc, local_tz

SHIFT_START_HOURS = (0, 6, 12, 18)


def _boundary(day: date, hour: int, tz: tzinfo) -> datetime:
    return datetime.combine(day, time(hour, 0), tzinfo=tz)


def shifts_for(anchor_date: date, tz: Optional[tzinfo] = None) -> List[Shift]:
    """Return shifts A..D for `anchor_date`."""
    tz = tz or local_tz()
    next_midnight = _boundary(anchor_date + timedelta(days=1), 0, tz)

    shifts = []
    for i, shift_id in enumerate(SHIFT_IDS):
        start = _boundary(anchor_date, SHIFT_START_HOURS[i], tz)
        if i + 1 < len(SHIFT_IDS):
            end = _boundary(anchor_date, SHIFT_START_HOURS[i + 1], tz)
        else:
            end = next_midnight
        shifts.append(Shift(id=shift_id, start=start, end=end))
    return shifts


def shift_containing(instant: datetime, shifts: Iterable[Shift]) -> Optional[Shift]:
    """Half-open membership test: the shift with start <= instant < end, if any."""
    instant = ensure_utc(instant)
    for shift in shifts:
        if shift.contains(instant):
            return shift
    return None


def current_shift_id(now: Optional[datetime] = None, tz: Optional[tzinfo] = None) -> str:
    """Letter of the shift that contains `now` on its own local day."""
    tz = tz or local_tz()
    now = ensure_utc(now) if now is not None else datetime.now(tz)
    local_day = now.astimezone(tz).date()
    shift = shift_containing(now, shifts_for(local_day, tz))
    # Every instant falls inside its own day's four windows.
    return shift.id
