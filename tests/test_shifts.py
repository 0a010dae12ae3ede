# tests/test_shifts.py
import random
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from worktime_app.core.shifts import current_shift_id, shift_containing, shifts_for


def test_shift_boundaries_for_a_day():
    shifts = shifts_for(date(2024, 1, 1), timezone.utc)

    assert [s.id for s in shifts] == ["A", "B", "C", "D"]
    assert [s.start.hour for s in shifts] == [0, 6, 12, 18]
    assert shifts[-1].end == datetime(2024, 1, 2, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "hour, minute, expected",
    [(0, 0, "A"), (5, 59, "A"), (6, 0, "B"), (11, 59, "B"), (12, 0, "C"), (18, 0, "D"), (23, 59, "D")],
)
def test_boundaries_are_half_open(hour, minute, expected):
    instant = datetime(2024, 1, 1, hour, minute, tzinfo=timezone.utc)
    shift = shift_containing(instant, shifts_for(date(2024, 1, 1), timezone.utc))
    assert shift.id == expected


def test_instant_outside_the_day_has_no_shift():
    shifts = shifts_for(date(2024, 1, 1), timezone.utc)
    assert shift_containing(datetime(2024, 1, 2, 0, 0, tzinfo=timezone.utc), shifts) is None


@pytest.mark.parametrize("tz_name", ["UTC", "America/New_York", "Asia/Kolkata"])
def test_random_instants_map_to_exactly_one_shift_of_their_day(tz_name):
    tz = ZoneInfo(tz_name)
    rng = random.Random(20240101)
    origin = datetime(2024, 3, 1, tzinfo=timezone.utc)
    # Covers the March and November DST changes in New York
    span_seconds = int(timedelta(days=280).total_seconds())

    for _ in range(10_000):
        instant = origin + timedelta(seconds=rng.randrange(span_seconds))
        local_day = instant.astimezone(tz).date()

        own = [s for s in shifts_for(local_day, tz) if s.contains(instant)]
        assert len(own) == 1

        for other_day in (local_day - timedelta(days=1), local_day + timedelta(days=1)):
            assert shift_containing(instant, shifts_for(other_day, tz)) is None


def test_current_shift_id_uses_local_time():
    now = datetime(2024, 1, 1, 4, 0, tzinfo=timezone.utc)

    assert current_shift_id(now, timezone.utc) == "A"
    # 04:00 UTC is 09:30 in India
    assert current_shift_id(now, ZoneInfo("Asia/Kolkata")) == "B"
