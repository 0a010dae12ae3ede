# tests/test_timer.py
from datetime import datetime, timezone

import pytest

from worktime_app.core import eventlog
from worktime_app.core.errors import (
    AlreadyClosedError,
    ConflictError,
    EntryNotFoundError,
    IdentityNotFoundError,
    ItemNotFoundError,
    NotPausedError,
    NotRunningError,
    ValidationError,
)
from worktime_app.core.models import EVENT_PAUSE, EVENT_RESUME, EVENT_STOP, TimeEntry
from worktime_app.core.timer import STATE_IDLE, STATE_PAUSED, STATE_RUNNING, TimerEngine, elapsed, state_of
from worktime_app.services import activity, time_entries, work_items

USER = "alice@example.com"


def at(hour, minute=0, second=0):
    return datetime(2024, 1, 1, hour, minute, second, tzinfo=timezone.utc)


def test_pause_resume_stop_scenario(engine, clock):
    clock.set(9, 0)
    entry = engine.start("t-report", "task", USER)
    assert state_of(entry) == STATE_RUNNING

    clock.set(9, 10)
    engine.pause(entry.id)
    clock.set(9, 15)
    engine.resume(entry.id)

    assert engine.elapsed_for(entry.id, now=at(9, 17)) == 12 * 60

    clock.set(9, 20)
    closed = engine.stop(entry.id, "Draft done")

    assert closed.duration_minutes == 15
    assert closed.end_time == at(9, 20)
    assert closed.comment == "Draft done"

    stored = time_entries.get(entry.id)
    assert stored.duration_minutes == 15
    assert stored.comment == "Draft done"
    assert [e.kind for e in eventlog.parse(stored.event_log)] == [EVENT_PAUSE, EVENT_RESUME, EVENT_STOP]
    assert state_of(stored) == STATE_IDLE


def test_duration_over_several_pause_cycles(engine, clock):
    clock.set(10, 0)
    entry = engine.start("t-report", "task", USER)
    for pause_at, resume_at in (((10, 5), (10, 10)), ((10, 20), (10, 30))):
        clock.set(*pause_at)
        engine.pause(entry.id)
        clock.set(*resume_at)
        engine.resume(entry.id)

    clock.set(11, 0)
    closed = engine.stop(entry.id)

    # 60 minutes minus 5 and 10 minutes of pauses
    assert closed.duration_minutes == 45


def test_elapsed_is_frozen_while_paused(engine, clock):
    clock.set(10, 0)
    entry = engine.start("t-report", "task", USER)
    clock.set(10, 15)
    engine.pause(entry.id)

    assert engine.elapsed_for(entry.id, now=at(10, 20)) == 15 * 60
    assert engine.elapsed_for(entry.id, now=at(12, 0)) == 15 * 60
    assert state_of(time_entries.get(entry.id)) == STATE_PAUSED


def test_duration_is_floored_to_minutes(engine, clock):
    clock.set(9, 0)
    entry = engine.start("t-report", "task", USER)
    clock.set(9, 1, 59)

    assert engine.stop(entry.id).duration_minutes == 1


def test_second_start_conflicts(engine):
    engine.start("t-report", "task", USER)

    with pytest.raises(ConflictError):
        engine.start("t-report", "task", USER)

    assert len(time_entries.list_open()) == 1


def test_subtask_timer_runs_alongside_parent_task(engine):
    engine.start("t-report", "task", USER)
    sub = engine.start("s-review", "subtask", USER)

    assert sub.entry_type == "subtask"
    assert len(time_entries.list_open()) == 2


def test_open_entry_uniqueness_is_per_entry_type(db):
    time_entries.insert_open("x-1", "task", "e-1", at(9))
    time_entries.insert_open("x-1", "subtask", "e-1", at(9))

    with pytest.raises(ConflictError):
        time_entries.insert_open("x-1", "task", "e-1", at(9, 5))


def test_start_after_stop_opens_a_new_entry(engine, clock):
    first = engine.start("t-report", "task", USER)
    clock.advance(minutes=5)
    engine.stop(first.id)
    clock.advance(minutes=5)

    second = engine.start("t-report", "task", USER)

    assert second.id != first.id


def test_pause_twice_fails(engine, clock):
    entry = engine.start("t-report", "task", USER)
    clock.advance(minutes=1)
    engine.pause(entry.id)
    clock.advance(minutes=1)

    with pytest.raises(NotRunningError):
        engine.pause(entry.id)

    assert [e.kind for e in eventlog.parse(time_entries.get(entry.id).event_log)] == [EVENT_PAUSE]


def test_resume_without_pause_fails(engine, clock):
    entry = engine.start("t-report", "task", USER)
    clock.advance(minutes=1)

    with pytest.raises(NotPausedError):
        engine.resume(entry.id)

    engine.pause(entry.id)
    engine.resume(entry.id)
    with pytest.raises(NotPausedError):
        engine.resume(entry.id)


def test_commands_on_closed_entry(engine, clock):
    entry = engine.start("t-report", "task", USER)
    clock.advance(minutes=3)
    engine.stop(entry.id)

    with pytest.raises(AlreadyClosedError):
        engine.stop(entry.id)
    with pytest.raises(NotRunningError):
        engine.pause(entry.id)
    with pytest.raises(NotPausedError):
        engine.resume(entry.id)


def test_stop_while_paused_counts_pause_up_to_stop(engine, clock):
    clock.set(9, 0)
    entry = engine.start("t-report", "task", USER)
    clock.set(9, 30)
    engine.pause(entry.id)
    clock.set(10, 0)

    assert engine.stop(entry.id).duration_minutes == 30


def test_unknown_user_writes_nothing(engine):
    with pytest.raises(IdentityNotFoundError):
        engine.start("t-report", "task", "nobody@example.com")

    assert time_entries.list_open() == []
    assert work_items.get_item("task", "t-report").status == "Not Started"


def test_identity_lookup_is_case_insensitive(engine):
    entry = engine.start("t-report", "task", "  Alice@Example.COM ")
    assert entry.employee_id == "e-1"


def test_start_unknown_item_or_kind(engine):
    with pytest.raises(ItemNotFoundError):
        engine.start("t-missing", "task", USER)
    with pytest.raises(ValidationError):
        engine.start("t-report", "epic", USER)


def test_unknown_entry(engine):
    with pytest.raises(EntryNotFoundError):
        engine.pause("no-such-entry")


def test_start_marks_item_in_progress_and_logs_activity(engine, clock):
    entry = engine.start("t-report", "task", USER)
    clock.advance(minutes=2)
    engine.stop(entry.id)

    assert work_items.get_item("task", "t-report").status == "In Progress"
    actions = [row["action"] for row in activity.recent()]
    assert sorted(actions) == ["TIMER_STARTED", "TIMER_STOPPED"]


def test_quick_item_uses_task_entries(engine):
    entry = engine.start("t-quick", "quick", USER)
    assert entry.entry_type == "task"


def test_coarse_clock_keeps_events_ordered(engine, clock):
    entry = engine.start("t-report", "task", USER)
    clock.advance(minutes=4)
    engine.pause(entry.id)
    engine.resume(entry.id)
    engine.pause(entry.id)

    events = eventlog.parse(time_entries.get(entry.id).event_log)

    assert [e.kind for e in events] == [EVENT_PAUSE, EVENT_RESUME, EVENT_PAUSE]
    assert events[0].at < events[1].at < events[2].at
    assert state_of(time_entries.get(entry.id)) == STATE_PAUSED


def test_lost_race_is_revalidated(engine, clock):
    entry = engine.start("t-report", "task", USER)
    clock.advance(minutes=1)

    class RacingEntries:
        """Another caller pauses the entry between our read and our write."""

        def __init__(self):
            self.raced = False

        def __getattr__(self, name):
            return getattr(time_entries, name)

        def compare_and_set_log(self, entry_id, expected_version, event_log):
            if not self.raced:
                self.raced = True
                time_entries.compare_and_set_log(entry_id, expected_version, event_log)
            return time_entries.compare_and_set_log(entry_id, expected_version, event_log)

    racing = TimerEngine(entries=RacingEntries(), clock=clock)

    with pytest.raises(NotRunningError):
        racing.pause(entry.id)

    stored = time_entries.get(entry.id)
    assert [e.kind for e in eventlog.parse(stored.event_log)] == [EVENT_PAUSE]
    assert stored.version == 1


def test_running_lists_open_entries_with_state(engine, clock):
    first = engine.start("t-report", "task", USER)
    engine.start("s-review", "subtask", USER)
    clock.advance(minutes=1)
    engine.pause(first.id)

    states = {entry.id: state for entry, state in engine.running("e-1")}

    assert states[first.id] == STATE_PAUSED
    assert sorted(states.values()) == [STATE_PAUSED, STATE_RUNNING]
    assert engine.running("e-other") == []


def test_elapsed_clamps_to_zero():
    entry = TimeEntry(id="e", item_id="t", entry_type="task", start_time=at(10))
    assert elapsed(entry, at(9, 59)) == 0


def test_elapsed_of_closed_entry_stops_at_end_time():
    entry = TimeEntry(
        id="e",
        item_id="t",
        entry_type="task",
        start_time=at(9),
        end_time=at(9, 30),
        event_log="Timer stopped at 2024-01-01T09:30:00+00:00",
        duration_minutes=30,
    )
    assert elapsed(entry, at(18)) == 30 * 60


class DelegatingEntries:
    """Time-entry store that forwards everything to the real one."""

    def __getattr__(self, name):
        return getattr(time_entries, name)


def test_stop_losing_to_another_stop_reports_already_closed(engine, clock):
    clock.set(9, 0)
    entry = engine.start("t-report", "task", USER)
    clock.set(9, 3)

    class OtherStopFirst(DelegatingEntries):
        def close(self, entry_id, expected_version, **fields):
            time_entries.close(entry_id, expected_version, **{**fields, "comment": "other tab"})
            return time_entries.close(entry_id, expected_version, **fields)

    racing = TimerEngine(entries=OtherStopFirst(), clock=clock)

    with pytest.raises(AlreadyClosedError):
        racing.stop(entry.id, "x")

    stored = time_entries.get(entry.id)
    assert stored.comment == "other tab"
    assert stored.duration_minutes == 3
    assert [e.kind for e in eventlog.parse(stored.event_log)] == [EVENT_STOP]
    assert time_entries.list_open() == []


def test_stop_recomputes_duration_after_concurrent_pause(engine, clock):
    clock.set(9, 0)
    entry = engine.start("t-report", "task", USER)
    clock.set(9, 5)

    class PauseLandsFirst(DelegatingEntries):
        def __init__(self):
            self.attempts = 0

        def close(self, entry_id, expected_version, **fields):
            self.attempts += 1
            if self.attempts == 1:
                paused = eventlog.append_event("", EVENT_PAUSE, at(9, 2))
                time_entries.compare_and_set_log(entry_id, expected_version, paused)
            return time_entries.close(entry_id, expected_version, **fields)

    store = PauseLandsFirst()
    closed = TimerEngine(entries=store, clock=clock).stop(entry.id, "done")

    assert store.attempts == 2
    assert closed.duration_minutes == 2
    stored = time_entries.get(entry.id)
    assert stored.duration_minutes == 2
    assert [e.kind for e in eventlog.parse(stored.event_log)] == [EVENT_PAUSE, EVENT_STOP]
    assert stored.version == 2


def test_stop_gives_up_after_write_retries(engine, clock):
    entry = engine.start("t-report", "task", USER)
    clock.advance(minutes=1)

    class NeverWins(DelegatingEntries):
        def __init__(self):
            self.attempts = 0

        def close(self, entry_id, expected_version, **fields):
            self.attempts += 1
            return False

    store = NeverWins()

    with pytest.raises(ConflictError):
        TimerEngine(entries=store, clock=clock, write_retries=2).stop(entry.id)

    assert store.attempts == 2
    assert time_entries.get(entry.id).is_open
