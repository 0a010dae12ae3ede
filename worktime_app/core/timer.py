# worktime_app/core/timer.py
"""
Timer accounting engine.

One open TimeEntry per (item, entry type), moving through

    idle --start--> running --pause--> paused --resume--> running
    running|paused --stop--> idle (entry closed)

The pure helpers (state_of, elapsed, duration_minutes) work on a
TimeEntry alone. TimerEngine runs the commands against the stores; its
collaborators and its clock are injected so tests can drive it
deterministically.

Durations are integer milliseconds internally; elapsed is reported in whole
seconds and the persisted duration is floor-divided to minutes.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Tuple

from worktime_app.config import cfg
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
from worktime_app.core.models import EVENT_PAUSE, EVENT_RESUME, EVENT_STOP, TimeEntry, normalize_kind
from worktime_app.core.timefmt import ensure_utc, fmt_duration_minutes, to_iso, utcnow

logger = logging.getLogger(__name__)

STATE_IDLE = "idle"
STATE_RUNNING = "running"
STATE_PAUSED = "paused"

_ONE_MS = timedelta(milliseconds=1)


# ---------- Pure accounting ----------


def state_of(entry: TimeEntry) -> str:
    if not entry.is_open:
        return STATE_IDLE
    summary = eventlog.summarize(eventlog.parse(entry.event_log))
    return STATE_PAUSED if summary.is_paused else STATE_RUNNING


def _worked_ms(entry: TimeEntry, until: datetime) -> int:
    """Milliseconds between start and `until`, minus paused time; may be negative."""
    summary = eventlog.summarize(eventlog.parse(entry.event_log), until=until)
    span_ms = (until - ensure_utc(entry.start_time)) // _ONE_MS
    return span_ms - summary.total_paused_ms


def elapsed(entry: TimeEntry, now: datetime) -> int:
    """
    Worked seconds of `entry` as of `now` (closed entries stop at end_time).

    Never negative: clock skew or a malformed log clamps to zero and is
    logged.
    """
    until = ensure_utc(entry.end_time or now)
    worked_ms = _worked_ms(entry, until)
    if worked_ms < 0:
        logger.warning(
            "[TIMER] Negative elapsed time clamped to zero",
            extra={"entry_id": entry.id, "worked_ms": worked_ms, "until": to_iso(until)},
        )
        return 0
    return worked_ms // 1000


def duration_minutes(entry: TimeEntry, end: datetime) -> int:
    """Final duration in whole minutes if the entry is stopped at `end`."""
    return elapsed(entry, end) // 60


# ---------- Engine ----------


class TimerEngine:
    """
    Runs start / pause / resume / stop against the persistence layer.

    entries:    time-entry store (services.time_entries)
    items:      work-item store (services.work_items)
    identities: callable email -> employee id or None
    activity:   callable(action, **fields) recording the audit trail
    clock:      callable returning an aware datetime
    """

    def __init__(
        self,
        entries=None,
        items=None,
        identities: Optional[Callable[[str], Optional[str]]] = None,
        activity: Optional[Callable[..., bool]] = None,
        clock: Optional[Callable[[], datetime]] = None,
        write_retries: Optional[int] = None,
    ) -> None:
        if entries is None or items is None or identities is None or activity is None:
            from worktime_app.services import activity as activity_svc
            from worktime_app.services import identity as identity_svc
            from worktime_app.services import time_entries as entries_svc
            from worktime_app.services import work_items as items_svc

            entries = entries or entries_svc
            items = items or items_svc
            identities = identities or identity_svc.resolve_employee_id
            activity = activity or activity_svc.log_activity

        self.entries = entries
        self.items = items
        self.identities = identities
        self.activity = activity
        self.clock = clock or utcnow
        self.write_retries = max(1, write_retries or cfg.WRITE_RETRIES)

    def _now(self, now: Optional[datetime] = None) -> datetime:
        return ensure_utc(now) if now is not None else ensure_utc(self.clock())

    def _load(self, entry_id: str) -> TimeEntry:
        entry = self.entries.get(entry_id)
        if entry is None:
            raise EntryNotFoundError(f"No time entry with id {entry_id}")
        return entry

    # ----- commands -----

    def start(self, item_id: str, kind: str, acting_user: Optional[str], now: Optional[datetime] = None) -> TimeEntry:
        """
        Open a new entry for the item.

        The identity check comes first: without an employee record nothing
        is written. The open-entry lookup is a fast path only; the unique
        index in the store is what settles concurrent starts.
        """
        item_kind = normalize_kind(kind)
        if item_kind is None:
            raise ValidationError(f"Unknown item kind: {kind!r}")

        employee_id = self.identities(acting_user)
        if not employee_id:
            raise IdentityNotFoundError(
                "Employee record not found. Please contact admin.",
                payload={"user": acting_user},
            )

        item = self.items.get_item(item_kind, item_id)
        if item is None:
            raise ItemNotFoundError(f"No {item_kind} with id {item_id}")

        entry_type = item.entry_type
        if self.entries.find_open(item_id, entry_type) is not None:
            raise ConflictError(
                "A timer is already running for this item",
                payload={"item_id": item_id, "entry_type": entry_type},
            )

        now = self._now(now)
        entry = self.entries.insert_open(item_id, entry_type, employee_id, now)

        if item.status != cfg.IN_PROGRESS_STATUS:
            self.items.mark_in_progress(item_kind, item_id)

        self.activity(
            "TIMER_STARTED",
            item_id=item_id,
            entry_type=entry_type,
            employee_id=employee_id,
            detail=item.name,
            at=now,
        )
        logger.info(
            "[TIMER] Started",
            extra={"entry_id": entry.id, "item_id": item_id, "entry_type": entry_type},
        )
        return entry

    def _append(self, entry_id: str, kind: str, now: Optional[datetime]) -> TimeEntry:
        """
        Append a pause or resume event.

        The state is re-validated from a fresh read on every attempt, so a
        racing pause/resume can never leave two pauses (or two resumes) in
        a row.
        """
        for attempt in range(self.write_retries):
            entry = self._load(entry_id)
            state = state_of(entry)
            if kind == EVENT_PAUSE and state != STATE_RUNNING:
                raise NotRunningError(
                    "Timer is not running",
                    payload={"entry_id": entry_id, "state": state},
                )
            if kind == EVENT_RESUME and state != STATE_PAUSED:
                raise NotPausedError(
                    "Timer is not paused",
                    payload={"entry_id": entry_id, "state": state},
                )

            events = eventlog.parse(entry.event_log)
            at = eventlog.next_event_at(events, self._now(now))
            new_log = eventlog.append_event(entry.event_log, kind, at)
            if self.entries.compare_and_set_log(entry.id, entry.version, new_log):
                entry.event_log = new_log
                entry.version += 1
                logger.info(
                    "[TIMER] %s", "Paused" if kind == EVENT_PAUSE else "Resumed",
                    extra={"entry_id": entry.id, "at": to_iso(at)},
                )
                return entry

            logger.info(
                "[TIMER] Concurrent write detected, retrying",
                extra={"entry_id": entry_id, "attempt": attempt + 1, "event": kind},
            )

        raise ConflictError(
            "Time entry changed concurrently, please refresh",
            payload={"entry_id": entry_id},
        )

    def pause(self, entry_id: str, now: Optional[datetime] = None) -> TimeEntry:
        return self._append(entry_id, EVENT_PAUSE, now)

    def resume(self, entry_id: str, now: Optional[datetime] = None) -> TimeEntry:
        return self._append(entry_id, EVENT_RESUME, now)

    def stop(self, entry_id: str, comment: Optional[str] = None, now: Optional[datetime] = None) -> TimeEntry:
        """
        Close the entry: end_time, duration_minutes, comment and a final
        stop event are written by one conditional UPDATE.
        """
        for attempt in range(self.write_retries):
            entry = self._load(entry_id)
            if not entry.is_open:
                raise AlreadyClosedError(
                    "Timer already stopped",
                    payload={"entry_id": entry_id, "end_time": to_iso(entry.end_time)},
                )

            events = eventlog.parse(entry.event_log)
            end = eventlog.next_event_at(events, self._now(now))
            minutes = duration_minutes(entry, end)
            new_log = eventlog.append_event(entry.event_log, EVENT_STOP, end)

            closed = self.entries.close(
                entry.id,
                entry.version,
                end_time=end,
                duration_minutes=minutes,
                comment=comment,
                event_log=new_log,
            )
            if closed:
                entry.end_time = end
                entry.duration_minutes = minutes
                entry.comment = comment
                entry.event_log = new_log
                entry.version += 1
                self.activity(
                    "TIMER_STOPPED",
                    item_id=entry.item_id,
                    entry_type=entry.entry_type,
                    employee_id=entry.employee_id,
                    detail=fmt_duration_minutes(minutes),
                    at=end,
                )
                logger.info(
                    "[TIMER] Stopped",
                    extra={"entry_id": entry.id, "duration_minutes": minutes},
                )
                return entry

            logger.info(
                "[TIMER] Concurrent write detected on stop, retrying",
                extra={"entry_id": entry_id, "attempt": attempt + 1},
            )

        raise ConflictError(
            "Time entry changed concurrently, please refresh",
            payload={"entry_id": entry_id},
        )

    # ----- queries -----

    def get(self, entry_id: str) -> TimeEntry:
        return self._load(entry_id)

    def elapsed(self, entry: TimeEntry, now: Optional[datetime] = None) -> int:
        return elapsed(entry, self._now(now))

    def elapsed_for(self, entry_id: str, now: Optional[datetime] = None) -> int:
        return elapsed(self._load(entry_id), self._now(now))

    def running(self, employee_id: Optional[str] = None) -> List[Tuple[TimeEntry, str]]:
        """Open entries (optionally for one employee) with their current state."""
        return [(entry, state_of(entry)) for entry in self.entries.list_open(employee_id)]
