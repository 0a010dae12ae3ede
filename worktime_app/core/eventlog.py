# worktime_app/core/eventlog.py
"""
Codec for the time-entry event log (the `timer_metadata` text column).

Each event is one line with a marker and a UTC timestamp:

    Timer paused at 2024-01-01T09:10:00+00:00
    Timer resumed at 2024-01-01T09:15:00+00:00
    Timer stopped at 2024-01-01T09:20:00+00:00

The markers are the ones the original dashboard wrote, so older logs (with
JavaScript 'Z' timestamps and free-form notes in between) stay readable.

Ordering contract: a log is an append-only sequence and its order is the
order of the lines. parse() never sorts by timestamp. When the clock is too
coarse to tell two events apart, position decides; next_event_at() keeps new
timestamps strictly increasing on the write path.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, List, Optional

from worktime_app.core.models import EVENT_PAUSE, EVENT_RESUME, EVENT_STOP, Event
from worktime_app.core.timefmt import ensure_utc, parse_iso, to_iso

logger = logging.getLogger(__name__)

MARKERS = {
    EVENT_PAUSE: "Timer paused at",
    EVENT_RESUME: "Timer resumed at",
    EVENT_STOP: "Timer stopped at",
}

_WORD_TO_KIND = {
    "paused": EVENT_PAUSE,
    "resumed": EVENT_RESUME,
    "stopped": EVENT_STOP,
}

_EVENT_RE = re.compile(r"Timer (paused|resumed|stopped) at ([^,\n]+)")

_ONE_MS = timedelta(milliseconds=1)
_TICK = timedelta(microseconds=1)


@dataclass(frozen=True)
class PauseSummary:
    total_paused_ms: int = 0
    is_paused: bool = False
    last_pause_at: Optional[datetime] = None
    is_stopped: bool = False


def append_event(log: Optional[str], kind: str, at: datetime) -> str:
    """Return a new log with one `kind` event at `at` appended."""
    if kind not in MARKERS:
        raise ValueError(f"unknown event kind: {kind!r}")
    line = f"{MARKERS[kind]} {to_iso(at)}"
    return f"{log}\n{line}" if log else line


def parse(log: Optional[str]) -> List[Event]:
    """
    Decode a log into events, in log order.

    Unrecognized text and unparseable timestamps are skipped.
    """
    if not log:
        return []

    events: List[Event] = []
    for match in _EVENT_RE.finditer(log):
        raw = match.group(2).strip()
        at = parse_iso(raw)
        if at is None:
            logger.debug("[EVENTLOG] Skipping unparseable timestamp", extra={"raw": raw})
            continue
        events.append(Event(kind=_WORD_TO_KIND[match.group(1)], at=ensure_utc(at)))
    return events


def next_event_at(events: Iterable[Event], at: datetime) -> datetime:
    """
    Timestamp to use for a new event read at `at`.

    If the clock has not moved past the last event, the new event is placed
    one microsecond after it.
    """
    at = ensure_utc(at)
    last = None
    for ev in events:
        last = ev.at
    if last is not None and at <= last:
        return last + _TICK
    return at


def summarize(events: Iterable[Event], until: Optional[datetime] = None) -> PauseSummary:
    """
    Walk the events as a pause/resume state machine.

    Completed pause→resume pairs add to the paused total. A trailing
    unmatched pause means "currently paused"; with `until` given, the open
    pause counts up to that instant. A stop event closes an open pause and
    ends the walk. Duplicate pauses and orphan resumes are skipped.
    """
    total_ms = 0
    paused_at: Optional[datetime] = None
    stopped = False

    for ev in events:
        if ev.kind == EVENT_PAUSE:
            if paused_at is not None:
                logger.debug("[EVENTLOG] Duplicate pause skipped", extra={"at": to_iso(ev.at)})
                continue
            paused_at = ev.at
        elif ev.kind == EVENT_RESUME:
            if paused_at is None:
                logger.debug("[EVENTLOG] Orphan resume skipped", extra={"at": to_iso(ev.at)})
                continue
            total_ms += max(0, (ev.at - paused_at) // _ONE_MS)
            paused_at = None
        elif ev.kind == EVENT_STOP:
            if paused_at is not None:
                total_ms += max(0, (ev.at - paused_at) // _ONE_MS)
                paused_at = None
            stopped = True
            break

    last_pause_at = paused_at
    if paused_at is not None and until is not None:
        total_ms += max(0, (ensure_utc(until) - paused_at) // _ONE_MS)

    return PauseSummary(
        total_paused_ms=total_ms,
        is_paused=paused_at is not None,
        last_pause_at=last_pause_at,
        is_stopped=stopped,
    )
