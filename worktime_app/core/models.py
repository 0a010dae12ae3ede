# worktime_app/core/models.py
"""
Domain models for the worktime core.

These dataclasses are intentionally lightweight. They are used by:
- The services layer to represent rows read from the store.
- The timer engine (TimeEntry, Event).
- The workload bucketer (WorkItem, Shift).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Mapping, Optional

from worktime_app.core.timefmt import local_tz, parse_date, parse_iso, to_iso


# ---- Item kinds -------------------------------------------------------------

KIND_TASK = "task"
KIND_SUBTASK = "subtask"
KIND_QUICK = "quick"

ITEM_KINDS = (KIND_TASK, KIND_SUBTASK, KIND_QUICK)

# Persisted collection per kind. Quick items live with regular tasks
# (under the misc project) and share their entry type.
KIND_TABLES: Dict[str, str] = {
    KIND_TASK: "tasks",
    KIND_SUBTASK: "subtasks",
    KIND_QUICK: "tasks",
}

KIND_ENTRY_TYPES: Dict[str, str] = {
    KIND_TASK: "task",
    KIND_SUBTASK: "subtask",
    KIND_QUICK: "task",
}


def normalize_kind(kind: Optional[str]) -> Optional[str]:
    """Map loose input ('Task', 'quick-item', 'quick_task') to a kind or None."""
    if not kind:
        return None
    key = str(kind).strip().lower().replace("_", "-")
    if key in ("quick", "quick-item", "quick-task"):
        return KIND_QUICK
    return key if key in ITEM_KINDS else None


# ---- Work items -------------------------------------------------------------


@dataclass
class WorkItem:
    """
    A task, subtask or quick item as read from the store.

    scheduled_time is kept verbatim: it is either "HH:MM" or a full
    timestamp string, and the schedule resolver decides which.
    """

    id: str
    kind: str = KIND_TASK
    name: str = ""
    status: Optional[str] = None
    scheduled_date: Optional[date] = None
    scheduled_time: Optional[str] = None
    slot_start: Optional[datetime] = None
    slot_end: Optional[datetime] = None
    project_name: Optional[str] = None
    parent_name: Optional[str] = None

    @property
    def entry_type(self) -> str:
        return KIND_ENTRY_TYPES[self.kind]

    @classmethod
    def from_row(cls, row: Mapping[str, Any], kind: str) -> "WorkItem":
        """
        Build a WorkItem from a DB row. Slot strings without an offset are
        local wall-clock times; strings that do not parse are kept out (None)
        so the resolver falls through to scheduled_time.
        """
        tz = local_tz()
        scheduled_time = row.get("scheduled_time")
        return cls(
            id=str(row["id"]),
            kind=kind,
            name=row.get("name") or "",
            status=row.get("status"),
            scheduled_date=parse_date(row.get("date")),
            scheduled_time=str(scheduled_time) if scheduled_time else None,
            slot_start=parse_iso(row.get("slot_start_datetime"), naive_tz=tz),
            slot_end=parse_iso(row.get("slot_end_datetime"), naive_tz=tz),
            project_name=row.get("project_name"),
            parent_name=row.get("parent_name"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind,
            "name": self.name,
            "status": self.status,
            "scheduled_date": self.scheduled_date.isoformat() if self.scheduled_date else None,
            "scheduled_time": self.scheduled_time,
            "slot_start": to_iso(self.slot_start),
            "slot_end": to_iso(self.slot_end),
            "project_name": self.project_name,
            "parent_name": self.parent_name,
        }


# ---- Time entries -----------------------------------------------------------


@dataclass
class TimeEntry:
    """
    One interval of work, open (end_time is None) or closed.

    event_log is the raw text column; parse it with core.eventlog.
    """

    id: str
    item_id: str
    entry_type: str
    start_time: datetime
    employee_id: Optional[str] = None
    end_time: Optional[datetime] = None
    event_log: str = ""
    duration_minutes: Optional[int] = None
    comment: Optional[str] = None
    version: int = 0

    @property
    def is_open(self) -> bool:
        return self.end_time is None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "TimeEntry":
        duration = row.get("duration_minutes")
        return cls(
            id=str(row["id"]),
            item_id=str(row["task_id"]),
            entry_type=row.get("entry_type") or "task",
            start_time=parse_iso(row["start_time"]),
            employee_id=row.get("employee_id"),
            end_time=parse_iso(row.get("end_time")),
            event_log=row.get("timer_metadata") or "",
            duration_minutes=int(duration) if duration is not None else None,
            comment=row.get("comment"),
            version=int(row.get("version") or 0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "item_id": self.item_id,
            "entry_type": self.entry_type,
            "employee_id": self.employee_id,
            "start_time": to_iso(self.start_time),
            "end_time": to_iso(self.end_time),
            "event_log": self.event_log,
            "duration_minutes": self.duration_minutes,
            "comment": self.comment,
        }


# ---- Event log / shifts -----------------------------------------------------

EVENT_PAUSE = "pause"
EVENT_RESUME = "resume"
EVENT_STOP = "stop"

EVENT_KINDS = (EVENT_PAUSE, EVENT_RESUME, EVENT_STOP)


@dataclass(frozen=True)
class Event:
    kind: str
    at: datetime


SHIFT_IDS = ("A", "B", "C", "D")


@dataclass(frozen=True)
class Shift:
    """A derived daily window; `end` is exclusive."""

    id: str
    start: datetime
    end: datetime

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant < self.end

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
        }


@dataclass
class Workload:
    """Result of bucketing a set of items for one viewing date."""

    viewing_date: date
    shifts: Dict[str, list] = field(default_factory=lambda: {sid: [] for sid in SHIFT_IDS})
    hours: Dict[int, list] = field(default_factory=dict)
    skipped: list = field(default_factory=list)
