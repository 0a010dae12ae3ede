# worktime_app/services/work_items.py
"""
Work-item store (tasks, subtasks, quick items).

Items are created, renamed and deleted elsewhere; this module only reads
them, advances their status on timer start and assigns them to the current
hour slot.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import List, Optional

from worktime_app.config import cfg
from worktime_app.core.errors import ItemNotFoundError, ValidationError
from worktime_app.core.models import (
    KIND_QUICK,
    KIND_SUBTASK,
    KIND_TABLES,
    KIND_TASK,
    WorkItem,
)
from worktime_app.core.timefmt import ensure_utc, local_tz, to_iso, utcnow
from worktime_app.services.db import execute, fetchall, fetchone

logger = logging.getLogger(__name__)

_TASK_SELECT = """
    SELECT t.id, t.name, t.status, t.date, t.scheduled_time,
           t.slot_start_datetime, t.slot_end_datetime,
           p.name AS project_name, NULL AS parent_name
    FROM tasks t
    LEFT JOIN projects p ON p.id = t.project_id
"""

_SUBTASK_SELECT = """
    SELECT s.id, s.name, s.status, s.date, s.scheduled_time,
           NULL AS slot_start_datetime, NULL AS slot_end_datetime,
           p.name AS project_name, t.name AS parent_name
    FROM subtasks s
    JOIN tasks t ON t.id = s.task_id
    LEFT JOIN projects p ON p.id = t.project_id
"""

_HAS_SCHEDULE = """
    (x.scheduled_time IS NOT NULL OR x.slot_start_datetime IS NOT NULL)
    AND (x.date IS NULL OR x.date IN (?, ?))
"""


def _table_for(kind: str) -> str:
    try:
        return KIND_TABLES[kind]
    except KeyError:
        raise ValidationError(f"Unknown item kind: {kind!r}") from None


def _task_kind(row) -> str:
    if cfg.QUICK_PROJECT_NAME and row.get("project_name") == cfg.QUICK_PROJECT_NAME:
        return KIND_QUICK
    return KIND_TASK


def get_item(kind: str, item_id: str) -> Optional[WorkItem]:
    if _table_for(kind) == "subtasks":
        row = fetchone(_SUBTASK_SELECT + " WHERE s.id=?", (item_id,))
    else:
        row = fetchone(_TASK_SELECT + " WHERE t.id=?", (item_id,))
    return WorkItem.from_row(row, kind) if row else None


def mark_in_progress(kind: str, item_id: str) -> bool:
    """
    Advance the item's status to IN_PROGRESS_STATUS.

    Returns False when the item already had that status.
    """
    status = cfg.IN_PROGRESS_STATUS
    table = _table_for(kind)
    updated = execute(
        f"UPDATE {table} SET status=? WHERE id=? AND status<>?",
        (status, item_id, status),
        commit=True,
    )
    if updated:
        logger.info(
            "[ITEMS] Status advanced",
            extra={"kind": kind, "item_id": item_id, "status": status},
        )
    return updated == 1


def list_scheduled_items(viewing_date: date) -> List[WorkItem]:
    """
    Every task and subtask that carries some schedule and is dated on the
    viewing date, the day after, or not dated at all. The bucketer decides
    the final placement.
    """
    day = viewing_date.isoformat()
    next_day = (viewing_date + timedelta(days=1)).isoformat()

    task_rows = fetchall(
        f"SELECT * FROM ({_TASK_SELECT}) x WHERE {_HAS_SCHEDULE} ORDER BY x.name",
        (day, next_day),
    )
    subtask_rows = fetchall(
        f"SELECT * FROM ({_SUBTASK_SELECT}) x WHERE {_HAS_SCHEDULE} ORDER BY x.name",
        (day, next_day),
    )

    items = [WorkItem.from_row(r, _task_kind(r)) for r in task_rows]
    items.extend(WorkItem.from_row(r, KIND_SUBTASK) for r in subtask_rows)
    return items


def assign_to_current_slot(kind: str, item_id: str, now: Optional[datetime] = None) -> WorkItem:
    """
    Put the item in the current local hour of today.

    Tasks get date, scheduled_time and a one-hour slot range; subtasks
    (which have no slot columns) get date and scheduled_time.
    """
    tz = local_tz()
    now = ensure_utc(now) if now is not None else utcnow()
    local_now = now.astimezone(tz)
    hour_start = local_now.replace(minute=0, second=0, microsecond=0)
    hour_end = (hour_start + timedelta(hours=1)).astimezone(tz)

    table = _table_for(kind)
    if table == "tasks":
        updated = execute(
            """
            UPDATE tasks
            SET date=?, scheduled_time=?, slot_start_datetime=?, slot_end_datetime=?
            WHERE id=?
            """,
            (
                hour_start.date().isoformat(),
                to_iso(hour_start),
                hour_start.replace(tzinfo=None).isoformat(timespec="seconds"),
                hour_end.replace(tzinfo=None).isoformat(timespec="seconds"),
                item_id,
            ),
            commit=True,
        )
    else:
        updated = execute(
            "UPDATE subtasks SET date=?, scheduled_time=? WHERE id=?",
            (hour_start.date().isoformat(), to_iso(hour_start), item_id),
            commit=True,
        )

    if not updated:
        raise ItemNotFoundError(f"No {kind} with id {item_id}")

    logger.info(
        "[ITEMS] Assigned to current slot",
        extra={"kind": kind, "item_id": item_id, "hour": hour_start.hour},
    )
    return get_item(kind, item_id)
