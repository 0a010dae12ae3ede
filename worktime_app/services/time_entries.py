# worktime_app/services/time_entries.py
"""
Time-entry store.

Writes are conditional so concurrent callers cannot corrupt an entry:

- insert_open relies on the partial unique index (one open entry per
  task_id + entry_type); a violation becomes ConflictError.
- compare_and_set_log / close only touch a row that is still open and still
  at the version the caller read. A False return means "someone else wrote
  first": re-read and re-validate.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import List, Optional

from worktime_app.core.errors import ConflictError
from worktime_app.core.models import TimeEntry
from worktime_app.core.timefmt import to_iso
from worktime_app.services.db import execute, fetchall, fetchone, is_unique_violation

logger = logging.getLogger(__name__)

_COLUMNS = (
    "id, task_id, entry_type, employee_id, start_time, end_time, "
    "timer_metadata, duration_minutes, comment, version"
)


def get(entry_id: str) -> Optional[TimeEntry]:
    row = fetchone(f"SELECT {_COLUMNS} FROM time_entries WHERE id=?", (entry_id,))
    return TimeEntry.from_row(row) if row else None


def find_open(item_id: str, entry_type: str) -> Optional[TimeEntry]:
    """The running (or paused) entry for an item, if any."""
    row = fetchone(
        f"""
        SELECT {_COLUMNS}
        FROM time_entries
        WHERE task_id=? AND entry_type=? AND end_time IS NULL
        """,
        (item_id, entry_type),
    )
    return TimeEntry.from_row(row) if row else None


def list_open(employee_id: Optional[str] = None) -> List[TimeEntry]:
    if employee_id:
        rows = fetchall(
            f"""
            SELECT {_COLUMNS} FROM time_entries
            WHERE end_time IS NULL AND employee_id=?
            ORDER BY start_time DESC
            """,
            (employee_id,),
        )
    else:
        rows = fetchall(
            f"SELECT {_COLUMNS} FROM time_entries WHERE end_time IS NULL ORDER BY start_time DESC"
        )
    return [TimeEntry.from_row(r) for r in rows]


def insert_open(
    item_id: str,
    entry_type: str,
    employee_id: Optional[str],
    start_time: datetime,
) -> TimeEntry:
    """
    Insert a new open entry with an empty event log.

    Raises ConflictError when an open entry already exists for the same
    (item_id, entry_type), including when a concurrent caller won the race.
    """
    entry = TimeEntry(
        id=str(uuid.uuid4()),
        item_id=item_id,
        entry_type=entry_type,
        employee_id=employee_id,
        start_time=start_time,
    )
    try:
        execute(
            """
            INSERT INTO time_entries(
                id, task_id, entry_type, employee_id, start_time,
                end_time, timer_metadata, duration_minutes, comment, version
            )
            VALUES (?, ?, ?, ?, ?, NULL, '', NULL, NULL, 0)
            """,
            (entry.id, item_id, entry_type, employee_id, to_iso(start_time)),
            commit=True,
        )
    except Exception as exc:
        if not is_unique_violation(exc):
            raise
        logger.info(
            "[ENTRIES] Open entry already exists",
            extra={"item_id": item_id, "entry_type": entry_type},
        )
        raise ConflictError(
            "A timer is already running for this item",
            payload={"item_id": item_id, "entry_type": entry_type},
        ) from exc
    return entry


def compare_and_set_log(entry_id: str, expected_version: int, event_log: str) -> bool:
    """Replace the event log of an open entry still at `expected_version`."""
    updated = execute(
        """
        UPDATE time_entries
        SET timer_metadata=?, version=version+1
        WHERE id=? AND version=? AND end_time IS NULL
        """,
        (event_log, entry_id, expected_version),
        commit=True,
    )
    return updated == 1


def close(
    entry_id: str,
    expected_version: int,
    *,
    end_time: datetime,
    duration_minutes: int,
    comment: Optional[str],
    event_log: str,
) -> bool:
    """
    Close an open entry in one statement: end_time, duration_minutes,
    comment and the final event log are written together or not at all.
    """
    updated = execute(
        """
        UPDATE time_entries
        SET end_time=?, duration_minutes=?, comment=?, timer_metadata=?, version=version+1
        WHERE id=? AND version=? AND end_time IS NULL
        """,
        (to_iso(end_time), int(duration_minutes), comment, event_log, entry_id, expected_version),
        commit=True,
    )
    return updated == 1
