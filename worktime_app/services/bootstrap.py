# worktime_app/services/bootstrap.py
"""
Schema bootstrap.

Idempotent DDL shared by Postgres and SQLite. Identifiers are text UUIDs
and instants are ISO-8601 UTC strings, so the same statements run on both
backends.

The partial unique index on time_entries is what guarantees at most one
open entry per (task_id, entry_type), across processes.
"""

from __future__ import annotations

import logging

from worktime_app.services.db import execute_script

logger = logging.getLogger(__name__)

SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS projects(
      id TEXT PRIMARY KEY,
      name TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS employees(
      id TEXT PRIMARY KEY,
      email TEXT UNIQUE NOT NULL,
      name TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS tasks(
      id TEXT PRIMARY KEY,
      name TEXT NOT NULL,
      project_id TEXT REFERENCES projects(id),
      status TEXT NOT NULL DEFAULT 'Not Started',
      date TEXT,
      scheduled_time TEXT,
      slot_start_datetime TEXT,
      slot_end_datetime TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS subtasks(
      id TEXT PRIMARY KEY,
      task_id TEXT NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
      name TEXT NOT NULL,
      status TEXT NOT NULL DEFAULT 'Not Started',
      date TEXT,
      scheduled_time TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS time_entries(
      id TEXT PRIMARY KEY,
      task_id TEXT NOT NULL,
      entry_type TEXT NOT NULL DEFAULT 'task' CHECK(entry_type IN ('task','subtask')),
      employee_id TEXT REFERENCES employees(id),
      start_time TEXT NOT NULL,
      end_time TEXT,
      timer_metadata TEXT NOT NULL DEFAULT '',
      duration_minutes INTEGER,
      comment TEXT,
      version INTEGER NOT NULL DEFAULT 0,
      CHECK((end_time IS NULL) = (duration_minutes IS NULL))
    )
    """,
    """
    CREATE UNIQUE INDEX IF NOT EXISTS ux_time_entries_open
      ON time_entries(task_id, entry_type)
      WHERE end_time IS NULL
    """,
    """
    CREATE TABLE IF NOT EXISTS activity_log(
      id TEXT PRIMARY KEY,
      action TEXT NOT NULL,
      item_id TEXT,
      entry_type TEXT,
      employee_id TEXT,
      detail TEXT,
      at TEXT NOT NULL
    )
    """,
)


def init_schema() -> None:
    """Create all tables and indexes if they do not exist."""
    execute_script(SCHEMA)
    logger.info("[BOOT] Schema ready", extra={"statements": len(SCHEMA)})
