# tests/conftest.py
from datetime import datetime, timedelta, timezone

import pytest

from worktime_app.config import cfg
from worktime_app.services.bootstrap import init_schema
from worktime_app.services.db import execute

MISC_PROJECT = "Miscellanious-Quick-Temp-Orglater"


class FixedClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, hour: int, minute: int = 0, second: int = 0) -> None:
        self.now = self.now.replace(hour=hour, minute=minute, second=second, microsecond=0)

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


def _seed() -> None:
    rows = [
        ("INSERT INTO projects(id, name) VALUES (?, ?)", ("p-web", "Website")),
        ("INSERT INTO projects(id, name) VALUES (?, ?)", ("p-misc", MISC_PROJECT)),
        ("INSERT INTO employees(id, email, name) VALUES (?, ?, ?)", ("e-1", "alice@example.com", "Alice")),
        (
            """
            INSERT INTO tasks(id, name, project_id, status, date, scheduled_time,
                              slot_start_datetime, slot_end_datetime)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            ("t-report", "Write report", "p-web", "Not Started", "2024-01-01", None,
             "2024-01-01T13:30:00", "2024-01-01T15:30:00"),
        ),
        (
            "INSERT INTO tasks(id, name, project_id, status, scheduled_time) VALUES (?, ?, ?, ?, ?)",
            ("t-late", "Night backup check", "p-web", "Not Started", "23:30"),
        ),
        (
            "INSERT INTO tasks(id, name, project_id, status) VALUES (?, ?, ?, ?)",
            ("t-quick", "Quick Tasks 2024-01-01", "p-misc", "Not Started"),
        ),
        (
            "INSERT INTO subtasks(id, task_id, name, status, date) VALUES (?, ?, ?, ?, ?)",
            ("s-review", "t-report", "Review figures", "Not Started", "2024-01-01"),
        ),
        (
            "INSERT INTO subtasks(id, task_id, name, status, scheduled_time) VALUES (?, ?, ?, ?, ?)",
            ("s-quick", "t-quick", "Call supplier", "Not Started", "2024-01-02T01:00:00"),
        ),
    ]
    for sql, params in rows:
        execute(sql, params, commit=True)


@pytest.fixture
def db(tmp_path, monkeypatch):
    """Fresh SQLite database with schema and a small seed set."""
    monkeypatch.setattr(cfg, "DATABASE_URL", f"sqlite:///{tmp_path / 'worktime.db'}")
    monkeypatch.setattr(cfg, "LOCAL_TIMEZONE", "UTC")
    monkeypatch.setattr(cfg, "QUICK_PROJECT_NAME", MISC_PROJECT)
    monkeypatch.setattr(cfg, "QUICK_PARENT_PREFIX", "Quick Tasks")
    monkeypatch.setattr(cfg, "CARRY_OVER_HOURS", 6)
    init_schema()
    _seed()
    return cfg.DATABASE_URL


@pytest.fixture
def clock():
    return FixedClock(datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def engine(db, clock):
    from worktime_app.core.timer import TimerEngine

    return TimerEngine(clock=clock)


@pytest.fixture
def app(db, clock):
    from worktime_app import create_app

    app = create_app()
    app.config.update(TESTING=True, TIMER_CLOCK=clock)
    return app


@pytest.fixture
def client(app):
    return app.test_client()
