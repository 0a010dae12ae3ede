# worktime_app/config.py
"""
Central configuration for the worktime service.

All configuration is read from environment variables so it works
both locally (with a .env file loaded by run.py) and on Render.
"""

from __future__ import annotations

import os
from dataclasses import dataclass


def _as_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _as_int(value: str | None, default: int) -> int:
    try:
        return int(value) if value is not None else default
    except ValueError:
        return default


@dataclass
class Config:
    # Flask / runtime
    ENV: str = os.getenv("FLASK_ENV", "production")
    DEBUG: bool = _as_bool(os.getenv("DEBUG"), False)
    TESTING: bool = _as_bool(os.getenv("TESTING"), False)
    SECRET_KEY: str = os.getenv("SECRET_KEY", "dev-change-me")

    # Database (postgres://... or sqlite:///path or a bare file path)
    DATABASE_URL: str = os.getenv("DATABASE_URL", "")

    # Shift windows and schedules are interpreted in this IANA zone
    LOCAL_TIMEZONE: str = os.getenv("LOCAL_TIMEZONE", "UTC")

    # Carry-over eligibility (ad-hoc items near a shift boundary)
    QUICK_PROJECT_NAME: str = os.getenv("QUICK_PROJECT_NAME", "Miscellanious-Quick-Temp-Orglater")
    QUICK_PARENT_PREFIX: str = os.getenv("QUICK_PARENT_PREFIX", "Quick Tasks")
    CARRY_OVER_HOURS: int = _as_int(os.getenv("CARRY_OVER_HOURS"), 6)

    # Timer engine
    IN_PROGRESS_STATUS: str = os.getenv("IN_PROGRESS_STATUS", "In Progress")
    WRITE_RETRIES: int = _as_int(os.getenv("WRITE_RETRIES"), 3)


cfg = Config()
