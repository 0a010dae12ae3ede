# worktime_app/services/identity.py
"""
Maps the acting user (login email) to an accounting identity (employee id).
"""

from __future__ import annotations

from typing import Optional

from worktime_app.services.db import fetchone


def resolve_employee_id(email: Optional[str]) -> Optional[str]:
    """Employee id for `email` (case-insensitive), or None."""
    if not email or not str(email).strip():
        return None
    row = fetchone(
        "SELECT id FROM employees WHERE LOWER(email)=LOWER(?)",
        (str(email).strip(),),
    )
    return str(row["id"]) if row else None
