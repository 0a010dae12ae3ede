# worktime_app/services/activity.py
"""
Activity trail for timer commands (timer started / timer stopped).

Best effort: the trail is informational, so a failed insert is logged and
the timer command that triggered it still succeeds.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List, Optional

from worktime_app.core.timefmt import to_iso, utcnow
from worktime_app.services.db import execute, fetchall

logger = logging.getLogger(__name__)


def log_activity(
    action: str,
    *,
    item_id: Optional[str] = None,
    entry_type: Optional[str] = None,
    employee_id: Optional[str] = None,
    detail: Optional[str] = None,
    at=None,
) -> bool:
    try:
        execute(
            """
            INSERT INTO activity_log(id, action, item_id, entry_type, employee_id, detail, at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                str(uuid.uuid4()),
                action,
                item_id,
                entry_type,
                employee_id,
                detail,
                to_iso(at or utcnow()),
            ),
            commit=True,
        )
        return True
    except Exception as e:
        logger.warning(
            "[ACTIVITY] Could not record activity",
            extra={"action": action, "item_id": item_id, "error": str(e)},
        )
        return False


def recent(limit: int = 50) -> List[Dict[str, Any]]:
    return fetchall(
        "SELECT id, action, item_id, entry_type, employee_id, detail, at "
        "FROM activity_log ORDER BY at DESC LIMIT ?",
        (int(limit),),
    )
