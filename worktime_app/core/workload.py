# worktime_app/core/workload.py
"""
Workload bucketer: groups work items into the A/B/C/D shifts of a viewing
date.

Rules, per resolved instant of an item:

1) If it falls in one of the viewing date's shifts, the item goes there.
2) Otherwise, if the viewing date is today, the instant lies within the
   carry-over horizon (now .. now + CARRY_OVER_HOURS) and the carry-over
   policy accepts the item, it goes to the same-letter shift when it falls
   in tomorrow's window of that letter. Ad hoc items created near midnight
   stay visible instead of disappearing until the day rolls over.
3) Anything else belongs to another day and is left out.

Ranged items resolve to several instants and may land in several shifts;
an item is listed at most once per shift.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, tzinfo
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from worktime_app.config import cfg
from worktime_app.core.errors import UnresolvableScheduleError
from worktime_app.core.models import (
    KIND_QUICK,
    KIND_SUBTASK,
    KIND_TASK,
    SHIFT_IDS,
    WorkItem,
    Workload,
)
from worktime_app.core.schedule import resolve
from worktime_app.core.shifts import shifts_for
from worktime_app.core.timefmt import ensure_utc, local_today, local_tz, utcnow

logger = logging.getLogger(__name__)

CarryOverPolicy = Callable[[WorkItem], bool]


def default_carry_over_policy(item: WorkItem) -> bool:
    """
    Quick items, items of the misc project, and sub-items of a quick-tasks
    parent are eligible for carry-over.
    """
    if item.kind == KIND_QUICK:
        return True
    if cfg.QUICK_PROJECT_NAME and item.project_name == cfg.QUICK_PROJECT_NAME:
        return True
    prefix = cfg.QUICK_PARENT_PREFIX
    if prefix and item.kind == KIND_SUBTASK and (item.parent_name or "").startswith(prefix):
        return True
    return False


def _add_once(bucket: List[WorkItem], item: WorkItem) -> None:
    if not any(existing is item for existing in bucket):
        bucket.append(item)


def bucket_workload(
    items: Iterable[WorkItem],
    viewing_date: date,
    *,
    now: Optional[datetime] = None,
    tz: Optional[tzinfo] = None,
    policy: Optional[CarryOverPolicy] = None,
) -> Workload:
    """
    Bucket `items` for `viewing_date`.

    Returns a Workload with per-shift lists, per-hour rows (local hour of
    instants on the viewing date) and the items whose schedule could not be
    resolved.
    """
    tz = tz or local_tz()
    now = ensure_utc(now) if now is not None else utcnow()
    policy = policy or default_carry_over_policy

    today_shifts = {s.id: s for s in shifts_for(viewing_date, tz)}
    tomorrow_shifts = {s.id: s for s in shifts_for(viewing_date + timedelta(days=1), tz)}
    viewing_today = viewing_date == local_today(now, tz)
    horizon = now + timedelta(hours=cfg.CARRY_OVER_HOURS)

    workload = Workload(viewing_date=viewing_date)

    for item in items:
        try:
            instants = resolve(item, viewing_date, tz)
        except UnresolvableScheduleError as exc:
            logger.info(
                "[WORKLOAD] Skipping item without a resolvable schedule",
                extra={"item_id": item.id, "kind": item.kind, "reason": exc.reason},
            )
            workload.skipped.append(item)
            continue

        eligible: Optional[bool] = None
        for instant in instants:
            placed = False
            for shift_id in SHIFT_IDS:
                if today_shifts[shift_id].contains(instant):
                    _add_once(workload.shifts[shift_id], item)
                    hour = instant.astimezone(tz).hour
                    _add_once(workload.hours.setdefault(hour, []), item)
                    placed = True
                    break

            if placed or not viewing_today:
                continue
            if not (now <= instant < horizon):
                continue
            if eligible is None:
                eligible = bool(policy(item))
            if not eligible:
                continue

            for shift_id in SHIFT_IDS:
                if tomorrow_shifts[shift_id].contains(instant):
                    _add_once(workload.shifts[shift_id], item)
                    logger.debug(
                        "[WORKLOAD] Carried over from tomorrow",
                        extra={"item_id": item.id, "shift": shift_id},
                    )
                    break

    return workload


def bucket(
    items: Iterable[WorkItem],
    viewing_date: date,
    *,
    now: Optional[datetime] = None,
    tz: Optional[tzinfo] = None,
    policy: Optional[CarryOverPolicy] = None,
) -> Dict[str, List[WorkItem]]:
    """Shift id → items, for `viewing_date`."""
    return bucket_workload(items, viewing_date, now=now, tz=tz, policy=policy).shifts


def split_quick_items(items: Iterable[WorkItem]) -> Tuple[List[WorkItem], List[WorkItem]]:
    """
    Separate quick sub-items from regular items.

    Quick-tasks container tasks (name starting with QUICK_PARENT_PREFIX) are
    dropped: their sub-items are listed instead.
    """
    prefix = cfg.QUICK_PARENT_PREFIX
    quick: List[WorkItem] = []
    regular: List[WorkItem] = []
    for item in items:
        if item.kind == KIND_QUICK:
            quick.append(item)
        elif item.kind == KIND_SUBTASK and prefix and (item.parent_name or "").startswith(prefix):
            quick.append(item)
        elif item.kind == KIND_TASK and prefix and item.name.startswith(prefix):
            continue
        else:
            regular.append(item)
    return quick, regular
