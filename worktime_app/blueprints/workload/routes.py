# worktime_app/blueprints/workload/routes.py
from __future__ import annotations

import logging

from flask import current_app, jsonify, request

from . import bp  # blueprint: url_prefix="/api/workload"

from worktime_app.core.errors import ValidationError
from worktime_app.core.models import normalize_kind
from worktime_app.core.shifts import current_shift_id, shifts_for
from worktime_app.core.timefmt import local_today, local_tz, parse_date, utcnow
from worktime_app.core.workload import bucket_workload, split_quick_items
from worktime_app.services import work_items

logger = logging.getLogger(__name__)


def _now():
    clock = current_app.config.get("TIMER_CLOCK") or utcnow
    return clock()


@bp.route("/", methods=["GET"])
def workload_for_date():
    """
    Query: ?date=YYYY-MM-DD (defaults to today in LOCAL_TIMEZONE).

    Shifts list items once each; hours maps local hour -> item ids.
    """
    tz = local_tz()
    now = _now()
    raw_date = request.args.get("date")
    viewing_date = parse_date(raw_date) if raw_date else local_today(now, tz)
    if viewing_date is None:
        raise ValidationError("date must be YYYY-MM-DD", payload={"date": raw_date})

    items = work_items.list_scheduled_items(viewing_date)
    workload = bucket_workload(items, viewing_date, now=now, tz=tz)

    shifts = {}
    for shift in shifts_for(viewing_date, tz):
        quick, regular = split_quick_items(workload.shifts[shift.id])
        shifts[shift.id] = {
            **shift.to_dict(),
            "items": [i.to_dict() for i in regular],
            "quick_items": [i.to_dict() for i in quick],
        }

    hours = {str(h): [i.id for i in workload.hours[h]] for h in sorted(workload.hours)}

    logger.info(
        "[WORKLOAD] Bucketed",
        extra={
            "date": viewing_date.isoformat(),
            "items": len(items),
            "skipped": len(workload.skipped),
        },
    )
    return jsonify({
        "date": viewing_date.isoformat(),
        "current_shift": current_shift_id(now, tz),
        "shifts": shifts,
        "hours": hours,
        "skipped": [i.id for i in workload.skipped],
    })


@bp.route("/current-shift", methods=["GET"])
def current_shift():
    return jsonify({"shift": current_shift_id(_now(), local_tz())})


@bp.route("/items/<kind>/<item_id>/assign-current-slot", methods=["POST"])
def assign_current_slot(kind: str, item_id: str):
    item_kind = normalize_kind(kind)
    if item_kind is None:
        raise ValidationError(f"Unknown item kind: {kind!r}")
    item = work_items.assign_to_current_slot(item_kind, item_id, now=_now())
    return jsonify(item.to_dict())
