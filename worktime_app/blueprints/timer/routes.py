# worktime_app/blueprints/timer/routes.py
from __future__ import annotations

import logging
from typing import Any, Dict

from flask import current_app, jsonify, request

from . import bp  # blueprint: url_prefix="/api/timer"

from worktime_app.core.errors import ValidationError
from worktime_app.core.models import TimeEntry
from worktime_app.core.timefmt import fmt_duration_minutes, fmt_hms
from worktime_app.core.timer import TimerEngine, state_of

logger = logging.getLogger(__name__)


def _engine() -> TimerEngine:
    # Tests pin the clock through app.config["TIMER_CLOCK"]
    return TimerEngine(clock=current_app.config.get("TIMER_CLOCK"))


def _body() -> Dict[str, Any]:
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}


def _entry_json(entry: TimeEntry) -> Dict[str, Any]:
    data = entry.to_dict()
    data["state"] = state_of(entry)
    return data


@bp.route("/start", methods=["POST"])
def start_timer():
    """
    Body: {"item_id": "...", "kind": "task|subtask|quick", "user_email": "..."}
    """
    body = _body()
    item_id = str(body.get("item_id") or "").strip()
    if not item_id:
        raise ValidationError("item_id is required")

    entry = _engine().start(item_id, body.get("kind") or "task", body.get("user_email"))
    return jsonify(_entry_json(entry)), 201


@bp.route("/entries/<entry_id>/pause", methods=["POST"])
def pause_timer(entry_id: str):
    return jsonify(_entry_json(_engine().pause(entry_id)))


@bp.route("/entries/<entry_id>/resume", methods=["POST"])
def resume_timer(entry_id: str):
    return jsonify(_entry_json(_engine().resume(entry_id)))


@bp.route("/entries/<entry_id>/stop", methods=["POST"])
def stop_timer(entry_id: str):
    comment = _body().get("comment")
    if comment is not None and not isinstance(comment, str):
        raise ValidationError("comment must be a string")

    entry = _engine().stop(entry_id, comment)
    data = _entry_json(entry)
    data["duration_text"] = fmt_duration_minutes(entry.duration_minutes)
    return jsonify(data)


@bp.route("/entries/<entry_id>/elapsed", methods=["GET"])
def entry_elapsed(entry_id: str):
    engine = _engine()
    entry = engine.get(entry_id)
    seconds = engine.elapsed(entry)
    return jsonify({
        "entry_id": entry.id,
        "seconds": seconds,
        "display": fmt_hms(seconds),
        "state": state_of(entry),
    })


@bp.route("/running", methods=["GET"])
def running_timers():
    engine = _engine()
    employee_id = request.args.get("employee_id") or None
    entries = []
    for entry, state in engine.running(employee_id):
        data = entry.to_dict()
        data["state"] = state
        data["elapsed_seconds"] = engine.elapsed(entry)
        entries.append(data)
    return jsonify({"entries": entries, "count": len(entries)})
