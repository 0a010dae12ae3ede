# worktime_app/core/errors.py
"""
Error types and global error handlers for the worktime service.

Timer state errors are caller-visible: they mean the client view is stale
and must never be swallowed.
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from flask import jsonify, request

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base application error with an HTTP status code."""

    status_code: int = 400

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        payload: Dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code
        self.payload = payload or {}

    @property
    def message(self) -> str:
        return str(self)


class ValidationError(AppError):
    """Malformed request input."""

    status_code = 400


class IdentityNotFoundError(AppError):
    """The acting user has no accounting (employee) identity."""

    status_code = 403


class ItemNotFoundError(AppError):
    status_code = 404


class EntryNotFoundError(AppError):
    status_code = 404


class ConflictError(AppError):
    """An open time entry already exists for this (item, entry type)."""

    status_code = 409


class NotRunningError(AppError):
    """pause() on an entry that is closed or already paused."""

    status_code = 409


class NotPausedError(AppError):
    """resume() on an entry that is not paused."""

    status_code = 409


class AlreadyClosedError(AppError):
    """stop() on an entry whose end_time is already set."""

    status_code = 409


class UnresolvableScheduleError(Exception):
    """
    Soft error: the item has no usable scheduled instant.

    Raised by the schedule resolver and caught by the workload bucketer,
    which reports the item as skipped instead of failing.
    """

    def __init__(self, item_id: Any, reason: str) -> None:
        super().__init__(f"item {item_id}: {reason}")
        self.item_id = item_id
        self.reason = reason


def register_error_handlers(app) -> None:
    """
    Register global JSON error handlers on the Flask app.
    """

    @app.errorhandler(AppError)
    def handle_app_error(exc: AppError):
        level = logging.WARNING if exc.status_code < 500 else logging.ERROR
        logger.log(
            level,
            "AppError: %s",
            exc,
            extra={"error_type": type(exc).__name__, "path": request.path},
        )
        payload = dict(exc.payload)
        payload.setdefault("error", exc.message)
        payload.setdefault("type", type(exc).__name__)
        return jsonify(payload), exc.status_code

    @app.errorhandler(404)
    def handle_404(exc):
        logger.info("404 Not Found: %s %s", request.method, request.path)
        return jsonify({"error": "Resource not found"}), 404

    @app.errorhandler(405)
    def handle_405(exc):
        return jsonify({"error": "Method not allowed"}), 405

    @app.errorhandler(500)
    def handle_500(exc):
        logger.exception("Unhandled server error")
        return jsonify({"error": "Internal server error"}), 500
