# worktime_app/logging_cfg.py
"""
Central logging configuration for the worktime service.

Call configure_logging() early in app startup (create_app does it) so that
all modules share a consistent logging setup.
"""

from __future__ import annotations

import json
import logging
from logging.config import dictConfig

from worktime_app.config import cfg


class DetailedFormatter(logging.Formatter):
    """
    Formatter that appends the 'extra' dict fields of a record as JSON.

    logger.info("[TIMER] started", extra={"entry_id": ...}) renders the
    message line followed by the extra fields.
    """

    # Standard log record attributes that shouldn't be treated as "extra"
    STANDARD_ATTRS = {
        'name', 'msg', 'args', 'created', 'filename', 'funcName', 'levelname',
        'levelno', 'lineno', 'module', 'msecs', 'message', 'pathname', 'process',
        'processName', 'relativeCreated', 'thread', 'threadName', 'exc_info',
        'exc_text', 'stack_info', 'asctime', 'taskName',
    }

    def format(self, record: logging.LogRecord) -> str:
        base_message = super().format(record)

        extra_fields = {
            key: value
            for key, value in record.__dict__.items()
            if key not in self.STANDARD_ATTRS and not key.startswith('_')
        }
        if not extra_fields:
            return base_message

        try:
            extra_json = json.dumps(extra_fields, indent=2, ensure_ascii=False, default=str)
        except (TypeError, ValueError):
            return base_message
        return f"{base_message}\n{extra_json}"


def configure_logging() -> None:
    """
    Configure Python logging using dictConfig.

    - Log level is INFO by default, DEBUG when cfg.DEBUG is True.
    - All logs go to stdout (container / Render friendly).
    """
    level = "DEBUG" if cfg.DEBUG else "INFO"

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "()": DetailedFormatter,
                    "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                },
            },
            "handlers": {
                "wsgi": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                    "stream": "ext://sys.stdout",
                },
            },
            "root": {
                "level": level,
                "handlers": ["wsgi"],
            },
            "loggers": {
                "werkzeug": {"level": "WARNING"},
            },
        }
    )

    logging.getLogger(__name__).info("Logging configured (level=%s)", level)
