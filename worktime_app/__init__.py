# worktime_app/__init__.py
"""
Application factory for the worktime service.
"""

from __future__ import annotations

import logging

from flask import Flask, jsonify

from .config import cfg
from .logging_cfg import configure_logging


def create_app() -> Flask:
    """
    Create and configure the Flask application.

    Used by:
      - run.py (local dev)
      - wsgi.py / gunicorn (production)
    """
    # Configure Python logging first
    configure_logging()
    logger = logging.getLogger(__name__)
    logger.info("Creating worktime app")

    app = Flask(__name__)

    app.config.update(
        SECRET_KEY=cfg.SECRET_KEY,
        DATABASE_URL=cfg.DATABASE_URL,
        LOCAL_TIMEZONE=cfg.LOCAL_TIMEZONE,
        CARRY_OVER_HOURS=cfg.CARRY_OVER_HOURS,
        ENV="production" if not cfg.DEBUG else "development",
        DEBUG=cfg.DEBUG,
        TESTING=cfg.TESTING,
    )

    # Tables and the open-entry index are created on boot
    from .services.bootstrap import init_schema
    init_schema()

    # Register blueprints
    from .blueprints.timer import bp as timer_bp
    from .blueprints.workload import bp as workload_bp
    app.register_blueprint(timer_bp)
    app.register_blueprint(workload_bp)

    # Error handlers (AppError / 404 / 405 / 500 as JSON)
    from .core.errors import register_error_handlers
    register_error_handlers(app)

    @app.get("/healthz")
    def healthz():
        return jsonify({"status": "ok"})

    logger.info("Worktime app created")
    return app


__all__ = ("create_app",)
