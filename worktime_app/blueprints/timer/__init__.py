# worktime_app/blueprints/timer/__init__.py
from flask import Blueprint

bp = Blueprint("timer", __name__, url_prefix="/api/timer")

from . import routes  # noqa
