# worktime_app/blueprints/workload/__init__.py
from flask import Blueprint

bp = Blueprint("workload", __name__, url_prefix="/api/workload")

from . import routes  # noqa
