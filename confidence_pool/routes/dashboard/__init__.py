from flask import Blueprint

bp = Blueprint("dashboard", __name__)

from confidence_pool.routes.dashboard import routes  # noqa: E402, F401
