from flask import Blueprint

bp = Blueprint("standings", __name__)

from confidence_pool.routes.standings import routes  # noqa: E402, F401
