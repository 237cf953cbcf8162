from flask import Blueprint

bp = Blueprint("picks", __name__)

from confidence_pool.routes.picks import routes  # noqa: E402, F401
