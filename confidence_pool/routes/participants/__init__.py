from flask import Blueprint

bp = Blueprint("participants", __name__)

from confidence_pool.routes.participants import routes  # noqa: E402, F401
