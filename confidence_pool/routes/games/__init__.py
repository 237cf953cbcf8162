from flask import Blueprint

bp = Blueprint("games", __name__)

from confidence_pool.routes.games import routes  # noqa: E402, F401
