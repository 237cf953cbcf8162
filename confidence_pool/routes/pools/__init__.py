from flask import Blueprint

bp = Blueprint("pools", __name__)

from confidence_pool.routes.pools import routes  # noqa: E402, F401
