import logging

from flask import jsonify
from flask_login import login_required

from confidence_pool.routes.decorators import (
    get_active_pool_or_404,
    get_pool_or_404,
    require_pool_member,
)
from confidence_pool.routes.standings import bp
from confidence_pool.utils.scoring import build_standings

logger = logging.getLogger(__name__)


@bp.route("")
@login_required
def active_standings():
    """Ranked standings for the pool in play"""
    pool = get_active_pool_or_404()
    return jsonify(build_standings(pool))


@bp.route("/pool/<int:pool_id>")
@login_required
def pool_standings(pool_id):
    pool = get_pool_or_404(pool_id)
    require_pool_member(pool)
    return jsonify(build_standings(pool))
