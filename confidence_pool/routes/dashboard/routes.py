import logging

from flask import jsonify
from flask_login import current_user, login_required

from confidence_pool.models import Game
from confidence_pool.routes.dashboard import bp
from confidence_pool.routes.decorators import get_active_pool_or_404, require_pool_member
from confidence_pool.services.pick_service import picks_status
from confidence_pool.utils.picker import Picker
from confidence_pool.utils.scoring import build_standings, find_picker_standing

logger = logging.getLogger(__name__)


@bp.route("")
@login_required
def dashboard():
    """Pool info, my pick progress, my place in the standings and what is next"""
    pool = require_pool_member(get_active_pool_or_404())
    picker = Picker.for_self(current_user.id)

    standings = build_standings(pool)
    mine = find_picker_standing(standings, picker)

    return jsonify(
        {
            "pool_info": {
                "id": pool.id,
                "name": pool.name,
                "round": pool.round,
                "total_games": pool.total_games,
            },
            "picks_status": picks_status(picker, pool),
            "standings": {
                "rank": mine["rank"] if mine else None,
                "total_players": len(standings["standings"]),
                "points": mine["earned_points"] if mine else 0,
                "possible_points": mine["possible_points"] if mine else None,
            },
            "upcoming_games": [
                game.to_dict()
                for game in Game.get_games_for_pool(pool.id)
                if not game.has_started()
            ],
        }
    )
