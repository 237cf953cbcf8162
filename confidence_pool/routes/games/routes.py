import logging

from flask import jsonify
from flask_login import current_user, login_required

from confidence_pool import db
from confidence_pool.errors import FormValidationError
from confidence_pool.forms.games import GameForm, GameResultForm, GameUpdateForm
from confidence_pool.models import AdminAction, Game
from confidence_pool.routes.decorators import (
    field_was_sent,
    game_admin_required,
    get_active_pool_or_404,
    get_pool_or_404,
    pool_admin_required,
    require_pool_member,
    validate_form,
)
from confidence_pool.routes.games import bp
from confidence_pool.services.game_results import record_game_result
from confidence_pool.utils.cache_utils import invalidate_standings
from confidence_pool.utils.timezone_utils import to_naive_utc

logger = logging.getLogger(__name__)


@bp.route("/upcoming")
@login_required
def upcoming_games():
    """Active pool games still open or not yet kicked off, soonest first"""
    pool = get_active_pool_or_404()
    games = Game.get_upcoming_games(pool.id)
    return jsonify([game.to_dict() for game in games])


@bp.route("/pool/<int:pool_id>")
@login_required
def pool_games(pool_id):
    pool = require_pool_member(get_pool_or_404(pool_id))
    return jsonify([game.to_dict() for game in Game.get_games_for_pool(pool.id)])


@bp.route("", methods=["POST"])
@login_required
@pool_admin_required
def create_game(pool):
    form = validate_form(GameForm())

    game = Game(
        pool_id=pool.id,
        round=form.round.data,
        game_title=(form.game_title.data or "").strip() or None,
        home_team=form.home_team.data.strip(),
        away_team=form.away_team.data.strip(),
        game_time=to_naive_utc(form.game_time.data),
        tv_network=(form.tv_network.data or "").strip() or None,
        is_complete=False,
    )
    db.session.add(game)
    db.session.flush()

    AdminAction.log_action(
        admin_id=current_user.id,
        pool_id=pool.id,
        action_type="create_game",
        description=f"Added {game.away_team} @ {game.home_team} ({game.round})",
        game_id=game.id,
    )
    db.session.commit()
    invalidate_standings(pool.id)

    logger.info(f"Game {game.id} created in pool {pool.id} by {current_user.username}")
    return jsonify(game.to_dict()), 201


@bp.route("/<int:game_id>", methods=["PUT"])
@login_required
@game_admin_required
def update_game(game):
    """Update game attributes; teams and round are fixed once picks exist"""
    form = validate_form(GameUpdateForm())

    home_team = (form.home_team.data or "").strip() or game.home_team
    away_team = (form.away_team.data or "").strip() or game.away_team
    new_round = form.round.data or game.round

    has_picks = game.picks.count() > 0
    if has_picks and (
        (home_team, away_team) != (game.home_team, game.away_team)
        or new_round != game.round
    ):
        raise FormValidationError(
            {"game": ["Teams and round cannot change once picks have been made"]}
        )
    if home_team.lower() == away_team.lower():
        raise FormValidationError({"away_team": ["Home and away teams must be different"]})

    game.home_team = home_team
    game.away_team = away_team
    game.round = new_round
    if form.game_title.data:
        game.game_title = form.game_title.data.strip()
    if form.game_time.data:
        game.game_time = to_naive_utc(form.game_time.data)
    if field_was_sent(form.tv_network):
        game.tv_network = (form.tv_network.data or "").strip() or None

    db.session.commit()
    invalidate_standings(game.pool_id)

    logger.info(f"Game {game.id} updated by {current_user.username}")
    return jsonify({"message": "Game updated successfully", "game": game.to_dict()})


@bp.route("/<int:game_id>/complete", methods=["PUT"])
@bp.route("/<int:game_id>/result", methods=["PUT"])
@login_required
@game_admin_required
def record_result(game):
    """Mark a game final with its winner, or reopen it"""
    form = validate_form(GameResultForm())
    is_complete = form.is_complete.data if field_was_sent(form.is_complete) else True
    winner = (form.winner.data or "").strip() or None

    event = record_game_result(game, winner, is_complete, admin=current_user)

    return jsonify(
        {
            "message": "Game marked as complete" if event.is_complete else "Game reopened",
            "game_id": event.game_id,
            "winner": event.winner,
            "is_complete": event.is_complete,
        }
    )
