import logging

from flask import jsonify
from flask_login import current_user, login_required

from confidence_pool.errors import DependentNotFound, Forbidden, FormValidationError
from confidence_pool.models import Game, Participant, Pick
from confidence_pool.routes.decorators import (
    dependent_id_arg,
    get_active_pool_or_404,
    get_pool_or_404,
    json_body,
    require_pool_member,
)
from confidence_pool.routes.picks import bp
from confidence_pool.services.pick_service import picks_status, save_picks
from confidence_pool.utils.picker import Picker
from confidence_pool.utils.scoring import picker_entry

logger = logging.getLogger(__name__)


def _picker_for_current_user(dependent_id):
    if dependent_id is None:
        return Picker.for_self(current_user.id)
    dependent = current_user.get_dependent(dependent_id)
    if dependent is None:
        raise DependentNotFound(details={"dependent_id": dependent_id})
    return Picker.for_dependent(current_user.id, dependent.id)


@bp.route("", methods=["POST"])
@login_required
def submit_picks():
    """
    Save a batch of picks for the current participant or one of their dependents.

    Body: {"picks": [...], "dependent_id": optional, "upsert": optional bool}
    """
    data = json_body()

    # Older clients send their own id; it must match the session
    claimed_id = data.get("participant_id") or data.get("participantId")
    if claimed_id is not None and str(claimed_id) != str(current_user.id):
        raise Forbidden("Cannot submit picks for another participant")

    upsert = data.get("upsert", False)
    if not isinstance(upsert, bool):
        raise FormValidationError({"upsert": ["Must be true or false"]})

    dependent_id = data.get("dependent_id", data.get("dependentId"))
    written, picks = save_picks(
        current_user, data.get("picks"), dependent_id=dependent_id, upsert=upsert
    )

    return (
        jsonify(
            {
                "message": "Picks saved successfully",
                "written_count": written,
                "picks": [pick.to_dict() for pick in picks],
            }
        ),
        201,
    )


@bp.route("/summary")
@login_required
def picks_summary():
    """Every picker's picks in the active pool, game by game"""
    pool = get_active_pool_or_404()
    require_pool_member(pool)

    games = Game.query.filter_by(pool_id=pool.id).order_by(Game.game_time.desc()).all()
    all_picks = Pick.query.filter_by(pool_id=pool.id).all()

    picks_by_picker = {}
    for pick in all_picks:
        picks_by_picker.setdefault(pick.picker, []).append(pick)

    participant_ids = {picker.participant_id for picker in picks_by_picker}
    participants = (
        Participant.query.filter(Participant.id.in_(participant_ids))
        .order_by(Participant.id)
        .all()
        if participant_ids
        else []
    )

    # Pickers who have made at least one pick, each parent before their dependents
    pickers = []
    for participant in participants:
        self_picker = Picker.for_self(participant.id)
        if self_picker in picks_by_picker:
            pickers.append(picker_entry(self_picker, participant))
        for dependent in participant.dependents:
            dependent_picker = Picker.for_dependent(participant.id, dependent.id)
            if dependent_picker in picks_by_picker:
                pickers.append(picker_entry(dependent_picker, participant, dependent))

    for entry in pickers:
        picks = picks_by_picker[Picker.of(entry["participant_id"], entry["dependent_id"])]
        entry["total_points"] = sum(p.confidence_points for p in picks if p.is_correct)
        entry["max_points"] = sum(p.confidence_points for p in picks)

    picks_by_game = {}
    for pick in all_picks:
        picks_by_game.setdefault(pick.game_id, []).append(
            {
                "participant_id": pick.participant_id,
                "dependent_id": pick.dependent_id,
                "selected_team": pick.selected_team,
                "confidence_points": pick.confidence_points,
                "is_correct": pick.is_correct,
            }
        )

    formatted_games = []
    for game in games:
        data = game.to_dict()
        data["picks"] = picks_by_game.get(game.id, [])
        formatted_games.append(data)

    return jsonify(
        {
            "pool_id": pool.id,
            "pool_name": pool.name,
            "round": pool.round,
            "games": formatted_games,
            "pickers": pickers,
        }
    )


@bp.route("/user")
@login_required
def user_picks():
    """The current participant's own picks across every pool"""
    picks = (
        Pick.query_for_picker(Picker.for_self(current_user.id))
        .join(Game)
        .order_by(Game.game_time)
        .all()
    )
    return jsonify([pick.to_dict(include_game=True) for pick in picks])


@bp.route("/status")
@login_required
def upcoming_status():
    """How many of the active pool's not-yet-started games I have picked"""
    pool = get_active_pool_or_404()

    upcoming_ids = [g.id for g in Game.get_games_for_pool(pool.id) if not g.has_started()]
    picked = 0
    if upcoming_ids:
        picked = (
            Pick.query_for_picker(Picker.for_self(current_user.id), pool.id)
            .filter(Pick.game_id.in_(upcoming_ids))
            .count()
        )

    return jsonify({"picked_games": picked, "total_games": len(upcoming_ids)})


@bp.route("/status/<int:pool_id>")
@login_required
def pool_status(pool_id):
    pool = get_pool_or_404(pool_id)
    picker = _picker_for_current_user(dependent_id_arg())
    return jsonify(picks_status(picker, pool))


@bp.route("/pool/<int:pool_id>")
@login_required
def pool_picks(pool_id):
    """My picks (or a dependent's) for a pool, with game details"""
    pool = get_pool_or_404(pool_id)
    picker = _picker_for_current_user(dependent_id_arg())

    picks = (
        Pick.query_for_picker(picker, pool.id).join(Game).order_by(Game.game_time).all()
    )
    return jsonify([pick.to_dict(include_game=True) for pick in picks])


@bp.route("/pool/<int:pool_id>/all")
@login_required
def pool_picks_all(pool_id):
    """My picks and each of my dependents' picks for a pool"""
    pool = get_pool_or_404(pool_id)

    def picks_for(picker):
        picks = (
            Pick.query_for_picker(picker, pool.id)
            .join(Game)
            .order_by(Game.game_time)
            .all()
        )
        return [pick.to_dict(include_game=True) for pick in picks]

    return jsonify(
        {
            "self": {
                "display_name": current_user.full_name,
                "picks": picks_for(Picker.for_self(current_user.id)),
            },
            "dependents": [
                {
                    "dependent_id": dependent.id,
                    "display_name": dependent.display_name,
                    "picks": picks_for(
                        Picker.for_dependent(current_user.id, dependent.id)
                    ),
                }
                for dependent in current_user.dependents
            ],
        }
    )
