import logging

from flask import jsonify
from flask_login import current_user, login_required
from sqlalchemy.exc import SQLAlchemyError

from confidence_pool import db
from confidence_pool.errors import Forbidden, FormValidationError
from confidence_pool.forms.pools import CreatePoolForm, PoolSettingsForm
from confidence_pool.models import AdminAction, Pick, Pool
from confidence_pool.routes.decorators import (
    field_was_sent,
    get_active_pool_or_404,
    get_pool_or_404,
    pool_admin_required,
    validate_form,
)
from confidence_pool.routes.pools import bp
from confidence_pool.utils.cache_utils import invalidate_standings
from confidence_pool.utils.picker import Picker
from confidence_pool.utils.timezone_utils import to_naive_utc

logger = logging.getLogger(__name__)


def _is_pool_admin(pool, participant_id):
    """Admin flag for display; a failed lookup shows as not admin"""
    try:
        return pool.is_admin(participant_id)
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.warning(f"Could not determine admin status for pool {pool.id}: {e}")
        return False


@bp.route("/active")
@login_required
def active_pool():
    """The pool in play, as seen by the current participant"""
    pool = get_active_pool_or_404()

    membership = current_user.get_membership(pool.id)
    if membership is None:
        raise Forbidden("You are not a participant in the active pool")

    data = pool.to_dict()
    data["joined_at"] = membership.joined_at.isoformat() if membership.joined_at else None
    data["is_admin"] = _is_pool_admin(pool, current_user.id)
    return jsonify(data)


@bp.route("/available")
@login_required
def available_pools():
    """Pools open for joining: the active pool, if any"""
    pool = Pool.get_active()
    if pool is None:
        return jsonify([])

    data = pool.to_dict()
    data["is_member"] = pool.is_member(current_user.id)
    return jsonify([data])


@bp.route("/admin")
@login_required
def admin_pools():
    pools = (
        Pool.query.filter_by(admin_id=current_user.id)
        .order_by(Pool.created_at.desc())
        .all()
    )
    return jsonify([pool.to_dict() for pool in pools])


@bp.route("/<int:pool_id>")
@login_required
def get_pool(pool_id):
    pool = get_pool_or_404(pool_id)
    data = pool.to_dict()
    data["is_member"] = pool.is_member(current_user.id)
    data["is_admin"] = _is_pool_admin(pool, current_user.id)
    return jsonify(data)


@bp.route("", methods=["POST"])
@login_required
def create_pool():
    """Create a pool; the creator becomes its admin and first participant"""
    form = validate_form(CreatePoolForm())

    pool = Pool.create_pool(
        name=form.name.data,
        admin=current_user,
        start_date=to_naive_utc(form.start_date.data),
        end_date=to_naive_utc(form.end_date.data),
        total_games=form.total_games.data,
        entry_fee=form.entry_fee.data,
    )
    db.session.commit()

    logger.info(f"Pool '{pool.name}' created by {current_user.username}")
    return jsonify(pool.to_dict()), 201


@bp.route("/<int:pool_id>/join", methods=["POST"])
@login_required
def join_pool(pool_id):
    pool = get_pool_or_404(pool_id)

    success, message = pool.add_member(current_user)
    if not success:
        raise FormValidationError({"pool": [message]}, message=message)

    db.session.commit()
    invalidate_standings(pool.id)

    logger.info(f"{current_user.username} joined pool {pool.id}")
    return jsonify({"message": message, "pool": pool.to_dict()})


@bp.route("/<int:pool_id>/leave", methods=["POST"])
@login_required
def leave_pool(pool_id):
    pool = get_pool_or_404(pool_id)

    if pool.is_admin(current_user.id):
        raise Forbidden("The pool admin cannot leave their own pool")

    success, message = pool.remove_member(current_user.id)
    if not success:
        raise FormValidationError({"pool": [message]}, message=message)

    db.session.commit()
    invalidate_standings(pool.id)

    logger.info(f"{current_user.username} left pool {pool.id}")
    return jsonify({"message": message})


@bp.route("/<int:pool_id>", methods=["PUT"])
@login_required
@pool_admin_required
def update_pool(pool):
    """Admin settings update; only the fields sent are changed"""
    form = validate_form(PoolSettingsForm())
    changes = {}

    if form.name.data:
        pool.name = form.name.data.strip()
        changes["name"] = pool.name
    if form.total_games.data:
        pool.total_games = form.total_games.data
        changes["total_games"] = pool.total_games
    if form.start_date.data:
        pool.start_date = to_naive_utc(form.start_date.data)
        changes["start_date"] = pool.start_date.isoformat()
    if form.end_date.data:
        pool.end_date = to_naive_utc(form.end_date.data)
        changes["end_date"] = pool.end_date.isoformat()
    if form.entry_fee.data is not None:
        pool.entry_fee = form.entry_fee.data
        changes["entry_fee"] = pool.entry_fee
    if field_was_sent(form.is_active):
        if form.is_active.data:
            pool.activate()
        else:
            pool.deactivate()
        changes["is_active"] = form.is_active.data

    pool.validate_settings()

    AdminAction.log_action(
        admin_id=current_user.id,
        pool_id=pool.id,
        action_type="update_pool",
        description=f"Updated settings for pool {pool.name}",
        action_metadata=changes,
    )
    db.session.commit()
    invalidate_standings(pool.id)

    logger.info(f"Pool {pool.id} updated by {current_user.username}: {changes}")
    return jsonify(pool.to_dict())


@bp.route("/<int:pool_id>/participants")
@login_required
@pool_admin_required
def pool_participants(pool):
    """Pool members and their dependents with pick completeness"""
    total_games = pool.games.count()

    def pick_progress(picker):
        count = Pick.query_for_picker(picker, pool.id).count()
        return {
            "picks_count": count,
            "total_games": total_games,
            "picks_complete": total_games > 0 and count >= total_games,
        }

    participants = []
    for participant in pool.get_participants():
        entry = participant.to_dict(include_dependents=False)
        entry.update(pick_progress(Picker.for_self(participant.id)))
        entry["dependents"] = []
        for dependent in participant.dependents:
            dependent_entry = dependent.to_dict()
            dependent_entry["parent_name"] = participant.full_name
            dependent_entry.update(
                pick_progress(Picker.for_dependent(participant.id, dependent.id))
            )
            entry["dependents"].append(dependent_entry)
        participants.append(entry)

    return jsonify(participants)


@bp.route("/<int:pool_id>/admin-actions")
@login_required
@pool_admin_required
def pool_admin_actions(pool):
    actions = AdminAction.get_pool_actions(pool.id)
    return jsonify([action.to_dict() for action in actions])
