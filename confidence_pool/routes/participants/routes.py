import logging
import secrets

from flask import jsonify
from flask_login import current_user, login_required

from confidence_pool import db
from confidence_pool.errors import (
    DependentNotFound,
    Forbidden,
    FormValidationError,
    NotFound,
)
from confidence_pool.forms.participants import (
    AdminCreateParticipantForm,
    DependentForm,
    ProfileForm,
)
from confidence_pool.models import AdminAction, Participant, Pick
from confidence_pool.routes.decorators import (
    dependent_id_arg,
    get_pool_or_404,
    json_body,
    pool_admin_required,
    validate_form,
)
from confidence_pool.routes.participants import bp
from confidence_pool.services.pick_service import save_picks_for_participant
from confidence_pool.utils.cache_utils import invalidate_standings_for_participant
from confidence_pool.utils.picker import Picker

logger = logging.getLogger(__name__)


def _get_participant_or_404(participant_id):
    participant = db.session.get(Participant, participant_id)
    if participant is None:
        raise NotFound("Participant not found")
    return participant


def _get_own_dependent_or_404(dependent_id):
    dependent = current_user.get_dependent(dependent_id)
    if dependent is None:
        raise DependentNotFound(details={"dependent_id": dependent_id})
    return dependent


# ==========================================
# PROFILE
# ==========================================


@bp.route("/profile")
@login_required
def get_profile():
    return jsonify(current_user.to_dict())


@bp.route("/profile", methods=["PUT"])
@login_required
def update_profile():
    form = validate_form(ProfileForm(original_email=current_user.email))

    if form.email.data:
        current_user.email = form.email.data.strip()
    if form.display_name.data:
        current_user.set_display_name(form.display_name.data)
    if form.location.raw_data:
        current_user.location = (form.location.data or "").strip() or None

    db.session.commit()
    invalidate_standings_for_participant(current_user)

    logger.info(f"Profile updated for {current_user.username}")
    return jsonify(current_user.to_dict())


# ==========================================
# DEPENDENTS
# ==========================================


@bp.route("/dependents")
@login_required
def list_dependents():
    return jsonify([d.to_dict() for d in current_user.dependents])


@bp.route("/dependents", methods=["POST"])
@login_required
def add_dependent():
    form = validate_form(DependentForm())
    name = form.display_name.data.strip()

    if current_user.has_dependent_named(name):
        raise FormValidationError(
            {"display_name": ["A dependent with this name already exists"]}
        )

    dependent = current_user.add_dependent(name)
    db.session.commit()
    invalidate_standings_for_participant(current_user)

    logger.info(f"{current_user.username} added dependent {dependent.id}")
    return jsonify(dependent.to_dict()), 201


@bp.route("/dependents/<int:dependent_id>", methods=["PUT"])
@login_required
def rename_dependent(dependent_id):
    dependent = _get_own_dependent_or_404(dependent_id)
    form = validate_form(DependentForm())
    name = form.display_name.data.strip()

    if current_user.has_dependent_named(name, exclude_id=dependent.id):
        raise FormValidationError(
            {"display_name": ["A dependent with this name already exists"]}
        )

    dependent.display_name = name
    db.session.commit()
    invalidate_standings_for_participant(current_user)

    return jsonify(dependent.to_dict())


@bp.route("/dependents/<int:dependent_id>", methods=["DELETE"])
@login_required
def remove_dependent(dependent_id):
    """Remove a dependent along with every pick made for them"""
    dependent = _get_own_dependent_or_404(dependent_id)

    removed_picks = Pick.query.filter_by(dependent_id=dependent.id).delete(
        synchronize_session="fetch"
    )
    current_user.dependents.remove(dependent)
    db.session.commit()
    invalidate_standings_for_participant(current_user)

    logger.info(
        f"{current_user.username} removed dependent {dependent_id} "
        f"and {removed_picks} of their picks"
    )
    return jsonify({"message": "Dependent removed successfully"})


# ==========================================
# PARTICIPANT-SPECIFIC ROUTES
# ==========================================


@bp.route("/<int:participant_id>/pools")
@login_required
def participant_pools(participant_id):
    participant = _get_participant_or_404(participant_id)
    return jsonify({"pools": [m.to_dict() for m in participant.pool_memberships]})


@bp.route("/<int:participant_id>/picks/<int:pool_id>")
@login_required
def participant_picks(participant_id, pool_id):
    """
    A participant's picks for a pool (optionally a dependent's).

    Open to the participant themself and to the pool admin.
    """
    pool = get_pool_or_404(pool_id)
    participant = _get_participant_or_404(participant_id)
    if current_user.id != participant.id and not pool.is_admin(current_user.id):
        raise Forbidden("Cannot view another participant's picks")

    dependent_id = dependent_id_arg()
    if dependent_id is not None and participant.get_dependent(dependent_id) is None:
        raise DependentNotFound(details={"dependent_id": dependent_id})

    picks = Pick.query_for_picker(Picker.of(participant.id, dependent_id), pool.id).all()
    return jsonify([pick.to_dict() for pick in picks])


# ==========================================
# POOL ADMIN ROUTES
# ==========================================


@bp.route("/pool/<int:pool_id>")
@login_required
@pool_admin_required
def pool_participants(pool):
    """Members of a pool with their dependents"""
    return jsonify([p.to_dict() for p in pool.get_participants()])


@bp.route("/admin/create", methods=["POST"])
@login_required
@pool_admin_required
def admin_create_participant(pool):
    """Create a participant (or reuse one by email) and add them to the pool"""
    form = validate_form(AdminCreateParticipantForm())
    email = (form.email.data or "").strip() or None

    participant = Participant.query.filter_by(email=email).first() if email else None
    created = participant is None

    if created:
        participant = Participant(
            username=Participant.username_from_email(
                email or form.display_name.data.strip().replace(" ", "_").lower()
            ),
            email=email,
        )
        participant.set_display_name(form.display_name.data)
        participant.set_password(form.password.data or secrets.token_urlsafe(12))
        db.session.add(participant)
        db.session.flush()

    pool.add_member(participant)
    AdminAction.log_action(
        admin_id=current_user.id,
        pool_id=pool.id,
        action_type="create_participant" if created else "add_participant",
        description=f"{'Created' if created else 'Added'} participant {participant.full_name}",
        target_participant_id=participant.id,
    )
    db.session.commit()
    invalidate_standings_for_participant(participant)

    logger.info(
        f"Admin {current_user.username} {'created' if created else 'added'} "
        f"participant {participant.id} in pool {pool.id}"
    )
    return jsonify(participant.to_dict()), 201 if created else 200


@bp.route("/admin/picks", methods=["POST"])
@login_required
@pool_admin_required
def admin_save_picks(pool):
    """
    Save picks on behalf of a participant or their dependent.

    Picks for games that are already complete are left alone.
    """
    data = json_body()
    participant_id = data.get("participant_id") or data.get("participantId")
    if not participant_id:
        raise FormValidationError({"participant_id": ["Participant ID is required"]})

    target = _get_participant_or_404(participant_id)
    written, picks, skipped = save_picks_for_participant(
        current_user,
        target,
        pool,
        data.get("picks"),
        dependent_id=data.get("dependent_id", data.get("dependentId")),
    )

    message = "Picks saved successfully"
    if written == 0 and skipped:
        message = "No picks to save (all games already complete)"

    return jsonify(
        {
            "message": message,
            "written_count": written,
            "skipped_game_ids": sorted(skipped),
            "picks": [pick.to_dict() for pick in picks],
        }
    )

