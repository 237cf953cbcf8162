import logging

from flask import jsonify
from flask_login import current_user, login_required, login_user, logout_user
from flask_wtf.csrf import generate_csrf

from confidence_pool import db, limiter, login_manager
from confidence_pool.errors import Unauthorized
from confidence_pool.forms.auth import LoginForm, RegistrationForm
from confidence_pool.models import Participant
from confidence_pool.routes.auth import bp
from confidence_pool.routes.decorators import validate_form

logger = logging.getLogger(__name__)


@login_manager.user_loader
def load_user(participant_id):
    return db.session.get(Participant, int(participant_id))


@bp.route("/register", methods=["POST"])
@limiter.limit("5 per minute")
def register():
    form = validate_form(RegistrationForm())

    email = form.email.data.strip()
    participant = Participant(
        username=Participant.username_from_email(email),
        email=email,
    )
    participant.set_display_name(form.display_name.data)
    participant.set_password(form.password.data)

    db.session.add(participant)
    db.session.commit()

    login_user(participant)
    logger.info(f"New participant registered: {participant.username}")

    return (
        jsonify(
            {
                "message": "Registration successful",
                "participant": participant.to_dict(),
            }
        ),
        201,
    )


@bp.route("/login", methods=["POST"])
@limiter.limit("10 per minute")
def login():
    form = validate_form(LoginForm())

    participant = Participant.find_by_login(form.login.data.strip())
    if participant is None or not participant.check_password(form.password.data):
        logger.warning(f"Failed login attempt for {form.login.data}")
        raise Unauthorized("Invalid credentials")

    login_user(participant, remember=form.remember_me.data)
    logger.info(f"Participant logged in: {participant.username}")

    return jsonify({"message": "Login successful", "participant": participant.to_dict()})


@bp.route("/logout", methods=["POST"])
@login_required
def logout():
    logger.info(f"Participant logged out: {current_user.username}")
    logout_user()
    return jsonify({"message": "Logged out"})


@bp.route("/me")
@login_required
def me():
    """Current participant with their pool memberships"""
    data = current_user.to_dict()
    data["pools"] = [m.to_dict() for m in current_user.pool_memberships]
    return jsonify(data)


@bp.route("/csrf-token")
def csrf_token():
    """Token for clients to send back in the X-CSRFToken header"""
    return jsonify({"csrf_token": generate_csrf()})
