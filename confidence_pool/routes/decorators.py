from functools import wraps

from flask import request
from flask_login import current_user

from confidence_pool import db
from confidence_pool.errors import (
    DependentNotFound,
    Forbidden,
    FormValidationError,
    NotFound,
)
from confidence_pool.models import Game, Pool


def validate_form(form):
    """Run WTForms validation, raising FormValidationError with the field errors"""
    if not form.validate():
        raise FormValidationError(form.errors)
    return form


def json_body():
    """The request's JSON object, or an empty dict"""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def field_was_sent(form_field):
    """True when the client included this field in the request"""
    return bool(form_field.raw_data)


def get_pool_or_404(pool_id):
    pool = db.session.get(Pool, pool_id)
    if pool is None:
        raise NotFound("Pool not found")
    return pool


def get_game_or_404(game_id):
    game = db.session.get(Game, game_id)
    if game is None:
        raise NotFound("Game not found")
    return game


def get_active_pool_or_404():
    pool = Pool.get_active()
    if pool is None:
        raise NotFound("No active pool found")
    return pool


def require_pool_admin(pool):
    if not pool.is_admin(current_user.id):
        raise Forbidden("Access denied. You are not the admin of this pool.")
    return pool


def require_pool_member(pool):
    if not pool.is_member(current_user.id):
        raise Forbidden("You are not a participant in this pool")
    return pool


def pool_admin_required(f):
    """
    Restrict a route to the admin of the pool it targets.

    The pool id is taken from the pool_id URL argument, or from pool_id in
    the JSON body or query string. The pool is passed to the view as ``pool``.
    """

    @wraps(f)
    def decorated_function(*args, **kwargs):
        pool_id = kwargs.pop("pool_id", None)
        if pool_id is None:
            pool_id = json_body().get("pool_id") or request.args.get(
                "pool_id", type=int
            )
        if not pool_id:
            raise FormValidationError({"pool_id": ["Pool ID is required"]})

        pool = require_pool_admin(get_pool_or_404(pool_id))
        return f(*args, pool=pool, **kwargs)

    return decorated_function


def game_admin_required(f):
    """Restrict a game route to the admin of the game's pool; passes ``game``"""

    @wraps(f)
    def decorated_function(game_id, *args, **kwargs):
        game = get_game_or_404(game_id)
        require_pool_admin(game.pool)
        return f(*args, game=game, **kwargs)

    return decorated_function


def dependent_id_arg():
    """Optional ?dependent_id= filter (also accepts dependentId)"""
    value = request.args.get("dependent_id") or request.args.get("dependentId")
    if value in (None, "", "null"):
        return None
    try:
        return int(value)
    except ValueError:
        raise DependentNotFound(details={"dependent_id": value})
