import logging
import os

from flask import Flask, jsonify, request
from flask_caching import Cache
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_login import LoginManager
from flask_migrate import Migrate
from flask_socketio import SocketIO
from flask_sqlalchemy import SQLAlchemy
from flask_wtf.csrf import CSRFProtect
from sqlalchemy.exc import SQLAlchemyError

from config import config

logger = logging.getLogger(__name__)

db = SQLAlchemy()
login_manager = LoginManager()
socketio = SocketIO()
cache = Cache()
migrate = Migrate()
csrf = CSRFProtect()


def get_real_ip():
    """
    Get the real client IP address, accounting for reverse proxies.
    Checks X-Forwarded-For, X-Real-IP, and falls back to remote_addr.
    """
    if request.headers.get("X-Forwarded-For"):
        # Leftmost entry is the original client
        return request.headers.get("X-Forwarded-For").split(",")[0].strip()
    if request.headers.get("X-Real-IP"):
        return request.headers.get("X-Real-IP")
    return get_remote_address()


def _redis_url_if_reachable(redis_url):
    """Return redis_url when a Redis server answers there, else None"""
    if not redis_url:
        return None

    import redis

    try:
        redis.Redis.from_url(redis_url).ping()
    except redis.exceptions.ConnectionError as e:
        logger.warning(f"Redis not reachable at {redis_url}: {e}")
        return None
    return redis_url


# Shared rate limit storage across workers when Redis is available
limiter_storage_uri = (
    _redis_url_if_reachable(os.environ.get("REDIS_URL")) or "memory://"
)

limiter = Limiter(
    key_func=get_real_ip,
    default_limits=["10000 per day", "1000 per hour"],
    storage_uri=limiter_storage_uri,
)


def create_app(config_name=None):
    app = Flask(__name__)

    if config_name is None:
        config_name = os.environ.get("FLASK_CONFIG", "default")

    app.config.from_object(config[config_name]())

    app.config["SESSION_COOKIE_SAMESITE"] = "Lax"
    app.config["SESSION_COOKIE_HTTPONLY"] = True
    app.config["SESSION_COOKIE_SECURE"] = (
        False
        if app.config.get("DEBUG")
        else app.config.get("FLASK_ENV") == "production"
    )
    app.config["PERMANENT_SESSION_LIFETIME"] = 86400  # 24 hours
    app.config["WTF_CSRF_TIME_LIMIT"] = None
    app.config["WTF_CSRF_SSL_STRICT"] = False

    # Initialize extensions
    db.init_app(app)
    login_manager.init_app(app)

    allowed_origins = app.config.get("SOCKETIO_CORS_ORIGINS", "*")
    if allowed_origins == "*" and not (app.debug or app.testing):
        allowed_origins = os.environ.get(
            "ALLOWED_ORIGINS", "https://yourdomain.com"
        ).split(",")

    message_queue = None
    if not app.testing:
        message_queue = _redis_url_if_reachable(
            os.environ.get("REDIS_URL") or os.environ.get("CACHE_REDIS_URL")
        )

    socketio.init_app(
        app,
        cors_allowed_origins=allowed_origins,
        async_mode=app.config.get("SOCKETIO_ASYNC_MODE"),
        ping_timeout=60,
        ping_interval=25,
        message_queue=message_queue,
    )
    cache.init_app(app)
    migrate.init_app(app, db)
    csrf.init_app(app)
    limiter.init_app(app)

    from confidence_pool.errors import Unauthorized

    @login_manager.unauthorized_handler
    def unauthorized():
        raise Unauthorized("Authentication required")

    # Import and register blueprints
    from confidence_pool.routes.auth import bp as auth_bp

    app.register_blueprint(auth_bp, url_prefix="/api/auth")

    from confidence_pool.routes.pools import bp as pools_bp

    app.register_blueprint(pools_bp, url_prefix="/api/pools")

    from confidence_pool.routes.games import bp as games_bp

    app.register_blueprint(games_bp, url_prefix="/api/games")

    from confidence_pool.routes.picks import bp as picks_bp

    app.register_blueprint(picks_bp, url_prefix="/api/picks")

    from confidence_pool.routes.participants import bp as participants_bp

    app.register_blueprint(participants_bp, url_prefix="/api/participants")

    from confidence_pool.routes.standings import bp as standings_bp

    app.register_blueprint(standings_bp, url_prefix="/api/standings")

    from confidence_pool.routes.dashboard import bp as dashboard_bp

    app.register_blueprint(dashboard_bp, url_prefix="/api/dashboard")

    register_error_handlers(app)

    from confidence_pool.utils.logging_config import setup_logging

    setup_logging(app)

    with app.app_context():
        db.create_all()

    # Game results fan out to pick recomputation and live listeners
    from confidence_pool.services.game_results import register_default_handlers

    register_default_handlers()

    from confidence_pool import socketio_handlers  # noqa: F401 - imported for side effects

    return app


def register_error_handlers(app):
    """Register global error handlers"""
    from flask_wtf.csrf import CSRFError

    from confidence_pool.errors import PoolError, StorageFailure

    @app.after_request
    def after_request(response):
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-XSS-Protection"] = "1; mode=block"
        response.headers["Cache-Control"] = "no-store"

        if not app.config.get("DEBUG"):
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )

        return response

    @app.errorhandler(PoolError)
    def handle_pool_error(error):
        db.session.rollback()
        if error.status_code >= 500:
            app.logger.error(f"{error.code}: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(SQLAlchemyError)
    def handle_storage_error(error):
        db.session.rollback()
        app.logger.exception(f"Storage failure on {request.method} {request.path}")
        failure = StorageFailure()
        return jsonify(failure.to_dict()), failure.status_code

    @app.errorhandler(CSRFError)
    def handle_csrf_error(error):
        app.logger.warning(
            f"CSRF Error: {error.description} - Path: {request.path} - User-Agent: {request.user_agent}"
        )
        return jsonify({"error": "csrf_error", "message": error.description}), 400

    @app.errorhandler(400)
    def bad_request_error(error):
        app.logger.warning(
            f"400 Bad Request: {str(error)} - Path: {request.path} - Method: {request.method}"
        )
        return jsonify({"error": "bad_request", "message": "Bad request"}), 400

    @app.errorhandler(404)
    def not_found_error(error):
        return jsonify({"error": "not_found", "message": "Resource not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed_error(error):
        return (
            jsonify({"error": "method_not_allowed", "message": "Method not allowed"}),
            405,
        )

    @app.errorhandler(429)
    def too_many_requests_error(error):
        return (
            jsonify({"error": "too_many_requests", "message": "Too many requests"}),
            429,
        )

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        return (
            jsonify({"error": "internal_error", "message": "Internal server error"}),
            500,
        )


from confidence_pool import models  # noqa: F401, E402 - imported for model registration
