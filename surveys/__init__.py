"""
Multi-Tenant Surveys
Flask Application Factories.

Two applications share this package, its models and its configuration:

    create_api_app()  — the backing REST API (/api/v1/...), bearer-token auth
    create_web_app()  — the server-rendered front-end, OIDC sign-in

Usage:
    from surveys import create_api_app, create_web_app
    api = create_api_app()            # defaults to APP_ENV or "development"
    web = create_web_app("testing")   # explicit config
"""

import logging
import os
from datetime import timedelta

from flask import Flask, abort, render_template, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from sqlalchemy import engine as _sa_engine, event as _sa_event

from surveys.config import config
from surveys.middleware.logging_config import configure_logging
from surveys.middleware.rate_limiter import init_rate_limits
from surveys.middleware.security_headers import init_security_headers
from surveys.middleware.timing import init_request_timing
from surveys.models import db
from surveys.utils.errors import E, api_error

logger = logging.getLogger(__name__)


# ── SQLite FK enforcement (global engine event) ─────────────────────────
@_sa_event.listens_for(_sa_engine.Engine, "connect")
def _enable_sqlite_fk(dbapi_conn, connection_record):
    """Enable foreign key enforcement for SQLite connections."""
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


migrate = Migrate()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],                     # no global limit, applied per blueprint
    storage_uri=os.getenv("REDIS_URL", "memory://"),
)


def _create_base_app(config_name):
    """Shared setup: config, logging, extensions, tables, health probes."""
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    # Instantiated so ProductionConfig can refuse to start without its env vars
    app.config.from_object(config[config_name]())

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)

    # ── Security headers + request timing ────────────────────────────────
    init_security_headers(app)
    init_request_timing(app)

    app.config.setdefault("MAX_CONTENT_LENGTH", 1 * 1024 * 1024)  # 1 MB

    # ── Import all models so Alembic can detect them ─────────────────────
    from surveys.models import tenant as _tenant_models    # noqa: F401
    from surveys.models import survey as _survey_models    # noqa: F401

    # ── Auto-create tables (CREATE IF NOT EXISTS) ───────────────────────
    if app.config["SQLALCHEMY_DATABASE_URI"].startswith("sqlite:///") and ":memory:" not in app.config["SQLALCHEMY_DATABASE_URI"]:
        os.makedirs(app.instance_path, exist_ok=True)
    with app.app_context():
        try:
            db.create_all()
        except Exception as e:
            app.logger.warning("db.create_all() failed: %s", e)

    from surveys.blueprints.health_bp import health_bp
    app.register_blueprint(health_bp)

    return app


# ═══════════════════════════════════════════════════════════════════════════
#  REST API
# ═══════════════════════════════════════════════════════════════════════════

def create_api_app(config_name=None):
    """
    Create and configure the survey REST API.

    Args:
        config_name: One of "development", "testing", "production".
                     Defaults to APP_ENV env var, or "development" if unset.
    """
    app = _create_base_app(config_name)

    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins == "*":
        CORS(app)
    elif cors_origins:
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()])

    # ── Bearer token → g.current_user ───────────────────────────────────
    from surveys.middleware.jwt_auth import init_jwt_middleware
    init_jwt_middleware(app)

    @app.before_request
    def _guard_request():
        # Content-Type validation for mutating methods
        if request.method in ("POST", "PUT", "PATCH"):
            ct = request.content_type or ""
            if request.data and "json" not in ct:
                abort(415, description="Content-Type must be application/json")

    # ── Blueprints ───────────────────────────────────────────────────────
    from surveys.blueprints.survey_api_bp import survey_api_bp
    from surveys.blueprints.question_api_bp import question_api_bp

    app.register_blueprint(survey_api_bp)
    app.register_blueprint(question_api_bp)

    # ── Error handlers ───────────────────────────────────────────────────
    @app.errorhandler(404)
    def not_found(e):
        return api_error(E.NOT_FOUND, "Not found", details={"path": request.path})

    @app.errorhandler(405)
    def method_not_allowed(e):
        return api_error(E.VALIDATION_INVALID, "Method not allowed", status=405)

    @app.errorhandler(413)
    def too_large(e):
        return api_error(E.VALIDATION_INVALID, "Request body too large", status=413)

    @app.errorhandler(415)
    def unsupported_media(e):
        return api_error(E.VALIDATION_INVALID, e.description, status=415)

    @app.errorhandler(429)
    def rate_limited(e):
        return api_error(E.VALIDATION_INVALID, "Too many requests", status=429,
                         details={"retry_after": e.description})

    @app.errorhandler(500)
    def server_error(e):
        logger.error("500 error: %s", e, exc_info=True)
        return api_error(E.INTERNAL, "Internal server error")

    init_rate_limits(app, limiter)
    return app


# ═══════════════════════════════════════════════════════════════════════════
#  WEB FRONT-END
# ═══════════════════════════════════════════════════════════════════════════

def create_web_app(config_name=None):
    """
    Create and configure the server-rendered web front-end.

    Args:
        config_name: One of "development", "testing", "production".
                     Defaults to APP_ENV env var, or "development" if unset.
    """
    app = _create_base_app(config_name)

    app.config.setdefault("SESSION_COOKIE_HTTPONLY", True)
    app.config.setdefault("SESSION_COOKIE_SAMESITE", "Lax")
    app.config.setdefault("PERMANENT_SESSION_LIFETIME", timedelta(hours=8))

    # ── Session auth + CSRF ──────────────────────────────────────────────
    from surveys.auth import init_auth
    init_auth(app)

    # ── Blueprints ───────────────────────────────────────────────────────
    from surveys.blueprints.home_bp import home_bp
    from surveys.blueprints.account_bp import account_bp
    from surveys.blueprints.survey_views_bp import survey_bp
    from surveys.blueprints.question_views_bp import question_bp

    app.register_blueprint(home_bp)
    app.register_blueprint(account_bp)
    app.register_blueprint(survey_bp)
    app.register_blueprint(question_bp)

    # ── Error handlers ───────────────────────────────────────────────────
    @app.errorhandler(400)
    def bad_request(e):
        return render_template("error.html", message=e.description or "Bad Request"), 400

    @app.errorhandler(404)
    def not_found(e):
        return render_template("error.html", message="Page not found"), 404

    @app.errorhandler(429)
    def rate_limited(e):
        return render_template("error.html", message="Too many requests"), 429

    @app.errorhandler(500)
    def server_error(e):
        logger.error("500 error: %s", e, exc_info=True)
        return render_template("error.html", message="Unexpected Error"), 500

    init_rate_limits(app, limiter)
    return app
