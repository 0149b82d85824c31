"""
Multi-Tenant Surveys
Configuration classes for the application factories.

Usage:
    config_name = os.getenv("APP_ENV", "development")
    app.config.from_object(config[config_name]())

Both the REST API and the web front-end read the same classes; settings
that only one side uses are simply ignored by the other.
"""

import os
import secrets

basedir = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))

# Default SQLite path for local dev when PostgreSQL is not running
_SQLITE_DEV = f"sqlite:///{os.path.join(basedir, 'instance', 'surveys_dev.db')}"
_SQLITE_TEST = "sqlite:///:memory:"

# Generate a random key for development; production MUST use a stable env var
_DEV_SECRET = secrets.token_hex(32)


def _database_url(default=None):
    # Railway/Heroku use postgres:// but SQLAlchemy 2.0 requires postgresql://
    raw = os.getenv("DATABASE_URL", "")
    return raw.replace("postgres://", "postgresql://", 1) if raw else default


class Config:
    """Base configuration shared across all environments."""

    SECRET_KEY = os.getenv("SECRET_KEY", _DEV_SECRET)
    DEBUG = False
    TESTING = False

    # SQLAlchemy
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_recycle": 300,
    }

    # Redis (rate limiter storage)
    REDIS_URL = os.getenv("REDIS_URL", "memory://")

    # CORS
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")

    # Paging for survey listings
    DEFAULT_PAGE_SIZE = int(os.getenv("DEFAULT_PAGE_SIZE", "20"))

    # OpenID Connect identity provider (web sign-in)
    OIDC_AUTHORITY = os.getenv("OIDC_AUTHORITY", "https://login.microsoftonline.com/common/v2.0")
    OIDC_CLIENT_ID = os.getenv("OIDC_CLIENT_ID")
    OIDC_CLIENT_SECRET = os.getenv("OIDC_CLIENT_SECRET")
    OIDC_SCOPES = os.getenv("OIDC_SCOPES", "openid email profile offline_access")
    OIDC_API_SCOPE = os.getenv("OIDC_API_SCOPE", "")
    OIDC_POST_LOGOUT_REDIRECT_URI = os.getenv("OIDC_POST_LOGOUT_REDIRECT_URI")

    # Bearer token validation (REST API).
    # With OIDC_JWKS_URL set, tokens are RS256-verified against the IdP keys;
    # without it they are HS256-signed with JWT_SECRET_KEY (dev/test only).
    OIDC_JWKS_URL = os.getenv("OIDC_JWKS_URL")
    API_AUDIENCE = os.getenv("API_AUDIENCE")
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY")

    # Downstream REST API called by the web front-end
    SURVEY_API_BASE_URL = os.getenv("SURVEY_API_BASE_URL", "http://localhost:5001/api/v1")
    SURVEY_API_TIMEOUT = int(os.getenv("SURVEY_API_TIMEOUT", "30"))


class DevelopmentConfig(Config):
    """Development environment configuration."""

    DEBUG = True
    SQLALCHEMY_DATABASE_URI = _database_url(_SQLITE_DEV)


class TestingConfig(Config):
    """Testing environment configuration."""

    TESTING = True
    SECRET_KEY = "test-secret-key"
    JWT_SECRET_KEY = "test-jwt-secret"
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", _SQLITE_TEST)
    SQLALCHEMY_ENGINE_OPTIONS = {}
    OIDC_JWKS_URL = None
    API_AUDIENCE = None
    OIDC_CLIENT_ID = "test-client"
    OIDC_CLIENT_SECRET = "test-client-secret"
    SURVEY_API_BASE_URL = "http://surveys-api.test/api/v1"
    RATELIMIT_ENABLED = False


class ProductionConfig(Config):
    """Production environment configuration."""

    DEBUG = False
    SQLALCHEMY_DATABASE_URI = _database_url()
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "")  # Must be set explicitly in production
    SESSION_COOKIE_SECURE = True

    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_size": 5,
        "max_overflow": 10,
        "pool_recycle": 300,
        "pool_timeout": 20,
        "connect_args": {
            "options": "-c statement_timeout=30000",  # 30s query timeout
        },
    }

    def __init__(self):
        if not self.SQLALCHEMY_DATABASE_URI:
            raise RuntimeError("DATABASE_URL environment variable is required in production")
        if not os.getenv("SECRET_KEY"):
            raise RuntimeError("SECRET_KEY environment variable must be set in production")
        if not self.OIDC_JWKS_URL:
            raise RuntimeError("OIDC_JWKS_URL must be set in production (bearer token validation)")
        if not self.CORS_ORIGINS:
            raise RuntimeError("CORS_ORIGINS must be set in production")


# Configuration mapping: environment name -> config class
config = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    "default": DevelopmentConfig,
}
