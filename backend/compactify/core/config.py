"""Application settings with environment-based simple classes."""

from __future__ import annotations

import os
from collections.abc import Mapping
from datetime import timedelta
from typing import Final

from dotenv import load_dotenv

# Public selector env var (keep neutral name to avoid collisions)
ENV_VAR: Final[str] = "APP_ENV"  # 'development' | 'testing' | 'production'


# Load .env in development (no-op when the file is absent)
load_dotenv()


def env_bool(name: str, default: bool = False) -> bool:
    """Parse a boolean flag from an environment variable.

    Parameters
    ----------
    name: str
        Environment variable to inspect.
    default: bool, optional
        Value returned when the variable is unset. Defaults to ``False``.

    Returns
    -------
    bool
        ``True`` if the value resembles ``{"1", "true", "yes", "y", "on"}``
        ignoring case; otherwise ``False`` or ``default`` when missing.
    """
    val = os.getenv(name)
    if val is None:
        return default
    return str(val).strip().lower() in {"1", "true", "yes", "y", "on"}


def env_int(name: str, default: int) -> int:
    """Parse an integer from an environment variable.

    Parameters
    ----------
    name: str
        Environment variable to inspect.
    default: int
        Value returned when the variable is unset or blank.

    Returns
    -------
    int
        Parsed integer value.

    Raises
    ------
    ValueError
        If the variable is set to something that is not an integer.
    """
    val = os.getenv(name)
    if val is None or not val.strip():
        return default
    return int(val.strip())


class BaseConfig:
    """Base configuration shared across environments.

    Attributes
    ----------
    API_BASE_PREFIX: str
        Root path for registering API blueprints.
    SECRET_KEY: str
        Flask secret used for session signing (OAuth ``state`` lives in the
        signed session cookie).
    JWT_SECRET_KEY: str
        Key used by ``flask-jwt-extended`` to sign access and refresh tokens.
    ACCESS_TOKEN_TTL, REFRESH_TOKEN_TTL: timedelta
        Lifetimes of the two halves of a session pair.
    REFRESH_TOKEN_HASH_METHOD: str
        Werkzeug hashing method used for the stored refresh-token digest.
    ANON_LINK_TTL: timedelta
        Lifetime of links created without a principal.
    MAX_LINKS_PER_OWNER: int
        Quota of owned links per principal.
    SHORT_CODE_LENGTH, MAX_CODE_RETRIES: int
        Short code size and the number of generation attempts per insert.
    MAX_URL_LENGTH: int
        Upper bound for submitted original URLs.
    PUBLIC_BASE_URL: str
        Origin used to build public short URLs (``<base>/<code>``).
    FRONTEND_URL: str
        Origin of the single-page client; target origin of popup messages.
    LOG_LEVEL: str
        Root logging verbosity (``INFO`` by default).
    CORS_ORIGINS: str
        Comma-separated list of allowed origins for CORS.

    Notes
    -----
    Values are primarily sourced from environment variables, enabling
    configuration without code changes.
    """

    API_BASE_PREFIX = "/api"
    APP_VERSION = os.getenv("APP_VERSION", "dev")
    APP_COMMIT = os.getenv("APP_COMMIT", "unknown")

    # Secrets / security
    SECRET_KEY = os.getenv("SECRET_KEY", "CHANGE_ME")
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "CHANGE_ME_JWT")
    JWT_TOKEN_LOCATION = ["headers"]

    # Session pair
    ACCESS_TOKEN_TTL = timedelta(seconds=env_int("ACCESS_TOKEN_TTL_SECONDS", 3600))
    REFRESH_TOKEN_TTL = timedelta(days=env_int("REFRESH_TOKEN_TTL_DAYS", 7))
    JWT_ACCESS_TOKEN_EXPIRES = ACCESS_TOKEN_TTL
    JWT_REFRESH_TOKEN_EXPIRES = REFRESH_TOKEN_TTL
    REFRESH_TOKEN_HASH_METHOD = os.getenv("REFRESH_TOKEN_HASH_METHOD", "scrypt")
    REFRESH_COOKIE_NAME = "refresh_token"
    REFRESH_COOKIE_SECURE = env_bool("REFRESH_COOKIE_SECURE", True)
    REFRESH_COOKIE_SAMESITE = "Lax"
    REFRESH_COOKIE_PATH = os.getenv("REFRESH_COOKIE_PATH", "/api/v1/auth")

    # OAuth providers
    GOOGLE_CLIENT_ID = os.getenv("GOOGLE_CLIENT_ID", "")
    GOOGLE_CLIENT_SECRET = os.getenv("GOOGLE_CLIENT_SECRET", "")
    GITHUB_CLIENT_ID = os.getenv("GITHUB_CLIENT_ID", "")
    GITHUB_CLIENT_SECRET = os.getenv("GITHUB_CLIENT_SECRET", "")
    OAUTH_HTTP_TIMEOUT = env_int("OAUTH_HTTP_TIMEOUT", 10)
    OAUTH_LINK_REQUIRES_VERIFIED_EMAIL = env_bool("OAUTH_LINK_REQUIRES_VERIFIED_EMAIL", True)

    # Links
    ANON_LINK_TTL = timedelta(days=env_int("ANON_LINK_TTL_DAYS", 30))
    MAX_LINKS_PER_OWNER = env_int("MAX_LINKS_PER_OWNER", 50)
    SHORT_CODE_LENGTH = env_int("SHORT_CODE_LENGTH", 8)
    MAX_CODE_RETRIES = env_int("MAX_CODE_RETRIES", 5)
    MAX_URL_LENGTH = env_int("MAX_URL_LENGTH", 2048)
    PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "http://localhost:8000")
    FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")

    # DB
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///./dev.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)

    # Redis (sweep lock, limiter storage in production)
    REDIS_URL = os.getenv("REDIS_URL") or None

    # Rate limits (Flask-Limiter)
    RATELIMIT_ENABLED = env_bool("RATELIMIT_ENABLED", True)
    RATELIMIT_STORAGE_URI = os.getenv("RATELIMIT_STORAGE_URI", "memory://")
    RATELIMIT_HEADERS_ENABLED = True
    LINK_CREATE_ANON_RATE_LIMIT = "5 per minute"
    LINK_CREATE_RATE_LIMIT = "20 per minute"
    LINK_DASHBOARD_RATE_LIMIT = "60 per minute"
    LINK_MUTATE_RATE_LIMIT = "20 per minute"
    REDIRECT_RATE_LIMIT = "120 per minute"
    AUTH_RATE_LIMIT = "30 per minute"

    # Background jobs (Celery)
    CELERY = {
        "broker_url": os.getenv("CELERY_BROKER_URL", "redis://localhost:6379/0"),
        "result_backend": os.getenv("CELERY_RESULT_BACKEND", "redis://localhost:6379/0"),
        "task_ignore_result": True,
    }
    SWEEP_LOCK_TIMEOUT = env_int("SWEEP_LOCK_TIMEOUT", 300)

    # Flask & JSON
    JSON_SORT_KEYS = False
    PROPAGATE_EXCEPTIONS = False

    # Logging & CORS
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:5173")

    # Flask built-ins
    DEBUG = False
    TESTING = False


class DevelopmentConfig(BaseConfig):
    """Configuration tailored for local development.

    Notes
    -----
    Enables debug mode by default and allows the refresh cookie over plain
    HTTP so the popup flow works against ``localhost``.
    """

    DEBUG = env_bool("FLASK_DEBUG", True)
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)
    REFRESH_COOKIE_SECURE = env_bool("REFRESH_COOKIE_SECURE", False)
    CORS_MAX_AGE = 600  # 10 minutes


class TestingConfig(BaseConfig):
    """Configuration for automated test runs.

    Notes
    -----
    - Forces ``TESTING`` mode and disables debug logs.
    - Uses an in-memory SQLite database unless ``TEST_DATABASE_URL`` is set.
    - Propagates exceptions so pytest can surface tracebacks directly.
    - Uses a cheap refresh-token hash and disables rate limiting.
    """

    TESTING = True
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)
    PROPAGATE_EXCEPTIONS = True
    REFRESH_TOKEN_HASH_METHOD = "pbkdf2:sha256:1000"
    REFRESH_COOKIE_SECURE = False
    RATELIMIT_ENABLED = False
    REDIS_URL = None
    CELERY = {
        "broker_url": "memory://",
        "result_backend": "cache+memory://",
        "task_always_eager": True,
        "task_ignore_result": True,
    }


class ProductionConfig(BaseConfig):
    """Configuration defaults for production deployments.

    Notes
    -----
    Keeps debug and SQL echoing disabled while relying on WSGI-level log
    configuration for noise control.
    """

    DEBUG = False
    SQLALCHEMY_ECHO = False
    PROPAGATE_EXCEPTIONS = False


# Map names -> classes (simple, explicit)
CONFIG_MAP: Mapping[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}


def get_config() -> type[BaseConfig]:
    """Return the configuration class inferred from ``APP_ENV``.

    Returns
    -------
    type[BaseConfig]
        Class to pass to :meth:`flask.Config.from_object`.

    Notes
    -----
    Falls back to :class:`DevelopmentConfig` when ``APP_ENV`` is unset or
    unknown.
    """
    name = os.getenv(ENV_VAR, "development").strip().lower()
    return CONFIG_MAP.get(name, DevelopmentConfig)
