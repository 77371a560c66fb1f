"""
Configuration classes for the Performance Observer service.

Centralises all environment-dependent settings (database URI, JWT secret,
rate limits, report limits) into a hierarchy of configuration classes.
The base ``Config`` class defines development defaults and subclasses
override only what differs per environment.
"""

from __future__ import annotations

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent


def _env_flag(name: str, default: bool) -> bool:
    """Read a boolean flag such as ``AUTH_REQUIRED=true`` from the environment."""
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def load_jwt_secret(*, testing: bool) -> str:
    """
    Resolve the HMAC secret used to sign and verify JWTs.

    Under testing, ``TEST_JWT_SECRET_KEY`` takes precedence so the suite
    never depends on a developer's real secret.

    Args:
        testing: Whether the application runs with the testing profile.

    Returns:
        The configured secret.

    Raises:
        RuntimeError: If no secret is configured.
    """
    if testing:
        test_secret = os.environ.get("TEST_JWT_SECRET_KEY", "").strip()
        if test_secret:
            return test_secret

    secret = os.environ.get("JWT_SECRET_KEY", "").strip()
    if secret:
        return secret

    raise RuntimeError("Missing JWT configuration: set JWT_SECRET_KEY.")


class Config:
    """
    Base configuration with development-safe defaults.

    Attributes:
        SECRET_KEY: Flask session signing key.
        SQLALCHEMY_DATABASE_URI: Database connection string (default: local
            SQLite file).
        JWT_ALGORITHM: Signing algorithm for issued and accepted tokens.
        JWT_EXPIRY_HOURS: Lifetime of tokens issued by ``/api/auth/login``.
        JWT_CLOCK_SKEW_SECONDS: Allowed clock drift when checking ``exp``.
        AUTH_REQUIRED: When false, record endpoints accept anonymous
            callers (the original no-auth deployment mode).
        RATELIMIT_DEFAULT: Flask-Limiter default limit for every route.
        RATELIMIT_STORAGE_URI: Flask-Limiter storage backend.
        TREND_DEFAULT_DAYS: Trailing window used when ``days`` is omitted.
        REPORT_PDF_MAX_ROWS: Number of record rows printed in the PDF report.
    """

    SECRET_KEY: str = os.environ.get(
        "SECRET_KEY", "observer-dev-secret-change-in-production"
    )
    SQLALCHEMY_TRACK_MODIFICATIONS: bool = False
    SQLALCHEMY_DATABASE_URI: str = os.environ.get(
        "DATABASE_URL",
        f"sqlite:///{BASE_DIR / 'instance' / 'performance_observer.db'}",
    )

    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRY_HOURS: int = int(os.environ.get("JWT_EXPIRY_HOURS", "24"))
    # Tolerate minor clock differences when checking exp/iat.
    JWT_CLOCK_SKEW_SECONDS: int = int(os.environ.get("JWT_CLOCK_SKEW_SECONDS", "30"))

    AUTH_REQUIRED: bool = _env_flag("AUTH_REQUIRED", False)

    RATELIMIT_ENABLED: bool = _env_flag("RATELIMIT_ENABLED", True)
    RATELIMIT_DEFAULT: str = os.environ.get("RATELIMIT_DEFAULT", "100 per 15 minutes")
    RATELIMIT_STORAGE_URI: str = os.environ.get("RATELIMIT_STORAGE_URI", "memory://")
    RATELIMIT_HEADERS_ENABLED: bool = True

    TREND_DEFAULT_DAYS: int = 30
    REPORT_PDF_MAX_ROWS: int = 20


class DevelopmentConfig(Config):
    """Development environment configuration."""

    DEBUG: bool = True
    TESTING: bool = False


class TestingConfig(Config):
    """
    Testing environment configuration.

    Uses an in-memory SQLite database so tests never touch development
    data, and disables rate limiting so request-heavy tests stay
    deterministic.
    """

    DEBUG: bool = True
    TESTING: bool = True
    SQLALCHEMY_DATABASE_URI: str = os.environ.get("TEST_DATABASE_URL", "sqlite://")
    RATELIMIT_ENABLED: bool = False
    AUTH_REQUIRED: bool = False


class ProductionConfig(Config):
    """
    Production environment configuration.

    All secrets and URIs should be supplied through environment variables.
    """

    DEBUG: bool = False
    TESTING: bool = False


config = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    "default": DevelopmentConfig,
}


def get_config(env: str | None = None) -> type[Config]:
    """
    Get the configuration class for the specified environment.

    Args:
        env: Environment name (development, testing, production).
             If None, uses the FLASK_ENV environment variable.

    Returns:
        Configuration class for the specified environment.
    """
    if env is None:
        env = os.environ.get("FLASK_ENV", "development")
    return config.get(env, config["default"])
