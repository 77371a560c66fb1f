"""
Performance Observer Flask application factory.

Provides the ``create_app`` factory that assembles the service: it loads the
configuration class, initialises the SQLAlchemy and Flask-Limiter
extensions, registers the API blueprints and installs JSON error handlers.

Blueprints:
  * **system_bp** -- banner, ``/health`` and host metrics.
  * **auth_bp** -- registration, login and token verification.
  * **performance_bp** -- performance test records, statistics, trends and
    comparison.
  * **reports_bp** -- CSV, Excel and PDF exports.
  * **checklists_bp** -- test checklists.
  * **schedules_bp** -- cron-scheduled test definitions.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from flask import Flask, Response, jsonify
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_sqlalchemy import SQLAlchemy
from werkzeug.exceptions import HTTPException

from config import get_config, load_jwt_secret

from .exceptions import ObserverError

db = SQLAlchemy()

# Limits, storage backend and the enabled flag come from the RATELIMIT_*
# config keys at init_app time.
limiter = Limiter(key_func=get_remote_address)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def _ensure_sqlite_db_parent_exists(database_uri: str) -> None:
    """Create parent directories for file-based SQLite URIs when missing."""
    sqlite_prefix = "sqlite:///"
    if not database_uri.startswith(sqlite_prefix):
        return

    sqlite_path = database_uri[len(sqlite_prefix) :].split("?", 1)[0]
    if sqlite_path == ":memory:":
        return

    Path(sqlite_path).parent.mkdir(parents=True, exist_ok=True)


def _register_error_handlers(app: Flask) -> None:
    """Render every error as a ``{"error": ...}`` JSON body."""

    @app.errorhandler(ObserverError)
    def handle_observer_error(error: ObserverError) -> tuple[Response, int]:
        if error.status_code >= 500:
            logger.error("Request failed: %s", error.message)
        else:
            logger.warning("Request rejected (%s): %s", error.status_code, error.message)
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(404)
    def not_found(error: HTTPException) -> tuple[Response, int]:
        return jsonify({"error": "Resource not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(error: HTTPException) -> tuple[Response, int]:
        return jsonify({"error": "Method not allowed"}), 405

    @app.errorhandler(429)
    def too_many_requests(error: HTTPException) -> tuple[Response, int]:
        return (
            jsonify({"error": "Too many requests from this IP, please try again later."}),
            429,
        )

    @app.errorhandler(500)
    def internal_error(error: Exception) -> tuple[Response, int]:
        logger.error("Internal server error: %s", error)
        return jsonify({"error": "Internal server error"}), 500


def create_app(config_name: str | None = None) -> Flask:
    """
    Create and configure the Performance Observer application.

    Args:
        config_name: Optional configuration environment name
            (``"development"``, ``"testing"``, ``"production"``).  When
            ``None``, the value is read from ``FLASK_ENV``.

    Returns:
        A fully configured Flask application instance.
    """
    app = Flask(__name__, instance_relative_config=True)
    config_class = get_config(config_name)
    app.config.from_object(config_class)
    app.config["JWT_SECRET_KEY"] = load_jwt_secret(testing=bool(app.config.get("TESTING")))

    logger.info("Creating observer app with config: %s", config_class.__name__)

    os.makedirs(app.instance_path, exist_ok=True)
    _ensure_sqlite_db_parent_exists(app.config.get("SQLALCHEMY_DATABASE_URI", ""))

    db.init_app(app)
    limiter.init_app(app)

    from .routes.auth import auth_bp
    from .routes.checklists import checklists_bp
    from .routes.performance import performance_bp
    from .routes.reports import reports_bp
    from .routes.schedules import schedules_bp
    from .routes.system import system_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp, url_prefix="/api/auth")
    app.register_blueprint(performance_bp, url_prefix="/api")
    app.register_blueprint(reports_bp, url_prefix="/api/reports")
    app.register_blueprint(checklists_bp, url_prefix="/api")
    app.register_blueprint(schedules_bp, url_prefix="/api")

    _register_error_handlers(app)

    with app.app_context():
        db.create_all()
        logger.info("Database tables created")

    return app
