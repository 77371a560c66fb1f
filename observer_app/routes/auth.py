"""
Account endpoints.

Endpoints:
    POST /api/auth/register  -- Create a new user account.
    POST /api/auth/login     -- Authenticate and receive a JWT.
    GET  /api/auth/verify    -- Validate a Bearer token and return its identity.
"""

from __future__ import annotations

import logging
from typing import Any

from flask import Blueprint, Response, current_app, g, jsonify, request
from sqlalchemy import select

from .. import db
from ..auth import require_auth
from ..models import User
from ..storage import storage_errors
from ..tokens import create_token

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__)

MIN_PASSWORD_LENGTH = 8


# -----------------------------------------------------------------------------
# Helper Functions
# -----------------------------------------------------------------------------


def _json_error(message: str, status_code: int) -> tuple[Response, int]:
    return jsonify({"error": message}), status_code


def _validate_required_fields(
    data: dict[str, Any], required_fields: list[str]
) -> str | None:
    """
    Check that all *required_fields* are present and non-blank in *data*.

    Returns:
        An error message for the first missing or blank field, or ``None``.
    """
    for field in required_fields:
        value = data.get(field)
        if not isinstance(value, str) or not value.strip():
            return f"'{field}' is required"
    return None


# -----------------------------------------------------------------------------
# API Endpoints
# -----------------------------------------------------------------------------


@auth_bp.route("/register", methods=["POST"])
def register() -> tuple[Response, int]:
    """
    Register a new user account.

    Expects a JSON body with ``username``, ``email``, and ``password``.

    Returns:
        201 with the created user on success.
        400 if a field is missing, too long or the password is too short.
        409 if the username or email is already taken.
    """
    data = request.get_json(silent=True) or {}
    missing = _validate_required_fields(data, ["username", "email", "password"])
    if missing:
        return _json_error(missing, 400)

    username = data["username"].strip()
    email = data["email"].strip()
    password = data["password"]

    if len(username) > 80:
        return _json_error("username must be 80 characters or less", 400)
    if len(email) > 120:
        return _json_error("email must be 120 characters or less", 400)
    if "@" not in email:
        return _json_error("email must be a valid email address", 400)
    if len(password) < MIN_PASSWORD_LENGTH:
        return _json_error(
            f"password must be at least {MIN_PASSWORD_LENGTH} characters", 400
        )

    with storage_errors("register"):
        if db.session.scalar(select(User).where(User.username == username)):
            return _json_error("Username already exists", 409)
        if db.session.scalar(select(User).where(User.email == email)):
            return _json_error("Email already exists", 409)

        user = User(username=username, email=email)
        user.set_password(password)
        db.session.add(user)
        db.session.commit()

    logger.info("Registered user %s", user.id)
    return jsonify({"user": user.to_dict()}), 201


@auth_bp.route("/login", methods=["POST"])
def login() -> tuple[Response, int]:
    """
    Authenticate a user and issue a JWT.

    The message for a wrong password and an unknown username is the same.

    Returns:
        200 with ``token`` and ``user`` on success.
        400 if required fields are missing.
        401 if credentials are incorrect.
    """
    data = request.get_json(silent=True) or {}
    missing = _validate_required_fields(data, ["username", "password"])
    if missing:
        return _json_error(missing, 400)

    username = data["username"].strip()
    with storage_errors("login"):
        user = db.session.scalar(select(User).where(User.username == username))

    if not user or not user.check_password(data["password"]):
        logger.warning("Failed login for username %r", username)
        return _json_error("Invalid username or password", 401)

    token = create_token(
        user_id=user.id,
        username=user.username,
        secret=current_app.config["JWT_SECRET_KEY"],
        expiry_hours=current_app.config["JWT_EXPIRY_HOURS"],
        algorithm=current_app.config["JWT_ALGORITHM"],
    )
    return jsonify({"token": token, "user": user.to_dict()}), 200


@auth_bp.route("/verify", methods=["GET"])
@require_auth
def verify() -> tuple[Response, int]:
    """Return the identity carried by a valid Bearer token."""
    principal = g.principal
    return jsonify(
        {"valid": True, "user_id": principal.user_id, "username": principal.username}
    ), 200
