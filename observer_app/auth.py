"""
Request authentication for the Performance Observer API.

Two entry points protect view functions:

* ``optional_auth`` resolves the caller to a :class:`Principal` when a valid
  bearer token is present and lets the request through anonymously
  otherwise.  A token that is present but fails verification is logged and
  ignored, never treated as an error.  When ``AUTH_REQUIRED`` is set, an
  anonymous caller is rejected instead.
* ``require_auth`` fails closed: a missing or invalid token answers 401.

Either way the resolved identity is stored on ``flask.g.principal``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from functools import wraps
from typing import Any

import jwt
from flask import current_app, g, request

from .exceptions import AuthenticationError

logger = logging.getLogger(__name__)

REQUIRED_TOKEN_CLAIMS = ["user_id", "username", "iat", "exp"]


@dataclass(frozen=True)
class Principal:
    """Authenticated identity attached to a request."""

    user_id: int
    username: str


def verify_token(
    token: str,
    secret: str,
    algorithms: list[str] | None = None,
) -> dict[str, Any] | None:
    """
    Decode and validate a JWT, returning the payload on success.

    Checks the signature, expiry (with ``JWT_CLOCK_SKEW_SECONDS`` leeway),
    presence of all required claims, that ``user_id`` is a positive integer
    and that ``username`` is a non-blank string.

    Returns:
        The decoded payload, or ``None`` if verification fails for any
        reason.
    """
    try:
        decoded = jwt.decode(
            token,
            secret,
            algorithms=algorithms or [current_app.config.get("JWT_ALGORITHM", "HS256")],
            options={"require": REQUIRED_TOKEN_CLAIMS},
            leeway=int(current_app.config.get("JWT_CLOCK_SKEW_SECONDS", 30)),
        )
    except jwt.InvalidTokenError:
        return None

    user_id = decoded.get("user_id")
    username = decoded.get("username")

    if isinstance(user_id, bool) or not isinstance(user_id, int) or user_id <= 0:
        return None
    if not isinstance(username, str) or not username.strip():
        return None
    return decoded


def _bearer_token() -> str | None:
    """Return the token from ``Authorization: Bearer <token>``, or ``None``."""
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        return None
    return auth_header[7:].strip() or None


def _principal_from_token(token: str) -> Principal | None:
    payload = verify_token(
        token,
        current_app.config["JWT_SECRET_KEY"],
        algorithms=[current_app.config["JWT_ALGORITHM"]],
    )
    if payload is None:
        return None
    return Principal(user_id=payload["user_id"], username=payload["username"])


def resolve_principal() -> Principal | None:
    """
    Resolve the optional principal of the current request.

    A request without an ``Authorization`` header is anonymous.  A request
    whose token fails verification is also treated as anonymous; the
    failure is logged rather than raised.
    """
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None

    token = _bearer_token()
    principal = _principal_from_token(token) if token else None
    if principal is None:
        logger.warning("Ignoring invalid credentials on %s %s", request.method, request.path)
    return principal


def optional_auth(view_func: Callable[..., Any]) -> Callable[..., Any]:
    """Attach the optional principal to ``g``; enforce it only when ``AUTH_REQUIRED``."""

    @wraps(view_func)
    def wrapper(*args, **kwargs):
        principal = resolve_principal()
        if principal is None and current_app.config.get("AUTH_REQUIRED"):
            raise AuthenticationError("Authentication required")
        g.principal = principal
        return view_func(*args, **kwargs)

    return wrapper


def require_auth(view_func: Callable[..., Any]) -> Callable[..., Any]:
    """
    Reject the request with 401 unless it carries a valid bearer token.

    On success the identity is available as ``g.principal``.
    """

    @wraps(view_func)
    def wrapper(*args, **kwargs):
        token = _bearer_token()
        if token is None:
            raise AuthenticationError("Missing or invalid Authorization header")

        principal = _principal_from_token(token)
        if principal is None:
            raise AuthenticationError("Invalid or expired token")

        g.principal = principal
        return view_func(*args, **kwargs)

    return wrapper


def current_owner_id() -> int | None:
    """Owner filter for storage calls: the principal's id, or ``None`` when anonymous."""
    principal = g.get("principal")
    return principal.user_id if principal else None
