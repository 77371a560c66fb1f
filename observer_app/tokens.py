"""
JWT creation for login.

Tokens are signed with the shared ``JWT_SECRET_KEY`` (HS256 by default) and
carry the claims that :mod:`observer_app.auth` requires when verifying:

    - ``user_id``  -- integer primary key of the user.
    - ``username`` -- display name, so handlers need no user lookup.
    - ``iat``      -- issued-at timestamp (UTC epoch seconds).
    - ``exp``      -- expiration timestamp (UTC epoch seconds).
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import jwt


def create_token(
    user_id: int,
    username: str,
    secret: str,
    expiry_hours: int,
    algorithm: str = "HS256",
) -> str:
    """
    Create a signed JWT containing the identity claims.

    Args:
        user_id: Primary key of the authenticated user.  Must be positive.
        username: Display name of the user.  Must be non-blank.
        secret: HMAC secret used to sign the token.
        expiry_hours: Number of hours from now until the token expires.
        algorithm: JWT signing algorithm.

    Returns:
        A compact JWS string suitable for an ``Authorization: Bearer`` header.

    Raises:
        ValueError: If *user_id* is not positive or *username* is blank.
    """
    if int(user_id) <= 0:
        raise ValueError("user_id must be a positive integer")
    if not isinstance(username, str) or not username.strip():
        raise ValueError("username must be a non-empty string")

    now = datetime.now(timezone.utc)
    expires_at = now + timedelta(hours=int(expiry_hours))

    payload: dict[str, Any] = {
        "user_id": int(user_id),
        "username": username,
        "iat": int(now.timestamp()),
        "exp": int(expires_at.timestamp()),
    }
    return jwt.encode(payload, secret, algorithm=algorithm)
