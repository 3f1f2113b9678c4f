"""
HS256 JWT token management.

Access tokens live for `jwt_access_token_expire_days`, refresh tokens for
`jwt_refresh_token_expire_days`. Both carry a `type` claim so one can never be
used in place of the other, and a `jti` so that two tokens issued within the
same second still differ (session rows are looked up by token hash).
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from synquest.config import get_settings


def _encode(user_id: str, token_type: str, lifetime: timedelta, extra: dict[str, Any]) -> str:
    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "sub": user_id,
        "type": token_type,
        "jti": str(uuid.uuid4()),
        "iat": now,
        "exp": now + lifetime,
        "iss": settings.jwt_issuer,
        **extra,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def create_access_token(user_id: str, email: str, username: str) -> str:
    """Create an access token for API calls."""
    settings = get_settings()
    return _encode(
        user_id,
        "access",
        timedelta(days=settings.jwt_access_token_expire_days),
        {"email": email, "username": username},
    )


def create_refresh_token(user_id: str) -> str:
    """Create a refresh token, only accepted by the refresh endpoint."""
    settings = get_settings()
    return _encode(user_id, "refresh", timedelta(days=settings.jwt_refresh_token_expire_days), {})


def access_token_lifetime_seconds() -> int:
    return get_settings().jwt_access_token_expire_days * 24 * 60 * 60


def verify_token(token: str, expected_type: str = "access") -> dict[str, Any]:
    """
    Verify and decode a JWT token.

    Raises:
        jwt.InvalidTokenError: If the token is invalid, expired, or of the wrong type.
    """
    settings = get_settings()
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            issuer=settings.jwt_issuer,
        )
    except jwt.ExpiredSignatureError:
        msg = "Token has expired"
        raise jwt.InvalidTokenError(msg) from None

    if payload.get("type") != expected_type:
        msg = f"Expected token type '{expected_type}', got '{payload.get('type')}'"
        raise jwt.InvalidTokenError(msg)

    return payload
