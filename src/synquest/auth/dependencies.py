"""FastAPI authentication dependencies."""

from __future__ import annotations

from datetime import datetime, timezone

import jwt
from fastapi import Depends, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from synquest.auth.jwt import verify_token
from synquest.auth.service import get_active_session, get_user_by_id
from synquest.database import get_session
from synquest.db.models import User

_bearer = HTTPBearer(auto_error=False)


async def get_access_token(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
) -> str:
    """Raw bearer token from the Authorization header; 401 when absent."""
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=401, detail="Access token required")
    return credentials.credentials


async def get_current_user(
    token: str = Depends(get_access_token),
    db: AsyncSession = Depends(get_session),
) -> User:
    """
    Verify the JWT, require its session to be active, and return the user.

    Raises 401 on any failure.
    """
    try:
        payload = verify_token(token, expected_type="access")
    except jwt.InvalidTokenError as e:
        raise HTTPException(status_code=401, detail="Invalid or expired token") from e

    session = await get_active_session(db, token)
    if session is None:
        raise HTTPException(status_code=401, detail="Session expired or revoked")

    user = await get_user_by_id(db, payload["sub"])
    if user is None or not user.is_active:
        raise HTTPException(status_code=401, detail="User not found or inactive")

    session.last_used_at = datetime.now(timezone.utc)
    await db.commit()
    return user


async def get_optional_user(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
    db: AsyncSession = Depends(get_session),
) -> User | None:
    """Like get_current_user, but anonymous callers get None instead of 401."""
    if credentials is None:
        return None
    return await get_current_user(credentials.credentials, db)
