"""
Authentication business logic.

Handles registration, credential checks, and the session lifecycle. Session
rows store SHA-256 hashes of the issued access and refresh tokens; a token is
only honoured while its session row is active and unexpired.
"""

from __future__ import annotations

import hashlib
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any

import jwt
import structlog
from sqlalchemy import delete, func, or_, select, update

from synquest.auth.jwt import create_access_token, create_refresh_token, verify_token
from synquest.auth.password import (
    check_needs_rehash,
    hash_password,
    validate_password_strength,
    verify_password,
)
from synquest.config import get_settings
from synquest.db.models import User, UserSession

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


# ---------------------------------------------------------------------------
# User queries
# ---------------------------------------------------------------------------


async def get_user_by_id(db: AsyncSession, user_id: str) -> User | None:
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    """Fetch a user by email (case-insensitive)."""
    result = await db.execute(select(User).where(func.lower(User.email) == email.lower()))
    return result.scalar_one_or_none()


async def get_user_by_username(db: AsyncSession, username: str) -> User | None:
    result = await db.execute(select(User).where(User.username == username))
    return result.scalar_one_or_none()


# ---------------------------------------------------------------------------
# Registration & login
# ---------------------------------------------------------------------------


async def register_user(
    db: AsyncSession,
    username: str,
    email: str,
    password: str,
    first_name: str | None = None,
    last_name: str | None = None,
) -> User:
    """
    Create a new account.

    Raises:
        PasswordStrengthError: If the password is too short or too long.
        ValueError: If the email or username is already in use.
    """
    validate_password_strength(password)

    if await get_user_by_email(db, email) is not None:
        msg = "User with this email already exists"
        raise ValueError(msg)
    if await get_user_by_username(db, username) is not None:
        msg = "Username is already taken"
        raise ValueError(msg)

    user = User(
        username=username,
        email=email.lower().strip(),
        password_hash=hash_password(password),
        first_name=first_name,
        last_name=last_name,
        is_active=True,
        last_login_at=datetime.now(timezone.utc),
    )
    db.add(user)
    await db.flush()
    logger.info("user_created", user_id=user.id, username=username)
    return user


async def authenticate_user(db: AsyncSession, email: str, password: str) -> User:
    """
    Check email + password.

    Raises:
        ValueError: If the credentials are wrong.
        PermissionError: If the account has been deactivated.
    """
    user = await get_user_by_email(db, email)
    if user is None or not verify_password(password, user.password_hash):
        msg = "Invalid email or password"
        raise ValueError(msg)
    if not user.is_active:
        msg = "Account is deactivated"
        raise PermissionError(msg)

    user.last_login_at = datetime.now(timezone.utc)
    if check_needs_rehash(user.password_hash):
        user.password_hash = hash_password(password)
        logger.info("password_rehashed", user_id=user.id)
    await db.flush()
    return user


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


async def create_session(
    db: AsyncSession,
    user: User,
    device_info: dict[str, Any] | None = None,
) -> tuple[UserSession, str, str]:
    """Issue a token pair and persist its session row. Returns (session, access, refresh)."""
    settings = get_settings()
    access_token = create_access_token(user.id, user.email, user.username)
    refresh_token = create_refresh_token(user.id)
    now = datetime.now(timezone.utc)

    session = UserSession(
        user_id=user.id,
        token_hash=hash_token(access_token),
        refresh_token_hash=hash_token(refresh_token),
        device_info=device_info or {},
        expires_at=now + timedelta(days=settings.jwt_refresh_token_expire_days),
        is_active=True,
        last_used_at=now,
    )
    db.add(session)
    await db.flush()
    logger.info("session_created", user_id=user.id, session_id=session.id)
    return session, access_token, refresh_token


async def get_active_session(db: AsyncSession, access_token: str) -> UserSession | None:
    """Return the active, unexpired session that issued this access token."""
    result = await db.execute(
        select(UserSession).where(
            UserSession.token_hash == hash_token(access_token),
            UserSession.is_active.is_(True),
            UserSession.expires_at > datetime.now(timezone.utc),
        )
    )
    return result.scalar_one_or_none()


async def refresh_session(
    db: AsyncSession,
    refresh_token: str,
    device_info: dict[str, Any] | None = None,
) -> tuple[User, str, str]:
    """
    Rotate the token pair of the session owning `refresh_token`.

    Raises:
        ValueError: If the token is invalid or its session is gone.
    """
    try:
        payload = verify_token(refresh_token, expected_type="refresh")
    except jwt.InvalidTokenError as e:
        msg = "Invalid refresh token"
        raise ValueError(msg) from e

    result = await db.execute(
        select(UserSession).where(
            UserSession.refresh_token_hash == hash_token(refresh_token),
            UserSession.is_active.is_(True),
            UserSession.expires_at > datetime.now(timezone.utc),
        )
    )
    session = result.scalar_one_or_none()
    if session is None or session.user_id != payload["sub"]:
        msg = "Invalid refresh token"
        raise ValueError(msg)

    user = await get_user_by_id(db, session.user_id)
    if user is None or not user.is_active:
        msg = "Invalid refresh token"
        raise ValueError(msg)

    settings = get_settings()
    now = datetime.now(timezone.utc)
    access_token = create_access_token(user.id, user.email, user.username)
    new_refresh_token = create_refresh_token(user.id)
    session.token_hash = hash_token(access_token)
    session.refresh_token_hash = hash_token(new_refresh_token)
    session.expires_at = now + timedelta(days=settings.jwt_refresh_token_expire_days)
    session.last_used_at = now
    if device_info:
        session.device_info = device_info
    await db.flush()
    return user, access_token, new_refresh_token


async def logout(db: AsyncSession, access_token: str) -> bool:
    """Deactivate the session behind this token. Returns True if one was active."""
    result = await db.execute(
        update(UserSession)
        .where(UserSession.token_hash == hash_token(access_token))
        .where(UserSession.is_active.is_(True))
        .values(is_active=False)
    )
    return (result.rowcount or 0) > 0  # type: ignore[attr-defined]


async def logout_all(db: AsyncSession, user_id: str) -> int:
    """Deactivate every session of a user. Returns count deactivated."""
    result = await db.execute(
        update(UserSession)
        .where(UserSession.user_id == user_id)
        .where(UserSession.is_active.is_(True))
        .values(is_active=False)
    )
    count = result.rowcount or 0  # type: ignore[attr-defined]
    logger.info("sessions_revoked", user_id=user_id, count=count)
    return count


async def list_sessions(db: AsyncSession, user_id: str) -> list[UserSession]:
    """Active sessions, most recently used first."""
    result = await db.execute(
        select(UserSession)
        .where(UserSession.user_id == user_id, UserSession.is_active.is_(True))
        .order_by(UserSession.last_used_at.desc())
    )
    return list(result.scalars().all())


async def deactivate_session(db: AsyncSession, user_id: str, session_id: str) -> bool:
    """Deactivate one of the user's own sessions. Returns False if not found."""
    result = await db.execute(
        select(UserSession).where(UserSession.id == session_id, UserSession.user_id == user_id)
    )
    session = result.scalar_one_or_none()
    if session is None:
        return False
    session.is_active = False
    await db.flush()
    return True


async def cleanup_expired_sessions(db: AsyncSession) -> int:
    """Delete sessions that are expired or deactivated. Returns count removed."""
    result = await db.execute(
        delete(UserSession).where(
            or_(
                UserSession.expires_at < datetime.now(timezone.utc),
                UserSession.is_active.is_(False),
            )
        )
    )
    count = result.rowcount or 0  # type: ignore[attr-defined]
    if count:
        logger.info("expired_sessions_removed", count=count)
    return count


# ---------------------------------------------------------------------------
# Profile & password
# ---------------------------------------------------------------------------


async def update_profile(
    db: AsyncSession,
    user: User,
    *,
    first_name: str | None = None,
    last_name: str | None = None,
    avatar: str | None = None,
    preferences: dict[str, Any] | None = None,
) -> User:
    """Apply the given fields; preferences are merged, not replaced."""
    if first_name is not None:
        user.first_name = first_name
    if last_name is not None:
        user.last_name = last_name
    if avatar is not None:
        user.avatar = avatar
    if preferences:
        user.preferences = {**(user.preferences or {}), **preferences}
    await db.flush()
    return user


async def change_password(db: AsyncSession, user: User, current_password: str, new_password: str) -> None:
    """
    Replace the password and sign out every session.

    Raises:
        ValueError: If the current password is wrong.
        PasswordStrengthError: If the new password is too weak.
    """
    if not verify_password(current_password, user.password_hash):
        msg = "Current password is incorrect"
        raise ValueError(msg)
    validate_password_strength(new_password)

    user.password_hash = hash_password(new_password)
    await logout_all(db, user.id)
    await db.flush()
    logger.info("password_changed", user_id=user.id)
