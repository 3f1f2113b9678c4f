"""Authentication router: all /api/auth/* endpoints."""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from synquest.auth.dependencies import get_access_token, get_current_user
from synquest.auth.jwt import access_token_lifetime_seconds
from synquest.auth.password import PasswordStrengthError
from synquest.auth.schemas import (
    AuthResponse,
    ChangePasswordRequest,
    LoginRequest,
    ProfileUpdateRequest,
    RefreshRequest,
    RegisterRequest,
    SessionResponse,
    TokenPair,
    UserResponse,
)
from synquest.auth.service import (
    authenticate_user,
    change_password,
    create_session,
    deactivate_session,
    list_sessions,
    logout,
    logout_all,
    refresh_session,
    register_user,
    update_profile,
)
from synquest.database import get_session
from synquest.db.models import User, is_uuid
from synquest.middleware.rate_limit import client_ip, enforce_auth_rate_limit
from synquest.schemas import Envelope, ok

logger = structlog.get_logger()

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


def _device_info(request: Request) -> dict[str, Any]:
    return {"userAgent": request.headers.get("user-agent"), "ip": client_ip(request)}


def _auth_payload(user: User, access_token: str, refresh_token: str) -> AuthResponse:
    return AuthResponse(
        user=UserResponse.model_validate(user),
        tokens=TokenPair(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=access_token_lifetime_seconds(),
        ),
    )


# ---------------------------------------------------------------------------
# Registration, login, refresh
# ---------------------------------------------------------------------------


@router.post(
    "/register",
    status_code=201,
    response_model=Envelope[AuthResponse],
    dependencies=[Depends(enforce_auth_rate_limit)],
)
async def register(
    body: RegisterRequest,
    request: Request,
    db: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    """Create an account and sign it in."""
    try:
        user = await register_user(
            db,
            username=body.username,
            email=body.email,
            password=body.password,
            first_name=body.first_name,
            last_name=body.last_name,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    _session, access_token, refresh_token = await create_session(db, user, _device_info(request))
    await db.commit()
    return ok(_auth_payload(user, access_token, refresh_token), "User registered successfully")


@router.post("/login", response_model=Envelope[AuthResponse], dependencies=[Depends(enforce_auth_rate_limit)])
async def login(
    body: LoginRequest,
    request: Request,
    db: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    """Login with email + password."""
    try:
        user = await authenticate_user(db, body.email, body.password)
    except (ValueError, PermissionError) as e:
        raise HTTPException(status_code=401, detail=str(e)) from e

    _session, access_token, refresh_token = await create_session(db, user, _device_info(request))
    await db.commit()
    return ok(_auth_payload(user, access_token, refresh_token), "Login successful")


@router.post("/refresh-token", response_model=Envelope[AuthResponse])
async def refresh(
    body: RefreshRequest,
    request: Request,
    db: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    """Rotate the token pair of an active session."""
    try:
        user, access_token, refresh_token = await refresh_session(db, body.refresh_token, _device_info(request))
    except ValueError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e
    await db.commit()
    return ok(_auth_payload(user, access_token, refresh_token), "Token refreshed successfully")


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------


@router.get("/profile", response_model=Envelope[UserResponse])
async def get_profile(user: User = Depends(get_current_user)) -> dict[str, Any]:
    return ok(UserResponse.model_validate(user))


@router.put("/profile", response_model=Envelope[UserResponse])
async def put_profile(
    body: ProfileUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    await update_profile(
        db,
        user,
        first_name=body.first_name,
        last_name=body.last_name,
        avatar=body.avatar,
        preferences=body.preferences,
    )
    await db.commit()
    return ok(UserResponse.model_validate(user), "Profile updated successfully")


@router.put("/change-password", response_model=Envelope[None])
async def put_change_password(
    body: ChangePasswordRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    """Change password; every session (including this one) is signed out."""
    try:
        await change_password(db, user, body.current_password, body.new_password)
    except PasswordStrengthError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e
    await db.commit()
    return ok(None, "Password changed successfully. Please log in again.")


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


@router.post("/logout", response_model=Envelope[None])
async def post_logout(
    token: str = Depends(get_access_token),
    _user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    await logout(db, token)
    await db.commit()
    return ok(None, "Logged out successfully")


@router.post("/logout-all", response_model=Envelope[None])
async def post_logout_all(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    count = await logout_all(db, user.id)
    await db.commit()
    return ok(None, f"Logged out from {count} session(s)")


@router.get("/sessions", response_model=Envelope[list[SessionResponse]])
async def get_sessions(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    sessions = await list_sessions(db, user.id)
    return ok([SessionResponse.model_validate(s) for s in sessions])


@router.delete("/sessions/{session_id}", response_model=Envelope[None])
async def delete_session(
    session_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    if not is_uuid(session_id):
        raise HTTPException(status_code=404, detail="Session not found")
    if not await deactivate_session(db, user.id, session_id):
        raise HTTPException(status_code=404, detail="Session not found")
    await db.commit()
    return ok(None, "Session deactivated successfully")
