"""Badge API endpoints: catalog, earned badges, progress and explicit checks."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from synquest.auth.dependencies import get_current_user
from synquest.badges.schemas import (
    BadgeCheckRequest,
    BadgeCheckResponse,
    BadgeProgressResponse,
    BadgeResponse,
    UserBadgeResponse,
)
from synquest.badges.service import BadgeEvent, BadgeService
from synquest.database import get_session
from synquest.db.models import User, is_uuid
from synquest.dependencies import get_badge_service
from synquest.schemas import Envelope, ok

router = APIRouter(prefix="/api/badges", tags=["Badges"])


@router.get("", response_model=Envelope[list[BadgeResponse]])
async def list_badges(
    category: str | None = Query(None),
    rarity: str | None = Query(None),
    badges: BadgeService = Depends(get_badge_service),
):
    """Badge catalog ordered by category, rarity and name."""
    items = await badges.badges.find_all(category=category, rarity=rarity)
    return ok([BadgeResponse.model_validate(b) for b in items])


@router.get("/user", response_model=Envelope[list[UserBadgeResponse]])
async def get_user_badges(
    user: User = Depends(get_current_user),
    badges: BadgeService = Depends(get_badge_service),
):
    """Badges earned by the current user, newest first."""
    earned = await badges.get_user_badges(user.id)
    return ok([UserBadgeResponse.model_validate(ub) for ub in earned])


@router.get("/user/progress", response_model=Envelope[list[BadgeProgressResponse]])
async def get_user_badge_progress(
    user: User = Depends(get_current_user),
    badges: BadgeService = Depends(get_badge_service),
):
    progress = await badges.get_all_badges_with_progress(user.id)
    return ok([BadgeProgressResponse.model_validate(p) for p in progress])


@router.post("/check", response_model=Envelope[BadgeCheckResponse])
async def check_badges(
    body: BadgeCheckRequest,
    user: User = Depends(get_current_user),
    badges: BadgeService = Depends(get_badge_service),
    db: AsyncSession = Depends(get_session),
):
    """Evaluate an event for the current user and award any badges it unlocks."""
    if not body.type:
        raise HTTPException(status_code=400, detail="Event type is required")

    awarded = await badges.check_and_award_badges(BadgeEvent(type=body.type, user_id=user.id, data=body.data))
    await db.commit()

    message = f"Congratulations! You earned {len(awarded)} badge(s)!" if awarded else "No new badges earned"
    return ok(
        BadgeCheckResponse(
            awarded_badges=[BadgeResponse.model_validate(b) for b in awarded],
            count=len(awarded),
        ),
        message,
    )


@router.get("/{badge_id}", response_model=Envelope[BadgeResponse])
async def get_badge(badge_id: str, badges: BadgeService = Depends(get_badge_service)):
    badge = await badges.badges.find_one(badge_id) if is_uuid(badge_id) else None
    if badge is None:
        raise HTTPException(status_code=404, detail="Badge not found")
    return ok(BadgeResponse.model_validate(badge))
