"""Shared FastAPI dependencies."""

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from synquest.ai.service import AIService
from synquest.badges.repositories import SqlBadgeRepository, SqlProgressRepository, SqlUserBadgeRepository
from synquest.badges.service import BadgeService
from synquest.database import get_session
from synquest.games.service import GameService


def get_ai_service(request: Request) -> AIService:
    """The AI assistant built once in create_app."""
    return request.app.state.ai_service


def build_badge_service(db: AsyncSession) -> BadgeService:
    return BadgeService(
        SqlBadgeRepository(db),
        SqlUserBadgeRepository(db),
        SqlProgressRepository(db),
    )


async def get_badge_service(db: AsyncSession = Depends(get_session)) -> BadgeService:
    return build_badge_service(db)


async def get_game_service(
    db: AsyncSession = Depends(get_session),
    badges: BadgeService = Depends(get_badge_service),
) -> GameService:
    return GameService(db, badges)
