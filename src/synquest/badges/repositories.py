"""Storage interfaces used by the badge service, plus their SQLAlchemy implementations."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Protocol

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from synquest.db.models import Badge, UserBadge, UserProgress

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


class DuplicateAwardError(Exception):
    """The (user, badge) pair already has an award row."""


class BadgeRepository(Protocol):
    async def find_all(self, category: str | None = None, rarity: str | None = None) -> list[Badge]: ...

    async def find_one(self, badge_id: str) -> Badge | None: ...

    async def count(self) -> int: ...

    async def create(self, **fields: Any) -> Badge: ...


class UserBadgeRepository(Protocol):
    async def find_all(self, user_id: str) -> list[UserBadge]: ...

    async def find_one(self, user_id: str, badge_id: str) -> UserBadge | None: ...

    async def count(self, user_id: str) -> int: ...

    async def create(self, user_id: str, badge_id: str, progress: int, metadata: dict[str, Any]) -> UserBadge:
        """Insert an award. Raises DuplicateAwardError if one already exists."""
        ...


class ProgressRepository(Protocol):
    async def find_all(self, user_id: str) -> list[UserProgress]: ...

    async def count(self, user_id: str, *, min_mastery: int | None = None, game_type: str | None = None) -> int:
        """Distinct words with progress rows matching the filters."""
        ...

    async def count_by_game_type(self, user_id: str) -> dict[str, int]:
        """Distinct words per game type."""
        ...


# ---------------------------------------------------------------------------
# SQLAlchemy
# ---------------------------------------------------------------------------


class SqlBadgeRepository:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def find_all(self, category: str | None = None, rarity: str | None = None) -> list[Badge]:
        stmt = select(Badge)
        if category:
            stmt = stmt.where(Badge.category == category)
        if rarity:
            stmt = stmt.where(Badge.rarity == rarity)
        result = await self.db.execute(stmt.order_by(Badge.category, Badge.rarity, Badge.name))
        return list(result.scalars().all())

    async def find_one(self, badge_id: str) -> Badge | None:
        return await self.db.get(Badge, badge_id)

    async def count(self) -> int:
        return (await self.db.execute(select(func.count()).select_from(Badge))).scalar_one()

    async def create(self, **fields: Any) -> Badge:
        badge = Badge(**fields)
        self.db.add(badge)
        await self.db.flush()
        return badge


class SqlUserBadgeRepository:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def find_all(self, user_id: str) -> list[UserBadge]:
        result = await self.db.execute(
            select(UserBadge).where(UserBadge.user_id == user_id).order_by(UserBadge.earned_at.desc())
        )
        return list(result.scalars().all())

    async def find_one(self, user_id: str, badge_id: str) -> UserBadge | None:
        result = await self.db.execute(
            select(UserBadge).where(UserBadge.user_id == user_id, UserBadge.badge_id == badge_id)
        )
        return result.scalar_one_or_none()

    async def count(self, user_id: str) -> int:
        result = await self.db.execute(
            select(func.count()).select_from(UserBadge).where(UserBadge.user_id == user_id)
        )
        return result.scalar_one()

    async def create(self, user_id: str, badge_id: str, progress: int, metadata: dict[str, Any]) -> UserBadge:
        user_badge = UserBadge(
            user_id=user_id,
            badge_id=badge_id,
            progress=progress,
            badge_metadata=metadata,
            earned_at=datetime.now(timezone.utc),
        )
        # Savepoint so a lost insert race leaves the rest of the transaction intact
        try:
            async with self.db.begin_nested():
                self.db.add(user_badge)
        except IntegrityError as e:
            raise DuplicateAwardError(badge_id) from e
        await self.db.refresh(user_badge, ["badge"])
        return user_badge


class SqlProgressRepository:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def find_all(self, user_id: str) -> list[UserProgress]:
        result = await self.db.execute(select(UserProgress).where(UserProgress.user_id == user_id))
        return list(result.scalars().all())

    async def count(self, user_id: str, *, min_mastery: int | None = None, game_type: str | None = None) -> int:
        stmt = select(func.count(func.distinct(UserProgress.word_id))).where(UserProgress.user_id == user_id)
        if min_mastery is not None:
            stmt = stmt.where(UserProgress.mastery_level >= min_mastery)
        if game_type is not None:
            stmt = stmt.where(UserProgress.game_type == game_type)
        return int((await self.db.execute(stmt)).scalar_one())

    async def count_by_game_type(self, user_id: str) -> dict[str, int]:
        result = await self.db.execute(
            select(UserProgress.game_type, func.count(func.distinct(UserProgress.word_id)))
            .where(UserProgress.user_id == user_id)
            .group_by(UserProgress.game_type)
        )
        return {game_type: int(count) for game_type, count in result}
