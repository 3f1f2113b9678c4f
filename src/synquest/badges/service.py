"""
Badge criteria evaluation and awarding.

Criteria descriptors are JSON objects with a `type` and a target `value`:

- ``word_count``: distinct words at mastery >= 1
- ``streak``: the streak carried by the event
- ``game_mode``: distinct words played in ``criteria.gameType`` (the event must name a game type)
- ``letter_completion``: not evaluated yet, never met
- ``accuracy``: the accuracy carried by the event against ``criteria.minAccuracy``

Anything else is never met. Awards are permanent: an earned badge is skipped
on every later check and always reports 100% progress.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import structlog

from synquest.badges.repositories import (
    BadgeRepository,
    DuplicateAwardError,
    ProgressRepository,
    UserBadgeRepository,
)
from synquest.db.models import Badge, UserBadge

logger = structlog.get_logger()

EVENT_TYPES = ("word_learned", "streak_updated", "game_completed", "perfect_score", "custom")


class BadgeNotFoundError(LookupError):
    pass


@dataclass
class BadgeEvent:
    type: str
    user_id: str
    data: dict[str, Any] = field(default_factory=dict)


@dataclass
class BadgeProgress:
    badge: Badge
    progress: int
    is_earned: bool
    earned_at: Any = None


def _number(value: Any) -> float:  # noqa: ANN401
    """Numeric view of a JSON value; anything non-numeric counts as 0."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return value
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0


def _percentage(current: int, target: Any) -> int:  # noqa: ANN401
    target = _number(target) or 1
    return min(100, round(current / target * 100))


class BadgeService:
    def __init__(
        self,
        badges: BadgeRepository,
        user_badges: UserBadgeRepository,
        progress: ProgressRepository,
    ) -> None:
        self.badges = badges
        self.user_badges = user_badges
        self.progress = progress

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    async def check_and_award_badges(self, event: BadgeEvent) -> list[Badge]:
        """Award every not-yet-owned badge whose criteria the event satisfies."""
        awarded: list[Badge] = []
        for badge in await self.badges.find_all():
            if await self.user_badges.find_one(event.user_id, badge.id) is not None:
                continue
            if not await self._meets_criteria(event, badge.criteria or {}):
                continue

            _user_badge, created = await self._award(event.user_id, badge.id, {"eventType": event.type, **event.data})
            if created:
                awarded.append(badge)

        if awarded:
            logger.info(
                "badges_awarded",
                user_id=event.user_id,
                event_type=event.type,
                badges=[b.name for b in awarded],
            )
        return awarded

    async def _meets_criteria(self, event: BadgeEvent, criteria: dict[str, Any]) -> bool:
        kind = criteria.get("type")
        value = _number(criteria.get("value"))

        if kind == "word_count":
            return await self.progress.count(event.user_id, min_mastery=1) >= value
        if kind == "streak":
            return _number(event.data.get("streak")) >= value
        if kind == "game_mode":
            if not criteria.get("gameType") or not event.data.get("gameType"):
                return False
            return await self.progress.count(event.user_id, game_type=criteria["gameType"]) >= value
        if kind == "letter_completion":
            return False
        if kind == "accuracy":
            min_accuracy = _number(criteria.get("minAccuracy"))
            if not min_accuracy:
                return False
            return _number(event.data.get("accuracy")) >= min_accuracy
        return False

    # ------------------------------------------------------------------
    # Progress
    # ------------------------------------------------------------------

    async def get_badge_progress(self, user_id: str, badge_id: str) -> int:
        """0-100 progress toward one badge. Raises BadgeNotFoundError."""
        owned = await self.user_badges.find_one(user_id, badge_id)
        if owned is not None and owned.progress == 100:
            return 100

        badge = await self.badges.find_one(badge_id)
        if badge is None:
            raise BadgeNotFoundError(badge_id)

        criteria = badge.criteria or {}
        kind = criteria.get("type")
        if kind == "word_count":
            return _percentage(await self.progress.count(user_id, min_mastery=1), criteria.get("value"))
        if kind == "game_mode" and criteria.get("gameType"):
            return _percentage(
                await self.progress.count(user_id, game_type=criteria["gameType"]),
                criteria.get("value"),
            )
        return 0

    async def get_all_badges_with_progress(self, user_id: str) -> list[BadgeProgress]:
        """Progress for the whole catalog from two aggregate queries."""
        badges = await self.badges.find_all()
        owned = {ub.badge_id: ub for ub in await self.user_badges.find_all(user_id)}
        word_count = await self.progress.count(user_id, min_mastery=1)
        game_counts = await self.progress.count_by_game_type(user_id)

        results = []
        for badge in badges:
            user_badge = owned.get(badge.id)
            if user_badge is not None and user_badge.progress == 100:
                results.append(BadgeProgress(badge, 100, True, user_badge.earned_at))
                continue

            criteria = badge.criteria or {}
            kind = criteria.get("type")
            if kind == "word_count":
                progress = _percentage(word_count, criteria.get("value"))
            elif kind == "game_mode" and criteria.get("gameType"):
                progress = _percentage(game_counts.get(criteria["gameType"], 0), criteria.get("value"))
            else:
                progress = user_badge.progress if user_badge is not None else 0

            results.append(
                BadgeProgress(
                    badge,
                    progress,
                    progress == 100,
                    user_badge.earned_at if user_badge is not None else None,
                )
            )
        return results

    # ------------------------------------------------------------------
    # Awards
    # ------------------------------------------------------------------

    async def award_badge(self, user_id: str, badge_id: str, metadata: dict[str, Any] | None = None) -> UserBadge:
        """Idempotent award: returns the existing record when the badge is already owned.

        Raises:
            BadgeNotFoundError: If the badge does not exist.
        """
        if await self.badges.find_one(badge_id) is None:
            raise BadgeNotFoundError(badge_id)

        existing = await self.user_badges.find_one(user_id, badge_id)
        if existing is not None:
            return existing
        user_badge, _created = await self._award(user_id, badge_id, metadata or {})
        return user_badge

    async def _award(self, user_id: str, badge_id: str, metadata: dict[str, Any]) -> tuple[UserBadge, bool]:
        """Insert the award; a duplicate insert race resolves to the winning row."""
        try:
            user_badge = await self.user_badges.create(user_id, badge_id, 100, metadata)
        except DuplicateAwardError:
            existing = await self.user_badges.find_one(user_id, badge_id)
            if existing is None:
                raise
            return existing, False

        logger.info("badge_awarded", user_id=user_id, badge_id=badge_id)
        return user_badge, True

    async def get_user_badges(self, user_id: str) -> list[UserBadge]:
        return await self.user_badges.find_all(user_id)
