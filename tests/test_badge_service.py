"""Badge service unit tests over in-memory repositories: criteria, idempotence, progress."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

import pytest

from synquest.badges.repositories import DuplicateAwardError
from synquest.badges.service import BadgeEvent, BadgeNotFoundError, BadgeService
from synquest.db.models import Badge, UserBadge

USER = "user-1"


class MemoryBadges:
    def __init__(self, badges: list[Badge]) -> None:
        self.items = badges

    async def find_all(self, category: str | None = None, rarity: str | None = None) -> list[Badge]:
        return [
            b for b in self.items if (category is None or b.category == category) and (rarity is None or b.rarity == rarity)
        ]

    async def find_one(self, badge_id: str) -> Badge | None:
        return next((b for b in self.items if b.id == badge_id), None)

    async def count(self) -> int:
        return len(self.items)

    async def create(self, **fields: Any) -> Badge:
        badge = Badge(id=str(uuid.uuid4()), **fields)
        self.items.append(badge)
        return badge


class MemoryUserBadges:
    def __init__(self) -> None:
        self.items: list[UserBadge] = []

    async def find_all(self, user_id: str) -> list[UserBadge]:
        return [ub for ub in self.items if ub.user_id == user_id]

    async def find_one(self, user_id: str, badge_id: str) -> UserBadge | None:
        return next((ub for ub in self.items if ub.user_id == user_id and ub.badge_id == badge_id), None)

    async def count(self, user_id: str) -> int:
        return len(await self.find_all(user_id))

    async def create(self, user_id: str, badge_id: str, progress: int, metadata: dict[str, Any]) -> UserBadge:
        if await self.find_one(user_id, badge_id) is not None:
            raise DuplicateAwardError(badge_id)
        user_badge = UserBadge(
            id=str(uuid.uuid4()),
            user_id=user_id,
            badge_id=badge_id,
            progress=progress,
            badge_metadata=metadata,
            earned_at=datetime.now(timezone.utc),
        )
        self.items.append(user_badge)
        return user_badge


class MemoryProgress:
    """Rows as (user_id, word_id, game_type, mastery_level)."""

    def __init__(self, rows: list[tuple[str, str, str, int]] | None = None) -> None:
        self.rows = rows or []

    async def find_all(self, user_id: str) -> list[Any]:
        return [r for r in self.rows if r[0] == user_id]

    async def count(self, user_id: str, *, min_mastery: int | None = None, game_type: str | None = None) -> int:
        return len(
            {
                word_id
                for uid, word_id, gt, mastery in self.rows
                if uid == user_id
                and (min_mastery is None or mastery >= min_mastery)
                and (game_type is None or gt == game_type)
            }
        )

    async def count_by_game_type(self, user_id: str) -> dict[str, int]:
        words: dict[str, set[str]] = {}
        for uid, word_id, gt, _mastery in self.rows:
            if uid == user_id:
                words.setdefault(gt, set()).add(word_id)
        return {gt: len(ids) for gt, ids in words.items()}


def _badge(name: str, criteria: dict[str, Any], category: str = "learning") -> Badge:
    return Badge(
        id=str(uuid.uuid4()),
        name=name,
        description=name,
        category=category,
        icon="*",
        criteria=criteria,
        rarity="common",
    )


def _learned(count: int, game_type: str = "quiz") -> list[tuple[str, str, str, int]]:
    return [(USER, f"word-{i}", game_type, 2) for i in range(count)]


def _service(badges: list[Badge], rows: list[tuple[str, str, str, int]] | None = None) -> BadgeService:
    return BadgeService(MemoryBadges(badges), MemoryUserBadges(), MemoryProgress(rows))


class TestCheckAndAward:
    async def test_awards_word_count_badge(self):
        first = _badge("First Steps", {"type": "word_count", "value": 1})
        ten = _badge("Word Explorer", {"type": "word_count", "value": 10})
        service = _service([first, ten], _learned(1))

        awarded = await service.check_and_award_badges(BadgeEvent("word_learned", USER, {}))

        assert [b.name for b in awarded] == ["First Steps"]

    async def test_second_check_awards_nothing(self):
        badge = _badge("First Steps", {"type": "word_count", "value": 1})
        service = _service([badge], _learned(3))
        event = BadgeEvent("word_learned", USER, {})

        first = await service.check_and_award_badges(event)
        second = await service.check_and_award_badges(event)

        assert len(first) == 1
        assert second == []
        assert len(await service.get_user_badges(USER)) == 1

    async def test_word_count_counts_distinct_words(self):
        badge = _badge("Two Words", {"type": "word_count", "value": 2})
        rows = [(USER, "word-a", gt, 2) for gt in ("quiz", "spelling", "synonym-match")]
        service = _service([badge], rows)

        assert await service.check_and_award_badges(BadgeEvent("word_learned", USER, {})) == []

    async def test_streak_uses_event_data(self):
        badge = _badge("Three Day Streak", {"type": "streak", "value": 3}, "performance")
        service = _service([badge])

        assert await service.check_and_award_badges(BadgeEvent("streak_updated", USER, {"streak": 2})) == []
        awarded = await service.check_and_award_badges(BadgeEvent("streak_updated", USER, {"streak": 3}))
        assert [b.name for b in awarded] == ["Three Day Streak"]

    async def test_game_mode_requires_game_type_on_both_sides(self):
        typed = _badge("Quiz Quest", {"type": "game_mode", "value": 2, "gameType": "quiz"}, "game")
        untyped = _badge("Speed Demon", {"type": "game_mode", "value": 1}, "game")
        service = _service([typed, untyped], _learned(2, "quiz"))

        assert await service.check_and_award_badges(BadgeEvent("game_completed", USER, {})) == []
        awarded = await service.check_and_award_badges(BadgeEvent("game_completed", USER, {"gameType": "quiz"}))
        assert [b.name for b in awarded] == ["Quiz Quest"]

    async def test_accuracy_needs_min_accuracy(self):
        perfect = _badge("Perfect Score", {"type": "accuracy", "value": 100, "minAccuracy": 100}, "performance")
        service = _service([perfect])

        assert await service.check_and_award_badges(BadgeEvent("quiz_completed", USER, {"accuracy": 90})) == []
        awarded = await service.check_and_award_badges(BadgeEvent("quiz_completed", USER, {"accuracy": 100}))
        assert len(awarded) == 1

    @pytest.mark.parametrize(
        "criteria",
        [
            {"type": "letter_completion", "value": 1},
            {"type": "custom", "value": 1},
            {"type": "streak", "value": 1},
            {},
        ],
    )
    async def test_unmet_or_unknown_criteria_never_award(self, criteria):
        service = _service([_badge("Odd", criteria)], _learned(30))
        awarded = await service.check_and_award_badges(BadgeEvent("something_new", USER, {"streak": "x"}))
        assert awarded == []

    async def test_unknown_event_type_returns_empty(self):
        badge = _badge("Three Day Streak", {"type": "streak", "value": 3}, "performance")
        service = _service([badge])

        assert await service.check_and_award_badges(BadgeEvent("made_up_event", USER, {})) == []


class TestBadgeProgress:
    async def test_partial_word_count_progress(self):
        badge = _badge("Word Explorer", {"type": "word_count", "value": 10})
        service = _service([badge], _learned(5))

        assert await service.get_badge_progress(USER, badge.id) == 50

    async def test_progress_capped_at_100(self):
        badge = _badge("First Steps", {"type": "word_count", "value": 2})
        service = _service([badge], _learned(7))

        assert await service.get_badge_progress(USER, badge.id) == 100

    async def test_earned_badge_stays_at_100(self):
        badge = _badge("Word Explorer", {"type": "word_count", "value": 10})
        service = _service([badge])
        await service.award_badge(USER, badge.id)

        # Criteria would compute 0 now
        assert await service.get_badge_progress(USER, badge.id) == 100

    async def test_game_mode_progress(self):
        badge = _badge("Quiz Quest", {"type": "game_mode", "value": 4, "gameType": "quiz"}, "game")
        service = _service([badge], _learned(1, "quiz") + _learned(3, "spelling"))

        assert await service.get_badge_progress(USER, badge.id) == 25

    async def test_other_kinds_report_zero(self):
        badge = _badge("Three Day Streak", {"type": "streak", "value": 3}, "performance")
        service = _service([badge], _learned(3))

        assert await service.get_badge_progress(USER, badge.id) == 0

    async def test_unknown_badge_raises(self):
        service = _service([])
        with pytest.raises(BadgeNotFoundError):
            await service.get_badge_progress(USER, str(uuid.uuid4()))

    async def test_catalog_view(self):
        learned = _badge("First Steps", {"type": "word_count", "value": 1})
        halfway = _badge("Word Explorer", {"type": "word_count", "value": 4})
        streak = _badge("Three Day Streak", {"type": "streak", "value": 3}, "performance")
        service = _service([learned, halfway, streak], _learned(2))
        await service.check_and_award_badges(BadgeEvent("word_learned", USER, {}))

        by_name = {p.badge.name: p for p in await service.get_all_badges_with_progress(USER)}

        assert by_name["First Steps"].is_earned is True
        assert by_name["First Steps"].progress == 100
        assert by_name["First Steps"].earned_at is not None
        assert by_name["Word Explorer"].is_earned is False
        assert by_name["Word Explorer"].progress == 50
        assert by_name["Three Day Streak"].progress == 0

    async def test_reached_target_counts_as_earned_before_any_award(self):
        explorer = _badge("Word Explorer", {"type": "word_count", "value": 5})
        service = _service([explorer], _learned(5))

        (view,) = await service.get_all_badges_with_progress(USER)

        assert view.progress == 100
        assert view.is_earned is True
        assert view.earned_at is None


class TestAwardBadge:
    async def test_award_is_idempotent(self):
        badge = _badge("First Steps", {"type": "word_count", "value": 1})
        service = _service([badge])

        first = await service.award_badge(USER, badge.id, {"source": "manual"})
        second = await service.award_badge(USER, badge.id)

        assert first is second
        assert first.progress == 100
        assert first.badge_metadata == {"source": "manual"}

    async def test_award_unknown_badge(self):
        service = _service([])
        with pytest.raises(BadgeNotFoundError):
            await service.award_badge(USER, "missing")

    async def test_lost_race_resolves_to_existing_row(self):
        badge = _badge("First Steps", {"type": "word_count", "value": 1})
        user_badges = MemoryUserBadges()
        service = BadgeService(MemoryBadges([badge]), user_badges, MemoryProgress(_learned(1)))
        winner = await user_badges.create(USER, badge.id, 100, {})

        user_badge, created = await service._award(USER, badge.id, {})

        assert created is False
        assert user_badge is winner
