"""Per-user progress: mastery rules and aggregate statistics."""

from __future__ import annotations

import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

from synquest.auth.service import register_user
from synquest.progress.service import (
    LEARNED_MASTERY,
    count_learned_words,
    get_user_stats,
    get_words_for_game,
    update_progress,
)


@pytest_asyncio.fixture
async def user(db_session: AsyncSession):
    created = await register_user(db_session, username="progressor", email="progress@example.com", password="Secret123")
    await db_session.commit()
    return created


class TestUpdateProgress:
    async def test_first_correct_answer_creates_learned_row(self, db_session, user, make_word):
        word = await make_word("brave", ["bold"])
        progress = await update_progress(db_session, user.id, word.id, "synonym-match", True, 12)

        assert progress.correct_count == 1
        assert progress.incorrect_count == 0
        assert progress.mastery_level == LEARNED_MASTERY
        assert progress.streak == 1
        assert progress.time_spent == 12
        assert progress.last_played_at is not None
        assert progress.word.word == "brave"

    async def test_incorrect_answer_resets_streak_and_keeps_mastery(self, db_session, user, make_word):
        word = await make_word("calm", ["serene"])
        await update_progress(db_session, user.id, word.id, "spelling", True)
        await update_progress(db_session, user.id, word.id, "spelling", True)
        progress = await update_progress(db_session, user.id, word.id, "spelling", False)

        assert progress.correct_count == 2
        assert progress.incorrect_count == 1
        assert progress.streak == 0
        assert progress.mastery_level == LEARNED_MASTERY

    async def test_first_incorrect_answer_stays_unlearned(self, db_session, user, make_word):
        word = await make_word("eager", ["keen"])
        progress = await update_progress(db_session, user.id, word.id, "quiz", False)

        assert progress.mastery_level == 0
        assert progress.streak == 0
        assert progress.incorrect_count == 1

    async def test_rows_are_per_game_type(self, db_session, user, make_word):
        word = await make_word("happy", ["glad"])
        first = await update_progress(db_session, user.id, word.id, "quiz", True)
        second = await update_progress(db_session, user.id, word.id, "spelling", True)
        again = await update_progress(db_session, user.id, word.id, "quiz", True)

        assert first.id != second.id
        assert again.id == first.id
        assert again.correct_count == 2


class TestUserStats:
    async def test_words_learned_counts_distinct_words(self, db_session, user, make_word):
        word = await make_word("swift", ["quick"])
        for game_type in ("quiz", "spelling", "synonym-match"):
            await update_progress(db_session, user.id, word.id, game_type, True)
        await db_session.commit()

        stats = await get_user_stats(db_session, user.id)

        assert stats["total_words_learned"] == 1
        assert await count_learned_words(db_session, user.id) == 1
        assert stats["total_games_played"] == 3

    async def test_aggregates(self, db_session, user, make_word):
        one = await make_word("bright", ["shiny"])
        two = await make_word("dull", ["boring"])
        await update_progress(db_session, user.id, one.id, "quiz", True, 10)
        await update_progress(db_session, user.id, one.id, "quiz", True, 5)
        await update_progress(db_session, user.id, two.id, "quiz", False, 5)
        await update_progress(db_session, user.id, two.id, "spelling", False)

        stats = await get_user_stats(db_session, user.id)

        assert stats["total_words_learned"] == 1
        assert stats["total_games_played"] == 4
        assert stats["average_accuracy"] == 0.5
        assert stats["current_streak"] == 2
        assert stats["longest_streak"] == 2
        assert stats["favorite_game_type"] == "quiz"
        assert stats["total_time_spent"] == 20
        assert stats["mastery_distribution"][LEARNED_MASTERY] == 1
        assert stats["mastery_distribution"][0] == 2

    async def test_empty_user(self, db_session, user):
        stats = await get_user_stats(db_session, user.id)

        assert stats["total_words_learned"] == 0
        assert stats["average_accuracy"] == 0.0
        assert stats["favorite_game_type"] == "random-new"
        assert set(stats["mastery_distribution"]) == {0, 1, 2, 3, 4, 5}


class TestWordsForGame:
    async def test_new_and_review_pools(self, db_session, user, make_word):
        learned = await make_word("gentle", ["mild"])
        fresh = await make_word("harsh", ["severe"])
        await update_progress(db_session, user.id, learned.id, "quiz", True)
        await update_progress(db_session, user.id, fresh.id, "quiz", False)

        new_rows = await get_words_for_game(db_session, user.id, "random-new")
        review_rows = await get_words_for_game(db_session, user.id, "review")

        assert [r.word_id for r in new_rows] == [fresh.id]
        assert [r.word_id for r in review_rows] == [learned.id]
