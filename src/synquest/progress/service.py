"""Per-user, per-word, per-game-mode learning state.

A row is created lazily the first time a (user, word, game type) is played.
One correct answer is enough to mark a word as learned: mastery jumps to 2 and
never drops back, whatever later answers look like.
"""

from __future__ import annotations

from collections import Counter
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import func, select

from synquest.db.models import UserProgress

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

LEARNED_MASTERY = 2
MAX_MASTERY = 5
DEFAULT_GAME_TYPE = "random-new"


def is_new_flavored(game_type: str) -> bool:
    return "new" in game_type


def is_review_flavored(game_type: str) -> bool:
    return "old" in game_type or "review" in game_type


async def get_progress(db: AsyncSession, user_id: str, word_id: str, game_type: str) -> UserProgress | None:
    result = await db.execute(
        select(UserProgress).where(
            UserProgress.user_id == user_id,
            UserProgress.word_id == word_id,
            UserProgress.game_type == game_type,
        )
    )
    return result.scalar_one_or_none()


async def update_progress(
    db: AsyncSession,
    user_id: str,
    word_id: str,
    game_type: str,
    is_correct: bool,
    time_spent: int = 0,
) -> UserProgress:
    """Record one answer, creating the progress row on first play."""
    progress = await get_progress(db, user_id, word_id, game_type)
    if progress is None:
        progress = UserProgress(
            user_id=user_id,
            word_id=word_id,
            game_type=game_type,
            correct_count=0,
            incorrect_count=0,
            mastery_level=0,
            streak=0,
            time_spent=0,
        )
        db.add(progress)

    if is_correct:
        progress.correct_count += 1
        progress.streak += 1
    else:
        progress.incorrect_count += 1
        progress.streak = 0

    if progress.correct_count >= 1:
        progress.mastery_level = LEARNED_MASTERY

    progress.last_played_at = datetime.now(timezone.utc)
    progress.time_spent += max(0, time_spent)
    await db.flush()
    await db.refresh(progress, ["word"])

    logger.debug(
        "progress_updated",
        user_id=user_id,
        word_id=word_id,
        game_type=game_type,
        is_correct=is_correct,
        mastery_level=progress.mastery_level,
    )
    return progress


async def count_learned_words(db: AsyncSession, user_id: str) -> int:
    """Distinct words with at least one correct answer in any game type."""
    result = await db.execute(
        select(func.count(func.distinct(UserProgress.word_id))).where(
            UserProgress.user_id == user_id,
            UserProgress.correct_count >= 1,
        )
    )
    return int(result.scalar_one())


async def get_user_stats(db: AsyncSession, user_id: str) -> dict[str, Any]:
    """Summary statistics over every progress row of a user.

    `current_streak` and `longest_streak` are both the highest per-row streak;
    there is no stored history to tell them apart.
    """
    result = await db.execute(select(UserProgress).where(UserProgress.user_id == user_id))
    rows = list(result.scalars().unique().all())

    total_correct = sum(p.correct_count for p in rows)
    total_attempts = sum(p.correct_count + p.incorrect_count for p in rows)
    best_streak = max((p.streak for p in rows), default=0)

    game_type_counts = Counter(p.game_type for p in rows)
    favorite = game_type_counts.most_common(1)[0][0] if game_type_counts else DEFAULT_GAME_TYPE

    mastery_distribution = {level: 0 for level in range(MAX_MASTERY + 1)}
    for p in rows:
        mastery_distribution[min(MAX_MASTERY, max(0, p.mastery_level))] += 1

    return {
        "total_words_learned": len({p.word_id for p in rows if p.correct_count >= 1}),
        "total_games_played": total_attempts,
        "current_streak": best_streak,
        "longest_streak": best_streak,
        "average_accuracy": total_correct / total_attempts if total_attempts else 0.0,
        "favorite_game_type": favorite,
        "mastery_distribution": mastery_distribution,
        "total_time_spent": sum(p.time_spent for p in rows),
    }


async def get_words_for_game(db: AsyncSession, user_id: str, game_type: str, limit: int = 10) -> list[UserProgress]:
    """Progress rows to replay: weakest and least recently played first.

    "new" game types get rows still at mastery 0 or 1; "old"/"review" types get
    rows answered correctly at least once; anything else gets every row.
    """
    stmt = select(UserProgress).where(UserProgress.user_id == user_id)
    if is_new_flavored(game_type):
        stmt = stmt.where(UserProgress.mastery_level <= 1)
    elif is_review_flavored(game_type):
        stmt = stmt.where(UserProgress.correct_count >= 1)

    result = await db.execute(
        stmt.order_by(
            UserProgress.mastery_level.asc(),
            UserProgress.last_played_at.asc(),
        ).limit(limit)
    )
    return list(result.scalars().unique().all())
