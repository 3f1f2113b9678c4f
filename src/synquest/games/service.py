"""
Game question generation and progress recording.

Anonymous play only touches the words' lifetime counters. Signed-in play also
writes per-user progress and then asks the badge service for awards; a badge
failure is logged and never undoes the progress write.
"""

from __future__ import annotations

import random
import string
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import case, func, select

from synquest.badges.service import BadgeEvent, BadgeService
from synquest.db.models import DailyQuest, GameProgress, UserProgress, Word
from synquest.progress.service import LEARNED_MASTERY, count_learned_words, update_progress
from synquest.words.service import WordNotFoundError, exact_synonyms, get_word, record_answer, synonym_texts

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

LETTERS = string.ascii_lowercase
FALLBACK_SYNONYMS = ["similar", "alike", "comparable"]
QUESTION_POOL_SIZE = 10
DISTRACTOR_POOL_SIZE = 20
DISTRACTOR_COUNT = 3
WORD_LADDER_TARGET = 10


class GameError(Exception):
    """A game cannot be served, usually because the word table is empty."""


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


def spelling_difficulty(text: str) -> str:
    if len(text) > 8 or "-" in text or " " in text:
        return "hard"
    if len(text) > 5:
        return "medium"
    return "easy"


def check_spelling(word: str, user_answer: str) -> dict[str, Any]:
    """Positional character match between the headword and the attempt."""
    expected = word.lower().strip()
    answer = user_answer.lower().strip()
    longest = max(len(expected), len(answer))
    matches = sum(1 for i in range(min(len(expected), len(answer))) if expected[i] == answer[i])
    accuracy = matches / longest * 100 if longest else 0.0

    if expected == answer:
        feedback = "Perfect! You spelled it correctly!"
    elif accuracy >= 80:
        feedback = "Almost correct! Just a small mistake."
    elif accuracy >= 60:
        feedback = "Good attempt! You got most of it right."
    else:
        feedback = "Not quite right. Keep practicing!"

    return {"is_correct": expected == answer, "accuracy": round(accuracy, 2), "feedback": feedback}


def pick_distractors(candidates: list[Word], excluded: list[str], count: int = DISTRACTOR_COUNT) -> list[str]:
    """Synonyms of other words not in `excluded`, padded with `random1`, `random2`, ..."""
    blocked = {e.lower() for e in excluded}
    distractors: list[str] = []
    for candidate in candidates:
        for text in synonym_texts(candidate):
            if len(distractors) >= count:
                return distractors
            if text.lower() not in blocked and text not in distractors:
                distractors.append(text)
    while len(distractors) < count:
        distractors.append(f"random{len(distractors) + 1}")
    return distractors


def _today() -> datetime:
    return datetime.now(timezone.utc)


def _iso_date(moment: datetime) -> str:
    return moment.date().isoformat()


def _temp_entry(word: Word, user_id: str, game_type: str) -> dict[str, Any]:
    """An unplayed word shaped like a progress row."""
    return {
        "id": f"temp-{word.id}",
        "user_id": user_id,
        "word_id": word.id,
        "game_type": game_type,
        "correct_count": 0,
        "incorrect_count": 0,
        "mastery_level": 0,
        "streak": 0,
        "time_spent": 0,
        "last_played_at": None,
        "word": word,
    }


class GameService:
    def __init__(self, db: AsyncSession, badges: BadgeService) -> None:
        self.db = db
        self.badges = badges

    # ------------------------------------------------------------------
    # Word pools
    # ------------------------------------------------------------------

    async def _random_words(self, limit: int, *conditions: Any) -> list[Word]:  # noqa: ANN401
        stmt = select(Word)
        if conditions:
            stmt = stmt.where(*conditions)
        result = await self.db.execute(stmt.order_by(func.random()).limit(limit))
        return list(result.scalars().all())

    async def letter_progress(self) -> list[dict[str, Any]]:
        """Word totals and globally learned words for every letter a-z."""
        first = func.lower(func.substr(Word.word, 1, 1))
        result = await self.db.execute(
            select(first, func.count(), func.sum(case((Word.correct_count > 0, 1), else_=0)))
            .group_by(first)
        )
        counts = {letter: (int(total), int(learned or 0)) for letter, total, learned in result}
        return [self._letter_row(letter, *counts.get(letter, (0, 0))) for letter in LETTERS]

    @staticmethod
    def _letter_row(letter: str, total: int, learned: int) -> dict[str, Any]:
        return {
            "letter": letter.upper(),
            "total_words": total,
            "learned_words": learned,
            "percentage": round(learned / total * 100) if total else 0,
        }

    async def new_words_for_letter(self, letter: str, limit: int = 5) -> list[Word]:
        result = await self.db.execute(
            select(Word)
            .where(Word.word.ilike(f"{letter.lower()}%"), Word.correct_count == 0, Word.incorrect_count == 0)
            .order_by(Word.difficulty, Word.word)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def learned_words_for_letter(self, letter: str, limit: int = 5) -> list[Word]:
        result = await self.db.execute(
            select(Word)
            .where(Word.word.ilike(f"{letter.lower()}%"), Word.correct_count > 0)
            .order_by(Word.last_reviewed, Word.difficulty)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def random_new_words(self, limit: int = 10) -> list[Word]:
        return await self._random_words(limit, Word.correct_count == 0, Word.incorrect_count == 0)

    async def random_learned_words(self, limit: int = 10) -> list[Word]:
        return await self._random_words(limit, Word.correct_count > 0)

    # ------------------------------------------------------------------
    # Questions
    # ------------------------------------------------------------------

    async def synonym_match_question(self) -> dict[str, Any]:
        """Multiple choice: one exact synonym of a random word plus three distractors."""
        pool = await self._random_words(QUESTION_POOL_SIZE)
        if not pool:
            msg = "No words found"
            raise GameError(msg)

        word, answers = pool[0], FALLBACK_SYNONYMS
        for candidate in pool:
            exact = exact_synonyms(candidate)
            if exact:
                word, answers = candidate, exact
                break

        others = await self._random_words(DISTRACTOR_POOL_SIZE, Word.id != word.id)
        correct_answer = random.choice(answers)
        options = [correct_answer, *pick_distractors(others, answers)]
        random.shuffle(options)

        return {
            "id": f"synonym_{word.id}",
            "question_word": word,
            "options": options,
            "correct_answer": correct_answer,
            "difficulty": word.difficulty,
            "game_type": "synonym_match",
        }

    async def check_synonym_answer(self, word_id: str, answer: str) -> dict[str, Any]:
        """Judge a synonym-match answer against the word's own exact synonyms."""
        word = await get_word(self.db, word_id)
        if word is None:
            msg = "Word not found"
            raise WordNotFoundError(msg)

        answers = exact_synonyms(word) or FALLBACK_SYNONYMS
        is_correct = answer.lower().strip() in {a.lower() for a in answers}
        await record_answer(self.db, word, is_correct)
        await self.record_game_played("synonym-match")

        shown = answer.strip() if is_correct else answers[0]
        return {
            "is_correct": is_correct,
            "correct_answer": shown,
            "feedback": "Correct! Well done!" if is_correct else f'Incorrect. The right answer is "{shown}"',
        }

    async def spelling_challenge(self) -> dict[str, Any]:
        words = await self._random_words(1)
        if not words:
            msg = "No words found for spelling challenge"
            raise GameError(msg)
        return {"word": words[0], "difficulty": spelling_difficulty(words[0].word)}

    async def submit_spelling(self, word: str, user_answer: str, word_id: str) -> dict[str, Any]:
        result = check_spelling(word, user_answer)
        await self.update_word_progress(word_id, result["is_correct"])
        await self.record_game_played("spelling")
        return result

    async def daily_quest(self) -> dict[str, Any]:
        """Today's quest, created on first request with the streak carried from yesterday."""
        now = _today()
        quest = await self._quest_for(_iso_date(now))
        if quest is None:
            words = await self._random_words(1)
            if not words:
                msg = "No words available for daily quest"
                raise GameError(msg)
            yesterday = await self._quest_for(_iso_date(now - timedelta(days=1)))
            streak = yesterday.streak + 1 if yesterday is not None and yesterday.completed else 1
            quest = DailyQuest(date=_iso_date(now), word_id=words[0].id, completed=False, streak=streak)
            self.db.add(quest)
            await self.db.flush()
            await self.db.refresh(quest, ["word"])
            logger.info("daily_quest_created", date=quest.date, word_id=quest.word_id, streak=streak)

        return {"word": quest.word, "streak": quest.streak, "is_completed_today": quest.completed}

    async def complete_daily_quest(self) -> dict[str, Any]:
        quest = await self._quest_for(_iso_date(_today()))
        if quest is None:
            msg = "No daily quest found for today"
            raise GameError(msg)
        if quest.completed:
            return {"success": False, "new_streak": quest.streak}

        quest.completed = True
        quest.completed_at = _today()
        await record_answer(self.db, quest.word, True)
        await self.record_game_played("daily-quest")
        return {"success": True, "new_streak": quest.streak}

    async def _quest_for(self, date: str) -> DailyQuest | None:
        result = await self.db.execute(select(DailyQuest).where(DailyQuest.date == date))
        return result.scalar_one_or_none()

    async def word_ladder(self) -> dict[str, Any]:
        words = await self._random_words(1, Word.difficulty == "easy")
        if not words:
            msg = "No easy words found for word ladder"
            raise GameError(msg)
        return {
            "current_word": words[0],
            "ladder_position": 0,
            "target_position": WORD_LADDER_TARGET,
            "ladder_words": [words[0]],
        }

    async def speed_round(self, count: int = 20) -> list[dict[str, Any]]:
        return [await self.synonym_match_question() for _ in range(count)]

    # ------------------------------------------------------------------
    # Global progress
    # ------------------------------------------------------------------

    async def update_word_progress(self, word_id: str, is_correct: bool) -> Word:
        word = await get_word(self.db, word_id)
        if word is None:
            msg = "Word not found"
            raise WordNotFoundError(msg)
        return await record_answer(self.db, word, is_correct)

    async def record_game_played(self, game_type: str, user_id: str | None = None, letter: str | None = None) -> None:
        self.db.add(GameProgress(game_type=game_type, user_id=user_id, letter=letter, last_played=_today()))
        await self.db.flush()

    async def statistics(self) -> dict[str, Any]:
        total = (await self.db.execute(select(func.count()).select_from(Word))).scalar_one()
        learned = (
            await self.db.execute(select(func.count()).select_from(Word).where(Word.correct_count > 0))
        ).scalar_one()
        today = await self._quest_for(_iso_date(_today()))
        games_played = (await self.db.execute(select(func.count()).select_from(GameProgress))).scalar_one()
        return {
            "total_words": total,
            "learned_words": learned,
            "learning_progress": round(learned / total * 100) if total else 0,
            "daily_streak": today.streak if today is not None else 0,
            "games_played": games_played,
        }

    # ------------------------------------------------------------------
    # Per-user play
    # ------------------------------------------------------------------

    async def update_user_game_progress(
        self,
        user_id: str,
        word_id: str,
        game_type: str,
        is_correct: bool,
        time_spent: int = 0,
    ) -> tuple[UserProgress, list[Any]]:
        """Record a signed-in answer. Returns (progress row, newly awarded badges)."""
        if await get_word(self.db, word_id) is None:
            msg = "Word not found"
            raise WordNotFoundError(msg)

        progress = await update_progress(self.db, user_id, word_id, game_type, is_correct, time_spent)
        await self.record_game_played(game_type, user_id=user_id)
        # Persist the answer before badge checks so an award failure cannot roll it back
        await self.db.commit()

        awarded: list[Any] = []
        try:
            if is_correct:
                word_count = await count_learned_words(self.db, user_id)
                awarded += await self.badges.check_and_award_badges(
                    BadgeEvent(
                        "word_learned", user_id, {"wordId": word_id, "wordCount": word_count, "gameType": game_type}
                    )
                )
            # game_mode badges count wrong answers too
            awarded += await self.badges.check_and_award_badges(
                BadgeEvent("game_completed", user_id, {"gameType": game_type, "wordId": word_id})
            )
        except Exception:
            logger.warning("badge_check_failed", user_id=user_id, word_id=word_id, exc_info=True)
            await self.db.rollback()
            await self.db.refresh(progress)
            return progress, []
        return progress, awarded

    async def user_letters_progress(self, user_id: str) -> list[dict[str, Any]]:
        """Per-letter totals against the user's distinct learned words."""
        first = func.lower(func.substr(Word.word, 1, 1))
        totals = {
            letter: int(total)
            for letter, total in await self.db.execute(select(first, func.count()).group_by(first))
        }
        learned = {
            letter: int(count)
            for letter, count in await self.db.execute(
                select(first, func.count(func.distinct(UserProgress.word_id)))
                .join(Word, UserProgress.word_id == Word.id)
                .where(UserProgress.user_id == user_id, UserProgress.mastery_level >= LEARNED_MASTERY)
                .group_by(first)
            )
        }
        return [self._letter_row(letter, totals.get(letter, 0), learned.get(letter, 0)) for letter in LETTERS]

    async def _played_word_ids(self, user_id: str) -> set[str]:
        result = await self.db.execute(select(UserProgress.word_id).where(UserProgress.user_id == user_id).distinct())
        return set(result.scalars().all())

    async def _pad_with_unplayed(
        self,
        user_id: str,
        rows: list[UserProgress],
        unplayed_stmt: Any,  # noqa: ANN401
        game_type: str,
        limit: int,
    ) -> list[Any]:
        if len(rows) >= limit:
            return rows[:limit]
        played = await self._played_word_ids(user_id)
        if played:
            unplayed_stmt = unplayed_stmt.where(Word.id.not_in(sorted(played)))
        words = (await self.db.execute(unplayed_stmt.limit(limit - len(rows)))).scalars().all()
        return [*rows, *(_temp_entry(w, user_id, game_type) for w in words)]

    async def user_new_words_for_letter(self, user_id: str, letter: str, limit: int = 200) -> list[Any]:
        """Words still being learned for this letter, topped up with unplayed ones."""
        pattern = f"{letter.lower()}%"
        result = await self.db.execute(
            select(UserProgress)
            .join(Word, UserProgress.word_id == Word.id)
            .where(
                UserProgress.user_id == user_id,
                UserProgress.mastery_level < LEARNED_MASTERY,
                Word.word.ilike(pattern),
            )
            .order_by(UserProgress.mastery_level.asc(), UserProgress.last_played_at.asc())
            .limit(limit)
        )
        rows = list(result.scalars().all())
        unplayed = select(Word).where(Word.word.ilike(pattern)).order_by(Word.difficulty, Word.word)
        return await self._pad_with_unplayed(user_id, rows, unplayed, "new-letter", limit)

    async def user_learned_words_for_letter(self, user_id: str, letter: str, limit: int = 200) -> list[UserProgress]:
        result = await self.db.execute(
            select(UserProgress)
            .join(Word, UserProgress.word_id == Word.id)
            .where(
                UserProgress.user_id == user_id,
                UserProgress.mastery_level >= LEARNED_MASTERY,
                Word.word.ilike(f"{letter.lower()}%"),
            )
            .order_by(UserProgress.mastery_level.asc(), UserProgress.last_played_at.asc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def user_random_new_words(self, user_id: str, limit: int = 10) -> list[Any]:
        result = await self.db.execute(
            select(UserProgress)
            .where(UserProgress.user_id == user_id, UserProgress.mastery_level < LEARNED_MASTERY)
            .order_by(func.random())
            .limit(limit)
        )
        rows = list(result.scalars().all())
        return await self._pad_with_unplayed(user_id, rows, select(Word).order_by(func.random()), "random-new", limit)

    async def user_random_learned_words(self, user_id: str, limit: int = 10) -> list[UserProgress]:
        result = await self.db.execute(
            select(UserProgress)
            .where(UserProgress.user_id == user_id, UserProgress.mastery_level >= LEARNED_MASTERY)
            .order_by(func.random())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def user_review_words(self, user_id: str, game_type: str, limit: int = 200) -> list[UserProgress]:
        """Learned words of one game type; a '-review' suffix names the same game."""
        base_type = game_type.removesuffix("-review")
        result = await self.db.execute(
            select(UserProgress)
            .where(
                UserProgress.user_id == user_id,
                UserProgress.game_type == base_type,
                UserProgress.mastery_level >= LEARNED_MASTERY,
            )
            .order_by(UserProgress.mastery_level.asc(), UserProgress.last_played_at.asc())
            .limit(limit)
        )
        return list(result.scalars().all())
