"""Word catalog: CRUD, selection queries, statistics and AI helpers.

Synonyms are stored either as plain strings or as `{"word", "type"}` objects;
`synonym_texts` and `exact_synonyms` read both shapes. Plain strings count as
exact synonyms.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import func, select

from synquest.ai.service import AIService, AIServiceError, AnswerValidation
from synquest.db.models import UserProgress, Word, is_uuid
from synquest.progress.service import LEARNED_MASTERY

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

SORTABLE_FIELDS = ("word", "difficulty", "category", "created_at", "updated_at", "correct_count", "incorrect_count")


class WordNotFoundError(LookupError):
    pass


class DuplicateWordError(ValueError):
    pass


# ---------------------------------------------------------------------------
# Synonym helpers
# ---------------------------------------------------------------------------


def _synonym_text(entry: Any) -> str:  # noqa: ANN401
    if isinstance(entry, dict):
        return str(entry.get("word", "")).strip()
    return str(entry).strip()


def synonym_texts(word: Word) -> list[str]:
    return [t for t in (_synonym_text(s) for s in word.synonyms or []) if t]


def exact_synonyms(word: Word) -> list[str]:
    exact = []
    for entry in word.synonyms or []:
        if isinstance(entry, dict) and entry.get("type", "exact") != "exact":
            continue
        text = _synonym_text(entry)
        if text:
            exact.append(text)
    return exact


def normalize_synonyms(synonyms: list[Any]) -> list[Any]:
    """Lowercase and trim; entries that end up empty are dropped."""
    normalized: list[Any] = []
    for entry in synonyms:
        if isinstance(entry, dict):
            text = str(entry.get("word", "")).lower().strip()
            if text:
                normalized.append({"word": text, "type": entry.get("type") or "exact"})
        else:
            text = str(entry).lower().strip()
            if text:
                normalized.append(text)
    return normalized


def fallback_synonyms(word: str) -> list[str]:
    return [f"similar to {word}", f"like {word}", f"akin to {word}"]


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------


async def get_word(db: AsyncSession, word_id: str) -> Word | None:
    if not is_uuid(word_id):
        return None
    return await db.get(Word, word_id)


async def get_word_by_text(db: AsyncSession, text: str) -> Word | None:
    result = await db.execute(select(Word).where(Word.word == text.lower().strip()))
    return result.scalar_one_or_none()


async def create_word(
    db: AsyncSession,
    ai: AIService,
    *,
    word: str,
    synonyms: list[Any],
    category: str | None = None,
    difficulty: str | None = None,
    meaning: str | None = None,
    tags: list[str] | None = None,
) -> Word:
    """
    Add a word; difficulty is assessed by the AI assistant when not given.

    Raises:
        ValueError: If the word or its synonyms are missing.
        DuplicateWordError: If the word already exists.
    """
    text = word.lower().strip()
    normalized = normalize_synonyms(synonyms)
    if not text or not normalized:
        msg = "Word and synonyms are required"
        raise ValueError(msg)
    if await get_word_by_text(db, text) is not None:
        msg = "Word already exists"
        raise DuplicateWordError(msg)

    entry = Word(
        word=text,
        synonyms=normalized,
        category=category,
        difficulty=difficulty or await ai.assess_difficulty(text),
        meaning=meaning,
        tags=tags or [],
    )
    db.add(entry)
    await db.flush()
    logger.info("word_created", word_id=entry.id, word=text)
    return entry


async def update_word(db: AsyncSession, word: Word, changes: dict[str, Any]) -> Word:
    """Apply a partial update. Raises DuplicateWordError on a text clash."""
    if changes.get("word") is not None:
        text = changes["word"].lower().strip()
        existing = await get_word_by_text(db, text)
        if existing is not None and existing.id != word.id:
            msg = "Word already exists"
            raise DuplicateWordError(msg)
        word.word = text
    if changes.get("synonyms") is not None:
        word.synonyms = normalize_synonyms(changes["synonyms"])
    for field in ("category", "difficulty", "meaning", "tags"):
        if changes.get(field) is not None:
            setattr(word, field, changes[field])
    await db.flush()
    return word


async def delete_word(db: AsyncSession, word: Word) -> None:
    await db.delete(word)
    await db.flush()
    logger.info("word_deleted", word_id=word.id)


async def list_words(
    db: AsyncSession,
    *,
    page: int = 1,
    limit: int = 20,
    category: str | None = None,
    difficulty: str | None = None,
    search: str | None = None,
    tags: list[str] | None = None,
    sort_by: str = "created_at",
    sort_order: str = "desc",
) -> dict[str, Any]:
    """Paginated, filtered listing. Tag filtering requires every listed tag."""
    stmt = select(Word)
    if category:
        stmt = stmt.where(Word.category == category)
    if difficulty:
        stmt = stmt.where(Word.difficulty == difficulty)
    if search:
        stmt = stmt.where(Word.word.ilike(f"%{search.strip()}%"))

    column = getattr(Word, sort_by if sort_by in SORTABLE_FIELDS else "created_at")
    stmt = stmt.order_by(column.desc() if sort_order.lower() == "desc" else column.asc(), Word.id)
    offset = (page - 1) * limit

    if tags:
        # JSON containment differs per backend; filter tags after loading
        wanted = set(tags)
        matching = [w for w in (await db.execute(stmt)).scalars().all() if wanted.issubset(w.tags or [])]
        total = len(matching)
        words = matching[offset : offset + limit]
    else:
        total = (await db.execute(select(func.count()).select_from(stmt.order_by(None).subquery()))).scalar_one()
        words = list((await db.execute(stmt.offset(offset).limit(limit))).scalars().all())

    return {
        "data": words,
        "total": total,
        "page": page,
        "limit": limit,
        "total_pages": math.ceil(total / limit) if limit else 0,
    }


# ---------------------------------------------------------------------------
# Selection
# ---------------------------------------------------------------------------


async def get_random_words(
    db: AsyncSession,
    count: int = 10,
    difficulty: str | None = None,
    category: str | None = None,
) -> list[Word]:
    stmt = select(Word)
    if difficulty:
        stmt = stmt.where(Word.difficulty == difficulty)
    if category:
        stmt = stmt.where(Word.category == category)
    result = await db.execute(stmt.order_by(func.random()).limit(count))
    return list(result.scalars().all())


async def get_review_words(db: AsyncSession, limit: int = 20) -> list[Word]:
    """Never-reviewed words first, then the most often missed."""
    result = await db.execute(
        select(Word)
        .order_by(
            Word.last_reviewed.is_(None).desc(),
            Word.last_reviewed.asc(),
            Word.incorrect_count.desc(),
        )
        .limit(limit)
    )
    return list(result.scalars().all())


async def record_answer(db: AsyncSession, word: Word, is_correct: bool) -> Word:
    """Bump the word's lifetime counters."""
    if is_correct:
        word.correct_count += 1
    else:
        word.incorrect_count += 1
    word.last_reviewed = datetime.now(timezone.utc)
    await db.flush()
    return word


async def get_word_statistics(db: AsyncSession) -> dict[str, Any]:
    total = (await db.execute(select(func.count()).select_from(Word))).scalar_one()

    by_difficulty = {
        difficulty: count
        for difficulty, count in await db.execute(select(Word.difficulty, func.count()).group_by(Word.difficulty))
    }
    by_category = {
        (category or "uncategorized"): count
        for category, count in await db.execute(select(Word.category, func.count()).group_by(Word.category))
    }

    correct, incorrect = (
        await db.execute(
            select(func.coalesce(func.sum(Word.correct_count), 0), func.coalesce(func.sum(Word.incorrect_count), 0))
        )
    ).one()
    attempts = int(correct) + int(incorrect)

    return {
        "total_words": total,
        "words_by_difficulty": by_difficulty,
        "words_by_category": by_category,
        "average_accuracy": round(int(correct) / attempts * 100, 2) if attempts else 0.0,
    }


# ---------------------------------------------------------------------------
# Per-user word lists
# ---------------------------------------------------------------------------


async def get_user_learned_words(db: AsyncSession, user_id: str, limit: int = 100) -> list[UserProgress]:
    result = await db.execute(
        select(UserProgress)
        .where(UserProgress.user_id == user_id, UserProgress.mastery_level >= LEARNED_MASTERY)
        .order_by(UserProgress.last_played_at.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def get_user_new_words(db: AsyncSession, user_id: str, limit: int = 50) -> list[UserProgress]:
    result = await db.execute(
        select(UserProgress)
        .where(UserProgress.user_id == user_id, UserProgress.mastery_level < LEARNED_MASTERY)
        .order_by(UserProgress.last_played_at.asc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def get_user_words_by_letter(
    db: AsyncSession,
    user_id: str,
    letter: str,
    status: str | None = None,
    limit: int = 50,
) -> list[UserProgress]:
    """Progress rows whose word starts with `letter`; status is 'new', 'learned' or None for both."""
    stmt = (
        select(UserProgress)
        .join(Word, UserProgress.word_id == Word.id)
        .where(UserProgress.user_id == user_id, Word.word.ilike(f"{letter.lower()}%"))
    )
    if status == "new":
        stmt = stmt.where(UserProgress.mastery_level < LEARNED_MASTERY)
    elif status == "learned":
        stmt = stmt.where(UserProgress.mastery_level >= LEARNED_MASTERY)

    result = await db.execute(
        stmt.order_by(UserProgress.mastery_level.asc(), UserProgress.last_played_at.asc()).limit(limit)
    )
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# AI helpers
# ---------------------------------------------------------------------------


async def suggest_synonyms(ai: AIService, word: str, context: str | None = None) -> tuple[list[str], bool]:
    """Return (synonyms, generated_by_ai); falls back to templated suggestions."""
    try:
        synonyms = await ai.suggest_synonyms(word, context)
    except AIServiceError as e:
        logger.info("ai_synonyms_fallback", word=word, reason=str(e))
        return fallback_synonyms(word), False
    return (synonyms, True) if synonyms else (fallback_synonyms(word), False)


def simple_validation(user_answer: str, correct_synonyms: list[str]) -> AnswerValidation:
    """Exact, case-insensitive comparison against the known synonyms."""
    answer = user_answer.lower().strip()
    matched = answer in {s.lower().strip() for s in correct_synonyms}
    return AnswerValidation(
        is_valid=matched,
        confidence=100 if matched else 0,
        feedback="Correct!" if matched else "That is not one of the expected synonyms.",
        suggestions=[] if matched else correct_synonyms[:3],
    )


async def validate_answer(
    ai: AIService, word: str, user_answer: str, correct_synonyms: list[str]
) -> AnswerValidation:
    try:
        return await ai.validate_answer(word, user_answer, correct_synonyms)
    except AIServiceError as e:
        logger.info("ai_validation_fallback", word=word, reason=str(e))
        return simple_validation(user_answer, correct_synonyms)


async def generate_meaning(db: AsyncSession, ai: AIService, word: Word, *, overwrite: bool = False) -> str:
    """Fill in the word's meaning if empty (or when `overwrite`) and return it."""
    if word.meaning and not overwrite:
        return word.meaning
    word.meaning = await ai.generate_meaning(word.word, synonym_texts(word))
    await db.flush()
    return word.meaning
