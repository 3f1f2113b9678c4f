"""Word API endpoints: catalog CRUD, selection, AI helpers and per-user word lists."""

from __future__ import annotations

from typing import Any, Literal

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from synquest.ai.service import AIService
from synquest.auth.dependencies import get_current_user
from synquest.database import get_session
from synquest.db.models import User, Word
from synquest.dependencies import get_ai_service
from synquest.progress.schemas import ProgressResponse, ProgressUpdateRequest, UserStats
from synquest.progress.service import get_user_stats, get_words_for_game, update_progress
from synquest.schemas import Envelope, ok
from synquest.words import service
from synquest.words.schemas import (
    AISynonymsRequest,
    Difficulty,
    SynonymEntry,
    ValidateAnswerRequest,
    WordCreate,
    WordPage,
    WordResponse,
    WordStatistics,
    WordStatsUpdate,
    WordUpdate,
)
from synquest.words.service import DuplicateWordError

router = APIRouter(prefix="/api/words", tags=["Words"])


async def _require_word(db: AsyncSession, word_id: str) -> Word:
    word = await service.get_word(db, word_id)
    if word is None:
        raise HTTPException(status_code=404, detail="Word not found")
    return word


def _progress(rows: list[Any]) -> list[ProgressResponse]:
    return [ProgressResponse.model_validate(r) for r in rows]


@router.get("", response_model=Envelope[WordPage])
async def list_words(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    category: str | None = Query(None),
    difficulty: Difficulty | None = Query(None),
    search: str | None = Query(None),
    tags: str | None = Query(None, description="Comma-separated; every tag must match"),
    sort_by: str = Query("created_at"),
    sort_order: Literal["asc", "desc"] = Query("desc"),
    db: AsyncSession = Depends(get_session),
):
    result = await service.list_words(
        db,
        page=page,
        limit=limit,
        category=category,
        difficulty=difficulty,
        search=search,
        tags=[t.strip() for t in tags.split(",") if t.strip()] if tags else None,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return ok(WordPage.model_validate(result, from_attributes=True))


@router.get("/random", response_model=Envelope[list[WordResponse]])
async def random_words(
    count: int = Query(10, ge=1, le=100),
    difficulty: Difficulty | None = Query(None),
    category: str | None = Query(None),
    db: AsyncSession = Depends(get_session),
):
    words = await service.get_random_words(db, count, difficulty, category)
    return ok([WordResponse.model_validate(w) for w in words])


@router.get("/review", response_model=Envelope[list[WordResponse]])
async def review_words(
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_session),
):
    words = await service.get_review_words(db, limit)
    return ok([WordResponse.model_validate(w) for w in words])


@router.get("/stats", response_model=Envelope[WordStatistics])
async def word_statistics(db: AsyncSession = Depends(get_session)):
    return ok(WordStatistics(**await service.get_word_statistics(db)))


@router.post("/validate", response_model=Envelope[dict[str, Any]])
async def validate_answer(body: ValidateAnswerRequest, ai: AIService = Depends(get_ai_service)):
    """Judge a free-text answer; exact matching stands in when the assistant is unavailable."""
    verdict = await service.validate_answer(ai, body.word, body.user_answer, body.correct_synonyms)
    return ok(verdict.as_dict())


@router.get("/text/{text}", response_model=Envelope[WordResponse])
async def get_word_by_text(text: str, db: AsyncSession = Depends(get_session)):
    word = await service.get_word_by_text(db, text)
    if word is None:
        raise HTTPException(status_code=404, detail="Word not found")
    return ok(WordResponse.model_validate(word))


# ── Per-user lists (declared before /{word_id}) ──


@router.get("/user/stats", response_model=Envelope[UserStats])
async def user_stats(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    return ok(UserStats(**await get_user_stats(db, user.id)))


@router.get("/user/learned", response_model=Envelope[list[ProgressResponse]])
async def user_learned_words(
    limit: int = Query(100, ge=1, le=500),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    return ok(_progress(await service.get_user_learned_words(db, user.id, limit)))


@router.get("/user/new", response_model=Envelope[list[ProgressResponse]])
async def user_new_words(
    limit: int = Query(50, ge=1, le=500),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    return ok(_progress(await service.get_user_new_words(db, user.id, limit)))


@router.get("/user/letter/{letter}", response_model=Envelope[list[ProgressResponse]])
async def user_words_by_letter(
    letter: str,
    status: Literal["new", "learned"] | None = Query(None),
    limit: int = Query(50, ge=1, le=500),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    if len(letter) != 1 or not letter.isalpha():
        raise HTTPException(status_code=400, detail="Letter must be a single character a-z")
    return ok(_progress(await service.get_user_words_by_letter(db, user.id, letter, status, limit)))


@router.get("/user/game/{game_type}", response_model=Envelope[list[ProgressResponse]])
async def user_words_for_game(
    game_type: str,
    limit: int = Query(10, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    return ok(_progress(await get_words_for_game(db, user.id, game_type, limit)))


@router.put("/user/progress", response_model=Envelope[ProgressResponse])
async def user_progress(
    body: ProgressUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    await _require_word(db, body.word_id)
    progress = await update_progress(db, user.id, body.word_id, body.game_type, body.is_correct, body.time_spent)
    await db.commit()
    return ok(ProgressResponse.model_validate(progress), "Progress updated")


# ── Single word ──


@router.post("", response_model=Envelope[WordResponse], status_code=201)
async def create_word(
    body: WordCreate,
    db: AsyncSession = Depends(get_session),
    ai: AIService = Depends(get_ai_service),
):
    try:
        word = await service.create_word(
            db,
            ai,
            word=body.word,
            synonyms=[s.model_dump() if isinstance(s, SynonymEntry) else s for s in body.synonyms],
            category=body.category,
            difficulty=body.difficulty,
            meaning=body.meaning,
            tags=body.tags,
        )
    except ValueError as e:
        # DuplicateWordError included
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return ok(WordResponse.model_validate(word), "Word created")


@router.post("/{text}/ai-synonyms", response_model=Envelope[dict[str, Any]])
async def ai_synonyms(
    text: str,
    body: AISynonymsRequest | None = None,
    ai: AIService = Depends(get_ai_service),
):
    synonyms, generated = await service.suggest_synonyms(ai, text, body.context if body else None)
    return ok({"word": text, "synonyms": synonyms, "generated_by_ai": generated})


@router.get("/{word_id}", response_model=Envelope[WordResponse])
async def get_word(word_id: str, db: AsyncSession = Depends(get_session)):
    return ok(WordResponse.model_validate(await _require_word(db, word_id)))


@router.put("/{word_id}", response_model=Envelope[WordResponse])
async def update_word(
    word_id: str,
    body: WordUpdate,
    db: AsyncSession = Depends(get_session),
):
    word = await _require_word(db, word_id)
    changes = body.model_dump(exclude_unset=True)
    try:
        word = await service.update_word(db, word, changes)
    except DuplicateWordError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return ok(WordResponse.model_validate(word), "Word updated")


@router.put("/{word_id}/stats", response_model=Envelope[WordResponse])
async def update_word_stats(
    word_id: str,
    body: WordStatsUpdate,
    db: AsyncSession = Depends(get_session),
):
    word = await service.record_answer(db, await _require_word(db, word_id), body.is_correct)
    await db.commit()
    return ok(WordResponse.model_validate(word))


@router.post("/{word_id}/meaning", response_model=Envelope[WordResponse])
async def generate_meaning(
    word_id: str,
    overwrite: bool = Query(False),
    db: AsyncSession = Depends(get_session),
    ai: AIService = Depends(get_ai_service),
):
    word = await _require_word(db, word_id)
    await service.generate_meaning(db, ai, word, overwrite=overwrite)
    await db.commit()
    return ok(WordResponse.model_validate(word))


@router.delete("/{word_id}", response_model=Envelope[None])
async def delete_word(word_id: str, db: AsyncSession = Depends(get_session)):
    await service.delete_word(db, await _require_word(db, word_id))
    await db.commit()
    return ok(None, "Word deleted")
