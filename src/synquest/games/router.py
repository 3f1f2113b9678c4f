"""Game API endpoints: anonymous play under /api/games, per-user play under /api/games/user."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from synquest.auth.dependencies import get_current_user
from synquest.badges.schemas import BadgeResponse
from synquest.database import get_session
from synquest.db.models import User
from synquest.dependencies import get_game_service
from synquest.games.schemas import (
    DailyQuestCompletion,
    DailyQuestResponse,
    GameStatistics,
    LetterProgress,
    ProgressUpdateResult,
    SpellingChallenge,
    SpellingCheckRequest,
    SpellingResult,
    SynonymAnswerRequest,
    SynonymAnswerResult,
    SynonymQuestion,
    WordLadder,
)
from synquest.games.service import LETTERS, GameError, GameService
from synquest.progress.schemas import ProgressResponse, ProgressUpdateRequest, UserStats
from synquest.progress.service import get_user_stats
from synquest.schemas import Envelope, ok
from synquest.words.schemas import WordResponse
from synquest.words.service import WordNotFoundError

router = APIRouter(prefix="/api/games", tags=["Games"])


def _letter(letter: str) -> str:
    if len(letter) != 1 or letter.lower() not in LETTERS:
        raise HTTPException(status_code=400, detail="Letter must be a single character a-z")
    return letter.lower()


def _words(words: list[Any]) -> list[WordResponse]:
    return [WordResponse.model_validate(w) for w in words]


def _progress(rows: list[Any]) -> list[ProgressResponse]:
    return [ProgressResponse.model_validate(r, from_attributes=True) for r in rows]


# ── Anonymous play ──


@router.get("/letters/progress", response_model=Envelope[list[LetterProgress]])
async def letters_progress(games: GameService = Depends(get_game_service)):
    return ok([LetterProgress(**row) for row in await games.letter_progress()])


@router.get("/letter/{letter}/new", response_model=Envelope[list[WordResponse]])
async def new_words_for_letter(
    letter: str,
    limit: int = Query(5, ge=1, le=200),
    games: GameService = Depends(get_game_service),
):
    return ok(_words(await games.new_words_for_letter(_letter(letter), limit)))


@router.get("/letter/{letter}/old", response_model=Envelope[list[WordResponse]])
async def learned_words_for_letter(
    letter: str,
    limit: int = Query(5, ge=1, le=200),
    games: GameService = Depends(get_game_service),
):
    return ok(_words(await games.learned_words_for_letter(_letter(letter), limit)))


@router.get("/random/new", response_model=Envelope[list[WordResponse]])
async def random_new_words(
    limit: int = Query(10, ge=1, le=100),
    games: GameService = Depends(get_game_service),
):
    return ok(_words(await games.random_new_words(limit)))


@router.get("/random/old", response_model=Envelope[list[WordResponse]])
async def random_learned_words(
    limit: int = Query(10, ge=1, le=100),
    games: GameService = Depends(get_game_service),
):
    return ok(_words(await games.random_learned_words(limit)))


@router.get("/synonym-match/question", response_model=Envelope[SynonymQuestion])
async def synonym_match_question(games: GameService = Depends(get_game_service)):
    try:
        question = await games.synonym_match_question()
    except GameError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return ok(SynonymQuestion.model_validate(question, from_attributes=True))


@router.post("/synonym-match/answer", response_model=Envelope[SynonymAnswerResult])
async def synonym_match_answer(
    body: SynonymAnswerRequest,
    games: GameService = Depends(get_game_service),
    db: AsyncSession = Depends(get_session),
):
    if not body.question_id or not body.answer or not body.word_id:
        raise HTTPException(status_code=400, detail="Missing required fields")
    try:
        result = await games.check_synonym_answer(body.word_id, body.answer)
    except WordNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    await db.commit()
    return ok(SynonymAnswerResult(**result))


@router.get("/spelling/word", response_model=Envelope[SpellingChallenge])
async def spelling_word(games: GameService = Depends(get_game_service)):
    try:
        challenge = await games.spelling_challenge()
    except GameError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return ok(SpellingChallenge.model_validate(challenge, from_attributes=True))


@router.post("/spelling/check", response_model=Envelope[SpellingResult])
async def spelling_check(
    body: SpellingCheckRequest,
    games: GameService = Depends(get_game_service),
    db: AsyncSession = Depends(get_session),
):
    if not body.word or not body.user_answer or not body.word_id:
        raise HTTPException(status_code=400, detail="Missing required fields")
    try:
        result = await games.submit_spelling(body.word, body.user_answer, body.word_id)
    except WordNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    await db.commit()
    return ok(SpellingResult(**result))


@router.get("/daily/word", response_model=Envelope[DailyQuestResponse])
async def daily_word(
    games: GameService = Depends(get_game_service),
    db: AsyncSession = Depends(get_session),
):
    try:
        quest = await games.daily_quest()
    except GameError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    await db.commit()
    return ok(DailyQuestResponse.model_validate(quest, from_attributes=True))


@router.post("/daily/complete", response_model=Envelope[DailyQuestCompletion])
async def daily_complete(
    games: GameService = Depends(get_game_service),
    db: AsyncSession = Depends(get_session),
):
    try:
        result = await games.complete_daily_quest()
    except GameError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    await db.commit()
    message = "Daily quest completed!" if result["success"] else "Daily quest already completed today"
    return ok(DailyQuestCompletion(**result), message)


@router.get("/word-ladder/start", response_model=Envelope[WordLadder])
async def word_ladder(games: GameService = Depends(get_game_service)):
    try:
        ladder = await games.word_ladder()
    except GameError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return ok(WordLadder.model_validate(ladder, from_attributes=True))


@router.get("/speed/questions", response_model=Envelope[list[SynonymQuestion]])
async def speed_questions(
    count: int = Query(20, ge=1, le=50),
    games: GameService = Depends(get_game_service),
):
    try:
        questions = await games.speed_round(count)
    except GameError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return ok([SynonymQuestion.model_validate(q, from_attributes=True) for q in questions])


@router.get("/statistics", response_model=Envelope[GameStatistics])
async def statistics(games: GameService = Depends(get_game_service)):
    return ok(GameStatistics(**await games.statistics()))


# ── Per-user play ──


@router.get("/user/statistics", response_model=Envelope[UserStats])
async def user_statistics(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    return ok(UserStats(**await get_user_stats(db, user.id)))


@router.get("/user/letters/progress", response_model=Envelope[list[LetterProgress]])
async def user_letters_progress(
    user: User = Depends(get_current_user),
    games: GameService = Depends(get_game_service),
):
    return ok([LetterProgress(**row) for row in await games.user_letters_progress(user.id)])


@router.get("/user/letter/{letter}/new", response_model=Envelope[list[ProgressResponse]])
async def user_new_words_for_letter(
    letter: str,
    limit: int = Query(200, ge=1, le=500),
    user: User = Depends(get_current_user),
    games: GameService = Depends(get_game_service),
):
    return ok(_progress(await games.user_new_words_for_letter(user.id, _letter(letter), limit)))


@router.get("/user/letter/{letter}/old", response_model=Envelope[list[ProgressResponse]])
async def user_learned_words_for_letter(
    letter: str,
    limit: int = Query(200, ge=1, le=500),
    user: User = Depends(get_current_user),
    games: GameService = Depends(get_game_service),
):
    return ok(_progress(await games.user_learned_words_for_letter(user.id, _letter(letter), limit)))


@router.get("/user/random/new", response_model=Envelope[list[ProgressResponse]])
async def user_random_new_words(
    limit: int = Query(10, ge=1, le=100),
    user: User = Depends(get_current_user),
    games: GameService = Depends(get_game_service),
):
    return ok(_progress(await games.user_random_new_words(user.id, limit)))


@router.get("/user/random/old", response_model=Envelope[list[ProgressResponse]])
async def user_random_learned_words(
    limit: int = Query(10, ge=1, le=100),
    user: User = Depends(get_current_user),
    games: GameService = Depends(get_game_service),
):
    return ok(_progress(await games.user_random_learned_words(user.id, limit)))


@router.get("/user/review/{game_type}", response_model=Envelope[list[ProgressResponse]])
async def user_review_words(
    game_type: str,
    limit: int = Query(200, ge=1, le=500),
    user: User = Depends(get_current_user),
    games: GameService = Depends(get_game_service),
):
    return ok(_progress(await games.user_review_words(user.id, game_type, limit)))


@router.post("/user/progress/update", response_model=Envelope[ProgressUpdateResult])
async def user_progress_update(
    body: ProgressUpdateRequest,
    user: User = Depends(get_current_user),
    games: GameService = Depends(get_game_service),
    db: AsyncSession = Depends(get_session),
):
    """Record a signed-in answer; any answer may unlock badges."""
    try:
        progress, awarded = await games.update_user_game_progress(
            user.id, body.word_id, body.game_type, body.is_correct, body.time_spent
        )
    except WordNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    await db.commit()
    return ok(
        ProgressUpdateResult(
            progress=ProgressResponse.model_validate(progress),
            awarded_badges=[BadgeResponse.model_validate(b) for b in awarded],
        ),
        "Game progress updated successfully",
    )
