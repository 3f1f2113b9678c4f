"""Quiz API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from synquest.ai.service import AIService
from synquest.auth.dependencies import get_optional_user
from synquest.database import get_session
from synquest.db.models import QuizSession, User
from synquest.dependencies import get_ai_service
from synquest.quiz import service
from synquest.quiz.schemas import (
    AnswerResult,
    AnswerSubmission,
    HintResponse,
    NextQuestion,
    QuizQuestion,
    QuizResults,
    QuizSessionResponse,
    QuizSettings,
    QuizState,
)
from synquest.quiz.service import QuizError, QuizNotFoundError
from synquest.schemas import Envelope, ok

router = APIRouter(prefix="/api/quiz", tags=["Quiz"])


async def _state(db: AsyncSession, session: QuizSession) -> QuizState:
    question = await service.current_question(db, session)
    return QuizState(
        session=QuizSessionResponse.model_validate(session),
        current_question=QuizQuestion.model_validate(question, from_attributes=True) if question else None,
    )


@router.post("/start", response_model=Envelope[QuizState], status_code=201)
async def start_quiz(
    body: QuizSettings | None = None,
    user: User | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_session),
):
    settings = body or QuizSettings()
    try:
        session = await service.start_quiz(
            db,
            quiz_length=settings.quiz_length,
            difficulty=settings.difficulty,
            categories=settings.categories,
            user_id=user.id if user else None,
        )
    except QuizError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return ok(await _state(db, session), "Quiz started")


@router.get("/{session_id}", response_model=Envelope[QuizState])
async def get_quiz(session_id: str, db: AsyncSession = Depends(get_session)):
    session = await service.get_quiz(db, session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Quiz session not found")
    return ok(await _state(db, session))


@router.post("/{session_id}/answer", response_model=Envelope[AnswerResult])
async def submit_answer(
    session_id: str,
    body: AnswerSubmission,
    db: AsyncSession = Depends(get_session),
    ai: AIService = Depends(get_ai_service),
):
    """Score the answer for the current word. Resubmitting replaces the earlier attempt."""
    try:
        result = await service.submit_answer(db, ai, session_id, body.answer)
    except QuizNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except QuizError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return ok(AnswerResult(**result))


@router.post("/{session_id}/next", response_model=Envelope[NextQuestion])
async def next_question(session_id: str, db: AsyncSession = Depends(get_session)):
    try:
        result = await service.next_question(db, session_id)
    except QuizNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except QuizError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()

    question = None
    if result["has_next"]:
        session = await service.get_quiz(db, session_id)
        current = await service.current_question(db, session)
        question = QuizQuestion.model_validate(current, from_attributes=True) if current else None
    return ok(NextQuestion(**result, next_question=question))


@router.get("/{session_id}/hint", response_model=Envelope[HintResponse])
async def get_hint(
    session_id: str,
    db: AsyncSession = Depends(get_session),
    ai: AIService = Depends(get_ai_service),
):
    try:
        hint = await service.get_hint(db, ai, session_id)
    except QuizNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except QuizError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return ok(HintResponse(hint=hint))


@router.get("/{session_id}/result", response_model=Envelope[QuizResults])
async def get_results(session_id: str, db: AsyncSession = Depends(get_session)):
    try:
        results = await service.get_results(db, session_id)
    except QuizNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return ok(QuizResults.model_validate(results, from_attributes=True))


@router.delete("/{session_id}", response_model=Envelope[None])
async def delete_quiz(session_id: str, db: AsyncSession = Depends(get_session)):
    try:
        await service.delete_quiz(db, session_id)
    except QuizNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    await db.commit()
    return ok(None, "Quiz session deleted")
