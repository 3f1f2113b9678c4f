"""
Stateful quiz sessions.

A session holds a fixed list of word ids and an index into it. Submitting an
answer scores the current word (resubmitting replaces the earlier attempt);
`next_question` advances the index and closes the session after the last word.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import func, select

from synquest.ai.service import AIService, AIServiceError
from synquest.db.models import QuizSession, Word, is_uuid
from synquest.words.service import get_word, record_answer, synonym_texts

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

CORRECT_SCORE = 10
HINT_PENALTY = 2
ALL_FOUND_HINT = "You have found all synonyms!"


class QuizNotFoundError(LookupError):
    pass


class QuizError(Exception):
    """The quiz cannot accept this action in its current state."""


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _norm(text: str) -> str:
    return text.lower().strip()


def _as_utc(moment: datetime) -> datetime:
    # SQLite hands back naive datetimes
    return moment if moment.tzinfo else moment.replace(tzinfo=timezone.utc)


def answer_feedback(user_answers: list[str], synonyms: list[str]) -> tuple[bool, list[dict[str, Any]]]:
    """Per-synonym feedback. Correct only when every synonym is given and nothing else."""
    expected = {_norm(s) for s in synonyms}
    given = {_norm(a) for a in user_answers}

    feedback = [
        {
            "synonym": answer,
            "user_answer": answer,
            "status": "correct" if _norm(answer) in expected else "incorrect",
            "is_correct": _norm(answer) in expected,
            "user_provided": True,
        }
        for answer in user_answers
    ]
    feedback += [
        {
            "synonym": synonym,
            "user_answer": "",
            "status": "missing",
            "is_correct": False,
            "user_provided": False,
        }
        for synonym in synonyms
        if _norm(synonym) not in given
    ]

    correct = sum(1 for f in feedback if f["status"] == "correct")
    return correct == len(synonyms) and len(user_answers) == len(synonyms), feedback


def trailing_streak(answers: list[dict[str, Any]]) -> int:
    streak = 0
    for answer in reversed(answers):
        if not answer.get("is_correct"):
            break
        streak += 1
    return streak


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


async def get_quiz(db: AsyncSession, session_id: str) -> QuizSession | None:
    if not is_uuid(session_id):
        return None
    return await db.get(QuizSession, session_id)


async def _require_quiz(db: AsyncSession, session_id: str) -> QuizSession:
    session = await get_quiz(db, session_id)
    if session is None:
        msg = "Quiz session not found"
        raise QuizNotFoundError(msg)
    return session


async def start_quiz(
    db: AsyncSession,
    *,
    quiz_length: int = 10,
    difficulty: str | None = None,
    categories: list[str] | None = None,
    user_id: str | None = None,
) -> QuizSession:
    """Create a session over random words. 'mixed' difficulty means any; only the first category is used."""
    stmt = select(Word.id)
    if difficulty and difficulty != "mixed":
        stmt = stmt.where(Word.difficulty == difficulty)
    if categories:
        stmt = stmt.where(Word.category == categories[0])
    word_ids = list((await db.execute(stmt.order_by(func.random()).limit(quiz_length))).scalars().all())

    if not word_ids:
        msg = "No words available for quiz"
        raise QuizError(msg)

    session = QuizSession(
        user_id=user_id,
        words=word_ids,
        current_index=0,
        score=0,
        total_questions=len(word_ids),
        hints_used=0,
        answers=[],
        start_time=_now(),
    )
    db.add(session)
    await db.flush()
    logger.info("quiz_started", session_id=session.id, questions=len(word_ids), user_id=user_id)
    return session


def _answer_for(session: QuizSession, word_id: str) -> tuple[int, dict[str, Any] | None]:
    for i, answer in enumerate(session.answers or []):
        if answer.get("word_id") == word_id:
            return i, answer
    return -1, None


def is_complete(session: QuizSession) -> bool:
    return session.end_time is not None or session.current_index >= len(session.words)


async def current_question(db: AsyncSession, session: QuizSession) -> dict[str, Any] | None:
    """The word being asked, or None once the quiz is over."""
    if is_complete(session):
        return None
    word_id = session.words[session.current_index]
    word = await get_word(db, word_id)
    _i, answer = _answer_for(session, word_id)
    return {
        "word": word,
        "question_number": session.current_index + 1,
        "total_questions": session.total_questions,
        "hints_used": answer.get("hints_used", 0) if answer else 0,
    }


async def _current_word(db: AsyncSession, session: QuizSession) -> Word:
    word = await get_word(db, session.words[session.current_index])
    if word is None:
        msg = "Word not found"
        raise QuizError(msg)
    return word


async def submit_answer(
    db: AsyncSession,
    ai: AIService,
    session_id: str,
    user_answers: list[str],
) -> dict[str, Any]:
    """
    Score the current word.

    The assistant decides correctness when available; exact matching is the
    fallback. Hints taken on this word cost 2 points each.

    Raises:
        QuizNotFoundError: If the session does not exist.
        QuizError: If the quiz is already complete.
    """
    session = await _require_quiz(db, session_id)
    if is_complete(session):
        msg = "Quiz already completed"
        raise QuizError(msg)

    word = await _current_word(db, session)
    synonyms = synonym_texts(word)
    is_correct, feedback = answer_feedback(user_answers, synonyms)
    if ai.enabled:
        try:
            verdict = await ai.validate_answer(word.word, ", ".join(user_answers), synonyms)
            is_correct = verdict.is_valid
        except AIServiceError as e:
            logger.info("quiz_validation_fallback", session_id=session.id, reason=str(e))

    index, previous = _answer_for(session, word.id)
    hints_used = previous.get("hints_used", 0) if previous else 0
    score = max(0, (CORRECT_SCORE if is_correct else 0) - hints_used * HINT_PENALTY)

    record = {
        "word_id": word.id,
        "user_answer": user_answers,
        "correct_synonyms": synonyms,
        "is_correct": is_correct,
        "score": score,
        "hints_used": hints_used,
        "timestamp": _now().isoformat(),
    }
    answers = list(session.answers or [])
    if index >= 0:
        answers[index] = record
    else:
        answers.append(record)

    session.answers = answers
    session.score = session.score - (previous.get("score", 0) if previous else 0) + score
    await record_answer(db, word, is_correct)

    correct_answers = sum(1 for a in answers if a.get("is_correct"))
    return {
        "word_id": word.id,
        "user_answer": user_answers,
        "correct_synonyms": synonyms,
        "is_correct": is_correct,
        "feedback": feedback,
        "score": score,
        "hints_used": hints_used,
        "total_questions": session.total_questions,
        "correct_answers": correct_answers,
        "incorrect_answers": len(answers) - correct_answers,
        "streak": trailing_streak(answers),
        "time_spent": int((_now() - _as_utc(session.start_time)).total_seconds()),
    }


async def next_question(db: AsyncSession, session_id: str) -> dict[str, Any]:
    session = await _require_quiz(db, session_id)
    if is_complete(session):
        msg = "Quiz already completed"
        raise QuizError(msg)

    session.current_index += 1
    if session.current_index >= len(session.words):
        session.end_time = _now()
        await db.flush()
        logger.info("quiz_completed", session_id=session.id, score=session.score)
        return {"has_next": False, "is_complete": True, "final_score": session.score}

    await db.flush()
    return {"has_next": True, "is_complete": False, "final_score": None}


async def get_hint(db: AsyncSession, ai: AIService, session_id: str) -> str:
    """Hint toward the synonyms not yet given for the current word; counts against its score."""
    session = await _require_quiz(db, session_id)
    if is_complete(session):
        msg = "Quiz already completed"
        raise QuizError(msg)

    word = await _current_word(db, session)
    synonyms = synonym_texts(word)
    index, answer = _answer_for(session, word.id)
    given = {_norm(a) for a in (answer.get("user_answer", []) if answer else [])}
    missing = [s for s in synonyms if _norm(s) not in given]
    if not missing:
        return ALL_FOUND_HINT

    hint = await ai.generate_hint(word.word, missing)

    answers = [dict(a) for a in session.answers or []]
    if index >= 0:
        answers[index]["hints_used"] = answers[index].get("hints_used", 0) + 1
    else:
        answers.append(
            {
                "word_id": word.id,
                "user_answer": [],
                "correct_synonyms": synonyms,
                "is_correct": False,
                "score": 0,
                "hints_used": 1,
                "timestamp": _now().isoformat(),
            }
        )
    session.answers = answers
    session.hints_used += 1
    await db.flush()
    return hint


async def get_results(db: AsyncSession, session_id: str) -> dict[str, Any]:
    session = await _require_quiz(db, session_id)
    word_rows = await db.execute(select(Word).where(Word.id.in_(session.words)))
    words_by_id = {w.id: w for w in word_rows.scalars().all()}

    results = []
    for answer in session.answers or []:
        is_correct, feedback = answer_feedback(answer.get("user_answer", []), answer.get("correct_synonyms", []))
        results.append(
            {
                "word_id": answer["word_id"],
                "user_answer": answer.get("user_answer", []),
                "correct_synonyms": answer.get("correct_synonyms", []),
                "is_correct": answer.get("is_correct", is_correct),
                "feedback": feedback,
                "score": answer.get("score", 0),
                "hints_used": answer.get("hints_used", 0),
            }
        )

    correct = sum(1 for r in results if r["is_correct"])
    time_spent = None
    if session.end_time is not None:
        time_spent = int((_as_utc(session.end_time) - _as_utc(session.start_time)).total_seconds())

    return {
        "session": session,
        "words": [words_by_id[w] for w in session.words if w in words_by_id],
        "results": results,
        "summary": {
            "total_questions": session.total_questions,
            "correct_answers": correct,
            "accuracy": round(correct / session.total_questions * 100, 2) if session.total_questions else 0.0,
            "total_score": session.score,
            "hints_used": sum(r["hints_used"] for r in results),
            "time_spent": time_spent,
        },
    }


async def delete_quiz(db: AsyncSession, session_id: str) -> None:
    session = await _require_quiz(db, session_id)
    await db.delete(session)
    await db.flush()
