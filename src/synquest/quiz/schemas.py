"""Quiz request/response schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from synquest.words.schemas import WordResponse


class QuizSettings(BaseModel):
    quiz_length: int = Field(10, ge=1, le=100)
    difficulty: str | None = None
    categories: list[str] | None = None


class AnswerSubmission(BaseModel):
    answer: list[str]
    hints_used: int = Field(0, ge=0)


class QuizSessionResponse(BaseModel):
    model_config = {"from_attributes": True}

    id: str
    user_id: str | None = None
    words: list[str]
    current_index: int
    score: int
    total_questions: int
    hints_used: int
    answers: list[dict[str, Any]]
    start_time: datetime
    end_time: datetime | None = None


class QuizQuestion(BaseModel):
    word: WordResponse | None = None
    question_number: int
    total_questions: int
    hints_used: int = 0


class QuizState(BaseModel):
    session: QuizSessionResponse
    current_question: QuizQuestion | None = None


class AnswerFeedback(BaseModel):
    synonym: str
    user_answer: str
    status: str
    is_correct: bool
    user_provided: bool


class AnswerResult(BaseModel):
    word_id: str
    user_answer: list[str]
    correct_synonyms: list[str]
    is_correct: bool
    feedback: list[AnswerFeedback]
    score: int
    hints_used: int
    total_questions: int
    correct_answers: int
    incorrect_answers: int
    streak: int
    time_spent: int


class NextQuestion(BaseModel):
    has_next: bool
    is_complete: bool
    final_score: int | None = None
    next_question: QuizQuestion | None = None


class HintResponse(BaseModel):
    hint: str


class ResultEntry(BaseModel):
    word_id: str
    user_answer: list[str]
    correct_synonyms: list[str]
    is_correct: bool
    feedback: list[AnswerFeedback]
    score: int
    hints_used: int


class ResultSummary(BaseModel):
    total_questions: int
    correct_answers: int
    accuracy: float
    total_score: int
    hints_used: int
    time_spent: int | None = None


class QuizResults(BaseModel):
    session: QuizSessionResponse
    words: list[WordResponse]
    results: list[ResultEntry]
    summary: ResultSummary
