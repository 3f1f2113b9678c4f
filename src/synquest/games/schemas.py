"""Game request/response schemas."""

from __future__ import annotations

from pydantic import BaseModel

from synquest.badges.schemas import BadgeResponse
from synquest.progress.schemas import ProgressResponse
from synquest.words.schemas import WordResponse


class LetterProgress(BaseModel):
    letter: str
    total_words: int
    learned_words: int
    percentage: int


class SynonymQuestion(BaseModel):
    id: str
    question_word: WordResponse
    options: list[str]
    correct_answer: str
    difficulty: str
    game_type: str


class SynonymAnswerRequest(BaseModel):
    question_id: str | None = None
    answer: str | None = None
    word_id: str | None = None


class SynonymAnswerResult(BaseModel):
    is_correct: bool
    correct_answer: str
    feedback: str


class SpellingChallenge(BaseModel):
    word: WordResponse
    difficulty: str


class SpellingCheckRequest(BaseModel):
    word: str | None = None
    user_answer: str | None = None
    word_id: str | None = None


class SpellingResult(BaseModel):
    is_correct: bool
    accuracy: float
    feedback: str


class DailyQuestResponse(BaseModel):
    word: WordResponse
    streak: int
    is_completed_today: bool


class DailyQuestCompletion(BaseModel):
    success: bool
    new_streak: int


class WordLadder(BaseModel):
    current_word: WordResponse
    ladder_position: int
    target_position: int
    ladder_words: list[WordResponse]


class GameStatistics(BaseModel):
    total_words: int
    learned_words: int
    learning_progress: int
    daily_streak: int
    games_played: int


class ProgressUpdateResult(BaseModel):
    progress: ProgressResponse
    awarded_badges: list[BadgeResponse] = []
