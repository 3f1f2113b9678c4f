"""Schemas shared by the per-user progress endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, StrictBool, field_validator

from synquest.db.models import GAME_TYPES
from synquest.words.schemas import WordResponse


class ProgressUpdateRequest(BaseModel):
    word_id: str
    game_type: str
    is_correct: StrictBool
    time_spent: int = Field(0, ge=0)

    @field_validator("game_type")
    @classmethod
    def known_game_type(cls, v: str) -> str:
        if v not in GAME_TYPES:
            msg = f"game_type must be one of: {', '.join(GAME_TYPES)}"
            raise ValueError(msg)
        return v


class ProgressResponse(BaseModel):
    model_config = {"from_attributes": True}

    id: str
    word_id: str
    game_type: str
    correct_count: int
    incorrect_count: int
    mastery_level: int
    streak: int
    time_spent: int
    last_played_at: datetime | None = None
    word: WordResponse | None = None


class UserStats(BaseModel):
    total_words_learned: int
    total_games_played: int
    current_streak: int
    longest_streak: int
    average_accuracy: float
    favorite_game_type: str
    mastery_distribution: dict[int, int]
    total_time_spent: int
