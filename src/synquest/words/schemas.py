"""Request/response schemas for word endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field, StrictBool

Difficulty = Literal["easy", "medium", "hard"]


class SynonymEntry(BaseModel):
    """A synonym with its exactness, e.g. {"word": "quick", "type": "exact"}."""

    word: str = Field(..., min_length=1, max_length=100)
    type: str = "exact"


class WordCreate(BaseModel):
    word: str = Field("", max_length=100)
    synonyms: list[str | SynonymEntry] = []
    category: str | None = Field(None, max_length=50)
    difficulty: Difficulty | None = None
    meaning: str | None = Field(None, max_length=500)
    tags: list[str] = []


class WordUpdate(BaseModel):
    word: str | None = Field(None, min_length=1, max_length=100)
    synonyms: list[str | SynonymEntry] | None = None
    category: str | None = Field(None, max_length=50)
    difficulty: Difficulty | None = None
    meaning: str | None = Field(None, max_length=500)
    tags: list[str] | None = None


class WordResponse(BaseModel):
    model_config = {"from_attributes": True}

    id: str
    word: str
    synonyms: list[Any]
    category: str | None = None
    difficulty: str
    meaning: str | None = None
    correct_count: int = 0
    incorrect_count: int = 0
    last_reviewed: datetime | None = None
    tags: list[str] = []
    created_at: datetime | None = None
    updated_at: datetime | None = None


class WordPage(BaseModel):
    data: list[WordResponse]
    total: int
    page: int
    limit: int
    total_pages: int


class WordStatsUpdate(BaseModel):
    is_correct: StrictBool


class AISynonymsRequest(BaseModel):
    context: str | None = Field(None, max_length=500)


class ValidateAnswerRequest(BaseModel):
    word: str = Field(..., min_length=1)
    user_answer: str = Field(..., min_length=1)
    correct_synonyms: list[str] = Field(..., min_length=1)


class WordStatistics(BaseModel):
    total_words: int
    words_by_difficulty: dict[str, int]
    words_by_category: dict[str, int]
    average_accuracy: float
