"""ORM models for words, users, sessions, progress, quizzes and badges.

Primary keys are UUIDs rendered as strings; JSON columns map to JSONB on
PostgreSQL and plain JSON on other backends.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from synquest.db.base import Base, JSONType

GAME_TYPES = (
    "new-letter",
    "old-letter",
    "random-new",
    "random-old",
    "synonym-match",
    "spelling",
    "word-ladder",
    "daily-quest",
    "speed-round",
)
DIFFICULTIES = ("easy", "medium", "hard")
BADGE_CATEGORIES = ("learning", "game", "performance", "special")
BADGE_RARITIES = ("common", "rare", "epic", "legendary")

DEFAULT_PREFERENCES: dict[str, Any] = {
    "difficulty": "medium",
    "dailyGoal": 10,
    "notifications": True,
    "theme": "light",
}


def _uuid() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


def is_uuid(value: str) -> bool:
    """True if `value` parses as a UUID; used to 404 early on malformed ids."""
    try:
        uuid.UUID(str(value))
    except ValueError:
        return False
    return True


def _default_preferences() -> dict[str, Any]:
    return dict(DEFAULT_PREFERENCES)


# ---------------------------------------------------------------------------
# Words
# ---------------------------------------------------------------------------


class Word(Base):
    """A vocabulary entry with its synonyms and lifetime answer counters."""

    __tablename__ = "words"

    id: Mapped[str] = mapped_column(Uuid(as_uuid=False), primary_key=True, default=_uuid)
    word: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    synonyms: Mapped[list[Any]] = mapped_column(JSONType, nullable=False, default=list)
    category: Mapped[str | None] = mapped_column(String(50), nullable=True)
    difficulty: Mapped[str] = mapped_column(String(10), nullable=False, default="medium")
    meaning: Mapped[str | None] = mapped_column(String(500), nullable=True)
    correct_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    incorrect_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_reviewed: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    tags: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=_now)


# ---------------------------------------------------------------------------
# Users & sessions
# ---------------------------------------------------------------------------


class User(Base):
    """A registered learner."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(Uuid(as_uuid=False), primary_key=True, default=_uuid)
    username: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(256), nullable=False)
    first_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    avatar: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    preferences: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=_default_preferences)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=_now)

    sessions: Mapped[list[UserSession]] = relationship("UserSession", back_populates="user")


class UserSession(Base):
    """A login session: hashed access/refresh token pair plus device metadata."""

    __tablename__ = "user_sessions"

    id: Mapped[str] = mapped_column(Uuid(as_uuid=False), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    token_hash: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    refresh_token_hash: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    device_info: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    last_used_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now)

    user: Mapped[User] = relationship("User", back_populates="sessions")


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------


class UserProgress(Base):
    """Per (user, word, game type) mastery tracking."""

    __tablename__ = "user_progress"
    __table_args__ = (UniqueConstraint("user_id", "word_id", "game_type", name="uq_user_progress_user_word_game"),)

    id: Mapped[str] = mapped_column(Uuid(as_uuid=False), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    word_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("words.id", ondelete="CASCADE"), nullable=False
    )
    game_type: Mapped[str] = mapped_column(String(20), nullable=False)
    correct_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    incorrect_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    mastery_level: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    time_spent: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_played_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=_now)

    word: Mapped[Word] = relationship("Word", lazy="joined")


class GameProgress(Base):
    """Anonymous game activity log backing the global statistics."""

    __tablename__ = "game_progress"

    id: Mapped[str] = mapped_column(Uuid(as_uuid=False), primary_key=True, default=_uuid)
    game_type: Mapped[str] = mapped_column(String(20), nullable=False)
    letter: Mapped[str | None] = mapped_column(String(1), nullable=True)
    words_learned: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_words: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    current_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    best_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_played: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    user_id: Mapped[str | None] = mapped_column(Uuid(as_uuid=False), nullable=True)


class DailyQuest(Base):
    """One quest word per calendar day."""

    __tablename__ = "daily_quests"

    id: Mapped[str] = mapped_column(Uuid(as_uuid=False), primary_key=True, default=_uuid)
    date: Mapped[str] = mapped_column(String(10), unique=True, nullable=False)
    word_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("words.id", ondelete="CASCADE"), nullable=False
    )
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    word: Mapped[Word] = relationship("Word", lazy="joined")


# ---------------------------------------------------------------------------
# Quiz
# ---------------------------------------------------------------------------


class QuizSession(Base):
    """A stateful quiz run over a fixed list of word ids."""

    __tablename__ = "quiz_sessions"

    id: Mapped[str] = mapped_column(Uuid(as_uuid=False), primary_key=True, default=_uuid)
    user_id: Mapped[str | None] = mapped_column(Uuid(as_uuid=False), nullable=True)
    words: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    current_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_questions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    hints_used: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    answers: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, nullable=False, default=list)
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


# ---------------------------------------------------------------------------
# Badges
# ---------------------------------------------------------------------------


class Badge(Base):
    """Badge catalog entry with a JSON criteria descriptor."""

    __tablename__ = "badges"

    id: Mapped[str] = mapped_column(Uuid(as_uuid=False), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(20), nullable=False)
    icon: Mapped[str] = mapped_column(String(50), nullable=False)
    criteria: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False)
    rarity: Mapped[str] = mapped_column(String(20), nullable=False, default="common")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now)


class UserBadge(Base):
    """Badges earned by users. UNIQUE(user_id, badge_id) prevents duplicates."""

    __tablename__ = "user_badges"
    __table_args__ = (UniqueConstraint("user_id", "badge_id", name="uq_user_badges_user_badge"),)

    id: Mapped[str] = mapped_column(Uuid(as_uuid=False), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    badge_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("badges.id", ondelete="CASCADE"), nullable=False
    )
    progress: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    badge_metadata: Mapped[dict[str, Any]] = mapped_column("metadata", JSONType, nullable=False, default=dict)
    earned_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    badge: Mapped[Badge] = relationship("Badge", lazy="joined")
