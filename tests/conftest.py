"""Shared test fixtures."""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator
from types import SimpleNamespace
from typing import Any

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

# Settings are read once per process; pin the test environment before any app import
os.environ["RATE_LIMIT_REQUESTS"] = "10000"
os.environ["RATE_LIMIT_BACKEND"] = "memory"
os.environ["OPENAI_API_KEY"] = ""
os.environ["SEED_BADGES_ON_STARTUP"] = "false"
os.environ["JWT_SECRET"] = "test-secret-key-that-is-long-enough-for-hs256"
os.environ["LOG_FORMAT"] = "console"

from synquest.ai.service import AIService  # noqa: E402
from synquest.badges.repositories import SqlBadgeRepository  # noqa: E402
from synquest.badges.seed import seed_badges  # noqa: E402
from synquest.config import get_settings  # noqa: E402
from synquest.database import close_db, create_tables, get_session, init_db  # noqa: E402
from synquest.db.models import Word  # noqa: E402
from synquest.main import create_app  # noqa: E402

PASSWORD = "SecurePass1"


@pytest.fixture
def database_url(tmp_path, monkeypatch) -> str:
    """A fresh SQLite file per test."""
    url = f"sqlite+aiosqlite:///{tmp_path / 'synquest.db'}"
    monkeypatch.setenv("DATABASE_URL", url)
    get_settings.cache_clear()
    yield url
    get_settings.cache_clear()


@pytest_asyncio.fixture
async def app(database_url: str) -> AsyncGenerator[FastAPI, None]:
    """Application with an initialized, empty schema. ASGITransport skips the lifespan."""
    application = create_app()
    await init_db(database_url)
    await create_tables()
    yield application
    await close_db()


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def db_session(app: FastAPI) -> AsyncGenerator[AsyncSession, None]:
    """A direct database session for setup and assertions."""
    sessions = get_session()
    session = await sessions.__anext__()
    yield session
    await sessions.aclose()


@pytest_asyncio.fixture
async def seeded_badges(db_session: AsyncSession) -> AsyncSession:
    await seed_badges(SqlBadgeRepository(db_session))
    await db_session.commit()
    return db_session


@pytest.fixture
def make_word(db_session: AsyncSession):
    """Factory inserting a committed word."""

    async def _make(
        text: str,
        synonyms: list[Any] | None = None,
        *,
        difficulty: str = "easy",
        category: str | None = None,
        tags: list[str] | None = None,
        correct_count: int = 0,
    ) -> Word:
        word = Word(
            word=text,
            synonyms=synonyms if synonyms is not None else [f"{text}-syn"],
            difficulty=difficulty,
            category=category,
            tags=tags or [],
            correct_count=correct_count,
            incorrect_count=0,
        )
        db_session.add(word)
        await db_session.commit()
        return word

    return _make


async def register(client: AsyncClient, username: str = "learner", email: str = "learner@example.com") -> dict:
    """Register through the API; returns the auth payload (user + tokens)."""
    response = await client.post(
        "/api/auth/register",
        json={"username": username, "email": email, "password": PASSWORD},
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]


@pytest_asyncio.fixture
async def registered_user(client: AsyncClient) -> dict:
    return await register(client)


@pytest.fixture
def auth_headers(registered_user: dict) -> dict[str, str]:
    return {"Authorization": f"Bearer {registered_user['tokens']['access_token']}"}


class FakeCompletions:
    """Stands in for `client.chat.completions`; replies are consumed in order."""

    def __init__(self, replies: list[str | Exception]) -> None:
        self.replies = list(replies)
        self.calls: list[dict[str, Any]] = []

    async def create(self, **kwargs: Any) -> SimpleNamespace:
        self.calls.append(kwargs)
        reply = self.replies.pop(0) if self.replies else ""
        if isinstance(reply, Exception):
            raise reply
        message = SimpleNamespace(content=reply)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


@pytest.fixture
def fake_ai():
    """Build an AIService over scripted completions."""

    def _build(*replies: str | Exception) -> AIService:
        completions = FakeCompletions(list(replies))
        client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
        return AIService(client=client)

    return _build
