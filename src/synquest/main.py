"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from sqlalchemy.exc import SQLAlchemyError

from synquest.ai.service import AIService
from synquest.auth.router import router as auth_router
from synquest.auth.service import cleanup_expired_sessions
from synquest.badges.repositories import SqlBadgeRepository
from synquest.badges.router import router as badges_router
from synquest.badges.seed import seed_badges
from synquest.config import get_settings
from synquest.database import close_db, create_tables, get_session, init_db
from synquest.games.router import router as games_router
from synquest.health.router import router as health_router
from synquest.middleware import setup_middleware
from synquest.quiz.router import router as quiz_router
from synquest.redis_client import close_redis, init_redis
from synquest.words.router import router as words_router

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.sqlalchemy_url, settings)
    if settings.db_create_tables:
        await create_tables()
    if settings.rate_limit_backend == "redis":
        await init_redis(settings.redis_url)

    try:
        async for db in get_session():
            if settings.seed_badges_on_startup:
                await seed_badges(SqlBadgeRepository(db))
            await cleanup_expired_sessions(db)
            await db.commit()
            break
    except SQLAlchemyError:
        logger.warning("startup_maintenance_failed", exc_info=True)

    logger.info("app_started", environment=settings.environment, port=settings.port)

    yield

    await close_db()
    if settings.rate_limit_backend == "redis":
        await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Synonym Quest API",
        description="Vocabulary trainer backend: words, quizzes, games and badges",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )
    app.state.ai_service = AIService.from_settings(settings)

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(auth_router)
    app.include_router(words_router)
    app.include_router(quiz_router)
    app.include_router(games_router)
    app.include_router(badges_router)

    return app


app = create_app()
