"""Middleware registration."""

from fastapi import FastAPI

from synquest.config import Settings
from synquest.middleware.cors import setup_cors
from synquest.middleware.error_handler import setup_error_handlers
from synquest.middleware.logging import setup_logging
from synquest.middleware.rate_limit import RateLimiter, RateLimitMiddleware, build_counter_store
from synquest.middleware.request_id import RequestIdMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register all middleware in the correct order.

    Starlette executes middleware in reverse-add order (last added = outermost).
    CORS must be outermost so it wraps error responses from inner middleware (e.g. 429).
    """
    setup_logging(settings)
    setup_error_handlers(app)

    store = build_counter_store(settings)
    app.state.auth_rate_limiter = RateLimiter(
        store,
        limit=settings.auth_rate_limit_attempts,
        window_seconds=settings.auth_rate_limit_window_seconds,
        prefix="ratelimit:auth",
    )
    app.add_middleware(
        RateLimitMiddleware,
        limiter=RateLimiter(
            store,
            limit=settings.rate_limit_requests,
            window_seconds=settings.rate_limit_window_seconds,
        ),
    )
    app.add_middleware(RequestIdMiddleware)
    setup_cors(app, settings)
