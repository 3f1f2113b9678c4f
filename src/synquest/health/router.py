"""Liveness, readiness and smoke-test endpoints."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from synquest.config import get_settings
from synquest.database import get_session

router = APIRouter()


@router.get("/health")
async def health() -> dict[str, object]:
    """Liveness probe: 200 while the process is up."""
    return {
        "success": True,
        "message": "Synonym Trainer API is running",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": get_settings().environment,
    }


@router.get("/ready")
async def readiness(
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict[str, object]:
    """Readiness probe: checks the database connection."""
    try:
        await db.execute(text("SELECT 1"))
        database = "ok"
    except SQLAlchemyError as exc:
        database = f"error: {exc}"
    return {"status": "ready" if database == "ok" else "degraded", "checks": {"database": database}}


@router.get("/api/test")
async def api_test() -> dict[str, object]:
    return {"success": True, "message": "API is working!", "timestamp": datetime.now(timezone.utc).isoformat()}
