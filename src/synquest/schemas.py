"""Response envelope shared by every API endpoint."""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class Envelope(BaseModel, Generic[T]):
    """Standard `{success, data, message}` response body."""

    success: bool = True
    data: T | None = None
    message: str | None = None


def ok(data: Any = None, message: str | None = None) -> dict[str, Any]:  # noqa: ANN401
    """Build a success envelope, omitting an empty message."""
    body: dict[str, Any] = {"success": True, "data": data}
    if message is not None:
        body["message"] = message
    return body


def error_body(error: str, **extra: Any) -> dict[str, Any]:  # noqa: ANN401
    """Build a failure envelope."""
    return {"success": False, "error": error, **extra}
