"""Badge response schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator


class BadgeResponse(BaseModel):
    model_config = {"from_attributes": True}

    id: str
    name: str
    description: str
    category: str
    icon: str
    criteria: dict[str, Any]
    rarity: str


class UserBadgeResponse(BaseModel):
    model_config = {"from_attributes": True, "populate_by_name": True}

    id: str
    badge_id: str
    progress: int
    metadata: dict[str, Any] = Field(default_factory=dict, validation_alias="badge_metadata")
    earned_at: datetime
    badge: BadgeResponse | None = None


class BadgeProgressResponse(BaseModel):
    model_config = {"from_attributes": True}

    badge: BadgeResponse
    progress: int
    is_earned: bool
    earned_at: datetime | None = None


class BadgeCheckRequest(BaseModel):
    type: str | None = None
    data: dict[str, Any] = Field(default_factory=dict)

    @field_validator("data", mode="before")
    @classmethod
    def _null_data_is_empty(cls, value: Any) -> Any:  # noqa: ANN401
        return {} if value is None else value


class BadgeCheckResponse(BaseModel):
    awarded_badges: list[BadgeResponse]
    count: int
