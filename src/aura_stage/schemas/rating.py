# src/aura_stage/schemas/rating.py
"""Rating-related Pydantic schemas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class RatingCreate(BaseModel):
    """Schema for submitting a rating."""

    scope: str = Field("direct", max_length=32, description='"direct" or a group id')
    to_target_id: str = Field(..., min_length=1, max_length=160, description="User or slot id")
    points: int = Field(..., description="Signed points; magnitude counts against the budget")
    reason: str | None = Field(None, description="Optional compliment shown in results")
    dimension_scores: dict[str, Any] | None = Field(
        None, description="Optional per-dimension breakdown"
    )


class RatingResponse(BaseModel):
    """Schema for a ledger entry returned by the API."""

    id: int
    scope: str
    from_user_id: str
    from_display_name: str
    to_target_id: str
    to_display_name: str
    points: int
    reason: str | None
    dimension_scores: dict[str, int] | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BudgetResponse(BaseModel):
    budget: int
    spent: int
    remaining: int


class ScopeRatingsResponse(BaseModel):
    scope: str
    ratings: list[RatingResponse]
    rated_targets: list[str]
