# src/aura_stage/schemas/group.py
"""Group-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class GroupCreate(BaseModel):
    """Schema for creating a new group."""

    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = Field(None, max_length=500)
    max_participants: int | None = Field(None, ge=1, le=500)
    slot_labels: list[str] | None = Field(
        None, description="Optional roster; members join by claiming a slot"
    )
    founder_slot_index: int | None = Field(None, ge=0)
    voting_window_days: int | None = Field(None, ge=0, le=365)
    min_voters_to_close: int | None = Field(None, ge=1)


class JoinRequest(BaseModel):
    display_name: str | None = Field(None, max_length=100)


class JoinByCodeRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=12)
    display_name: str | None = Field(None, max_length=100)


class MemberResponse(BaseModel):
    user_id: str
    display_name: str
    joined_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SlotResponse(BaseModel):
    slot_index: int
    label: str
    target_id: str
    user_id: str | None
    display_name: str | None
    claimed: bool


class GroupResponse(BaseModel):
    """Schema for group information returned by the API."""

    id: int
    name: str
    description: str | None
    code: str
    created_by: str
    created_by_display_name: str
    created_at: datetime
    max_participants: int
    is_active: bool
    voting_closed: bool
    closure_reason: str | None
    voting_closes_at: datetime | None
    min_voters_to_close: int | None
    participants: list[MemberResponse]
    slots: list[SlotResponse]


class ClaimResponse(BaseModel):
    group_id: int
    slot_index: int
    user_id: str
    migrated: int
    voting_closed: bool
    retried: bool


class MigrateResponse(BaseModel):
    group_id: int
    slot_index: int
    migrated: int


class RankCardResponse(BaseModel):
    headline: str
    subline: str
    share_text: str

    model_config = ConfigDict(from_attributes=True)


class GroupResultEntryResponse(BaseModel):
    rank: int
    target_id: str
    display_name: str
    total_aura: int
    ratings_received: int
    dimension_totals: dict[str, int]
    is_slot: bool
    anonymous: bool
    insights: list[str] | None
    share_card: RankCardResponse | None

    model_config = ConfigDict(from_attributes=True)


class GroupResultsResponse(BaseModel):
    group_id: int
    group_name: str
    voting_closed: bool
    closure_reason: str | None
    unique_voters: int
    total_ratings: int
    rankings: list[GroupResultEntryResponse]

    model_config = ConfigDict(from_attributes=True)
