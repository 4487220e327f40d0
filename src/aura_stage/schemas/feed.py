# src/aura_stage/schemas/feed.py
"""Feed post and feed aura schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class FeedPostCreate(BaseModel):
    body: str = Field(..., min_length=1, max_length=2000)


class FeedPostResponse(BaseModel):
    id: int
    author_id: str
    body: str
    created_at: datetime
    total_aura_count: int

    model_config = ConfigDict(from_attributes=True)


class FeedAuraRequest(BaseModel):
    """Schema for moving the caller's aura counter on a post."""

    post_id: int
    delta: int = Field(100, description="One step up or down")


class FeedAuraResponse(BaseModel):
    ok: bool = True
    post_id: int
    points: int
    delta: int
