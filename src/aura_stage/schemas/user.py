# src/aura_stage/schemas/user.py
"""User profile schemas."""

from pydantic import BaseModel, ConfigDict, Field


class ProfileResponse(BaseModel):
    """The caller's own profile with lifetime aura and budget."""

    user_id: str
    display_name: str
    email: str | None
    photo_url: str | None
    total_aura: int
    points_spent: int
    points_remaining: int
    groups_joined: int
    feed_aura_total: int
    show_on_leaderboard: bool | None
    leaderboard_anonymous: bool
    show_on_group_leaderboard: bool | None
    group_leaderboard_anonymous: bool

    model_config = ConfigDict(from_attributes=True)


class ProfileUpdate(BaseModel):
    display_name: str | None = Field(None, min_length=1, max_length=100)
    photo_url: str | None = Field(None, max_length=2000)
    show_on_leaderboard: bool | None = None
    leaderboard_anonymous: bool | None = None
    show_on_group_leaderboard: bool | None = None
    group_leaderboard_anonymous: bool | None = None


class PublicProfileResponse(BaseModel):
    user_id: str
    display_name: str
    photo_url: str | None

    model_config = ConfigDict(from_attributes=True)
