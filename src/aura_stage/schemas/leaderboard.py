# src/aura_stage/schemas/leaderboard.py
"""Global leaderboard schemas."""

from pydantic import BaseModel, ConfigDict


class LeaderboardRowResponse(BaseModel):
    rank: int
    user_id: str | None
    display_name: str
    total_aura: int | None
    groups_joined: int
    ratings_received: int
    dimension_totals: dict[str, int] | None

    model_config = ConfigDict(from_attributes=True)


class LeaderboardStatsResponse(BaseModel):
    total_users: int
    total_ratings: int
    average_aura: int | None
    highest_aura: int | None


class LeaderboardResponse(BaseModel):
    rankings: list[LeaderboardRowResponse]
    stats: LeaderboardStatsResponse
    sort_by: str
    anonymized: bool
