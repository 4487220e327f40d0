# src/aura_stage/schemas/__init__.py
"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .feed import FeedAuraRequest, FeedAuraResponse, FeedPostCreate, FeedPostResponse
from .group import GroupCreate, GroupResponse, GroupResultsResponse
from .leaderboard import LeaderboardResponse
from .rating import BudgetResponse, RatingCreate, RatingResponse
from .user import ProfileResponse, ProfileUpdate, PublicProfileResponse

__all__ = [
    "BudgetResponse", "RatingCreate", "RatingResponse",
    "FeedAuraRequest", "FeedAuraResponse", "FeedPostCreate", "FeedPostResponse",
    "GroupCreate", "GroupResponse", "GroupResultsResponse",
    "LeaderboardResponse",
    "ProfileResponse", "ProfileUpdate", "PublicProfileResponse",
]
