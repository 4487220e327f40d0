# src/aura_stage/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .feed import router as feed_router
from .groups import router as groups_router
from .leaderboard import router as leaderboard_router
from .ratings import router as ratings_router
from .users import router as users_router

__all__ = [
    "feed_router",
    "groups_router",
    "leaderboard_router",
    "ratings_router",
    "users_router",
]
