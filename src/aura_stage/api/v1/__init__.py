# src/aura_stage/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import (
    feed_router,
    groups_router,
    leaderboard_router,
    ratings_router,
    users_router,
)

__all__ = [
    "feed_router",
    "groups_router",
    "leaderboard_router",
    "ratings_router",
    "users_router",
]
