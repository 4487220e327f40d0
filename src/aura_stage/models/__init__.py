# src/aura_stage/models/__init__.py
"""SQLAlchemy models for the Aura Stage application."""

from .feed import FeedAura, FeedPost
from .group import GroupMember, GroupSession, GroupSlot
from .identity import Identity
from .rating import Rating

__all__ = [
    "FeedAura", "FeedPost",
    "GroupMember", "GroupSession", "GroupSlot",
    "Identity",
    "Rating",
]
