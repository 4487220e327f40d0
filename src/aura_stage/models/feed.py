# src/aura_stage/models/feed.py
"""Models for feed posts and the per-endorser aura counters on them."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from aura_stage.db.session import Base
from aura_stage.db.time import utcnow


class FeedPost(Base):
    """Content item members can push aura onto."""

    __tablename__ = "feed_post"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    author_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("identity.user_id"), nullable=False
    )
    body: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    # Running sum of counter deltas; equals the sum of FeedAura.points for the post.
    total_aura_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class FeedAura(Base):
    """Bounded counter one endorser holds on one post.

    Canonical records carry `canonical_key` ("<post_id>_<from_user_id>");
    legacy records written before the key existed leave it NULL and are folded
    into the canonical record on the next adjustment.
    """

    __tablename__ = "feed_aura"
    __table_args__ = (Index("ix_feed_aura_post_from", "post_id", "from_user_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    post_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("feed_post.id", ondelete="CASCADE"), nullable=False
    )
    from_user_id: Mapped[str] = mapped_column(String(128), nullable=False)
    from_display_name: Mapped[str] = mapped_column(String(100), nullable=False)
    to_user_id: Mapped[str] = mapped_column(String(128), nullable=False)
    points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    canonical_key: Mapped[str | None] = mapped_column(String(200), unique=True, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )
