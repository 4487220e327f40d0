# src/aura_stage/models/rating.py
"""Models for the append-only rating ledger."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from aura_stage.db.session import Base
from aura_stage.db.time import utcnow


class Rating(Base):
    """One point transfer from a rater to a target within a scope.

    Entries are never edited or deleted. The only rewrite is the one-time
    re-addressing of `to_target_id` from a slot placeholder to the claimant.
    """

    __tablename__ = "rating"
    __table_args__ = (
        # A rater may rate a given target once per scope.
        UniqueConstraint("scope", "from_user_id", "to_target_id", name="uq_rating_edge"),
        Index("ix_rating_from_user_id", "from_user_id"),
        Index("ix_rating_scope_to_target", "scope", "to_target_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # "direct" or the decimal id of a group session.
    scope: Mapped[str] = mapped_column(String(32), nullable=False)
    from_user_id: Mapped[str] = mapped_column(String(128), nullable=False)
    from_display_name: Mapped[str] = mapped_column(String(100), nullable=False)
    # Identity id, or "slot:<scope>:<index>" while the slot is unclaimed.
    to_target_id: Mapped[str] = mapped_column(String(160), nullable=False)
    to_display_name: Mapped[str] = mapped_column(String(100), nullable=False)
    points: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    dimension_scores: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
