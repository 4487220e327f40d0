# src/aura_stage/models/identity.py
"""SQLAlchemy model for member identities."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from aura_stage.db.session import Base
from aura_stage.db.time import utcnow


class Identity(Base):
    """Durable member identity keyed by the external auth subject.

    Lifetime aura is never stored here; it is derived from the rating ledger.
    """

    __tablename__ = "identity"

    user_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    display_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str | None] = mapped_column(Text, nullable=True)
    photo_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    # None means the member has not answered the consent prompt yet; treated as shown.
    show_on_leaderboard: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    leaderboard_anonymous: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    show_on_group_leaderboard: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    group_leaderboard_anonymous: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )

    # Running sum of feed aura deltas on posts this member authored.
    feed_aura_total: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    @property
    def hidden_globally(self) -> bool:
        """Return True if the member opted out of the global leaderboard."""
        return self.show_on_leaderboard is False

    @property
    def hidden_in_groups(self) -> bool:
        """Return True if the member opted out of group leaderboards."""
        return self.show_on_group_leaderboard is False
