# src/aura_stage/models/group.py
"""SQLAlchemy models for group sessions, membership and roster slots."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from aura_stage.db.session import Base
from aura_stage.db.time import utcnow


class GroupSession(Base):
    """A named voting round members join with a short code."""

    __tablename__ = "group_session"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Human-entered join code; upper-case alphanumeric.
    code: Mapped[str] = mapped_column(String(12), unique=True, nullable=False)
    created_by: Mapped[str] = mapped_column(
        String(128), ForeignKey("identity.user_id"), nullable=False
    )
    created_by_display_name: Mapped[str] = mapped_column(String(100), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    max_participants: Mapped[int] = mapped_column(Integer, nullable=False, default=50)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Closure inputs; the effective state is computed by the closure policy on read.
    voting_closed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    voting_closes_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    min_voters_to_close: Mapped[int | None] = mapped_column(Integer, nullable=True)

    members: Mapped[list[GroupMember]] = relationship(
        "GroupMember",
        back_populates="group",
        cascade="all, delete-orphan",
        order_by="GroupMember.seq",
    )
    slots: Mapped[list[GroupSlot]] = relationship(
        "GroupSlot",
        back_populates="group",
        cascade="all, delete-orphan",
        order_by="GroupSlot.slot_index",
    )

    @property
    def participants(self) -> list[str]:
        """Return participant ids in join order."""
        return [member.user_id for member in self.members]

    @property
    def scope(self) -> str:
        """Return the ledger scope string for this group."""
        return str(self.id)

    def member(self, user_id: str) -> GroupMember | None:
        """Return the membership row for `user_id`, if any."""
        return next((m for m in self.members if m.user_id == user_id), None)

    def slot_held_by(self, user_id: str) -> GroupSlot | None:
        """Return the slot bound to `user_id`, if any."""
        return next((s for s in self.slots if s.user_id == user_id), None)


class GroupMember(Base):
    """Participant of a group with the name they use inside it."""

    __tablename__ = "group_member"

    group_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("group_session.id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("identity.user_id"), primary_key=True
    )
    display_name: Mapped[str] = mapped_column(String(100), nullable=False)
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    # Join position within the group; participants are listed in this order.
    seq: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    group: Mapped[GroupSession] = relationship("GroupSession", back_populates="members")


class GroupSlot(Base):
    """Pre-seeded roster entry that can be rated before anyone claims it.

    Once `user_id` is set it never changes.
    """

    __tablename__ = "group_slot"
    __table_args__ = (
        UniqueConstraint("group_id", "user_id", name="uq_group_slot_holder"),
    )

    group_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("group_session.id", ondelete="CASCADE"), primary_key=True
    )
    slot_index: Mapped[int] = mapped_column(Integer, primary_key=True)
    label: Mapped[str] = mapped_column(String(100), nullable=False)
    user_id: Mapped[str | None] = mapped_column(
        String(128), ForeignKey("identity.user_id"), nullable=True
    )
    display_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    claimed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    group: Mapped[GroupSession] = relationship("GroupSession", back_populates="slots")

    @property
    def claimed(self) -> bool:
        """Return True once a member has bound this slot."""
        return self.user_id is not None
