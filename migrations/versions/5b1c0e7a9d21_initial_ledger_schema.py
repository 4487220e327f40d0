"""initial ledger schema

Revision ID: 5b1c0e7a9d21
Revises:
Create Date: 2026-10-19 09:12:40.318207

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "5b1c0e7a9d21"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create identity, group, rating and feed tables."""
    op.create_table(
        "identity",
        sa.Column("user_id", sa.String(length=128), nullable=False),
        sa.Column("display_name", sa.String(length=100), nullable=False),
        sa.Column("email", sa.Text(), nullable=True),
        sa.Column("photo_url", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("show_on_leaderboard", sa.Boolean(), nullable=True),
        sa.Column("leaderboard_anonymous", sa.Boolean(), nullable=False),
        sa.Column("show_on_group_leaderboard", sa.Boolean(), nullable=True),
        sa.Column("group_leaderboard_anonymous", sa.Boolean(), nullable=False),
        sa.Column("feed_aura_total", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("user_id"),
    )
    op.create_table(
        "group_session",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("code", sa.String(length=12), nullable=False),
        sa.Column("created_by", sa.String(length=128), nullable=False),
        sa.Column("created_by_display_name", sa.String(length=100), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("max_participants", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("voting_closed", sa.Boolean(), nullable=False),
        sa.Column("voting_closes_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("min_voters_to_close", sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(["created_by"], ["identity.user_id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("code"),
    )
    op.create_table(
        "group_member",
        sa.Column("group_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(length=128), nullable=False),
        sa.Column("display_name", sa.String(length=100), nullable=False),
        sa.Column("joined_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("seq", sa.BigInteger(), nullable=False),
        sa.ForeignKeyConstraint(["group_id"], ["group_session.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["identity.user_id"]),
        sa.PrimaryKeyConstraint("group_id", "user_id"),
    )
    op.create_table(
        "group_slot",
        sa.Column("group_id", sa.Integer(), nullable=False),
        sa.Column("slot_index", sa.Integer(), nullable=False),
        sa.Column("label", sa.String(length=100), nullable=False),
        sa.Column("user_id", sa.String(length=128), nullable=True),
        sa.Column("display_name", sa.String(length=100), nullable=True),
        sa.Column("claimed_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["group_id"], ["group_session.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["identity.user_id"]),
        sa.PrimaryKeyConstraint("group_id", "slot_index"),
        sa.UniqueConstraint("group_id", "user_id", name="uq_group_slot_holder"),
    )
    op.create_table(
        "rating",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("scope", sa.String(length=32), nullable=False),
        sa.Column("from_user_id", sa.String(length=128), nullable=False),
        sa.Column("from_display_name", sa.String(length=100), nullable=False),
        sa.Column("to_target_id", sa.String(length=160), nullable=False),
        sa.Column("to_display_name", sa.String(length=100), nullable=False),
        sa.Column("points", sa.Integer(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("dimension_scores", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("scope", "from_user_id", "to_target_id", name="uq_rating_edge"),
    )
    op.create_index("ix_rating_from_user_id", "rating", ["from_user_id"])
    op.create_index("ix_rating_scope_to_target", "rating", ["scope", "to_target_id"])
    op.create_table(
        "feed_post",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("author_id", sa.String(length=128), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("total_aura_count", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["author_id"], ["identity.user_id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_table(
        "feed_aura",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("post_id", sa.Integer(), nullable=False),
        sa.Column("from_user_id", sa.String(length=128), nullable=False),
        sa.Column("from_display_name", sa.String(length=100), nullable=False),
        sa.Column("to_user_id", sa.String(length=128), nullable=False),
        sa.Column("points", sa.Integer(), nullable=False),
        sa.Column("canonical_key", sa.String(length=200), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["post_id"], ["feed_post.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("canonical_key"),
    )
    op.create_index("ix_feed_aura_post_from", "feed_aura", ["post_id", "from_user_id"])


def downgrade() -> None:
    """Drop all ledger tables."""
    op.drop_index("ix_feed_aura_post_from", table_name="feed_aura")
    op.drop_table("feed_aura")
    op.drop_table("feed_post")
    op.drop_index("ix_rating_scope_to_target", table_name="rating")
    op.drop_index("ix_rating_from_user_id", table_name="rating")
    op.drop_table("rating")
    op.drop_table("group_slot")
    op.drop_table("group_member")
    op.drop_table("group_session")
    op.drop_table("identity")
