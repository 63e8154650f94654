"""Initial schema: users, map pins, bounties, notifications, reward payouts.

Revision ID: 001_initial_schema
Revises: None
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

revision: str = "001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _created_at() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=False)


def _user_fk(name: str = "user_id") -> sa.Column:
    return sa.Column(name, sa.String(56), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)


def upgrade() -> None:
    """Create all tables."""
    op.create_table(
        "users",
        sa.Column("id", sa.String(56), primary_key=True),
        sa.Column("name", sa.String(64), nullable=True),
        sa.Column("email", sa.String(320), nullable=True, unique=True),
        sa.Column("is_banned", sa.Boolean(), server_default="false", nullable=False),
        _created_at(),
    )

    # --- Map pins ---
    op.create_table(
        "location_groups",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        _user_fk("creator_id"),
        sa.Column("title", sa.String(256), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("image", sa.Text(), nullable=True),
        sa.Column("link", sa.Text(), nullable=True),
        sa.Column("limit", sa.Integer(), nullable=False),
        sa.Column("remaining", sa.Integer(), nullable=False),
        sa.Column("multi_pin", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("approved", sa.Boolean(), nullable=True),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=False),
        _created_at(),
        sa.CheckConstraint("remaining >= 0", name="ck_location_groups_remaining_non_negative"),
    )

    op.create_table(
        "locations",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "location_group_id",
            sa.Integer(),
            sa.ForeignKey("location_groups.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("latitude", sa.Float(), nullable=False),
        sa.Column("longitude", sa.Float(), nullable=False),
        sa.Column("auto_collect", sa.Boolean(), server_default="false", nullable=False),
        _created_at(),
    )
    op.create_index("ix_locations_location_group_id", "locations", ["location_group_id"])
    op.create_index(
        "ix_locations_auto_collect",
        "locations",
        ["latitude", "longitude"],
        postgresql_where=sa.text("auto_collect"),
    )

    op.create_table(
        "location_consumers",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("location_id", sa.String(36), sa.ForeignKey("locations.id", ondelete="CASCADE"), nullable=False),
        _user_fk(),
        sa.Column("slot_key", sa.String(64), nullable=False),
        sa.Column("hidden", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("viewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("claimed_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        sa.UniqueConstraint("location_id", "user_id", name="location_consumers_location_user_key"),
        sa.UniqueConstraint("user_id", "slot_key", name="location_consumers_user_slot_key"),
    )
    op.create_index("ix_location_consumers_location_id", "location_consumers", ["location_id"])
    op.create_index(
        "ix_location_consumers_user_created",
        "location_consumers",
        ["user_id", sa.text("created_at DESC")],
    )

    # --- Bounties ---
    op.create_table(
        "bounties",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        _user_fk("creator_id"),
        sa.Column("title", sa.String(256), nullable=False),
        sa.Column("description", sa.Text(), server_default="", nullable=False),
        sa.Column("required_balance", sa.Float(), server_default="0", nullable=False),
        sa.Column("total_winner", sa.Integer(), server_default="1", nullable=False),
        sa.Column("price_in_usd", sa.Float(), server_default="0", nullable=False),
        sa.Column("price_in_band", sa.Float(), server_default="0", nullable=False),
        sa.Column("status", sa.String(16), server_default="PENDING", nullable=False),
        sa.Column("bounty_type", sa.String(16), server_default="GENERAL", nullable=False),
        sa.Column("image_urls", postgresql.JSONB(), server_default="[]", nullable=False),
        _created_at(),
    )
    op.execute(
        "ALTER TABLE bounties ADD CONSTRAINT ck_bounties_status "
        "CHECK (status IN ('PENDING', 'APPROVED', 'REJECTED'))"
    )
    op.execute(
        "ALTER TABLE bounties ADD CONSTRAINT ck_bounties_bounty_type "
        "CHECK (bounty_type IN ('GENERAL', 'SCAVENGER_HUNT'))"
    )

    op.create_table(
        "bounty_participants",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("bounty_id", sa.Integer(), sa.ForeignKey("bounties.id", ondelete="CASCADE"), nullable=False),
        _user_fk(),
        sa.Column("current_step", sa.Integer(), server_default="0", nullable=False),
        _created_at(),
        sa.UniqueConstraint("bounty_id", "user_id", name="bounty_participants_bounty_user_key"),
    )

    op.create_table(
        "action_locations",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("bounty_id", sa.Integer(), sa.ForeignKey("bounties.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "location_group_id",
            sa.Integer(),
            sa.ForeignKey("location_groups.id", ondelete="CASCADE"),
            nullable=False,
        ),
        _user_fk("creator_id"),
        sa.Column("serial", sa.Integer(), nullable=False),
    )
    op.create_index("ix_action_locations_location_group_id", "action_locations", ["location_group_id"])

    # --- Notifications ---
    op.create_table(
        "notification_objects",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        _user_fk("actor_id"),
        sa.Column("entity_type", sa.String(64), nullable=False),
        sa.Column("entity_id", sa.Integer(), nullable=False),
        sa.Column("is_user", sa.Boolean(), server_default="true", nullable=False),
        _created_at(),
    )

    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "notification_object_id",
            sa.Integer(),
            sa.ForeignKey("notification_objects.id", ondelete="CASCADE"),
            nullable=False,
        ),
        _user_fk("notifier_id"),
        sa.Column("is_creator", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("is_seen", sa.Boolean(), server_default="false", nullable=False),
        _created_at(),
    )
    op.create_index(
        "ix_notifications_unseen",
        "notifications",
        ["notifier_id"],
        postgresql_where=sa.text("NOT is_seen"),
    )

    # --- Reward payouts ---
    op.create_table(
        "reward_distributions",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("data", postgresql.JSONB(), nullable=False),
        sa.Column("total_balance", sa.Numeric(20, 7), nullable=True),
        sa.Column("is_distributed", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("completed_users", postgresql.JSONB(), server_default="[]", nullable=False),
        sa.Column("last_error", postgresql.JSONB(), nullable=True),
        sa.Column("rewarded_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_updated_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
    )

    op.create_table(
        "blocked_wallets",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("wallet_address", sa.String(56), nullable=False, unique=True),
        sa.Column("reason", sa.Text(), nullable=True),
        _created_at(),
    )


def downgrade() -> None:
    """Drop all tables."""
    for table in (
        "blocked_wallets",
        "reward_distributions",
        "notifications",
        "notification_objects",
        "action_locations",
        "bounty_participants",
        "bounties",
        "location_consumers",
        "locations",
        "location_groups",
        "users",
    ):
        op.drop_table(table)
