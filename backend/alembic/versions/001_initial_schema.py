"""Initial schema: plans, users, sessions, verification, families, watchlist, history, preferences, payment events

Revision ID: 001_initial
Revises:
Create Date: 2026-01-05 00:00:00.000000

"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "plan",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("screens", sa.Integer(), nullable=False),
        sa.Column("price_monthly", sa.Float(), nullable=True),
        sa.Column("price_yearly", sa.Float(), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "users",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("email_verified", sa.Boolean(), nullable=False),
        sa.Column("avatar_icon", sa.String(), nullable=True),
        sa.Column("avatar_color", sa.String(), nullable=True),
        sa.Column("plan_id", sa.String(), nullable=True),
        sa.Column("max_screens", sa.Integer(), nullable=False),
        sa.Column("trial_ends_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("trial_used", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["plan_id"], ["plan.id"]),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_plan_id", "users", ["plan_id"])
    op.create_index("ix_users_trial_ends_at", "users", ["trial_ends_at"])

    op.create_table(
        "session",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("token", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("ip_address", sa.String(), nullable=True),
        sa.Column("user_agent", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
    )
    op.create_index("ix_session_token", "session", ["token"], unique=True)
    op.create_index("ix_session_user_id", "session", ["user_id"])

    op.create_table(
        "verification",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("identifier", sa.String(), nullable=False),
        sa.Column("value", sa.String(), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_verification_identifier", "verification", ["identifier"])

    # -----------------------------------------------------------------------
    # Family sharing
    # -----------------------------------------------------------------------
    op.create_table(
        "family",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("owner_id", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("max_members", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["owner_id"], ["users.id"]),
        sa.UniqueConstraint("owner_id"),
    )

    op.create_table(
        "family_member",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("family_id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("joined_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["family_id"], ["family.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.UniqueConstraint("user_id"),
    )
    op.create_index("ix_family_member_family_id", "family_member", ["family_id"])

    op.create_table(
        "family_invite",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("family_id", sa.String(), nullable=False),
        sa.Column("token", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("used_by", sa.String(), nullable=True),
        sa.Column("used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["family_id"], ["family.id"]),
        sa.ForeignKeyConstraint(["used_by"], ["users.id"]),
    )
    op.create_index("ix_family_invite_family_id", "family_invite", ["family_id"])
    op.create_index("ix_family_invite_token", "family_invite", ["token"], unique=True)
    op.create_index("ix_family_invite_status", "family_invite", ["status"])
    op.create_index("ix_family_invite_expires_at", "family_invite", ["expires_at"])

    # -----------------------------------------------------------------------
    # Per-user lists and settings
    # -----------------------------------------------------------------------
    op.create_table(
        "watchlist",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("tmdb_id", sa.Integer(), nullable=False),
        sa.Column("media_type", sa.String(), nullable=False),
        sa.Column("added_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.UniqueConstraint("user_id", "tmdb_id", "media_type", name="uq_watchlist_user_title"),
    )
    op.create_index("ix_watchlist_user_id", "watchlist", ["user_id"])
    op.create_index("ix_watchlist_added_at", "watchlist", ["added_at"])

    op.create_table(
        "watch_history",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("tmdb_id", sa.Integer(), nullable=False),
        sa.Column("media_type", sa.String(), nullable=False),
        sa.Column("season_number", sa.Integer(), nullable=False),
        sa.Column("episode_number", sa.Integer(), nullable=False),
        sa.Column("progress", sa.Integer(), nullable=False),
        sa.Column("last_watched_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.UniqueConstraint(
            "user_id",
            "tmdb_id",
            "media_type",
            "season_number",
            "episode_number",
            name="uq_watch_history_entry",
        ),
    )
    op.create_index("ix_watch_history_user_id", "watch_history", ["user_id"])
    op.create_index("ix_watch_history_tmdb_id", "watch_history", ["tmdb_id"])
    op.create_index("ix_watch_history_last_watched_at", "watch_history", ["last_watched_at"])

    op.create_table(
        "user_preferences",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("language", sa.String(), nullable=False),
        sa.Column("autoplay_next", sa.Boolean(), nullable=False),
        sa.Column("autoplay_trailer", sa.Boolean(), nullable=False),
        sa.Column("subtitle_enabled", sa.Boolean(), nullable=False),
        sa.Column("subtitle_lang", sa.String(), nullable=True),
        sa.Column("subtitle_size", sa.String(), nullable=False),
        sa.Column("subtitle_color", sa.String(), nullable=False),
        sa.Column("subtitle_bg", sa.String(), nullable=False),
        sa.Column("subtitle_font", sa.String(), nullable=False),
        sa.Column("email_new_releases", sa.Boolean(), nullable=False),
        sa.Column("email_recommendations", sa.Boolean(), nullable=False),
        sa.Column("email_account_alerts", sa.Boolean(), nullable=False),
        sa.Column("email_marketing", sa.Boolean(), nullable=False),
        sa.Column("push_new_releases", sa.Boolean(), nullable=False),
        sa.Column("push_recommendations", sa.Boolean(), nullable=False),
        sa.Column("push_account_alerts", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.UniqueConstraint("user_id"),
    )

    # -----------------------------------------------------------------------
    # Payment webhook idempotency
    # -----------------------------------------------------------------------
    op.create_table(
        "payment_event",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("event_key", sa.String(), nullable=False),
        sa.Column("event_type", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("plan_id", sa.String(), nullable=True),
        sa.Column("amount", sa.Float(), nullable=True),
        sa.Column("currency", sa.String(), nullable=True),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("event_key"),
    )
    op.create_index("ix_payment_event_user_id", "payment_event", ["user_id"])


def downgrade() -> None:
    op.drop_table("payment_event")
    op.drop_table("user_preferences")
    op.drop_table("watch_history")
    op.drop_table("watchlist")
    op.drop_table("family_invite")
    op.drop_table("family_member")
    op.drop_table("family")
    op.drop_table("verification")
    op.drop_table("session")
    op.drop_table("users")
    op.drop_table("plan")
