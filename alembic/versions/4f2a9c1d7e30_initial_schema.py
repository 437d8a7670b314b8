"""Initial schema

Revision ID: 4f2a9c1d7e30
Revises:
Create Date: 2026-01-12 09:14:22.418305

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "4f2a9c1d7e30"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

FOLLOW_STATES = ("ACTIVE", "PENDING", "REMOVED")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False
        ),
    ]


def _follow_edge_columns() -> list[sa.Column]:
    return [
        sa.Column("follower_id", sa.Integer(), nullable=False),
        sa.Column("followee_id", sa.Integer(), nullable=False),
        sa.Column(
            "state",
            postgresql.ENUM(*FOLLOW_STATES, name="followstate", create_type=False),
            nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("accepted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["follower_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["followee_id"], ["users.id"], ondelete="CASCADE"),
    ]


def upgrade() -> None:
    followstate = postgresql.ENUM(*FOLLOW_STATES, name="followstate")
    followstate.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("username", sa.String(length=20), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("is_private", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("bio", sa.String(length=150), nullable=True),
        sa.Column("profile_pic", sa.String(length=1024), nullable=True),
        sa.Column("email_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_users_id"), "users", ["id"], unique=False)
    op.create_index(op.f("ix_users_email"), "users", ["email"], unique=True)
    op.create_index(op.f("ix_users_username"), "users", ["username"], unique=True)

    op.create_table(
        "activities",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=50), nullable=False),
        sa.Column("duration_hours", sa.Float(), nullable=False),
        sa.Column("note", sa.String(length=500), nullable=True),
        sa.Column("activity_date", sa.Date(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "name", "activity_date", name="uq_activity_user_name_date"),
    )
    op.create_index(op.f("ix_activities_id"), "activities", ["id"], unique=False)
    op.create_index(op.f("ix_activities_user_id"), "activities", ["user_id"], unique=False)
    op.create_index(
        op.f("ix_activities_activity_date"), "activities", ["activity_date"], unique=False
    )

    op.create_table(
        "streaks",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("current", sa.Integer(), nullable=False),
        sa.Column("longest", sa.Integer(), nullable=False),
        sa.Column("activity_date", sa.Date(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "activity_date", name="uq_streak_user_date"),
    )
    op.create_index(op.f("ix_streaks_id"), "streaks", ["id"], unique=False)
    op.create_index(op.f("ix_streaks_user_id"), "streaks", ["user_id"], unique=False)
    op.create_index(op.f("ix_streaks_activity_date"), "streaks", ["activity_date"], unique=False)

    op.create_table(
        "user_badges",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("badge_key", sa.String(length=50), nullable=False),
        sa.Column(
            "earned_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False
        ),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "badge_key", name="uq_user_badge"),
    )
    op.create_index(op.f("ix_user_badges_id"), "user_badges", ["id"], unique=False)
    op.create_index(op.f("ix_user_badges_user_id"), "user_badges", ["user_id"], unique=False)

    op.create_table(
        "tile_configs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("config", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id"),
    )
    op.create_index(op.f("ix_tile_configs_id"), "tile_configs", ["id"], unique=False)

    op.create_table(
        "follow_edges_by_follower",
        *_follow_edge_columns(),
        sa.PrimaryKeyConstraint("follower_id", "followee_id"),
    )
    op.create_index(
        "ix_follow_by_follower_list",
        "follow_edges_by_follower",
        ["follower_id", "state", "created_at", "followee_id"],
        unique=False,
    )

    op.create_table(
        "follow_edges_by_followee",
        *_follow_edge_columns(),
        sa.PrimaryKeyConstraint("followee_id", "follower_id"),
    )
    op.create_index(
        "ix_follow_by_followee_list",
        "follow_edges_by_followee",
        ["followee_id", "state", "created_at", "follower_id"],
        unique=False,
    )

    op.create_table(
        "follow_counters",
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("followers_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("following_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("pending_requests_count", sa.Integer(), nullable=False, server_default="0"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("user_id"),
    )

    op.create_table(
        "likes",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("liker_id", sa.Integer(), nullable=False),
        sa.Column("liked_user_id", sa.Integer(), nullable=False),
        sa.Column("activity_date", sa.Date(), nullable=False),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False
        ),
        sa.ForeignKeyConstraint(["liker_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["liked_user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("liker_id", "liked_user_id", "activity_date", name="uq_like_liker_day"),
    )
    op.create_index(op.f("ix_likes_id"), "likes", ["id"], unique=False)
    op.create_index(op.f("ix_likes_liker_id"), "likes", ["liker_id"], unique=False)

    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("actor_id", sa.Integer(), nullable=True),
        sa.Column("type", sa.String(length=50), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("metadata", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False
        ),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["actor_id"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_notifications_id"), "notifications", ["id"], unique=False)
    op.create_index(op.f("ix_notifications_user_id"), "notifications", ["user_id"], unique=False)
    op.create_index(
        "ix_notifications_user_created", "notifications", ["user_id", "created_at"], unique=False
    )

    op.create_table(
        "notification_dedupes",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("actor_id", sa.Integer(), nullable=False),
        sa.Column("type", sa.String(length=50), nullable=False),
        sa.Column("entity_type", sa.String(length=50), nullable=False),
        sa.Column("entity_key", sa.String(length=255), nullable=False),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "user_id", "actor_id", "type", "entity_type", "entity_key", name="uq_notification_dedupe"
        ),
    )
    op.create_index(
        op.f("ix_notification_dedupes_id"), "notification_dedupes", ["id"], unique=False
    )

    op.create_table(
        "push_subscriptions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("endpoint", sa.String(length=2048), nullable=False),
        sa.Column("p256dh", sa.String(length=200), nullable=False),
        sa.Column("auth", sa.String(length=100), nullable=False),
        sa.Column("vapid_key_id", sa.String(length=50), nullable=True),
        sa.Column(
            "status",
            sa.Enum("active", "expired", "gone", name="pushsubscriptionstatus"),
            nullable=False,
        ),
        sa.Column("failure_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("user_agent", sa.String(length=500), nullable=True),
        sa.Column("platform", sa.String(length=50), nullable=True),
        sa.Column("browser", sa.String(length=50), nullable=True),
        sa.Column("last_success_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_failure_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("endpoint"),
    )
    op.create_index(op.f("ix_push_subscriptions_id"), "push_subscriptions", ["id"], unique=False)
    op.create_index(
        op.f("ix_push_subscriptions_user_id"), "push_subscriptions", ["user_id"], unique=False
    )
    op.create_index(
        op.f("ix_push_subscriptions_status"), "push_subscriptions", ["status"], unique=False
    )

    op.create_table(
        "push_preferences",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("push_enabled", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("types", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("quiet_hours_enabled", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("quiet_start", sa.String(length=5), nullable=True),
        sa.Column("quiet_end", sa.String(length=5), nullable=True),
        sa.Column("timezone", sa.String(length=50), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id"),
    )
    op.create_index(op.f("ix_push_preferences_id"), "push_preferences", ["id"], unique=False)

    op.create_table(
        "push_delivery_logs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("message_id", sa.String(length=64), nullable=False),
        sa.Column("subscription_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("type", sa.String(length=50), nullable=False),
        sa.Column("dedupe_key", sa.String(length=255), nullable=True),
        sa.Column("status", sa.String(length=50), nullable=False),
        sa.Column("status_code", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("error", sa.String(length=500), nullable=True),
        sa.Column("duration_ms", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("message_id", "subscription_id", name="uq_push_message_subscription"),
    )
    op.create_index(op.f("ix_push_delivery_logs_id"), "push_delivery_logs", ["id"], unique=False)
    op.create_index(
        op.f("ix_push_delivery_logs_user_id"), "push_delivery_logs", ["user_id"], unique=False
    )
    op.create_index(
        "ix_push_logs_dedupe",
        "push_delivery_logs",
        ["user_id", "dedupe_key", "status"],
        unique=False,
    )

    op.create_table(
        "cron_job_logs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("job_name", sa.String(length=100), nullable=False),
        sa.Column("job_date", sa.Date(), nullable=False),
        sa.Column(
            "status",
            sa.Enum("running", "completed", "failed", name="cronjobstatus"),
            nullable=False,
        ),
        sa.Column("instance_id", sa.String(length=100), nullable=True),
        sa.Column("users_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("job_name", "job_date", name="uq_cron_job_name_date"),
    )
    op.create_index(op.f("ix_cron_job_logs_id"), "cron_job_logs", ["id"], unique=False)

    op.create_table(
        "activity_photos",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("activity_name", sa.String(length=50), nullable=False),
        sa.Column("photo_date", sa.Date(), nullable=False),
        sa.Column("photo_url", sa.String(length=1024), nullable=False),
        sa.Column("thumbnail_url", sa.String(length=1024), nullable=False),
        sa.Column("activity_icon", sa.String(length=50), nullable=True),
        sa.Column("activity_color", sa.String(length=9), nullable=True),
        sa.Column("activity_label", sa.String(length=20), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "user_id", "activity_name", "photo_date", name="uq_photo_user_activity_date"
        ),
    )
    op.create_index(op.f("ix_activity_photos_id"), "activity_photos", ["id"], unique=False)
    op.create_index(
        op.f("ix_activity_photos_user_id"), "activity_photos", ["user_id"], unique=False
    )
    op.create_index(
        op.f("ix_activity_photos_photo_date"), "activity_photos", ["photo_date"], unique=False
    )

    op.create_table(
        "story_views",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("viewer_id", sa.Integer(), nullable=False),
        sa.Column("photo_id", sa.Integer(), nullable=False),
        sa.Column(
            "viewed_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False
        ),
        sa.ForeignKeyConstraint(["viewer_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["photo_id"], ["activity_photos.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("viewer_id", "photo_id", name="uq_story_view"),
    )
    op.create_index(op.f("ix_story_views_id"), "story_views", ["id"], unique=False)
    op.create_index(op.f("ix_story_views_photo_id"), "story_views", ["photo_id"], unique=False)

    op.create_table(
        "story_likes",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("liker_id", sa.Integer(), nullable=False),
        sa.Column("photo_id", sa.Integer(), nullable=False),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False
        ),
        sa.ForeignKeyConstraint(["liker_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["photo_id"], ["activity_photos.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("liker_id", "photo_id", name="uq_story_like"),
    )
    op.create_index(op.f("ix_story_likes_id"), "story_likes", ["id"], unique=False)
    op.create_index(op.f("ix_story_likes_photo_id"), "story_likes", ["photo_id"], unique=False)


def downgrade() -> None:
    op.drop_table("story_likes")
    op.drop_table("story_views")
    op.drop_table("activity_photos")
    op.drop_table("cron_job_logs")
    op.drop_table("push_delivery_logs")
    op.drop_table("push_preferences")
    op.drop_table("push_subscriptions")
    op.drop_table("notification_dedupes")
    op.drop_table("notifications")
    op.drop_table("likes")
    op.drop_table("follow_counters")
    op.drop_table("follow_edges_by_followee")
    op.drop_table("follow_edges_by_follower")
    op.drop_table("tile_configs")
    op.drop_table("user_badges")
    op.drop_table("streaks")
    op.drop_table("activities")
    op.drop_table("users")

    sa.Enum(name="cronjobstatus").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="pushsubscriptionstatus").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="followstate").drop(op.get_bind(), checkfirst=True)
