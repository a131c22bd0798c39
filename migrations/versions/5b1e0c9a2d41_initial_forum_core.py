"""initial forum core schema

Revision ID: 5b1e0c9a2d41
Revises:
Create Date: 2026-10-19 09:12:40.512733

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

from haven_forum.enums import (
    EditReason,
    ModerationAction,
    NotificationType,
    PostType,
    ReactionType,
    ReportCategory,
    ReportHistoryAction,
    ReportStatus,
    ReportTargetType,
    RestrictionType,
    Severity,
    ThreadStatus,
    Visibility,
    WarningType,
)

# revision identifiers, used by Alembic.
revision: str = "5b1e0c9a2d41"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

AUDIT_ID = sa.BigInteger().with_variant(sa.Integer(), "sqlite")

SINGLE_TARGET = (
    "(target_type = 'THREAD' AND thread_id IS NOT NULL AND post_id IS NULL "
    "AND reported_user_id IS NULL) OR "
    "(target_type = 'POST' AND post_id IS NOT NULL AND thread_id IS NULL "
    "AND reported_user_id IS NULL) OR "
    "(target_type = 'USER' AND reported_user_id IS NOT NULL AND thread_id IS NULL "
    "AND post_id IS NULL)"
)

ENUM_NAMES = (
    "thread_status_enum", "post_type_enum", "edit_reason_enum", "reaction_type_enum",
    "report_target_type_enum", "report_category_enum", "severity_enum", "report_status_enum",
    "report_history_action_enum", "moderation_action_enum", "visibility_enum",
    "warning_type_enum", "restriction_type_enum", "notification_type_enum",
)


def _timestamp(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable)


def upgrade() -> None:
    """Create the forum core tables."""
    op.create_table(
        "app_users",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("external_id", sa.String(length=255), nullable=False),
        sa.Column("username", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("display_name", sa.String(length=100), nullable=True),
        sa.Column("roles", sa.JSON(), nullable=False),
        sa.Column("groups", sa.JSON(), nullable=False),
        _timestamp("last_synced_at", nullable=True),
        sa.Column("notification_preferences", sa.JSON(), nullable=False),
        sa.Column("reputation_score", sa.Numeric(10, 2), nullable=False),
        _timestamp("date_joined"),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        _timestamp("account_deletion_requested_at", nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("external_id"),
        sa.UniqueConstraint("display_name"),
    )
    op.create_index("ix_app_users_reputation", "app_users", ["reputation_score"])

    op.create_table(
        "forum_categories",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("slug", sa.String(length=100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("parent_category_id", sa.Uuid(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("sort_order", sa.Integer(), nullable=False),
        _timestamp("created_at"),
        sa.ForeignKeyConstraint(
            ["parent_category_id"], ["forum_categories.id"], ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
        sa.UniqueConstraint("slug"),
    )
    op.create_index(
        "ix_forum_categories_parent_category_id", "forum_categories", ["parent_category_id"]
    )

    op.create_table(
        "forum_threads",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("creator_id", sa.Uuid(), nullable=True),
        sa.Column("category_id", sa.Uuid(), nullable=False),
        sa.Column("status", sa.Enum(ThreadStatus, name="thread_status_enum"), nullable=False),
        sa.Column("is_deleted", sa.Boolean(), nullable=False),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        _timestamp("last_activity_at"),
        sa.Column("post_count", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["creator_id"], ["app_users.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["category_id"], ["forum_categories.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_forum_threads_activity", "forum_threads", ["category_id", "last_activity_at"]
    )
    op.create_index("ix_forum_threads_creator", "forum_threads", ["creator_id", "created_at"])

    op.create_table(
        "forum_posts",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("thread_id", sa.Uuid(), nullable=False),
        sa.Column("author_id", sa.Uuid(), nullable=True),
        sa.Column("parent_post_id", sa.Uuid(), nullable=True),
        sa.Column("post_type", sa.Enum(PostType, name="post_type_enum"), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("word_count", sa.Integer(), nullable=False),
        sa.Column("flagged_for_review", sa.Boolean(), nullable=False),
        sa.Column("is_edited", sa.Boolean(), nullable=False),
        sa.Column("edit_reason_type", sa.Enum(EditReason, name="edit_reason_enum"), nullable=True),
        sa.Column("edit_reason_custom_text", sa.String(length=255), nullable=True),
        sa.Column("edited_by_user_id", sa.Uuid(), nullable=True),
        sa.Column("is_deleted", sa.Boolean(), nullable=False),
        sa.Column("reaction_count", sa.Integer(), nullable=False),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.ForeignKeyConstraint(["thread_id"], ["forum_threads.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["author_id"], ["app_users.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["parent_post_id"], ["forum_posts.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["edited_by_user_id"], ["app_users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_forum_posts_thread_created", "forum_posts", ["thread_id", "created_at"])
    op.create_index("ix_forum_posts_author", "forum_posts", ["author_id", "created_at"])
    op.create_index("ix_forum_posts_parent_post_id", "forum_posts", ["parent_post_id"])

    op.create_table(
        "post_edit_history",
        sa.Column("id", AUDIT_ID, autoincrement=True, nullable=False),
        sa.Column("post_id", sa.Uuid(), nullable=False),
        sa.Column("previous_content", sa.Text(), nullable=False),
        sa.Column("previous_word_count", sa.Integer(), nullable=False),
        sa.Column(
            "edit_reason_type",
            sa.Enum(EditReason, name="edit_reason_enum", native_enum=False, length=32),
            nullable=True,
        ),
        sa.Column("edit_reason_custom_text", sa.String(length=255), nullable=True),
        sa.Column("edited_by_user_id", sa.Uuid(), nullable=True),
        _timestamp("edited_at"),
        sa.ForeignKeyConstraint(["post_id"], ["forum_posts.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["edited_by_user_id"], ["app_users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_post_edit_history_post_id", "post_edit_history", ["post_id"])

    op.create_table(
        "post_reactions",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("post_id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("reaction_type", sa.Enum(ReactionType, name="reaction_type_enum"), nullable=False),
        sa.Column("points_awarded", sa.Numeric(10, 2), nullable=False),
        _timestamp("created_at"),
        sa.ForeignKeyConstraint(["post_id"], ["forum_posts.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["app_users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("post_id", "user_id", "reaction_type", name="uq_post_reaction"),
    )
    op.create_index("ix_post_reactions_post_id", "post_reactions", ["post_id"])

    op.create_table(
        "content_reports",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("reporter_id", sa.Uuid(), nullable=False),
        sa.Column("is_anonymous", sa.Boolean(), nullable=False),
        sa.Column(
            "target_type",
            sa.Enum(ReportTargetType, name="report_target_type_enum"),
            nullable=False,
        ),
        sa.Column("thread_id", sa.Uuid(), nullable=True),
        sa.Column("post_id", sa.Uuid(), nullable=True),
        sa.Column("reported_user_id", sa.Uuid(), nullable=True),
        sa.Column(
            "report_category",
            sa.Enum(ReportCategory, name="report_category_enum"),
            nullable=False,
        ),
        sa.Column("severity", sa.Enum(Severity, name="severity_enum"), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("details", sa.Text(), nullable=True),
        sa.Column("status", sa.Enum(ReportStatus, name="report_status_enum"), nullable=False),
        sa.Column("assigned_moderator_id", sa.Uuid(), nullable=True),
        _timestamp("assigned_at", nullable=True),
        _timestamp("reviewed_at", nullable=True),
        sa.Column("reviewed_by", sa.Uuid(), nullable=True),
        sa.Column("action_taken", sa.String(length=255), nullable=True),
        sa.Column("resolution_notes", sa.Text(), nullable=True),
        sa.Column("auto_flagged", sa.Boolean(), nullable=False),
        sa.Column("appeal_id", sa.Uuid(), nullable=True),
        _timestamp("reported_at"),
        _timestamp("last_modified_at"),
        sa.CheckConstraint(SINGLE_TARGET, name="ck_content_reports_single_target"),
        sa.ForeignKeyConstraint(["reporter_id"], ["app_users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["thread_id"], ["forum_threads.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["post_id"], ["forum_posts.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["reported_user_id"], ["app_users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["assigned_moderator_id"], ["app_users.id"], ondelete="SET NULL"
        ),
        sa.ForeignKeyConstraint(["reviewed_by"], ["app_users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_content_reports_queue", "content_reports", ["status", "severity", "reported_at"]
    )
    op.create_index(
        "ix_content_reports_reporter", "content_reports", ["reporter_id", "reported_at"]
    )
    op.create_index(
        "ix_content_reports_assigned_moderator_id", "content_reports", ["assigned_moderator_id"]
    )

    op.create_table(
        "report_history",
        sa.Column("id", AUDIT_ID, autoincrement=True, nullable=False),
        sa.Column("report_id", sa.Uuid(), nullable=False),
        sa.Column(
            "action",
            sa.Enum(ReportHistoryAction, name="report_history_action_enum"),
            nullable=False,
        ),
        sa.Column("old_value", sa.Text(), nullable=True),
        sa.Column("new_value", sa.Text(), nullable=True),
        sa.Column("acted_by", sa.Uuid(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        _timestamp("created_at"),
        sa.ForeignKeyConstraint(["report_id"], ["content_reports.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["acted_by"], ["app_users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_report_history_report", "report_history", ["report_id", "created_at"])

    op.create_table(
        "user_report_history",
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("total_reports_made", sa.Integer(), nullable=False),
        sa.Column("reports_upheld", sa.Integer(), nullable=False),
        sa.Column("reports_dismissed", sa.Integer(), nullable=False),
        _timestamp("last_report_at", nullable=True),
        sa.Column("is_report_banned", sa.Boolean(), nullable=False),
        sa.Column("report_ban_reason", sa.Text(), nullable=True),
        _timestamp("report_ban_until", nullable=True),
        _timestamp("updated_at"),
        sa.ForeignKeyConstraint(["user_id"], ["app_users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("user_id"),
    )

    op.create_table(
        "moderation_log",
        sa.Column("id", AUDIT_ID, autoincrement=True, nullable=False),
        sa.Column("moderator_id", sa.Uuid(), nullable=False),
        sa.Column(
            "action_type",
            sa.Enum(ModerationAction, name="moderation_action_enum"),
            nullable=False,
        ),
        sa.Column("action_description", sa.String(length=255), nullable=False),
        sa.Column("rationale", sa.Text(), nullable=False),
        sa.Column("target_user_id", sa.Uuid(), nullable=True),
        sa.Column("target_post_id", sa.Uuid(), nullable=True),
        sa.Column("target_thread_id", sa.Uuid(), nullable=True),
        sa.Column("report_id", sa.Uuid(), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column("visibility", sa.Enum(Visibility, name="visibility_enum"), nullable=False),
        _timestamp("expires_at", nullable=True),
        sa.Column("is_automated", sa.Boolean(), nullable=False),
        _timestamp("action_taken_at"),
        sa.ForeignKeyConstraint(["moderator_id"], ["app_users.id"]),
        sa.ForeignKeyConstraint(["target_user_id"], ["app_users.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["target_post_id"], ["forum_posts.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["target_thread_id"], ["forum_threads.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["report_id"], ["content_reports.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_moderation_log_moderator", "moderation_log", ["moderator_id", "action_taken_at"]
    )
    op.create_index(
        "ix_moderation_log_target_user", "moderation_log", ["target_user_id", "action_taken_at"]
    )
    op.create_index(
        "ix_moderation_log_action", "moderation_log", ["action_type", "action_taken_at"]
    )
    op.create_index("ix_moderation_log_report_id", "moderation_log", ["report_id"])

    op.create_table(
        "user_warnings",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("warned_by", sa.Uuid(), nullable=False),
        sa.Column("warning_type", sa.Enum(WarningType, name="warning_type_enum"), nullable=False),
        sa.Column("warning_text", sa.Text(), nullable=False),
        sa.Column("related_post_id", sa.Uuid(), nullable=True),
        sa.Column("related_thread_id", sa.Uuid(), nullable=True),
        sa.Column("related_report_id", sa.Uuid(), nullable=True),
        _timestamp("warned_at"),
        _timestamp("acknowledged_at", nullable=True),
        _timestamp("expires_at", nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        _timestamp("lifted_at", nullable=True),
        sa.Column("lifted_by", sa.Uuid(), nullable=True),
        sa.Column("lift_reason", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["app_users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["warned_by"], ["app_users.id"]),
        sa.ForeignKeyConstraint(["related_post_id"], ["forum_posts.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["related_thread_id"], ["forum_threads.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(
            ["related_report_id"], ["content_reports.id"], ondelete="SET NULL"
        ),
        sa.ForeignKeyConstraint(["lifted_by"], ["app_users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_user_warnings_user", "user_warnings", ["user_id", "is_active"])
    op.create_index("ix_user_warnings_expiry", "user_warnings", ["is_active", "expires_at"])

    op.create_table(
        "user_restrictions",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column(
            "restriction_type",
            sa.Enum(RestrictionType, name="restriction_type_enum"),
            nullable=False,
        ),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("imposed_by", sa.Uuid(), nullable=False),
        sa.Column("related_report_id", sa.Uuid(), nullable=True),
        sa.Column("restricted_category_id", sa.Uuid(), nullable=True),
        _timestamp("starts_at"),
        _timestamp("expires_at", nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        _timestamp("lifted_at", nullable=True),
        sa.Column("lifted_by", sa.Uuid(), nullable=True),
        sa.Column("lift_reason", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["app_users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["imposed_by"], ["app_users.id"]),
        sa.ForeignKeyConstraint(
            ["related_report_id"], ["content_reports.id"], ondelete="SET NULL"
        ),
        sa.ForeignKeyConstraint(
            ["restricted_category_id"], ["forum_categories.id"], ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(["lifted_by"], ["app_users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_user_restrictions_user", "user_restrictions", ["user_id", "is_active"])
    op.create_index(
        "ix_user_restrictions_expiry", "user_restrictions", ["is_active", "expires_at"]
    )
    op.create_index(
        "ix_user_restrictions_type", "user_restrictions", ["restriction_type", "is_active"]
    )

    op.create_table(
        "notifications",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("recipient_id", sa.Uuid(), nullable=False),
        sa.Column(
            "notification_type",
            sa.Enum(NotificationType, name="notification_type_enum"),
            nullable=False,
        ),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("action_url", sa.String(length=500), nullable=True),
        sa.Column("related_user_id", sa.Uuid(), nullable=True),
        sa.Column("related_post_id", sa.Uuid(), nullable=True),
        sa.Column("related_thread_id", sa.Uuid(), nullable=True),
        sa.Column("related_category_id", sa.Uuid(), nullable=True),
        sa.Column("sent_via", sa.JSON(), nullable=False),
        sa.Column("is_read", sa.Boolean(), nullable=False),
        _timestamp("read_at", nullable=True),
        sa.Column("is_batched", sa.Boolean(), nullable=False),
        sa.Column("batch_count", sa.Integer(), nullable=True),
        sa.Column("batch_metadata", sa.JSON(), nullable=True),
        _timestamp("created_at"),
        _timestamp("expires_at"),
        sa.ForeignKeyConstraint(["recipient_id"], ["app_users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["related_user_id"], ["app_users.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["related_post_id"], ["forum_posts.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["related_thread_id"], ["forum_threads.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(
            ["related_category_id"], ["forum_categories.id"], ondelete="SET NULL"
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_notifications_recipient", "notifications", ["recipient_id", "created_at"])
    op.create_index("ix_notifications_unread", "notifications", ["recipient_id", "is_read"])
    op.create_index(
        "ix_notifications_batch",
        "notifications",
        ["recipient_id", "related_post_id", "notification_type"],
    )
    op.create_index("ix_notifications_expiry", "notifications", ["expires_at"])


def downgrade() -> None:
    """Drop the forum core tables."""
    for table in (
        "notifications",
        "user_restrictions",
        "user_warnings",
        "moderation_log",
        "user_report_history",
        "report_history",
        "content_reports",
        "post_reactions",
        "post_edit_history",
        "forum_posts",
        "forum_threads",
        "forum_categories",
        "app_users",
    ):
        op.drop_table(table)

    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        for name in ENUM_NAMES:
            op.execute(sa.text(f"DROP TYPE IF EXISTS {name}"))
