# src/haven_forum/models/moderation.py
"""Models for the moderation log and graduated enforcement."""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from haven_forum.db.session import Base
from haven_forum.db.time import utcnow
from haven_forum.enums import ModerationAction, RestrictionType, Visibility, WarningType
from haven_forum.models.post import AuditId


class ModerationLogEntry(Base):
    """Append-only record of a moderator action."""

    __tablename__ = "moderation_log"
    __table_args__ = (
        Index("ix_moderation_log_moderator", "moderator_id", "action_taken_at"),
        Index("ix_moderation_log_target_user", "target_user_id", "action_taken_at"),
        Index("ix_moderation_log_action", "action_type", "action_taken_at"),
    )

    id: Mapped[int] = mapped_column(AuditId, primary_key=True, autoincrement=True)
    moderator_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("app_users.id"),
        nullable=False,
    )
    action_type: Mapped[ModerationAction] = mapped_column(
        Enum(ModerationAction, name="moderation_action_enum"),
        nullable=False,
    )
    action_description: Mapped[str] = mapped_column(String(255), nullable=False)
    rationale: Mapped[str] = mapped_column(Text, nullable=False)

    target_user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("app_users.id", ondelete="SET NULL"),
        nullable=True,
    )
    target_post_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("forum_posts.id", ondelete="SET NULL"),
        nullable=True,
    )
    target_thread_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("forum_threads.id", ondelete="SET NULL"),
        nullable=True,
    )
    report_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("content_reports.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # "metadata" is reserved on declarative classes.
    metadata_: Mapped[dict[str, Any] | None] = mapped_column("metadata", JSON, nullable=True)
    visibility: Mapped[Visibility] = mapped_column(
        Enum(Visibility, name="visibility_enum"),
        nullable=False,
        default=Visibility.MODERATORS_ONLY,
    )
    # For mutes, suspensions and other timed actions.
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    is_automated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    action_taken_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )


class UserWarning(Base):
    """Warning issued to a user; ``expires_at = None`` means it never lapses."""

    __tablename__ = "user_warnings"
    __table_args__ = (
        Index("ix_user_warnings_user", "user_id", "is_active"),
        Index("ix_user_warnings_expiry", "is_active", "expires_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("app_users.id", ondelete="CASCADE"),
        nullable=False,
    )
    warned_by: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("app_users.id"),
        nullable=False,
    )
    warning_type: Mapped[WarningType] = mapped_column(
        Enum(WarningType, name="warning_type_enum"),
        nullable=False,
    )
    warning_text: Mapped[str] = mapped_column(Text, nullable=False)

    related_post_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("forum_posts.id", ondelete="SET NULL"),
        nullable=True,
    )
    related_thread_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("forum_threads.id", ondelete="SET NULL"),
        nullable=True,
    )
    related_report_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("content_reports.id", ondelete="SET NULL"),
        nullable=True,
    )

    warned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    acknowledged_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    lifted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    lifted_by: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("app_users.id"),
        nullable=True,
    )
    lift_reason: Mapped[str | None] = mapped_column(Text, nullable=True)


class UserRestriction(Base):
    """Mute, ban or suspension; ``expires_at = None`` means permanent."""

    __tablename__ = "user_restrictions"
    __table_args__ = (
        Index("ix_user_restrictions_user", "user_id", "is_active"),
        Index("ix_user_restrictions_expiry", "is_active", "expires_at"),
        Index("ix_user_restrictions_type", "restriction_type", "is_active"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("app_users.id", ondelete="CASCADE"),
        nullable=False,
    )
    restriction_type: Mapped[RestrictionType] = mapped_column(
        Enum(RestrictionType, name="restriction_type_enum"),
        nullable=False,
    )
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    imposed_by: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("app_users.id"),
        nullable=False,
    )
    related_report_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("content_reports.id", ondelete="SET NULL"),
        nullable=True,
    )
    # Only set for CATEGORY_BAN.
    restricted_category_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("forum_categories.id", ondelete="CASCADE"),
        nullable=True,
    )

    starts_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    lifted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    lifted_by: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("app_users.id"),
        nullable=True,
    )
    lift_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
