# src/haven_forum/models/notification.py
"""SQLAlchemy model for persisted user notifications."""

import uuid
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from haven_forum.core.settings import settings
from haven_forum.db.session import Base
from haven_forum.db.time import utcnow
from haven_forum.enums import NotificationChannel, NotificationType


def notification_expiry(created_at: datetime, ttl_days: int | None = None) -> datetime:
    """Return the retention deadline for a notification created at ``created_at``."""
    days = settings.notification_ttl_days if ttl_days is None else ttl_days
    return created_at + timedelta(days=days)


def _default_sent_via() -> list[str]:
    return [NotificationChannel.IN_APP.value]


class Notification(Base):
    """Notification record consumed by the delivery layer.

    ``expires_at`` is derived from ``created_at`` when the row is built and
    never written afterwards.
    """

    __tablename__ = "notifications"
    __table_args__ = (
        Index("ix_notifications_recipient", "recipient_id", "created_at"),
        Index("ix_notifications_unread", "recipient_id", "is_read"),
        Index("ix_notifications_batch", "recipient_id", "related_post_id", "notification_type"),
        Index("ix_notifications_expiry", "expires_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    recipient_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("app_users.id", ondelete="CASCADE"),
        nullable=False,
    )

    notification_type: Mapped[NotificationType] = mapped_column(
        Enum(NotificationType, name="notification_type_enum"),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    # Deep link, e.g. "/threads/{id}/posts/{id}".
    action_url: Mapped[str | None] = mapped_column(String(500), nullable=True)

    related_user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("app_users.id", ondelete="SET NULL"),
        nullable=True,
    )
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
    related_category_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("forum_categories.id", ondelete="SET NULL"),
        nullable=True,
    )

    sent_via: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=_default_sent_via)

    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    read_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Batching, reaction notifications only
    is_batched: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    batch_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    batch_metadata: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def __init__(self, **kwargs: Any) -> None:
        created_at = kwargs.setdefault("created_at", utcnow())
        kwargs["expires_at"] = notification_expiry(created_at)
        super().__init__(**kwargs)
