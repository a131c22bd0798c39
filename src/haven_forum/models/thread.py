# src/haven_forum/models/thread.py
"""SQLAlchemy models for categories and threads."""

import uuid
from datetime import datetime

from sqlalchemy import (
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

from haven_forum.db.session import Base
from haven_forum.db.time import utcnow
from haven_forum.enums import ThreadStatus


class Category(Base):
    """Forum category.

    Category CRUD lives outside the core; the model exists so threads can
    reference it and so the one-level hierarchy rule is checked on flush.
    """

    __tablename__ = "forum_categories"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    slug: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    # One level only: parent -> child, no grandchildren.
    parent_category_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("forum_categories.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )


class Thread(Base):
    """Discussion thread with cached activity counters.

    ``post_count`` and ``last_activity_at`` are maintained by the counter
    handlers, never by callers.
    """

    __tablename__ = "forum_threads"
    __table_args__ = (
        Index("ix_forum_threads_activity", "category_id", "last_activity_at"),
        Index("ix_forum_threads_creator", "creator_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    creator_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("app_users.id", ondelete="SET NULL"),
        nullable=True,
    )
    category_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("forum_categories.id", ondelete="RESTRICT"),
        nullable=False,
    )
    status: Mapped[ThreadStatus] = mapped_column(
        Enum(ThreadStatus, name="thread_status_enum"),
        nullable=False,
        default=ThreadStatus.OPEN,
    )
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )
    last_activity_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    # Cached counts
    post_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    @property
    def accepts_posts(self) -> bool:
        return not self.is_deleted and self.status in (ThreadStatus.OPEN, ThreadStatus.RESOLVED)
