# src/haven_forum/models/post.py
"""SQLAlchemy models for posts and their edit history."""

import uuid
from datetime import datetime

from sqlalchemy import (
    BigInteger,
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
from haven_forum.enums import EditReason, PostType

# SQLite only autoincrements INTEGER PRIMARY KEY columns.
AuditId = BigInteger().with_variant(Integer, "sqlite")


def count_words(content: str | None) -> int:
    """Return the whitespace-separated token count of trimmed content (0 when blank)."""
    if not content:
        return 0
    return len(content.split())


class Post(Base):
    """Reply inside a thread.

    Replies nest one level deep: ``parent_post_id`` may only point at a
    top-level post of the same thread.
    """

    __tablename__ = "forum_posts"
    __table_args__ = (
        Index("ix_forum_posts_thread_created", "thread_id", "created_at"),
        Index("ix_forum_posts_author", "author_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    thread_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("forum_threads.id", ondelete="CASCADE"),
        nullable=False,
    )
    # Null once the author's account has been anonymized.
    author_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("app_users.id", ondelete="SET NULL"),
        nullable=True,
    )
    parent_post_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("forum_posts.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    post_type: Mapped[PostType] = mapped_column(
        Enum(PostType, name="post_type_enum"),
        nullable=False,
        default=PostType.REPLY,
    )

    content: Mapped[str] = mapped_column(Text, nullable=False)
    word_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    flagged_for_review: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Edit tracking
    is_edited: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    edit_reason_type: Mapped[EditReason | None] = mapped_column(
        Enum(EditReason, name="edit_reason_enum"),
        nullable=True,
    )
    edit_reason_custom_text: Mapped[str | None] = mapped_column(String(255), nullable=True)
    edited_by_user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("app_users.id", ondelete="SET NULL"),
        nullable=True,
    )

    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Cached counts
    reaction_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

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


class PostEditHistoryEntry(Base):
    """Append-only snapshot of a post body taken before an edit."""

    __tablename__ = "post_edit_history"

    id: Mapped[int] = mapped_column(AuditId, primary_key=True, autoincrement=True)
    post_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("forum_posts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    previous_content: Mapped[str] = mapped_column(Text, nullable=False)
    previous_word_count: Mapped[int] = mapped_column(Integer, nullable=False)
    # Stored as plain text so the posts table keeps sole ownership of the enum type.
    edit_reason_type: Mapped[EditReason | None] = mapped_column(
        Enum(EditReason, name="edit_reason_enum", native_enum=False, length=32),
        nullable=True,
    )
    edit_reason_custom_text: Mapped[str | None] = mapped_column(String(255), nullable=True)
    edited_by_user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("app_users.id", ondelete="SET NULL"),
        nullable=True,
    )
    edited_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
