# src/haven_forum/models/reaction.py
"""SQLAlchemy model for post reactions."""

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, Enum, ForeignKey, Numeric, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from haven_forum.db.session import Base
from haven_forum.db.time import utcnow
from haven_forum.enums import ReactionType


class Reaction(Base):
    """A single user's reaction of one type to a post."""

    __tablename__ = "post_reactions"
    __table_args__ = (
        UniqueConstraint("post_id", "user_id", "reaction_type", name="uq_post_reaction"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    post_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("forum_posts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("app_users.id", ondelete="CASCADE"),
        nullable=False,
    )
    reaction_type: Mapped[ReactionType] = mapped_column(
        Enum(ReactionType, name="reaction_type_enum"),
        nullable=False,
    )
    # Reputation actually granted to the post author when the reaction landed.
    # Removal subtracts this value, never a re-read of the reference table.
    points_awarded: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        default=Decimal("0"),
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
