# src/haven_forum/models/user.py
"""SQLAlchemy models for cached user identities and core-owned user state."""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Index, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from haven_forum.db.session import Base
from haven_forum.db.time import utcnow
from haven_forum.schemas.preferences import NotificationPreferences, default_preferences_document


class User(Base):
    """Forum member.

    Identity fields (``external_id`` through ``groups``) are owned by the
    identity provider sync and only cached here. ``reputation_score`` and
    ``notification_preferences`` are written exclusively by the forum core.
    """

    __tablename__ = "app_users"
    __table_args__ = (
        Index("ix_app_users_reputation", "reputation_score"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    # Subject claim issued by the identity provider.
    external_id: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)

    # Synced from the identity provider
    username: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    display_name: Mapped[str | None] = mapped_column(String(100), unique=True, nullable=True)
    roles: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    groups: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    last_synced_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    notification_preferences: Mapped[dict[str, Any]] = mapped_column(
        JSON,
        nullable=False,
        default=default_preferences_document,
    )
    # Additive; not floored at zero.
    reputation_score: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        default=Decimal("0"),
    )

    date_joined: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    account_deletion_requested_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    @property
    def preferences(self) -> NotificationPreferences:
        """Return the validated notification preferences document."""
        return NotificationPreferences.parse_document(self.notification_preferences)

    @property
    def is_deletion_requested(self) -> bool:
        return self.account_deletion_requested_at is not None

    @property
    def can_receive_notifications(self) -> bool:
        """Deleted or deactivated accounts never receive new notifications."""
        return self.is_active and not self.is_deletion_requested

    @property
    def public_name(self) -> str:
        return self.display_name or self.username

    def has_any_role(self, roles: Iterable[str]) -> bool:
        held = set(self.roles or ())
        return any(role in held for role in roles)
