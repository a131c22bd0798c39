# src/haven_forum/schemas/preferences.py
"""Validated configuration documents stored in JSON columns.

Each document carries a ``version`` and rejects unknown keys so malformed
input fails at the boundary instead of silently disabling behaviour.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from haven_forum.core.errors import InvariantViolation
from haven_forum.enums import NotificationChannel, NotificationEvent, ReactionType


class ChannelPreferences(BaseModel):
    """Per-event switches for a single delivery channel."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    replies: bool = True
    reactions: bool = True
    follows: bool = True
    moderation: bool = True
    system: bool = True


def _default_email_channel() -> ChannelPreferences:
    return ChannelPreferences(
        replies=False,
        reactions=False,
        follows=False,
        moderation=True,
        system=False,
    )


class NotificationPreferences(BaseModel):
    """Recipient notification preferences, keyed by channel then event type.

    Defaults: every in-app event enabled, only moderation notices by email.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    version: Literal[1] = 1
    in_app: ChannelPreferences = Field(default_factory=ChannelPreferences)
    email: ChannelPreferences = Field(default_factory=_default_email_channel)

    def allows(self, channel: NotificationChannel, event: NotificationEvent) -> bool:
        """Return True when ``event`` notifications are enabled on ``channel``."""
        channel_prefs: ChannelPreferences = getattr(self, channel.value)
        return bool(getattr(channel_prefs, event.value))

    @classmethod
    def parse_document(cls, document: dict[str, Any] | None) -> NotificationPreferences:
        """Validate a stored JSON document, raising ``InvariantViolation`` if malformed."""
        if document is None:
            return cls()
        try:
            return cls.model_validate(document)
        except ValidationError as err:
            raise InvariantViolation(f"Malformed notification preferences: {err}") from err


def default_preferences_document() -> dict[str, Any]:
    """Return the JSON document stored for users without explicit preferences."""
    return NotificationPreferences().model_dump(mode="json")


class ReactionBatchMetadata(BaseModel):
    """Per-type reaction tally kept on a batched reaction notification."""

    model_config = ConfigDict(extra="forbid")

    counts: dict[ReactionType, int] = Field(default_factory=dict)

    def add(self, reaction_type: ReactionType) -> ReactionBatchMetadata:
        counts = dict(self.counts)
        counts[reaction_type] = counts.get(reaction_type, 0) + 1
        return ReactionBatchMetadata(counts=counts)

    def to_document(self) -> dict[str, int]:
        """Return the stored form, e.g. ``{"HELPFUL": 3, "SUPPORTIVE": 2}``."""
        return {reaction_type.value: count for reaction_type, count in self.counts.items()}

    @classmethod
    def from_document(cls, document: dict[str, int] | None) -> ReactionBatchMetadata:
        try:
            return cls(counts=document or {})
        except ValidationError as err:
            raise InvariantViolation(f"Malformed reaction batch metadata: {err}") from err
