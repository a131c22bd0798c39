# src/haven_forum/services/notifications.py
"""Preference-aware notification fan-out.

Replies notify the single most relevant recipient. Reactions on the same post
are folded into one notification per recipient per tumbling window.
"""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime, timedelta
from typing import Any

from sqlalchemy import update
from sqlalchemy.orm import Session

from haven_forum.core.errors import EntityNotFound
from haven_forum.core.settings import settings
from haven_forum.db.time import as_utc, utcnow
from haven_forum.enums import NotificationChannel, NotificationEvent, NotificationType
from haven_forum.events import EventDispatcher, PostCreated, ReactionAdded
from haven_forum.models import Notification, Post, Thread, User
from haven_forum.schemas.preferences import NotificationPreferences, ReactionBatchMetadata

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
FALLBACK_ACTOR_NAME = "Someone"


def reaction_window_start(moment: datetime, window: timedelta) -> datetime:
    """Return the start of the epoch-aligned window that contains ``moment``."""
    elapsed = as_utc(moment) - EPOCH
    return EPOCH + (elapsed // window) * window


def post_link(thread_id: uuid.UUID, post_id: uuid.UUID) -> str:
    return f"/threads/{thread_id}/posts/{post_id}"


class NotificationFanout:
    """Creates notification rows from content and moderation events."""

    def __init__(self, window: timedelta | None = None) -> None:
        self.window = window or timedelta(minutes=settings.reaction_batch_window_minutes)

    def register(self, dispatcher: EventDispatcher) -> None:
        dispatcher.subscribe(PostCreated, self.on_post_created)
        dispatcher.subscribe(ReactionAdded, self.on_reaction_added)

    def _eligible_recipient(
        self,
        db: Session,
        recipient_id: uuid.UUID | None,
        actor_id: uuid.UUID | None,
        event: NotificationEvent,
    ) -> User | None:
        if recipient_id is None:
            logger.debug("No recipient for %s notification", event)
            return None
        if recipient_id == actor_id:
            logger.debug("Skipping self-notification for user %s", recipient_id)
            return None
        recipient = db.get(User, recipient_id)
        if recipient is None or not recipient.can_receive_notifications:
            logger.debug("Recipient %s is missing or inactive", recipient_id)
            return None
        if not recipient.preferences.allows(NotificationChannel.IN_APP, event):
            logger.debug("Recipient %s disabled in-app %s notifications", recipient_id, event)
            return None
        return recipient

    @staticmethod
    def _channels(preferences: NotificationPreferences, event: NotificationEvent) -> list[str]:
        return [
            channel.value for channel in NotificationChannel if preferences.allows(channel, event)
        ]

    @staticmethod
    def _actor_name(db: Session, actor_id: uuid.UUID | None) -> str:
        actor = db.get(User, actor_id) if actor_id is not None else None
        return actor.public_name if actor is not None else FALLBACK_ACTOR_NAME

    def on_post_created(self, db: Session, event: PostCreated) -> None:
        """Notify the thread creator, or the parent post's author for nested replies."""
        thread = db.get(Thread, event.thread_id)
        if thread is None:
            raise EntityNotFound("Thread", event.thread_id)

        if event.parent_post_id is None:
            recipient_id = thread.creator_id
            target = "thread"
        else:
            parent = db.get(Post, event.parent_post_id)
            recipient_id = parent.author_id if parent is not None else None
            target = "post"

        recipient = self._eligible_recipient(db, recipient_id, event.author_id, NotificationEvent.REPLIES)
        if recipient is None:
            return

        actor_name = self._actor_name(db, event.author_id)
        db.add(
            Notification(
                recipient_id=recipient.id,
                notification_type=NotificationType.REPLY,
                title=f"New reply to your {target}",
                message=f"{actor_name} replied to your {target}",
                action_url=post_link(thread.id, event.post_id),
                related_user_id=event.author_id,
                related_post_id=event.post_id,
                related_thread_id=thread.id,
                related_category_id=thread.category_id,
                sent_via=self._channels(recipient.preferences, NotificationEvent.REPLIES),
                created_at=as_utc(event.created_at),
            )
        )

    def on_reaction_added(self, db: Session, event: ReactionAdded) -> None:
        """Create or extend the batched reaction notification for this window."""
        post = db.get(Post, event.post_id)
        if post is None:
            raise EntityNotFound("Post", event.post_id)

        recipient = self._eligible_recipient(db, post.author_id, event.user_id, NotificationEvent.REACTIONS)
        if recipient is None:
            return

        # Make earlier reactions from this transaction visible to the lookup.
        db.flush()
        window_start = reaction_window_start(event.created_at, self.window)
        existing = (
            db.query(Notification)
            .filter(
                Notification.recipient_id == recipient.id,
                Notification.related_post_id == post.id,
                Notification.notification_type == NotificationType.REACTION,
                Notification.created_at >= window_start,
                Notification.created_at < window_start + self.window,
            )
            .order_by(Notification.created_at)
            .with_for_update()
            .first()
        )

        if existing is not None:
            batch = ReactionBatchMetadata.from_document(existing.batch_metadata).add(event.reaction_type)
            count = (existing.batch_count or 1) + 1
            existing.batch_metadata = batch.to_document()
            existing.batch_count = count
            existing.is_batched = True
            existing.related_user_id = event.user_id
            # batch_count counts reactions, not distinct reactors.
            existing.message = f"Your post received {count} reactions"
            # A grown batch is news again, even if the earlier state was read.
            existing.is_read = False
            existing.read_at = None
            return

        actor_name = self._actor_name(db, event.user_id)
        db.add(
            Notification(
                recipient_id=recipient.id,
                notification_type=NotificationType.REACTION,
                title="New reaction to your post",
                message=f"{actor_name} reacted to your post",
                action_url=post_link(post.thread_id, post.id),
                related_user_id=event.user_id,
                related_post_id=post.id,
                related_thread_id=post.thread_id,
                sent_via=self._channels(recipient.preferences, NotificationEvent.REACTIONS),
                batch_count=1,
                batch_metadata=ReactionBatchMetadata().add(event.reaction_type).to_document(),
                created_at=as_utc(event.created_at),
            )
        )

    def notify_moderation(
        self,
        db: Session,
        recipient_id: uuid.UUID,
        *,
        title: str,
        message: str,
        moderator_id: uuid.UUID | None = None,
        action_url: str | None = None,
    ) -> Notification | None:
        """Tell a user about a warning or restriction that affects them."""
        recipient = self._eligible_recipient(db, recipient_id, moderator_id, NotificationEvent.MODERATION)
        if recipient is None:
            return None
        notification = Notification(
            recipient_id=recipient.id,
            notification_type=NotificationType.MODERATION,
            title=title,
            message=message,
            action_url=action_url,
            related_user_id=moderator_id,
            sent_via=self._channels(recipient.preferences, NotificationEvent.MODERATION),
        )
        db.add(notification)
        return notification

    # Read state

    @staticmethod
    def list_for(
        db: Session,
        recipient_id: uuid.UUID,
        *,
        unread_only: bool = False,
        limit: int = 50,
    ) -> list[Notification]:
        query = db.query(Notification).filter(Notification.recipient_id == recipient_id)
        if unread_only:
            query = query.filter(Notification.is_read.is_(False))
        return query.order_by(Notification.created_at.desc()).limit(limit).all()

    @staticmethod
    def mark_read(db: Session, recipient_id: uuid.UUID, notification_id: uuid.UUID) -> bool:
        """Mark one notification read. Returns False when it already was."""
        result = db.execute(
            update(Notification)
            .where(
                Notification.id == notification_id,
                Notification.recipient_id == recipient_id,
                Notification.is_read.is_(False),
            )
            .values(is_read=True, read_at=utcnow())
        )
        if result.rowcount:
            return True
        exists = (
            db.query(Notification.id)
            .filter(Notification.id == notification_id, Notification.recipient_id == recipient_id)
            .first()
        )
        if exists is None:
            raise EntityNotFound("Notification", notification_id)
        return False

    @staticmethod
    def mark_all_read(db: Session, recipient_id: uuid.UUID) -> int:
        result = db.execute(
            update(Notification)
            .where(
                Notification.recipient_id == recipient_id,
                Notification.is_read.is_(False),
            )
            .values(is_read=True, read_at=utcnow())
        )
        return result.rowcount or 0

    @staticmethod
    def update_preferences(db: Session, user_id: uuid.UUID, document: dict[str, Any]) -> NotificationPreferences:
        """Validate and store a user's notification preferences document."""
        user = db.get(User, user_id)
        if user is None:
            raise EntityNotFound("User", user_id)
        preferences = NotificationPreferences.parse_document(document)
        user.notification_preferences = preferences.model_dump(mode="json")
        return preferences
