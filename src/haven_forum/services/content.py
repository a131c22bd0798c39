# src/haven_forum/services/content.py
"""Write path for posts and reactions.

Each operation performs the minimal row change, then dispatches the matching
content event so counters, audit rows and notifications are written in the
same transaction.
"""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import delete, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from haven_forum.core.errors import (
    DuplicateReaction,
    EntityNotFound,
    InvariantViolation,
    PermissionDenied,
)
from haven_forum.db.time import utcnow
from haven_forum.enums import EditReason, ModerationAction, PostType, ReactionType
from haven_forum.events import (
    EventDispatcher,
    PostCreated,
    PostDeleted,
    PostEdited,
    ReactionAdded,
    ReactionRemoved,
)
from haven_forum.models import Post, Reaction, Thread, User, count_words
from haven_forum.reference import REFERENCE_DATA, ReferenceData
from haven_forum.services.audit import AuditTrail
from haven_forum.services.enforcement import EnforcementService
from haven_forum.services.handlers import build_dispatcher

logger = logging.getLogger(__name__)


class ContentService:
    """Creates, edits and deletes posts and reactions."""

    def __init__(
        self,
        dispatcher: EventDispatcher | None = None,
        enforcement: EnforcementService | None = None,
        reference: ReferenceData | None = None,
        audit: AuditTrail | None = None,
    ) -> None:
        self.reference = reference or REFERENCE_DATA
        self.audit = audit or AuditTrail()
        self.dispatcher = dispatcher or build_dispatcher(self.reference, self.audit)
        self.enforcement = enforcement or EnforcementService(audit=self.audit, reference=self.reference)

    @staticmethod
    def _live_post(db: Session, post_id: uuid.UUID) -> Post:
        post = db.get(Post, post_id)
        if post is None or post.is_deleted:
            raise EntityNotFound("Post", post_id)
        return post

    @staticmethod
    def _user(db: Session, user_id: uuid.UUID) -> User:
        user = db.get(User, user_id)
        if user is None:
            raise EntityNotFound("User", user_id)
        return user

    # Posts

    def create_post(
        self,
        db: Session,
        thread_id: uuid.UUID,
        author_id: uuid.UUID,
        content: str,
        *,
        parent_post_id: uuid.UUID | None = None,
        post_type: PostType = PostType.REPLY,
    ) -> Post:
        """Create a reply in a thread and dispatch ``PostCreated``.

        Args:
            db: Database session
            thread_id: Thread receiving the reply
            author_id: Posting user
            content: Post body
            parent_post_id: Top-level post being replied to, if nested
            post_type: Kind of post

        Returns:
            The flushed post
        """
        thread = db.get(Thread, thread_id)
        if thread is None or thread.is_deleted:
            raise EntityNotFound("Thread", thread_id)
        if not thread.accepts_posts:
            raise PermissionDenied(f"Thread {thread_id} is {thread.status} and accepts no replies")

        self._user(db, author_id)
        self.enforcement.ensure_can_post(db, author_id, thread.category_id)

        if not content or not content.strip():
            raise InvariantViolation("Post content cannot be blank")

        if parent_post_id is not None:
            parent = self._live_post(db, parent_post_id)
            if parent.parent_post_id is not None:
                raise InvariantViolation("Replies may only nest one level deep")
            if parent.thread_id != thread_id:
                raise InvariantViolation("A reply must belong to the same thread as its parent")

        post = Post(
            thread_id=thread_id,
            author_id=author_id,
            parent_post_id=parent_post_id,
            post_type=post_type,
            content=content,
            word_count=count_words(content),
            created_at=utcnow(),
        )
        db.add(post)
        db.flush()

        self.dispatcher.dispatch(
            db,
            PostCreated(
                post_id=post.id,
                thread_id=thread_id,
                author_id=author_id,
                parent_post_id=parent_post_id,
                created_at=post.created_at,
            ),
        )
        return post

    def edit_post(
        self,
        db: Session,
        post_id: uuid.UUID,
        editor_id: uuid.UUID,
        content: str,
        *,
        reason: EditReason | None = None,
        reason_text: str | None = None,
    ) -> Post:
        post = self._live_post(db, post_id)
        editor = self._user(db, editor_id)
        if editor.id != post.author_id:
            tier = self.enforcement.moderator_tier(db, editor_id)
            if not tier.allows(ModerationAction.POST_EDITED):
                raise PermissionDenied(f"The {tier.name} tier may not edit posts")

        if not content or not content.strip():
            raise InvariantViolation("Post content cannot be blank")
        if content == post.content:
            return post

        event = PostEdited(
            post_id=post.id,
            editor_id=editor_id,
            previous_content=post.content,
            previous_word_count=post.word_count,
            edit_reason_type=reason,
            edit_reason_custom_text=reason_text,
        )
        post.content = content
        post.word_count = count_words(content)
        post.is_edited = True
        post.edit_reason_type = reason
        post.edit_reason_custom_text = reason_text
        post.edited_by_user_id = editor_id
        db.flush()

        self.dispatcher.dispatch(db, event)

        if editor.id != post.author_id:
            self.audit.record_moderation(
                db,
                editor_id,
                ModerationAction.POST_EDITED,
                description="Post edited by moderator",
                rationale=reason_text or (reason.value if reason else "Edited"),
                target_user_id=post.author_id,
                target_post_id=post.id,
                target_thread_id=post.thread_id,
            )
        return post

    def delete_post(
        self,
        db: Session,
        post_id: uuid.UUID,
        acted_by: uuid.UUID,
        rationale: str | None = None,
    ) -> bool:
        """Soft-delete a post. Returns False when it was already deleted."""
        post = db.get(Post, post_id)
        if post is None:
            raise EntityNotFound("Post", post_id)
        moderated = acted_by != post.author_id
        if moderated:
            tier = self.enforcement.moderator_tier(db, acted_by)
            if not tier.allows(ModerationAction.POST_DELETED):
                raise PermissionDenied(f"The {tier.name} tier may not delete posts")

        result = db.execute(
            update(Post)
            .where(Post.id == post_id, Post.is_deleted.is_(False))
            .values(is_deleted=True)
        )
        if not result.rowcount:
            return False

        self.dispatcher.dispatch(db, PostDeleted(post_id=post.id, thread_id=post.thread_id))
        if moderated:
            self.audit.record_moderation(
                db,
                acted_by,
                ModerationAction.POST_DELETED,
                description="Post deleted by moderator",
                rationale=rationale or "Removed",
                target_user_id=post.author_id,
                target_post_id=post.id,
                target_thread_id=post.thread_id,
            )
        return True

    # Reactions

    def add_reaction(
        self,
        db: Session,
        post_id: uuid.UUID,
        user_id: uuid.UUID,
        reaction_type: ReactionType,
    ) -> Reaction:
        """Add one reaction; a repeat of the same type raises ``DuplicateReaction``."""
        reaction_type = ReactionType(reaction_type)
        post = self._live_post(db, post_id)
        user = self._user(db, user_id)
        definition = self.reference.reaction(reaction_type)
        if not definition.available_to(user.roles or ()):
            raise PermissionDenied(f"{reaction_type} reactions are restricted")

        reaction = Reaction(
            post_id=post.id,
            user_id=user_id,
            reaction_type=reaction_type,
            created_at=utcnow(),
        )
        try:
            with db.begin_nested():
                db.add(reaction)
        except IntegrityError as err:
            raise DuplicateReaction(
                f"User {user_id} already reacted {reaction_type} to post {post_id}"
            ) from err

        self.dispatcher.dispatch(
            db,
            ReactionAdded(
                reaction_id=reaction.id,
                post_id=post.id,
                user_id=user_id,
                reaction_type=reaction_type,
                created_at=reaction.created_at,
            ),
        )
        return reaction

    def remove_reaction(
        self,
        db: Session,
        post_id: uuid.UUID,
        user_id: uuid.UUID,
        reaction_type: ReactionType,
    ) -> None:
        reaction_type = ReactionType(reaction_type)
        reaction = (
            db.query(Reaction)
            .filter(
                Reaction.post_id == post_id,
                Reaction.user_id == user_id,
                Reaction.reaction_type == reaction_type,
            )
            .first()
        )
        if reaction is None:
            raise EntityNotFound("Reaction", f"{reaction_type} by {user_id} on {post_id}")

        author_id = db.query(Post.author_id).filter(Post.id == post_id).scalar()
        points_awarded = reaction.points_awarded

        result = db.execute(delete(Reaction).where(Reaction.id == reaction.id))
        if not result.rowcount:
            # Removed concurrently; its counters were already reversed.
            raise EntityNotFound("Reaction", reaction.id)

        self.dispatcher.dispatch(
            db,
            ReactionRemoved(
                post_id=post_id,
                user_id=user_id,
                reaction_type=reaction_type,
                points_awarded=points_awarded,
                author_id=author_id,
            ),
        )
