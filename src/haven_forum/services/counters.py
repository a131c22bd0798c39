# src/haven_forum/services/counters.py
"""Cached counter maintenance for threads, posts and reputation.

Every change is a single ``UPDATE ... SET col = col + n`` keyed by primary
key, so concurrent reactions on the same post or author both land.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy import update
from sqlalchemy.orm import Session

from haven_forum.events import (
    EventDispatcher,
    PostCreated,
    PostDeleted,
    ReactionAdded,
    ReactionRemoved,
)
from haven_forum.models import Post, Reaction, Thread, User
from haven_forum.reference import REFERENCE_DATA, ReferenceData

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


class CounterMaintainer:
    """Keeps ``post_count``, ``reaction_count`` and ``reputation_score`` exact."""

    def __init__(self, reference: ReferenceData | None = None) -> None:
        self.reference = reference or REFERENCE_DATA

    def register(self, dispatcher: EventDispatcher) -> None:
        dispatcher.subscribe(PostCreated, self.on_post_created)
        dispatcher.subscribe(PostDeleted, self.on_post_deleted)
        dispatcher.subscribe(ReactionAdded, self.on_reaction_added)
        dispatcher.subscribe(ReactionRemoved, self.on_reaction_removed)

    def on_post_created(self, db: Session, event: PostCreated) -> None:
        db.execute(
            update(Thread)
            .where(Thread.id == event.thread_id)
            .values(
                post_count=Thread.post_count + 1,
                last_activity_at=event.created_at,
            )
        )

    def on_post_deleted(self, db: Session, event: PostDeleted) -> None:
        db.execute(
            update(Thread)
            .where(Thread.id == event.thread_id)
            .values(post_count=Thread.post_count - 1)
        )

    def on_reaction_added(self, db: Session, event: ReactionAdded) -> None:
        """Count the reaction and credit the post author when resolvable.

        The points actually granted are written back to the reaction row so a
        later removal subtracts exactly what was added.
        """
        self._bump_reaction_count(db, event.post_id, 1)

        points = self.reference.reaction(event.reaction_type).reputation_points
        author_id = db.query(Post.author_id).filter(Post.id == event.post_id).scalar()

        granted = ZERO
        if author_id is not None and points != ZERO:
            result = db.execute(
                update(User)
                .where(
                    User.id == author_id,
                    User.account_deletion_requested_at.is_(None),
                )
                .values(reputation_score=User.reputation_score + points)
            )
            if result.rowcount:
                granted = points
            else:
                logger.debug("Author %s of post %s not eligible for reputation", author_id, event.post_id)

        db.execute(
            update(Reaction)
            .where(Reaction.id == event.reaction_id)
            .values(points_awarded=granted)
        )

    def on_reaction_removed(self, db: Session, event: ReactionRemoved) -> None:
        self._bump_reaction_count(db, event.post_id, -1)

        if event.author_id is None or event.points_awarded == ZERO:
            return
        db.execute(
            update(User)
            .where(User.id == event.author_id)
            .values(reputation_score=User.reputation_score - event.points_awarded)
        )

    @staticmethod
    def _bump_reaction_count(db: Session, post_id, delta: int) -> None:
        # Counter bumps are not content edits; keep updated_at as it was.
        db.execute(
            update(Post)
            .where(Post.id == post_id)
            .values(
                reaction_count=Post.reaction_count + delta,
                updated_at=Post.updated_at,
            )
        )
