# src/haven_forum/events.py
"""Content events emitted by the write path and the dispatcher that routes them.

Handlers run synchronously on the caller's session, so everything they write
commits or rolls back together with the change that raised the event.
"""

from __future__ import annotations

import logging
import uuid
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy.orm import Session

from haven_forum.enums import EditReason, ReactionType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PostCreated:
    post_id: uuid.UUID
    thread_id: uuid.UUID
    author_id: uuid.UUID | None
    parent_post_id: uuid.UUID | None
    created_at: datetime


@dataclass(frozen=True)
class PostEdited:
    post_id: uuid.UUID
    editor_id: uuid.UUID | None
    previous_content: str
    previous_word_count: int
    edit_reason_type: EditReason | None = None
    edit_reason_custom_text: str | None = None


@dataclass(frozen=True)
class PostDeleted:
    post_id: uuid.UUID
    thread_id: uuid.UUID


@dataclass(frozen=True)
class ReactionAdded:
    reaction_id: uuid.UUID
    post_id: uuid.UUID
    user_id: uuid.UUID
    reaction_type: ReactionType
    created_at: datetime


@dataclass(frozen=True)
class ReactionRemoved:
    post_id: uuid.UUID
    user_id: uuid.UUID
    reaction_type: ReactionType
    # Captured on the reaction row when it was added.
    points_awarded: Decimal
    author_id: uuid.UUID | None


ContentEvent = PostCreated | PostEdited | PostDeleted | ReactionAdded | ReactionRemoved
Handler = Callable[[Session, Any], None]


class EventDispatcher:
    """Routes each content event to the handlers subscribed to its type.

    Handlers run in subscription order. The first exception stops dispatch
    and propagates so the enclosing unit of work rolls back.
    """

    def __init__(self) -> None:
        self._handlers: dict[type, list[Handler]] = defaultdict(list)

    def subscribe(self, event_type: type, handler: Handler) -> None:
        self._handlers[event_type].append(handler)

    def handlers_for(self, event_type: type) -> list[Handler]:
        return list(self._handlers.get(event_type, ()))

    def dispatch(self, db: Session, event: ContentEvent) -> None:
        handlers = self._handlers.get(type(event), ())
        logger.debug("Dispatching %s to %d handler(s)", type(event).__name__, len(handlers))
        for handler in handlers:
            handler(db, event)
