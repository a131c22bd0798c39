# src/haven_forum/services/audit.py
"""Append-only audit trail writers and readers.

Writers only ever add rows; the flush guards in ``haven_forum.db.guards``
reject any attempt to change or remove them afterwards.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy.orm import Session

from haven_forum.enums import ModerationAction, ReportHistoryAction, Visibility
from haven_forum.events import EventDispatcher, PostEdited
from haven_forum.models import (
    ModerationLogEntry,
    PostEditHistoryEntry,
    ReportHistoryEntry,
)


def _text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


class AuditTrail:
    """Writes and reads the moderation log, report history and post edit history."""

    def register(self, dispatcher: EventDispatcher) -> None:
        dispatcher.subscribe(PostEdited, self.on_post_edited)

    # Writers

    def record_report_event(
        self,
        db: Session,
        report_id: uuid.UUID,
        action: ReportHistoryAction,
        *,
        acted_by: uuid.UUID | None,
        old_value: Any = None,
        new_value: Any = None,
        notes: str | None = None,
    ) -> ReportHistoryEntry:
        entry = ReportHistoryEntry(
            report_id=report_id,
            action=action,
            old_value=_text(old_value),
            new_value=_text(new_value),
            acted_by=acted_by,
            notes=notes,
        )
        db.add(entry)
        return entry

    def record_moderation(
        self,
        db: Session,
        moderator_id: uuid.UUID,
        action: ModerationAction,
        *,
        description: str,
        rationale: str,
        target_user_id: uuid.UUID | None = None,
        target_post_id: uuid.UUID | None = None,
        target_thread_id: uuid.UUID | None = None,
        report_id: uuid.UUID | None = None,
        expires_at: datetime | None = None,
        metadata: dict[str, Any] | None = None,
        visibility: Visibility = Visibility.MODERATORS_ONLY,
    ) -> ModerationLogEntry:
        entry = ModerationLogEntry(
            moderator_id=moderator_id,
            action_type=action,
            action_description=description[:255],
            rationale=rationale,
            target_user_id=target_user_id,
            target_post_id=target_post_id,
            target_thread_id=target_thread_id,
            report_id=report_id,
            expires_at=expires_at,
            metadata_=metadata,
            visibility=visibility,
        )
        db.add(entry)
        return entry

    def on_post_edited(self, db: Session, event: PostEdited) -> None:
        db.add(
            PostEditHistoryEntry(
                post_id=event.post_id,
                previous_content=event.previous_content,
                previous_word_count=event.previous_word_count,
                edit_reason_type=event.edit_reason_type,
                edit_reason_custom_text=event.edit_reason_custom_text,
                edited_by_user_id=event.editor_id,
            )
        )

    # Readers

    @staticmethod
    def report_history(db: Session, report_id: uuid.UUID) -> list[ReportHistoryEntry]:
        return (
            db.query(ReportHistoryEntry)
            .filter(ReportHistoryEntry.report_id == report_id)
            .order_by(ReportHistoryEntry.id)
            .all()
        )

    @staticmethod
    def moderation_log_for_user(
        db: Session,
        user_id: uuid.UUID,
        limit: int = 50,
    ) -> list[ModerationLogEntry]:
        return (
            db.query(ModerationLogEntry)
            .filter(ModerationLogEntry.target_user_id == user_id)
            .order_by(ModerationLogEntry.id.desc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def moderation_log_for_report(db: Session, report_id: uuid.UUID) -> list[ModerationLogEntry]:
        return (
            db.query(ModerationLogEntry)
            .filter(ModerationLogEntry.report_id == report_id)
            .order_by(ModerationLogEntry.id)
            .all()
        )

    @staticmethod
    def post_edit_history(db: Session, post_id: uuid.UUID) -> list[PostEditHistoryEntry]:
        return (
            db.query(PostEditHistoryEntry)
            .filter(PostEditHistoryEntry.post_id == post_id)
            .order_by(PostEditHistoryEntry.id)
            .all()
        )
