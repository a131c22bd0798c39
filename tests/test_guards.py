# tests/test_guards.py
"""Flush-time invariants: append-only audit tables, single report target, nesting depth."""

import pytest
from sqlalchemy import delete, update

from haven_forum.core.errors import InvariantViolation
from haven_forum.db.time import utcnow
from haven_forum.enums import (
    ModerationAction,
    ReportCategory,
    ReportHistoryAction,
    ReportStatus,
    ReportTargetType,
    Severity,
)
from haven_forum.models import (
    ContentReport,
    ModerationLogEntry,
    Post,
    PostEditHistoryEntry,
    ReportHistoryEntry,
)


@pytest.fixture()
def log_entry(db_session, audit, moderator, member) -> ModerationLogEntry:
    entry = audit.record_moderation(
        db_session, moderator.id, ModerationAction.USER_WARNED,
        description="Informal warning issued", rationale="Tone", target_user_id=member.id,
    )
    db_session.flush()
    return entry


def test_audit_rows_cannot_be_modified(db_session, log_entry) -> None:
    log_entry.rationale = "Rewritten history"
    with pytest.raises(InvariantViolation):
        db_session.flush()


def test_audit_rows_cannot_be_deleted(db_session, log_entry) -> None:
    db_session.delete(log_entry)
    with pytest.raises(InvariantViolation):
        db_session.flush()


@pytest.mark.parametrize(
    ("model", "column"),
    [
        (ModerationLogEntry, "rationale"),
        (ReportHistoryEntry, "notes"),
        (PostEditHistoryEntry, "previous_content"),
    ],
)
def test_bulk_audit_mutation_is_rejected(db_session, model, column) -> None:
    with pytest.raises(InvariantViolation):
        db_session.execute(update(model).where(model.id == 1).values({column: "scrubbed"}))
    with pytest.raises(InvariantViolation):
        db_session.execute(delete(model).where(model.id == 1))


def test_report_history_is_append_only(db_session, report_service, audit, post, other_member) -> None:
    report = report_service.create_report(
        db_session, other_member.id, ReportTargetType.POST, post.id, template_key="spam-promotional"
    )
    db_session.flush()
    entry = audit.report_history(db_session, report.id)[0]
    assert entry.action == ReportHistoryAction.CREATED

    entry.notes = "edited"
    with pytest.raises(InvariantViolation):
        db_session.flush()


def test_report_with_two_targets_is_rejected(db_session, post, thread, other_member) -> None:
    now = utcnow()
    db_session.add(
        ContentReport(
            reporter_id=other_member.id,
            target_type=ReportTargetType.POST,
            post_id=post.id,
            thread_id=thread.id,
            report_category=ReportCategory.OTHER,
            severity=Severity.MEDIUM,
            reason="Both",
            status=ReportStatus.PENDING,
            reported_at=now,
            last_modified_at=now,
        )
    )
    with pytest.raises(InvariantViolation):
        db_session.flush()


def test_report_target_must_match_type(db_session, member, other_member) -> None:
    now = utcnow()
    db_session.add(
        ContentReport(
            reporter_id=other_member.id,
            target_type=ReportTargetType.THREAD,
            reported_user_id=member.id,
            report_category=ReportCategory.OTHER,
            severity=Severity.MEDIUM,
            reason="Mismatch",
            status=ReportStatus.PENDING,
            reported_at=now,
            last_modified_at=now,
        )
    )
    with pytest.raises(InvariantViolation):
        db_session.flush()


def test_post_nesting_is_checked_on_flush(db_session, make_post, post, thread, member) -> None:
    reply = make_post(thread, member, parent_post_id=post.id)
    assert reply.parent_post_id == post.id

    db_session.add(Post(thread_id=thread.id, author_id=member.id, content="deep", parent_post_id=reply.id))
    with pytest.raises(InvariantViolation):
        db_session.flush()


def test_category_nesting_is_one_level(db_session, make_category) -> None:
    parent = make_category()
    child = make_category(parent=parent)
    assert child.parent_category_id == parent.id

    with pytest.raises(InvariantViolation):
        make_category(parent=child)


def test_category_cannot_be_its_own_parent(db_session, make_category) -> None:
    category = make_category()
    category.parent_category_id = category.id
    with pytest.raises(InvariantViolation):
        db_session.flush()
