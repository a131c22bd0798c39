# tests/test_reports.py
"""Report workflow: creation, transitions, history and reporter statistics."""

from datetime import timedelta
from decimal import Decimal

import pytest

from haven_forum.core.errors import (
    DuplicateReport,
    EntityNotFound,
    InvalidTransition,
    InvariantViolation,
    ReportingRestricted,
)
from haven_forum.db.time import utcnow
from haven_forum.enums import (
    ModerationAction,
    ReportCategory,
    ReportHistoryAction,
    ReportStatus,
    ReportTargetType,
    Severity,
)
from haven_forum.models import ContentReport, UserReportHistory
from haven_forum.services.reports import ALLOWED_TRANSITIONS, ensure_transition


@pytest.fixture()
def report(db_session, report_service, post, other_member) -> ContentReport:
    return report_service.create_report(
        db_session, other_member.id, ReportTargetType.POST, post.id,
        template_key="spam-promotional",
    )


def test_create_report_from_template(db_session, report, post, other_member) -> None:
    assert report.status == ReportStatus.PENDING
    assert report.report_category == ReportCategory.SPAM
    assert report.severity == Severity.LOW
    assert report.post_id == post.id
    assert report.thread_id is None and report.reported_user_id is None

    db_session.refresh(post)
    assert post.flagged_for_review is True

    history = db_session.get(UserReportHistory, other_member.id)
    assert history.total_reports_made == 1
    assert history.last_report_at is not None


def test_report_targets_exactly_one_entity(db_session, report_service, thread, member, other_member) -> None:
    thread_report = report_service.create_report(
        db_session, other_member.id, ReportTargetType.THREAD, thread.id,
        category=ReportCategory.OTHER, reason="Wrong category",
    )
    user_report = report_service.create_report(
        db_session, other_member.id, ReportTargetType.USER, member.id,
        category=ReportCategory.HARASSMENT, reason="Keeps messaging me",
    )

    for filed in (thread_report, user_report):
        targets = [filed.thread_id, filed.post_id, filed.reported_user_id]
        assert sum(target is not None for target in targets) == 1
    assert thread_report.target_id == thread.id
    assert user_report.target_id == member.id


def test_scenario_assign_then_action(db_session, report_service, audit, report, moderator, other_member) -> None:
    report_service.assign(db_session, report.id, moderator.id, acted_by=moderator.id)
    resolved = report_service.resolve(
        db_session, report.id, ReportStatus.ACTION_TAKEN,
        acted_by=moderator.id, action_taken="Post removed",
    )
    db_session.flush()

    assert resolved.status == ReportStatus.ACTION_TAKEN
    assert resolved.reviewed_by == moderator.id
    assert resolved.reviewed_at is not None

    actions = [entry.action for entry in audit.report_history(db_session, report.id)]
    assert actions == [
        ReportHistoryAction.CREATED,
        ReportHistoryAction.ASSIGNED,
        ReportHistoryAction.STATUS_CHANGED,
        ReportHistoryAction.ACTION_TAKEN,
    ]
    logged = [entry.action_type for entry in audit.moderation_log_for_report(db_session, report.id)]
    assert logged == [ModerationAction.REPORT_ASSIGNED, ModerationAction.REPORT_ACTIONED]

    history = db_session.get(UserReportHistory, other_member.id)
    db_session.refresh(history)
    assert history.reports_upheld == 1
    assert history.accuracy_rate == Decimal("100.00")


def test_reresolution_counts_once(db_session, report_service, report, moderator, other_member) -> None:
    report_service.resolve(db_session, report.id, ReportStatus.ACTION_TAKEN, acted_by=moderator.id)
    report_service.escalate(db_session, report.id, acted_by=moderator.id, notes="Appeal received")
    report_service.resolve(db_session, report.id, ReportStatus.DISMISSED, acted_by=moderator.id)
    db_session.flush()

    history = db_session.get(UserReportHistory, other_member.id)
    db_session.refresh(history)
    assert history.total_reports_made == 1
    assert history.reports_upheld == 1
    assert history.reports_dismissed == 0


def test_resolution_after_review_leaves_accuracy_alone(
    db_session, report_service, report, moderator, other_member
) -> None:
    report_service.start_review(db_session, report.id, acted_by=moderator.id)
    report_service.resolve(db_session, report.id, ReportStatus.DISMISSED, acted_by=moderator.id)
    db_session.flush()

    history = db_session.get(UserReportHistory, other_member.id)
    db_session.refresh(history)
    assert history.reports_dismissed == 0
    assert history.accuracy_rate == Decimal("0.00")


def test_invalid_transition_is_rejected(db_session, report_service, report, moderator) -> None:
    report_service.resolve(db_session, report.id, ReportStatus.DISMISSED, acted_by=moderator.id)

    with pytest.raises(InvalidTransition) as excinfo:
        report_service.start_review(db_session, report.id, acted_by=moderator.id)
    assert excinfo.value.current == "DISMISSED"
    assert excinfo.value.requested == "UNDER_REVIEW"


def test_resolve_requires_resolution_outcome(db_session, report_service, report, moderator) -> None:
    with pytest.raises(InvalidTransition):
        report_service.resolve(db_session, report.id, ReportStatus.ESCALATED, acted_by=moderator.id)
    db_session.refresh(report)
    assert report.status == ReportStatus.PENDING


def test_transition_table() -> None:
    for status in (ReportStatus.ACTION_TAKEN, ReportStatus.DISMISSED):
        assert status.is_terminal
        assert ALLOWED_TRANSITIONS[status] == {ReportStatus.ESCALATED}
    assert not ReportStatus.ESCALATED.is_terminal
    ensure_transition(ReportStatus.ESCALATED, ReportStatus.UNDER_REVIEW)
    with pytest.raises(InvalidTransition):
        ensure_transition(ReportStatus.UNDER_REVIEW, ReportStatus.PENDING)


def test_assign_and_clear(db_session, report_service, audit, report, moderator, admin) -> None:
    report_service.assign(db_session, report.id, moderator.id, acted_by=admin.id)
    # Re-assigning the same moderator records nothing.
    report_service.assign(db_session, report.id, moderator.id, acted_by=admin.id)
    cleared = report_service.assign(db_session, report.id, None, acted_by=admin.id)
    db_session.flush()

    assert cleared.assigned_moderator_id is None
    assert cleared.assigned_at is None
    assigned = [
        entry for entry in audit.report_history(db_session, report.id)
        if entry.action == ReportHistoryAction.ASSIGNED
    ]
    assert [entry.new_value for entry in assigned] == [str(moderator.id), None]
    assert cleared.status == ReportStatus.PENDING


def test_change_severity(db_session, report_service, audit, report, moderator) -> None:
    report_service.change_severity(db_session, report.id, Severity.CRITICAL, acted_by=moderator.id)
    db_session.flush()

    entry = audit.report_history(db_session, report.id)[-1]
    assert entry.action == ReportHistoryAction.SEVERITY_CHANGED
    assert (entry.old_value, entry.new_value) == ("LOW", "CRITICAL")


def test_duplicate_report_is_rejected(db_session, report_service, report, post, other_member) -> None:
    with pytest.raises(DuplicateReport):
        report_service.create_report(
            db_session, other_member.id, ReportTargetType.POST, post.id,
            template_key="spam-off-topic",
        )


def test_template_requiring_details(db_session, report_service, post, other_member) -> None:
    with pytest.raises(InvariantViolation):
        report_service.create_report(
            db_session, other_member.id, ReportTargetType.POST, post.id,
            template_key="harassment-bullying",
        )
    filed = report_service.create_report(
        db_session, other_member.id, ReportTargetType.POST, post.id,
        template_key="harassment-bullying", details="Mocking another member's diagnosis",
    )
    assert filed.severity == Severity.HIGH


def test_unknown_target_or_template(db_session, report_service, post, other_member, make_user) -> None:
    with pytest.raises(EntityNotFound):
        report_service.create_report(
            db_session, other_member.id, ReportTargetType.THREAD, post.id,
            category=ReportCategory.OTHER, reason="Not a thread id",
        )
    with pytest.raises(EntityNotFound):
        report_service.create_report(
            db_session, other_member.id, ReportTargetType.POST, post.id,
            template_key="no-such-template",
        )


def test_report_ban(db_session, report_service, post, other_member) -> None:
    report_service.ban_reporter(db_session, other_member.id, reason="Report spam")
    with pytest.raises(ReportingRestricted):
        report_service.create_report(
            db_session, other_member.id, ReportTargetType.POST, post.id,
            template_key="spam-promotional",
        )

    report_service.lift_reporter_ban(db_session, other_member.id)
    filed = report_service.create_report(
        db_session, other_member.id, ReportTargetType.POST, post.id,
        template_key="spam-promotional",
    )
    assert filed.status == ReportStatus.PENDING


def test_expired_report_ban_is_ignored(db_session, report_service, post, other_member) -> None:
    report_service.ban_reporter(
        db_session, other_member.id, reason="Cooling off", until=utcnow() - timedelta(days=1)
    )
    filed = report_service.create_report(
        db_session, other_member.id, ReportTargetType.POST, post.id,
        template_key="spam-promotional",
    )
    assert filed.id is not None


def test_accuracy_rate_expression(db_session, report_service, post, thread, other_member, moderator) -> None:
    upheld = report_service.create_report(
        db_session, other_member.id, ReportTargetType.POST, post.id, template_key="spam-promotional"
    )
    report_service.create_report(
        db_session, other_member.id, ReportTargetType.THREAD, thread.id, template_key="spam-off-topic"
    )
    report_service.resolve(db_session, upheld.id, ReportStatus.ACTION_TAKEN, acted_by=moderator.id)
    db_session.flush()

    rate = (
        db_session.query(UserReportHistory.accuracy_rate)
        .filter(UserReportHistory.user_id == other_member.id)
        .scalar()
    )
    assert Decimal(rate).quantize(Decimal("0.01")) == Decimal("50.00")
