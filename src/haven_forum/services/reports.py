# src/haven_forum/services/reports.py
"""Content report lifecycle: creation, assignment, review and resolution.

Every mutation appends to the report history, and a report resolved straight
out of PENDING updates the reporter's accuracy statistics exactly once.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from haven_forum.core.errors import (
    DuplicateReport,
    EntityNotFound,
    InvalidTransition,
    InvariantViolation,
    ReportingRestricted,
)
from haven_forum.db.guards import check_report_target
from haven_forum.db.time import as_utc, utcnow
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
    Post,
    ReportHistoryEntry,
    Thread,
    User,
    UserReportHistory,
)
from haven_forum.reference import REFERENCE_DATA, ReferenceData
from haven_forum.services.audit import AuditTrail

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[ReportStatus, frozenset[ReportStatus]] = {
    ReportStatus.PENDING: frozenset({
        ReportStatus.UNDER_REVIEW,
        ReportStatus.ACTION_TAKEN,
        ReportStatus.DISMISSED,
        ReportStatus.ESCALATED,
    }),
    ReportStatus.UNDER_REVIEW: frozenset({
        ReportStatus.ACTION_TAKEN,
        ReportStatus.DISMISSED,
        ReportStatus.ESCALATED,
    }),
    ReportStatus.ESCALATED: frozenset({
        ReportStatus.UNDER_REVIEW,
        ReportStatus.ACTION_TAKEN,
        ReportStatus.DISMISSED,
    }),
    # Terminal states only reopen through escalation.
    ReportStatus.ACTION_TAKEN: frozenset({ReportStatus.ESCALATED}),
    ReportStatus.DISMISSED: frozenset({ReportStatus.ESCALATED}),
}

RESOLUTIONS = frozenset({ReportStatus.ACTION_TAKEN, ReportStatus.DISMISSED})

_TARGET_MODELS = {
    ReportTargetType.THREAD: (Thread, "thread_id"),
    ReportTargetType.POST: (Post, "post_id"),
    ReportTargetType.USER: (User, "reported_user_id"),
}


def ensure_transition(current: ReportStatus, requested: ReportStatus) -> None:
    """Raise ``InvalidTransition`` unless ``current -> requested`` is allowed."""
    if requested not in ALLOWED_TRANSITIONS[current]:
        raise InvalidTransition(current, requested)


def is_report_ban_active(history: UserReportHistory | None, now: datetime | None = None) -> bool:
    if history is None or not history.is_report_banned:
        return False
    if history.report_ban_until is None:
        return True
    return as_utc(history.report_ban_until) > (now or utcnow())


class ReportWorkflowService:
    """Owns every status change of a ``ContentReport``."""

    def __init__(
        self,
        audit: AuditTrail | None = None,
        reference: ReferenceData | None = None,
    ) -> None:
        self.audit = audit or AuditTrail()
        self.reference = reference or REFERENCE_DATA

    # Creation

    def create_report(
        self,
        db: Session,
        reporter_id: uuid.UUID,
        target_type: ReportTargetType,
        target_id: uuid.UUID,
        *,
        template_key: str | None = None,
        category: ReportCategory | None = None,
        reason: str | None = None,
        severity: Severity | None = None,
        details: str | None = None,
        is_anonymous: bool = False,
    ) -> ContentReport:
        """File a new PENDING report against one thread, post or user.

        Args:
            db: Database session
            reporter_id: User filing the report
            target_type: Kind of entity being reported
            target_id: ID of that entity
            template_key: Optional report template supplying category, reason
                and default severity
            category: Report category when no template is used
            reason: Free-text reason when no template is used
            severity: Explicit severity, overriding the template default
            details: Additional context from the reporter
            is_anonymous: Hide the reporter's identity from the reported user

        Returns:
            The persisted report
        """
        target_type = ReportTargetType(target_type)
        if db.get(User, reporter_id) is None:
            raise EntityNotFound("User", reporter_id)
        if is_report_ban_active(db.get(UserReportHistory, reporter_id)):
            raise ReportingRestricted(f"User {reporter_id} is currently banned from reporting")

        model, column = _TARGET_MODELS[target_type]
        if db.get(model, target_id) is None:
            raise EntityNotFound(model.__name__, target_id)

        if template_key is not None:
            template = self.reference.template(template_key)
            if template.requires_details and not (details and details.strip()):
                raise InvariantViolation(f"Report template {template_key} requires details")
            category = template.report_category
            reason = reason or template.template_text
            severity = severity or template.auto_severity
        if category is None or not reason:
            raise InvariantViolation("A report needs a category and a reason")

        duplicate = (
            db.query(ContentReport.id)
            .filter(
                ContentReport.reporter_id == reporter_id,
                ContentReport.target_type == target_type,
                getattr(ContentReport, column) == target_id,
            )
            .first()
        )
        if duplicate is not None:
            raise DuplicateReport(f"User {reporter_id} already reported {target_type} {target_id}")

        now = utcnow()
        report = ContentReport(
            reporter_id=reporter_id,
            is_anonymous=is_anonymous,
            target_type=target_type,
            report_category=category,
            severity=severity or Severity.MEDIUM,
            reason=reason,
            details=details,
            status=ReportStatus.PENDING,
            auto_flagged=False,
            reported_at=now,
            last_modified_at=now,
        )
        setattr(report, column, target_id)
        check_report_target(report)
        db.add(report)
        db.flush()

        self.audit.record_report_event(
            db,
            report.id,
            ReportHistoryAction.CREATED,
            acted_by=reporter_id,
            new_value=report.status,
        )
        self._record_report_made(db, reporter_id, now)

        if target_type is ReportTargetType.POST:
            db.execute(
                update(Post)
                .where(Post.id == target_id)
                .values(flagged_for_review=True, updated_at=Post.updated_at)
            )

        logger.info(
            "Report %s filed against %s %s (severity %s)",
            report.id, target_type, target_id, report.severity,
        )
        return report

    def _record_report_made(self, db: Session, reporter_id: uuid.UUID, at: datetime) -> None:
        """Increment the reporter's totals, creating the history row on first use."""
        if self._increment_report_total(db, reporter_id, at):
            return
        try:
            with db.begin_nested():
                db.add(UserReportHistory(user_id=reporter_id, total_reports_made=1, last_report_at=at))
        except IntegrityError:
            # A concurrent first report created the row; count this one on it.
            self._increment_report_total(db, reporter_id, at)

    @staticmethod
    def _increment_report_total(db: Session, reporter_id: uuid.UUID, at: datetime) -> bool:
        result = db.execute(
            update(UserReportHistory)
            .where(UserReportHistory.user_id == reporter_id)
            .values(
                total_reports_made=UserReportHistory.total_reports_made + 1,
                last_report_at=at,
            )
        )
        return bool(result.rowcount)

    # Mutations

    def _load(self, db: Session, report_id: uuid.UUID) -> ContentReport:
        db.flush()
        report = (
            db.query(ContentReport)
            .filter(ContentReport.id == report_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if report is None:
            raise EntityNotFound("Report", report_id)
        return report

    def _transition(
        self,
        db: Session,
        report: ContentReport,
        requested: ReportStatus,
        acted_by: uuid.UUID,
        notes: str | None = None,
    ) -> ReportStatus:
        prior = report.status
        ensure_transition(prior, requested)
        report.status = requested
        self.audit.record_report_event(
            db,
            report.id,
            ReportHistoryAction.STATUS_CHANGED,
            acted_by=acted_by,
            old_value=prior,
            new_value=requested,
            notes=notes,
        )
        logger.info("Report %s moved %s -> %s by %s", report.id, prior, requested, acted_by)
        return prior

    def _log_moderation(
        self,
        db: Session,
        report: ContentReport,
        action: ModerationAction,
        acted_by: uuid.UUID,
        rationale: str,
    ) -> None:
        self.audit.record_moderation(
            db,
            acted_by,
            action,
            description=f"{action.value.replace('_', ' ').capitalize()} for report {report.id}",
            rationale=rationale,
            target_user_id=report.reported_user_id,
            target_post_id=report.post_id,
            target_thread_id=report.thread_id,
            report_id=report.id,
        )

    def assign(
        self,
        db: Session,
        report_id: uuid.UUID,
        moderator_id: uuid.UUID | None,
        *,
        acted_by: uuid.UUID,
    ) -> ContentReport:
        """Set or clear the assigned moderator without changing status."""
        report = self._load(db, report_id)
        if moderator_id is not None and db.get(User, moderator_id) is None:
            raise EntityNotFound("User", moderator_id)
        if report.assigned_moderator_id == moderator_id:
            return report

        previous = report.assigned_moderator_id
        report.assigned_moderator_id = moderator_id
        report.assigned_at = utcnow() if moderator_id is not None else None
        self.audit.record_report_event(
            db,
            report.id,
            ReportHistoryAction.ASSIGNED,
            acted_by=acted_by,
            old_value=previous,
            new_value=moderator_id,
        )
        self._log_moderation(
            db,
            report,
            ModerationAction.REPORT_ASSIGNED,
            acted_by,
            rationale=f"Assigned to {moderator_id}" if moderator_id else "Assignment cleared",
        )
        return report

    def start_review(
        self,
        db: Session,
        report_id: uuid.UUID,
        *,
        acted_by: uuid.UUID,
        notes: str | None = None,
    ) -> ContentReport:
        report = self._load(db, report_id)
        self._transition(db, report, ReportStatus.UNDER_REVIEW, acted_by, notes)
        return report

    def resolve(
        self,
        db: Session,
        report_id: uuid.UUID,
        outcome: ReportStatus,
        *,
        acted_by: uuid.UUID,
        action_taken: str | None = None,
        resolution_notes: str | None = None,
    ) -> ContentReport:
        """Move a report to ACTION_TAKEN or DISMISSED.

        Reporter accuracy counts only the first resolution out of PENDING; any
        later re-resolution after escalation leaves the statistics alone.
        """
        outcome = ReportStatus(outcome)
        report = self._load(db, report_id)
        if outcome not in RESOLUTIONS:
            raise InvalidTransition(report.status, outcome, "not a resolution outcome")

        prior = self._transition(db, report, outcome, acted_by, resolution_notes)
        report.reviewed_at = utcnow()
        report.reviewed_by = acted_by
        if resolution_notes is not None:
            report.resolution_notes = resolution_notes
        if action_taken is not None:
            self._apply_action(db, report, action_taken, acted_by)

        if prior is ReportStatus.PENDING:
            counter = (
                UserReportHistory.reports_upheld
                if outcome is ReportStatus.ACTION_TAKEN
                else UserReportHistory.reports_dismissed
            )
            db.execute(
                update(UserReportHistory)
                .where(UserReportHistory.user_id == report.reporter_id)
                .values({counter: counter + 1})
            )

        self._log_moderation(
            db,
            report,
            ModerationAction.REPORT_ACTIONED
            if outcome is ReportStatus.ACTION_TAKEN
            else ModerationAction.REPORT_DISMISSED,
            acted_by,
            rationale=resolution_notes or action_taken or outcome.value,
        )
        return report

    def escalate(
        self,
        db: Session,
        report_id: uuid.UUID,
        *,
        acted_by: uuid.UUID,
        notes: str | None = None,
    ) -> ContentReport:
        report = self._load(db, report_id)
        self._transition(db, report, ReportStatus.ESCALATED, acted_by, notes)
        self._log_moderation(
            db,
            report,
            ModerationAction.REPORT_ESCALATED,
            acted_by,
            rationale=notes or "Escalated for further review",
        )
        return report

    def change_severity(
        self,
        db: Session,
        report_id: uuid.UUID,
        severity: Severity,
        *,
        acted_by: uuid.UUID,
    ) -> ContentReport:
        report = self._load(db, report_id)
        if report.severity == severity:
            return report
        previous = report.severity
        report.severity = severity
        self.audit.record_report_event(
            db,
            report.id,
            ReportHistoryAction.SEVERITY_CHANGED,
            acted_by=acted_by,
            old_value=previous,
            new_value=severity,
        )
        return report

    def record_action(
        self,
        db: Session,
        report_id: uuid.UUID,
        action_taken: str,
        *,
        acted_by: uuid.UUID,
    ) -> ContentReport:
        report = self._load(db, report_id)
        self._apply_action(db, report, action_taken, acted_by)
        return report

    def _apply_action(
        self,
        db: Session,
        report: ContentReport,
        action_taken: str,
        acted_by: uuid.UUID,
    ) -> None:
        if not action_taken or report.action_taken == action_taken:
            return
        previous = report.action_taken
        report.action_taken = action_taken
        self.audit.record_report_event(
            db,
            report.id,
            ReportHistoryAction.ACTION_TAKEN,
            acted_by=acted_by,
            old_value=previous,
            new_value=action_taken,
        )

    # Reporter standing

    @staticmethod
    def ban_reporter(
        db: Session,
        user_id: uuid.UUID,
        *,
        reason: str,
        until: datetime | None = None,
    ) -> UserReportHistory:
        """Stop a user from filing reports, permanently when ``until`` is None."""
        history = db.get(UserReportHistory, user_id)
        if history is None:
            if db.get(User, user_id) is None:
                raise EntityNotFound("User", user_id)
            history = UserReportHistory(user_id=user_id, total_reports_made=0)
            db.add(history)
        history.is_report_banned = True
        history.report_ban_reason = reason
        history.report_ban_until = until
        db.flush()
        logger.info("Reporter %s banned from reporting until %s", user_id, until or "lifted")
        return history

    @staticmethod
    def lift_reporter_ban(db: Session, user_id: uuid.UUID) -> UserReportHistory:
        history = db.get(UserReportHistory, user_id)
        if history is None:
            raise EntityNotFound("Report history", user_id)
        history.is_report_banned = False
        history.report_ban_reason = None
        history.report_ban_until = None
        db.flush()
        return history

    @staticmethod
    def reporter_history(db: Session, user_id: uuid.UUID) -> UserReportHistory | None:
        return db.get(UserReportHistory, user_id)

    def history(self, db: Session, report_id: uuid.UUID) -> list[ReportHistoryEntry]:
        if db.get(ContentReport, report_id) is None:
            raise EntityNotFound("Report", report_id)
        return self.audit.report_history(db, report_id)
