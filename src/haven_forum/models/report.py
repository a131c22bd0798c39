# src/haven_forum/models/report.py
"""Models for content reports, their audit history and reporter statistics."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    ColumnElement,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
    case,
    cast,
)
from sqlalchemy.ext.hybrid import hybrid_property
from sqlalchemy.orm import Mapped, mapped_column

from haven_forum.db.session import Base
from haven_forum.db.time import utcnow
from haven_forum.enums import (
    ReportCategory,
    ReportHistoryAction,
    ReportStatus,
    ReportTargetType,
    Severity,
)
from haven_forum.models.post import AuditId

_CENT = Decimal("0.01")

_SINGLE_TARGET_SQL = (
    "(target_type = 'THREAD' AND thread_id IS NOT NULL AND post_id IS NULL "
    "AND reported_user_id IS NULL) OR "
    "(target_type = 'POST' AND post_id IS NOT NULL AND thread_id IS NULL "
    "AND reported_user_id IS NULL) OR "
    "(target_type = 'USER' AND reported_user_id IS NOT NULL AND thread_id IS NULL "
    "AND post_id IS NULL)"
)


class ContentReport(Base):
    """User-filed report against exactly one thread, post or user.

    The status column is driven exclusively by the report workflow service.
    """

    __tablename__ = "content_reports"
    __table_args__ = (
        CheckConstraint(_SINGLE_TARGET_SQL, name="ck_content_reports_single_target"),
        Index("ix_content_reports_queue", "status", "severity", "reported_at"),
        Index("ix_content_reports_reporter", "reporter_id", "reported_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    reporter_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("app_users.id", ondelete="CASCADE"),
        nullable=False,
    )
    is_anonymous: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    target_type: Mapped[ReportTargetType] = mapped_column(
        Enum(ReportTargetType, name="report_target_type_enum"),
        nullable=False,
    )
    thread_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("forum_threads.id", ondelete="CASCADE"),
        nullable=True,
    )
    post_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("forum_posts.id", ondelete="CASCADE"),
        nullable=True,
    )
    reported_user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("app_users.id", ondelete="CASCADE"),
        nullable=True,
    )

    report_category: Mapped[ReportCategory] = mapped_column(
        Enum(ReportCategory, name="report_category_enum"),
        nullable=False,
    )
    severity: Mapped[Severity] = mapped_column(
        Enum(Severity, name="severity_enum"),
        nullable=False,
        default=Severity.MEDIUM,
    )
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    details: Mapped[str | None] = mapped_column(Text, nullable=True)

    status: Mapped[ReportStatus] = mapped_column(
        Enum(ReportStatus, name="report_status_enum"),
        nullable=False,
        default=ReportStatus.PENDING,
    )
    assigned_moderator_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("app_users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    assigned_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    reviewed_by: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("app_users.id", ondelete="SET NULL"),
        nullable=True,
    )
    action_taken: Mapped[str | None] = mapped_column(String(255), nullable=True)
    resolution_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Severity is assigned manually or by template; nothing sets this.
    auto_flagged: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    # Placeholder until appeals exist.
    appeal_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)

    reported_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    last_modified_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )

    @property
    def target_id(self) -> uuid.UUID | None:
        if self.target_type is ReportTargetType.THREAD:
            return self.thread_id
        if self.target_type is ReportTargetType.POST:
            return self.post_id
        return self.reported_user_id


class ReportHistoryEntry(Base):
    """Append-only audit row for a single report change."""

    __tablename__ = "report_history"
    __table_args__ = (
        Index("ix_report_history_report", "report_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(AuditId, primary_key=True, autoincrement=True)
    report_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("content_reports.id", ondelete="CASCADE"),
        nullable=False,
    )
    action: Mapped[ReportHistoryAction] = mapped_column(
        Enum(ReportHistoryAction, name="report_history_action_enum"),
        nullable=False,
    )
    old_value: Mapped[str | None] = mapped_column(Text, nullable=True)
    new_value: Mapped[str | None] = mapped_column(Text, nullable=True)
    acted_by: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("app_users.id", ondelete="SET NULL"),
        nullable=True,
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )


class UserReportHistory(Base):
    """Per-reporter statistics used to weigh the reliability of new reports."""

    __tablename__ = "user_report_history"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("app_users.id", ondelete="CASCADE"),
        primary_key=True,
    )
    total_reports_made: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    reports_upheld: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    reports_dismissed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_report_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    is_report_banned: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    report_ban_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Null with the flag set means banned until lifted.
    report_ban_until: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )

    @hybrid_property
    def accuracy_rate(self) -> Decimal:
        """Percentage of filed reports that were upheld, 0 when none were filed."""
        total = self.total_reports_made or 0
        if total <= 0:
            return Decimal("0.00")
        rate = Decimal(self.reports_upheld or 0) * 100 / Decimal(total)
        return rate.quantize(_CENT, rounding=ROUND_HALF_UP)

    @accuracy_rate.inplace.expression
    @classmethod
    def _accuracy_rate_expression(cls) -> ColumnElement[Decimal]:
        return case(
            (
                cls.total_reports_made > 0,
                cast(cls.reports_upheld, Numeric(10, 2)) * 100 / cls.total_reports_made,
            ),
            else_=0,
        )
