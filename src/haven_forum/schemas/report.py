# src/haven_forum/schemas/report.py
"""Report-related Pydantic schemas."""

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from haven_forum.enums import (
    ReportCategory,
    ReportHistoryAction,
    ReportStatus,
    ReportTargetType,
    Severity,
)


class ReportCreate(BaseModel):
    """Schema for filing a report against a thread, post or user."""

    target_type: ReportTargetType
    target_id: uuid.UUID
    template_key: str | None = Field(None, description="Report template supplying category and severity")
    report_category: ReportCategory | None = None
    reason: str | None = Field(None, max_length=2000)
    severity: Severity | None = None
    details: str | None = Field(None, max_length=5000)
    is_anonymous: bool = False

    @model_validator(mode="after")
    def _template_or_category(self) -> "ReportCreate":
        if self.template_key is None and (self.report_category is None or not self.reason):
            raise ValueError("Provide template_key, or both report_category and reason")
        return self


class ReportAssign(BaseModel):
    """Schema for assigning a report; ``moderator_id = null`` clears it."""

    moderator_id: uuid.UUID | None = None


class ReportReview(BaseModel):
    notes: str | None = Field(None, max_length=2000)


class ReportResolve(BaseModel):
    """Schema for resolving a report."""

    outcome: ReportStatus = Field(..., description="ACTION_TAKEN or DISMISSED")
    action_taken: str | None = Field(None, max_length=255)
    resolution_notes: str | None = Field(None, max_length=5000)


class ReportSeverityUpdate(BaseModel):
    severity: Severity


class ReportResponse(BaseModel):
    """Schema for report information returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    reporter_id: uuid.UUID
    is_anonymous: bool
    target_type: ReportTargetType
    thread_id: uuid.UUID | None
    post_id: uuid.UUID | None
    reported_user_id: uuid.UUID | None
    report_category: ReportCategory
    severity: Severity
    reason: str
    details: str | None
    status: ReportStatus
    assigned_moderator_id: uuid.UUID | None
    assigned_at: datetime | None
    reviewed_at: datetime | None
    reviewed_by: uuid.UUID | None
    action_taken: str | None
    resolution_notes: str | None
    auto_flagged: bool
    reported_at: datetime
    last_modified_at: datetime


class ReportHistoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    report_id: uuid.UUID
    action: ReportHistoryAction
    old_value: str | None
    new_value: str | None
    acted_by: uuid.UUID | None
    notes: str | None
    created_at: datetime


class ReporterStatsResponse(BaseModel):
    """Reporter accuracy statistics."""

    model_config = ConfigDict(from_attributes=True)

    user_id: uuid.UUID
    total_reports_made: int
    reports_upheld: int
    reports_dismissed: int
    accuracy_rate: Decimal
    last_report_at: datetime | None
    is_report_banned: bool
