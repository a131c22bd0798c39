# src/haven_forum/schemas/moderation.py
"""Schemas for warnings, restrictions and sweep results."""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from haven_forum.enums import RestrictionType, WarningType


class WarningCreate(BaseModel):
    """Schema for issuing a warning."""

    user_id: uuid.UUID
    warning_type: WarningType
    warning_text: str = Field(..., min_length=1, max_length=5000)
    expires_at: datetime | None = None
    related_post_id: uuid.UUID | None = None
    related_thread_id: uuid.UUID | None = None
    related_report_id: uuid.UUID | None = None


class RestrictionCreate(BaseModel):
    """Schema for imposing a restriction; omit ``expires_at`` for a permanent one."""

    user_id: uuid.UUID
    restriction_type: RestrictionType
    reason: str = Field(..., min_length=1, max_length=5000)
    expires_at: datetime | None = None
    category_id: uuid.UUID | None = None
    related_report_id: uuid.UUID | None = None


class LiftRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=2000)


class WarningResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    warned_by: uuid.UUID
    warning_type: WarningType
    warning_text: str
    warned_at: datetime
    acknowledged_at: datetime | None
    expires_at: datetime | None
    is_active: bool


class RestrictionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    restriction_type: RestrictionType
    reason: str
    imposed_by: uuid.UUID
    restricted_category_id: uuid.UUID | None
    starts_at: datetime
    expires_at: datetime | None
    is_active: bool
    lifted_at: datetime | None
    lift_reason: str | None


class WarningCountsResponse(BaseModel):
    informal: int
    formal: int
    final: int
    policy_violation: int
    total: int


class SweepResponse(BaseModel):
    """Outcome of a manually triggered expiry sweep."""

    model_config = ConfigDict(from_attributes=True)

    restrictions_expired: int
    warnings_expired: int
    notifications_purged: int
    failed_batches: int
    started_at: datetime
    finished_at: datetime | None
