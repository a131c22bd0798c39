# src/haven_forum/schemas/__init__.py
"""
Pydantic schemas for API request/response models and stored JSON documents.

These schemas define the structure of API data for serialization and validation.
"""

from .moderation import (
    LiftRequest,
    RestrictionCreate,
    RestrictionResponse,
    SweepResponse,
    WarningCountsResponse,
    WarningCreate,
    WarningResponse,
)
from .notification import MarkAllReadResponse, NotificationResponse
from .preferences import NotificationPreferences, ReactionBatchMetadata
from .reaction import ReactionCreate, ReactionResponse
from .report import (
    ReportAssign,
    ReportCreate,
    ReporterStatsResponse,
    ReportHistoryResponse,
    ReportResolve,
    ReportResponse,
    ReportReview,
    ReportSeverityUpdate,
)

__all__ = [
    "LiftRequest", "RestrictionCreate", "RestrictionResponse", "SweepResponse",
    "WarningCountsResponse", "WarningCreate", "WarningResponse",
    "MarkAllReadResponse", "NotificationResponse",
    "NotificationPreferences", "ReactionBatchMetadata",
    "ReactionCreate", "ReactionResponse",
    "ReportAssign", "ReportCreate", "ReporterStatsResponse", "ReportHistoryResponse",
    "ReportResolve", "ReportResponse", "ReportReview", "ReportSeverityUpdate",
]
