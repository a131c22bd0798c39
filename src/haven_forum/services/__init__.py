# src/haven_forum/services/__init__.py
"""Business logic services for the Haven forum core."""

from .audit import AuditTrail
from .content import ContentService
from .counters import CounterMaintainer
from .enforcement import EnforcementService
from .expiry import ExpirySweeper, ExpirySweepWorker, SweepResult
from .handlers import build_dispatcher
from .identity import IdentityService
from .notifications import NotificationFanout
from .reports import ReportWorkflowService

__all__ = [
    "AuditTrail",
    "ContentService",
    "CounterMaintainer",
    "EnforcementService",
    "ExpirySweeper",
    "ExpirySweepWorker",
    "IdentityService",
    "NotificationFanout",
    "ReportWorkflowService",
    "SweepResult",
    "build_dispatcher",
]
