# src/haven_forum/models/__init__.py
"""SQLAlchemy models for the Haven forum core."""

from .moderation import ModerationLogEntry, UserRestriction, UserWarning
from .notification import Notification, notification_expiry
from .post import Post, PostEditHistoryEntry, count_words
from .reaction import Reaction
from .report import ContentReport, ReportHistoryEntry, UserReportHistory
from .thread import Category, Thread
from .user import User

# Rows of these tables are never updated or deleted once written.
AUDIT_MODELS = (ModerationLogEntry, ReportHistoryEntry, PostEditHistoryEntry)

__all__ = [
    "AUDIT_MODELS",
    "Category", "Thread",
    "ContentReport", "ReportHistoryEntry", "UserReportHistory",
    "ModerationLogEntry", "UserRestriction", "UserWarning",
    "Notification", "notification_expiry",
    "Post", "PostEditHistoryEntry", "count_words",
    "Reaction",
    "User",
]
