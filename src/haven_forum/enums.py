# src/haven_forum/enums.py
"""Closed sets of categorical values shared by models, services and schemas."""

from enum import StrEnum


class ThreadStatus(StrEnum):
    OPEN = "OPEN"
    RESOLVED = "RESOLVED"
    CLOSED = "CLOSED"
    ARCHIVED = "ARCHIVED"


class PostType(StrEnum):
    REPLY = "REPLY"
    ANSWER = "ANSWER"
    SYSTEM_MESSAGE = "SYSTEM_MESSAGE"
    MODERATOR_NOTE = "MODERATOR_NOTE"


class EditReason(StrEnum):
    TYPO_FIX = "TYPO_FIX"
    ADDED_CONTEXT = "ADDED_CONTEXT"
    CLARIFICATION = "CLARIFICATION"
    REMOVED_PERSONAL_INFO = "REMOVED_PERSONAL_INFO"
    CONTENT_POLICY_VIOLATION = "CONTENT_POLICY_VIOLATION"
    FORMATTING = "FORMATTING"
    OTHER = "OTHER"


class ReactionType(StrEnum):
    UPVOTE = "UPVOTE"
    HELPFUL = "HELPFUL"
    SUPPORTIVE = "SUPPORTIVE"
    INSIGHTFUL = "INSIGHTFUL"
    HUGS = "HUGS"
    RELATABLE = "RELATABLE"
    BRAVE = "BRAVE"
    HOPE = "HOPE"


class ReportTargetType(StrEnum):
    THREAD = "THREAD"
    POST = "POST"
    USER = "USER"


class ReportCategory(StrEnum):
    SPAM = "SPAM"
    HARASSMENT = "HARASSMENT"
    SELF_HARM = "SELF_HARM"
    SUICIDE = "SUICIDE"
    VIOLENCE = "VIOLENCE"
    MISINFORMATION = "MISINFORMATION"
    PRIVACY_VIOLATION = "PRIVACY_VIOLATION"
    INAPPROPRIATE = "INAPPROPRIATE"
    OTHER = "OTHER"


class Severity(StrEnum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class ReportStatus(StrEnum):
    PENDING = "PENDING"
    UNDER_REVIEW = "UNDER_REVIEW"
    ACTION_TAKEN = "ACTION_TAKEN"
    DISMISSED = "DISMISSED"
    ESCALATED = "ESCALATED"

    @property
    def is_terminal(self) -> bool:
        return self in (ReportStatus.ACTION_TAKEN, ReportStatus.DISMISSED)


class ReportHistoryAction(StrEnum):
    CREATED = "CREATED"
    STATUS_CHANGED = "STATUS_CHANGED"
    ASSIGNED = "ASSIGNED"
    SEVERITY_CHANGED = "SEVERITY_CHANGED"
    ACTION_TAKEN = "ACTION_TAKEN"


class ModerationAction(StrEnum):
    # Content actions
    POST_DELETED = "POST_DELETED"
    POST_EDITED = "POST_EDITED"
    POST_FLAGGED = "POST_FLAGGED"
    POST_CONTENT_WARNING_ADDED = "POST_CONTENT_WARNING_ADDED"
    POST_RESTORED = "POST_RESTORED"

    # Thread actions
    THREAD_LOCKED = "THREAD_LOCKED"
    THREAD_UNLOCKED = "THREAD_UNLOCKED"
    THREAD_DELETED = "THREAD_DELETED"
    THREAD_MOVED = "THREAD_MOVED"
    THREAD_MERGED = "THREAD_MERGED"
    THREAD_SPLIT = "THREAD_SPLIT"
    THREAD_STATUS_CHANGED = "THREAD_STATUS_CHANGED"
    THREAD_FEATURED = "THREAD_FEATURED"
    THREAD_UNFEATURED = "THREAD_UNFEATURED"

    # User actions
    USER_WARNED = "USER_WARNED"
    USER_MUTED = "USER_MUTED"
    USER_UNMUTED = "USER_UNMUTED"
    USER_SUSPENDED = "USER_SUSPENDED"
    USER_UNSUSPENDED = "USER_UNSUSPENDED"
    USER_BANNED = "USER_BANNED"
    USER_UNBANNED = "USER_UNBANNED"
    USER_REPUTATION_ADJUSTED = "USER_REPUTATION_ADJUSTED"

    # Role/permission changes
    ROLE_GRANTED = "ROLE_GRANTED"
    ROLE_REVOKED = "ROLE_REVOKED"
    GROUP_ADDED = "GROUP_ADDED"
    GROUP_REMOVED = "GROUP_REMOVED"

    # Report handling
    REPORT_ASSIGNED = "REPORT_ASSIGNED"
    REPORT_ESCALATED = "REPORT_ESCALATED"
    REPORT_ACTIONED = "REPORT_ACTIONED"
    REPORT_DISMISSED = "REPORT_DISMISSED"

    # System/bulk actions
    BULK_ACTION = "BULK_ACTION"
    CATEGORY_ACCESS_CHANGED = "CATEGORY_ACCESS_CHANGED"


class Visibility(StrEnum):
    PUBLIC = "PUBLIC"
    MODERATORS_ONLY = "MODERATORS_ONLY"
    ADMIN_ONLY = "ADMIN_ONLY"


class WarningType(StrEnum):
    INFORMAL = "INFORMAL"
    FORMAL = "FORMAL"
    FINAL = "FINAL"
    POLICY_VIOLATION = "POLICY_VIOLATION"


class RestrictionType(StrEnum):
    MUTE = "MUTE"  # can read, cannot post
    POSTING_BAN = "POSTING_BAN"
    CATEGORY_BAN = "CATEGORY_BAN"
    SUSPENSION = "SUSPENSION"
    PERMANENT_BAN = "PERMANENT_BAN"


class NotificationType(StrEnum):
    REPLY = "REPLY"
    REACTION = "REACTION"
    FOLLOW = "FOLLOW"
    MODERATION = "MODERATION"
    SYSTEM = "SYSTEM"


class NotificationChannel(StrEnum):
    IN_APP = "in_app"
    EMAIL = "email"


class NotificationEvent(StrEnum):
    REPLIES = "replies"
    REACTIONS = "reactions"
    FOLLOWS = "follows"
    MODERATION = "moderation"
    SYSTEM = "system"
