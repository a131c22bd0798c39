# src/haven_forum/services/enforcement.py
"""Graduated enforcement: warnings and restrictions issued by moderators."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import or_, update
from sqlalchemy.orm import Session

from haven_forum.core.errors import (
    EntityNotFound,
    InvalidTransition,
    InvariantViolation,
    PermissionDenied,
)
from haven_forum.db.time import as_utc, utcnow
from haven_forum.enums import ModerationAction, RestrictionType, WarningType
from haven_forum.models import Category, User, UserRestriction, UserWarning
from haven_forum.reference import REFERENCE_DATA, ModerationTier, ReferenceData
from haven_forum.services.audit import AuditTrail
from haven_forum.services.notifications import NotificationFanout

logger = logging.getLogger(__name__)

# restriction type -> (action logged when imposed, action logged when lifted)
RESTRICTION_ACTIONS: dict[RestrictionType, tuple[ModerationAction, ModerationAction]] = {
    RestrictionType.MUTE: (ModerationAction.USER_MUTED, ModerationAction.USER_UNMUTED),
    RestrictionType.POSTING_BAN: (ModerationAction.USER_MUTED, ModerationAction.USER_UNMUTED),
    RestrictionType.CATEGORY_BAN: (
        ModerationAction.CATEGORY_ACCESS_CHANGED,
        ModerationAction.CATEGORY_ACCESS_CHANGED,
    ),
    RestrictionType.SUSPENSION: (ModerationAction.USER_SUSPENDED, ModerationAction.USER_UNSUSPENDED),
    RestrictionType.PERMANENT_BAN: (ModerationAction.USER_BANNED, ModerationAction.USER_UNBANNED),
}

MUTE_LIKE = frozenset({RestrictionType.MUTE, RestrictionType.POSTING_BAN})

# Restrictions that stop a user posting anywhere.
POSTING_BLOCKERS = frozenset({
    RestrictionType.MUTE,
    RestrictionType.POSTING_BAN,
    RestrictionType.SUSPENSION,
    RestrictionType.PERMANENT_BAN,
})


@dataclass
class WarningCounts:
    informal: int = 0
    formal: int = 0
    final: int = 0
    policy_violation: int = 0

    @property
    def total(self) -> int:
        return self.informal + self.formal + self.final + self.policy_violation


@dataclass
class ActiveRestrictions:
    restrictions: list[UserRestriction] = field(default_factory=list)

    @property
    def restriction_types(self) -> list[RestrictionType]:
        return sorted({restriction.restriction_type for restriction in self.restrictions})

    @property
    def latest_expiry(self) -> datetime | None:
        expiries = [as_utc(r.expires_at) for r in self.restrictions if r.expires_at is not None]
        return max(expiries) if expiries else None

    @property
    def is_permanent(self) -> bool:
        return any(restriction.expires_at is None for restriction in self.restrictions)


class EnforcementService:
    """Issues, acknowledges and lifts warnings and restrictions."""

    def __init__(
        self,
        audit: AuditTrail | None = None,
        notifications: NotificationFanout | None = None,
        reference: ReferenceData | None = None,
    ) -> None:
        self.audit = audit or AuditTrail()
        self.notifications = notifications or NotificationFanout()
        self.reference = reference or REFERENCE_DATA

    def moderator_tier(self, db: Session, moderator_id: uuid.UUID) -> ModerationTier:
        """Return the acting user's moderation tier, or raise ``PermissionDenied``."""
        moderator = db.get(User, moderator_id)
        if moderator is None:
            raise EntityNotFound("User", moderator_id)
        tier = self.reference.tier_for_roles(moderator.roles or ())
        if tier is None:
            raise PermissionDenied(f"User {moderator_id} is not a moderator")
        return tier

    def _require_action(self, db: Session, moderator_id: uuid.UUID, action: ModerationAction) -> ModerationTier:
        tier = self.moderator_tier(db, moderator_id)
        if not tier.allows(action):
            raise PermissionDenied(f"The {tier.name} tier may not perform {action}")
        return tier

    @staticmethod
    def _require_user(db: Session, user_id: uuid.UUID) -> User:
        user = db.get(User, user_id)
        if user is None:
            raise EntityNotFound("User", user_id)
        return user

    @staticmethod
    def _check_future(expires_at: datetime | None, now: datetime) -> None:
        if expires_at is not None and as_utc(expires_at) <= now:
            raise InvariantViolation("expires_at must be in the future")

    # Warnings

    def issue_warning(
        self,
        db: Session,
        moderator_id: uuid.UUID,
        user_id: uuid.UUID,
        warning_type: WarningType,
        warning_text: str,
        *,
        expires_at: datetime | None = None,
        related_post_id: uuid.UUID | None = None,
        related_thread_id: uuid.UUID | None = None,
        related_report_id: uuid.UUID | None = None,
    ) -> UserWarning:
        self._require_action(db, moderator_id, ModerationAction.USER_WARNED)
        self._require_user(db, user_id)
        now = utcnow()
        self._check_future(expires_at, now)

        warning = UserWarning(
            user_id=user_id,
            warned_by=moderator_id,
            warning_type=warning_type,
            warning_text=warning_text,
            related_post_id=related_post_id,
            related_thread_id=related_thread_id,
            related_report_id=related_report_id,
            warned_at=now,
            expires_at=expires_at,
            is_active=True,
        )
        db.add(warning)
        db.flush()

        self.audit.record_moderation(
            db,
            moderator_id,
            ModerationAction.USER_WARNED,
            description=f"{warning_type.value.replace('_', ' ').capitalize()} warning issued",
            rationale=warning_text,
            target_user_id=user_id,
            target_post_id=related_post_id,
            target_thread_id=related_thread_id,
            report_id=related_report_id,
            expires_at=expires_at,
            metadata={"warning_id": str(warning.id), "warning_type": warning_type.value},
        )
        self.notifications.notify_moderation(
            db,
            user_id,
            title="You have received a warning",
            message=warning_text,
            moderator_id=moderator_id,
        )
        logger.info("Warning %s issued to %s by %s", warning.id, user_id, moderator_id)
        return warning

    @staticmethod
    def acknowledge_warning(db: Session, user_id: uuid.UUID, warning_id: uuid.UUID) -> UserWarning:
        """Record that the warned user has seen the warning. Repeat calls are no-ops."""
        warning = db.get(UserWarning, warning_id)
        if warning is None or warning.user_id != user_id:
            raise EntityNotFound("Warning", warning_id)
        db.execute(
            update(UserWarning)
            .where(UserWarning.id == warning_id, UserWarning.acknowledged_at.is_(None))
            .values(acknowledged_at=utcnow())
        )
        return warning

    def lift_warning(
        self,
        db: Session,
        moderator_id: uuid.UUID,
        warning_id: uuid.UUID,
        reason: str,
    ) -> UserWarning:
        self.moderator_tier(db, moderator_id)
        warning = db.get(UserWarning, warning_id)
        if warning is None:
            raise EntityNotFound("Warning", warning_id)
        result = db.execute(
            update(UserWarning)
            .where(UserWarning.id == warning_id, UserWarning.is_active.is_(True))
            .values(
                is_active=False,
                lifted_at=utcnow(),
                lifted_by=moderator_id,
                lift_reason=reason,
            )
        )
        if not result.rowcount:
            raise InvalidTransition("inactive", "lifted", f"warning {warning_id} is not active")
        logger.info("Warning %s lifted by %s", warning_id, moderator_id)
        return warning

    # Restrictions

    def impose_restriction(
        self,
        db: Session,
        moderator_id: uuid.UUID,
        user_id: uuid.UUID,
        restriction_type: RestrictionType,
        reason: str,
        *,
        expires_at: datetime | None = None,
        category_id: uuid.UUID | None = None,
        related_report_id: uuid.UUID | None = None,
    ) -> UserRestriction:
        """Impose a mute, ban or suspension.

        ``expires_at = None`` makes the restriction permanent; only tiers that
        may issue permanent bans can do that, and moderator mutes are capped.
        """
        restriction_type = RestrictionType(restriction_type)
        action, _ = RESTRICTION_ACTIONS[restriction_type]
        tier = self._require_action(db, moderator_id, action)
        self._require_user(db, user_id)
        now = utcnow()
        self._check_future(expires_at, now)

        if restriction_type is RestrictionType.PERMANENT_BAN and expires_at is not None:
            raise InvariantViolation("A permanent ban cannot carry an expiry")
        if expires_at is None and not tier.can_permanent_ban:
            raise PermissionDenied(f"The {tier.name} tier may not impose permanent restrictions")
        if restriction_type in MUTE_LIKE and tier.max_mute_duration is not None:
            if expires_at is None or as_utc(expires_at) - now > tier.max_mute_duration:
                raise PermissionDenied(
                    f"The {tier.name} tier may mute for at most {tier.max_mute_duration}"
                )

        if restriction_type is RestrictionType.CATEGORY_BAN:
            if category_id is None:
                raise InvariantViolation("A category ban needs a category")
            if db.get(Category, category_id) is None:
                raise EntityNotFound("Category", category_id)
        elif category_id is not None:
            raise InvariantViolation("Only category bans may reference a category")

        restriction = UserRestriction(
            user_id=user_id,
            restriction_type=restriction_type,
            reason=reason,
            imposed_by=moderator_id,
            related_report_id=related_report_id,
            restricted_category_id=category_id,
            starts_at=now,
            expires_at=expires_at,
            is_active=True,
        )
        db.add(restriction)
        db.flush()

        self.audit.record_moderation(
            db,
            moderator_id,
            action,
            description=f"{restriction_type.value.replace('_', ' ').capitalize()} imposed",
            rationale=reason,
            target_user_id=user_id,
            report_id=related_report_id,
            expires_at=expires_at,
            metadata={
                "restriction_id": str(restriction.id),
                "restriction_type": restriction_type.value,
                "category_id": str(category_id) if category_id else None,
            },
        )
        until = f" until {as_utc(expires_at):%Y-%m-%d %H:%M} UTC" if expires_at else ""
        self.notifications.notify_moderation(
            db,
            user_id,
            title="Your account has been restricted",
            message=f"{restriction_type.value.replace('_', ' ').capitalize()}{until}: {reason}",
            moderator_id=moderator_id,
        )
        logger.info(
            "Restriction %s (%s) imposed on %s by %s",
            restriction.id, restriction_type, user_id, moderator_id,
        )
        return restriction

    def lift_restriction(
        self,
        db: Session,
        moderator_id: uuid.UUID,
        restriction_id: uuid.UUID,
        reason: str,
    ) -> UserRestriction:
        self.moderator_tier(db, moderator_id)
        restriction = db.get(UserRestriction, restriction_id)
        if restriction is None:
            raise EntityNotFound("Restriction", restriction_id)

        result = db.execute(
            update(UserRestriction)
            .where(UserRestriction.id == restriction_id, UserRestriction.is_active.is_(True))
            .values(
                is_active=False,
                lifted_at=utcnow(),
                lifted_by=moderator_id,
                lift_reason=reason,
            )
        )
        if not result.rowcount:
            raise InvalidTransition("inactive", "lifted", f"restriction {restriction_id} is not active")

        _, action = RESTRICTION_ACTIONS[restriction.restriction_type]
        self.audit.record_moderation(
            db,
            moderator_id,
            action,
            description=f"{restriction.restriction_type.value.replace('_', ' ').capitalize()} lifted",
            rationale=reason,
            target_user_id=restriction.user_id,
            metadata={"restriction_id": str(restriction.id)},
        )
        self.notifications.notify_moderation(
            db,
            restriction.user_id,
            title="A restriction on your account was lifted",
            message=reason,
            moderator_id=moderator_id,
        )
        logger.info("Restriction %s lifted by %s", restriction_id, moderator_id)
        return restriction

    # Queries

    @staticmethod
    def active_restrictions(
        db: Session,
        user_id: uuid.UUID,
        now: datetime | None = None,
    ) -> ActiveRestrictions:
        """Restrictions still in force: active and not yet past their expiry."""
        moment = now or utcnow()
        rows = (
            db.query(UserRestriction)
            .filter(
                UserRestriction.user_id == user_id,
                UserRestriction.is_active.is_(True),
                or_(UserRestriction.expires_at.is_(None), UserRestriction.expires_at > moment),
            )
            .order_by(UserRestriction.starts_at)
            .all()
        )
        return ActiveRestrictions(restrictions=rows)

    @staticmethod
    def warning_counts(
        db: Session,
        user_id: uuid.UUID,
        now: datetime | None = None,
    ) -> WarningCounts:
        moment = now or utcnow()
        warning_types = (
            db.query(UserWarning.warning_type)
            .filter(
                UserWarning.user_id == user_id,
                UserWarning.is_active.is_(True),
                or_(UserWarning.expires_at.is_(None), UserWarning.expires_at > moment),
            )
            .all()
        )
        counts = WarningCounts()
        for (warning_type,) in warning_types:
            attribute = warning_type.value.lower()
            setattr(counts, attribute, getattr(counts, attribute) + 1)
        return counts

    def ensure_can_post(
        self,
        db: Session,
        user_id: uuid.UUID,
        category_id: uuid.UUID | None = None,
    ) -> None:
        """Raise ``PermissionDenied`` when an active restriction blocks posting."""
        for restriction in self.active_restrictions(db, user_id).restrictions:
            if restriction.restriction_type in POSTING_BLOCKERS:
                raise PermissionDenied(f"User {user_id} is under a {restriction.restriction_type}")
            if (
                restriction.restriction_type is RestrictionType.CATEGORY_BAN
                and category_id is not None
                and restriction.restricted_category_id == category_id
            ):
                raise PermissionDenied(f"User {user_id} is banned from category {category_id}")
