# src/haven_forum/reference.py
"""Static lookup tables: reaction values, report templates and moderation tiers.

These are read-only inputs to the counter and workflow services. They are
kept in code rather than in tables because nothing in the core edits them.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import timedelta
from decimal import Decimal

from haven_forum.core.errors import EntityNotFound
from haven_forum.enums import ModerationAction, ReactionType, ReportCategory, Severity


@dataclass(frozen=True)
class ReactionDefinition:
    reaction_type: ReactionType
    display_name: str
    description: str
    reputation_points: Decimal
    # None means every member may use it.
    available_to_roles: frozenset[str] | None = None
    sort_order: int = 0

    def available_to(self, roles: Iterable[str]) -> bool:
        if self.available_to_roles is None:
            return True
        return not self.available_to_roles.isdisjoint(roles)


@dataclass(frozen=True)
class ReportTemplate:
    key: str
    report_category: ReportCategory
    template_text: str
    auto_severity: Severity
    requires_details: bool = True
    display_order: int = 0


@dataclass(frozen=True)
class ModerationTier:
    name: str
    allowed_actions: frozenset[ModerationAction]
    max_mute_duration: timedelta | None = None
    can_permanent_ban: bool = True

    def allows(self, action: ModerationAction) -> bool:
        return action in self.allowed_actions


@dataclass(frozen=True)
class ReferenceData:
    """Bundle of lookup tables; services accept one so tests can swap values."""

    reactions: Mapping[ReactionType, ReactionDefinition]
    templates: Mapping[str, ReportTemplate]
    # Ordered most privileged first.
    tiers: tuple[ModerationTier, ...] = field(default_factory=tuple)

    def reaction(self, reaction_type: ReactionType) -> ReactionDefinition:
        try:
            return self.reactions[reaction_type]
        except KeyError as err:
            raise EntityNotFound("Reaction definition", reaction_type) from err

    def template(self, key: str) -> ReportTemplate:
        try:
            return self.templates[key]
        except KeyError as err:
            raise EntityNotFound("Report template", key) from err

    def tier_for_roles(self, roles: Iterable[str]) -> ModerationTier | None:
        """Return the most privileged tier granted by ``roles``, if any."""
        held = set(roles)
        for tier in self.tiers:
            if tier.name in held:
                return tier
        return None


def _reaction(
    reaction_type: ReactionType,
    display_name: str,
    description: str,
    points: int,
    sort_order: int,
) -> ReactionDefinition:
    return ReactionDefinition(
        reaction_type=reaction_type,
        display_name=display_name,
        description=description,
        reputation_points=Decimal(points),
        sort_order=sort_order,
    )


REACTIONS = {
    definition.reaction_type: definition
    for definition in (
        _reaction(ReactionType.UPVOTE, "Upvote", "General agreement or approval", 1, 1),
        _reaction(ReactionType.HELPFUL, "Helpful", "This provided actionable advice", 3, 2),
        _reaction(ReactionType.SUPPORTIVE, "Supportive", "Offering emotional support", 2, 3),
        _reaction(ReactionType.INSIGHTFUL, "Insightful", "New perspective or deep insight", 3, 4),
        _reaction(ReactionType.HUGS, "Hugs", "Virtual comfort and warmth", 2, 5),
        _reaction(ReactionType.RELATABLE, "Relatable", "I have the same experience", 1, 6),
        _reaction(ReactionType.BRAVE, "Brave", "Courage to share vulnerably", 2, 7),
        _reaction(ReactionType.HOPE, "Hope", "This gives me hope", 2, 8),
    )
}

REPORT_TEMPLATES = {
    template.key: template
    for template in (
        ReportTemplate(
            "spam-promotional", ReportCategory.SPAM,
            "This post contains spam or promotional content", Severity.LOW,
            requires_details=False, display_order=1,
        ),
        ReportTemplate(
            "spam-off-topic", ReportCategory.SPAM,
            "This post is off-topic or irrelevant", Severity.LOW,
            requires_details=False, display_order=2,
        ),
        ReportTemplate(
            "harassment-bullying", ReportCategory.HARASSMENT,
            "This post harasses or bullies another user", Severity.HIGH, display_order=3,
        ),
        ReportTemplate(
            "harassment-personal-attack", ReportCategory.HARASSMENT,
            "This post contains personal attacks", Severity.HIGH, display_order=4,
        ),
        ReportTemplate(
            "self-harm", ReportCategory.SELF_HARM,
            "This post discusses self-harm in concerning detail", Severity.CRITICAL,
            display_order=5,
        ),
        ReportTemplate(
            "suicide", ReportCategory.SUICIDE,
            "This post expresses suicidal thoughts or plans", Severity.CRITICAL, display_order=6,
        ),
        ReportTemplate(
            "violence", ReportCategory.VIOLENCE,
            "This post contains threats of violence", Severity.CRITICAL, display_order=7,
        ),
        ReportTemplate(
            "misinformation", ReportCategory.MISINFORMATION,
            "This post contains dangerous mental health misinformation", Severity.HIGH,
            display_order=8,
        ),
        ReportTemplate(
            "privacy", ReportCategory.PRIVACY_VIOLATION,
            "This post shares someone's personal information", Severity.HIGH, display_order=9,
        ),
        ReportTemplate(
            "inappropriate", ReportCategory.INAPPROPRIATE,
            "This post contains inappropriate content", Severity.MEDIUM, display_order=10,
        ),
        ReportTemplate(
            "other", ReportCategory.OTHER,
            "Other reason (please explain)", Severity.MEDIUM, display_order=11,
        ),
    )
}

_MODERATOR_ACTIONS = frozenset({
    ModerationAction.POST_DELETED,
    ModerationAction.POST_EDITED,
    ModerationAction.POST_FLAGGED,
    ModerationAction.THREAD_LOCKED,
    ModerationAction.THREAD_UNLOCKED,
    ModerationAction.THREAD_MOVED,
    ModerationAction.USER_WARNED,
    ModerationAction.USER_MUTED,
    ModerationAction.REPORT_ASSIGNED,
    ModerationAction.REPORT_ACTIONED,
})

_ADMIN_ACTIONS = _MODERATOR_ACTIONS | {
    ModerationAction.POST_RESTORED,
    ModerationAction.THREAD_DELETED,
    ModerationAction.USER_SUSPENDED,
    ModerationAction.USER_BANNED,
    ModerationAction.USER_REPUTATION_ADJUSTED,
    ModerationAction.ROLE_GRANTED,
    ModerationAction.ROLE_REVOKED,
    ModerationAction.CATEGORY_ACCESS_CHANGED,
}

MODERATION_TIERS = (
    ModerationTier(name="admin", allowed_actions=_ADMIN_ACTIONS),
    ModerationTier(
        name="moderator",
        allowed_actions=_MODERATOR_ACTIONS,
        max_mute_duration=timedelta(hours=24),
        can_permanent_ban=False,
    ),
)

REFERENCE_DATA = ReferenceData(
    reactions=REACTIONS,
    templates=REPORT_TEMPLATES,
    tiers=MODERATION_TIERS,
)
