"""Domain exceptions raised by the forum core.

Every failure inside the synchronous event path aborts the enclosing
transaction and propagates to the caller of the original content operation.
"""

from __future__ import annotations

from enum import Enum


class ForumCoreError(RuntimeError):
    """Base exception for all forum core failures."""


class InvariantViolation(ForumCoreError):
    """Raised when a write would break a cross-entity invariant.

    The offending write is rejected before commit and never persisted.
    """


class InvalidTransition(ForumCoreError):
    """Raised when a workflow state change is not permitted."""

    def __init__(self, current: str | Enum, requested: str | Enum, detail: str | None = None) -> None:
        self.current = _label(current)
        self.requested = _label(requested)
        message = f"Cannot transition from {self.current} to {self.requested}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class DuplicateReaction(ForumCoreError):
    """Raised when a user already reacted to a post with the same reaction type."""


class DuplicateReport(ForumCoreError):
    """Raised when a reporter files a second report against the same target."""


class ResourceUnavailable(ForumCoreError):
    """Raised when the underlying storage fails transiently.

    Callers are expected to retry the original content operation.
    """


class EntityNotFound(ForumCoreError):
    """Raised when a referenced row does not exist."""

    def __init__(self, entity: str, identifier: object) -> None:
        self.entity = entity
        self.identifier = identifier
        super().__init__(f"{entity} {identifier} not found")


class PermissionDenied(ForumCoreError):
    """Raised when the acting user lacks the role or tier for an action."""


class ReportingRestricted(PermissionDenied):
    """Raised when a reporter is under an active report ban."""


def _label(value: str | Enum) -> str:
    return value.value if isinstance(value, Enum) else str(value)
