# tests/test_errors.py
import pytest

from haven_forum.core.errors import (
    DuplicateReaction,
    EntityNotFound,
    ForumCoreError,
    InvalidTransition,
    InvariantViolation,
    PermissionDenied,
    ReportingRestricted,
    ResourceUnavailable,
)
from haven_forum.enums import ReportStatus
from haven_forum.main import status_for


@pytest.mark.parametrize(
    ("error", "expected"),
    [
        (EntityNotFound("Post", "abc"), 404),
        (DuplicateReaction("again"), 409),
        (InvalidTransition(ReportStatus.DISMISSED, ReportStatus.PENDING), 409),
        (InvariantViolation("bad"), 422),
        (ReportingRestricted("banned"), 403),
        (PermissionDenied("no"), 403),
        (ResourceUnavailable("db down"), 503),
        (ForumCoreError("unexpected"), 500),
    ],
)
def test_status_for(error: ForumCoreError, expected: int) -> None:
    assert status_for(error) == expected


def test_invalid_transition_labels() -> None:
    error = InvalidTransition(ReportStatus.DISMISSED, ReportStatus.UNDER_REVIEW, "terminal")
    assert (error.current, error.requested) == ("DISMISSED", "UNDER_REVIEW")
    assert str(error) == "Cannot transition from DISMISSED to UNDER_REVIEW: terminal"
