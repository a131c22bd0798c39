# tests/test_identity.py
"""Identity cache refresh and account deletion requests."""

import uuid
from decimal import Decimal

import pytest

from haven_forum.core.errors import EntityNotFound
from haven_forum.db.time import as_utc
from haven_forum.services import IdentityService


@pytest.fixture()
def identity() -> IdentityService:
    return IdentityService()


def test_upsert_creates_user(db_session, identity) -> None:
    user = identity.upsert_identity(
        db_session, "kc-123", "river", display_name="River", roles=["moderator", "moderator"]
    )
    assert user.id is not None
    assert user.roles == ["moderator"]
    assert user.reputation_score == Decimal("0")
    assert identity.get_by_external_id(db_session, "kc-123") is user


def test_upsert_refreshes_identity_fields_only(db_session, identity, member) -> None:
    member.reputation_score = Decimal("42")
    member.notification_preferences = {"version": 1, "in_app": {"reactions": False}}
    db_session.flush()

    refreshed = identity.upsert_identity(
        db_session, member.external_id, "alice-renamed", email="alice@example.org", groups=["peer"]
    )

    assert refreshed is member
    assert refreshed.username == "alice-renamed"
    assert refreshed.groups == ["peer"]
    assert refreshed.last_synced_at is not None
    assert refreshed.reputation_score == Decimal("42")
    assert refreshed.preferences.in_app.reactions is False


def test_request_account_deletion_is_idempotent(db_session, member) -> None:
    IdentityService.request_account_deletion(db_session, member.id)
    first = member.account_deletion_requested_at
    IdentityService.request_account_deletion(db_session, member.id)

    db_session.refresh(member)
    assert member.is_deletion_requested
    assert not member.can_receive_notifications
    assert as_utc(member.account_deletion_requested_at) == as_utc(first)


def test_request_account_deletion_unknown_user(db_session) -> None:
    with pytest.raises(EntityNotFound):
        IdentityService.request_account_deletion(db_session, uuid.uuid4())
