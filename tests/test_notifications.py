# tests/test_notifications.py
"""Notification fan-out, reaction batching, preferences and read state."""

import uuid
from datetime import UTC, datetime, timedelta

import pytest

from haven_forum.core.errors import EntityNotFound, InvariantViolation
from haven_forum.db.time import as_utc
from haven_forum.enums import NotificationType, ReactionType
from haven_forum.events import ReactionAdded
from haven_forum.models import Notification
from haven_forum.schemas.preferences import NotificationPreferences
from haven_forum.services import IdentityService, NotificationFanout
from haven_forum.services.notifications import reaction_window_start

WINDOW = timedelta(minutes=15)


def _notifications_for(db_session, user) -> list[Notification]:
    db_session.flush()
    return (
        db_session.query(Notification)
        .filter(Notification.recipient_id == user.id)
        .order_by(Notification.created_at)
        .all()
    )


def _reaction(post, user, reaction_type, at: datetime) -> ReactionAdded:
    return ReactionAdded(
        reaction_id=uuid.uuid4(),
        post_id=post.id,
        user_id=user.id,
        reaction_type=reaction_type,
        created_at=at,
    )


def test_reply_notifies_thread_creator(db_session, content_service, thread, member, other_member) -> None:
    post = content_service.create_post(db_session, thread.id, other_member.id, "Sending strength")

    [notification] = _notifications_for(db_session, member)
    assert notification.notification_type == NotificationType.REPLY
    assert notification.title == "New reply to your thread"
    assert notification.message == f"{other_member.public_name} replied to your thread"
    assert notification.related_post_id == post.id
    assert notification.action_url == f"/threads/{thread.id}/posts/{post.id}"
    assert notification.sent_via == ["in_app"]
    assert as_utc(notification.expires_at) - as_utc(notification.created_at) == timedelta(days=90)


def test_nested_reply_notifies_parent_author(
    db_session, content_service, make_thread, make_post, member, other_member, make_user
) -> None:
    starter = make_user("carol")
    thread = make_thread(starter)
    parent = make_post(thread, member)

    content_service.create_post(
        db_session, thread.id, other_member.id, "Me too", parent_post_id=parent.id
    )

    [notification] = _notifications_for(db_session, member)
    assert notification.title == "New reply to your post"
    assert _notifications_for(db_session, starter) == []


def test_self_replies_do_not_notify(db_session, content_service, thread, post, member) -> None:
    content_service.create_post(db_session, thread.id, member.id, "Update on my situation")
    content_service.create_post(
        db_session, thread.id, member.id, "Adding detail", parent_post_id=post.id
    )
    assert _notifications_for(db_session, member) == []


def test_disabled_preference_suppresses_reply(db_session, content_service, thread, member, other_member) -> None:
    NotificationFanout.update_preferences(db_session, member.id, {"in_app": {"replies": False}})

    content_service.create_post(db_session, thread.id, other_member.id, "Hello")
    assert _notifications_for(db_session, member) == []


def test_deletion_requested_recipient_is_skipped(
    db_session, content_service, thread, member, other_member
) -> None:
    IdentityService.request_account_deletion(db_session, member.id)
    content_service.create_post(db_session, thread.id, other_member.id, "Hello")
    assert _notifications_for(db_session, member) == []


def test_reactions_in_one_window_are_batched(db_session, post, member, other_member, make_user) -> None:
    fanout = NotificationFanout(window=WINDOW)
    third = make_user("dana")
    start = datetime(2026, 3, 1, 10, 0, tzinfo=UTC)

    fanout.on_reaction_added(db_session, _reaction(post, other_member, ReactionType.HELPFUL, start + timedelta(minutes=1)))
    fanout.on_reaction_added(db_session, _reaction(post, third, ReactionType.HUGS, start + timedelta(minutes=7)))
    fanout.on_reaction_added(db_session, _reaction(post, third, ReactionType.HELPFUL, start + timedelta(minutes=9)))

    [notification] = _notifications_for(db_session, member)
    assert notification.notification_type == NotificationType.REACTION
    assert notification.is_batched is True
    assert notification.batch_count == 3
    assert notification.batch_metadata == {"HELPFUL": 2, "HUGS": 1}
    assert notification.message == "Your post received 3 reactions"
    assert notification.related_user_id == third.id


def test_reaction_in_next_window_starts_new_notification(db_session, post, member, other_member) -> None:
    fanout = NotificationFanout(window=WINDOW)
    start = datetime(2026, 3, 1, 10, 0, tzinfo=UTC)

    fanout.on_reaction_added(db_session, _reaction(post, other_member, ReactionType.HOPE, start + timedelta(minutes=14)))
    fanout.on_reaction_added(db_session, _reaction(post, other_member, ReactionType.BRAVE, start + timedelta(minutes=16)))

    first, second = _notifications_for(db_session, member)
    assert first.batch_count == 1 and first.is_batched is False
    assert first.message == f"{other_member.public_name} reacted to your post"
    assert second.batch_metadata == {"BRAVE": 1}


def test_reaction_after_read_marks_batch_unread(db_session, post, member, other_member, make_user) -> None:
    fanout = NotificationFanout(window=WINDOW)
    third = make_user("erin")
    start = datetime(2026, 3, 1, 11, 0, tzinfo=UTC)

    fanout.on_reaction_added(db_session, _reaction(post, other_member, ReactionType.HELPFUL, start + timedelta(minutes=2)))
    [notification] = _notifications_for(db_session, member)
    assert NotificationFanout.mark_read(db_session, member.id, notification.id) is True

    fanout.on_reaction_added(db_session, _reaction(post, third, ReactionType.HELPFUL, start + timedelta(minutes=4)))

    [notification] = _notifications_for(db_session, member)
    assert notification.batch_count == 2
    assert notification.is_read is False
    assert notification.read_at is None
    assert NotificationFanout.list_for(db_session, member.id, unread_only=True) == [notification]


def test_batch_message_counts_reactions(db_session, post, member, other_member) -> None:
    fanout = NotificationFanout(window=WINDOW)
    start = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)

    fanout.on_reaction_added(db_session, _reaction(post, other_member, ReactionType.HELPFUL, start + timedelta(minutes=1)))
    fanout.on_reaction_added(db_session, _reaction(post, other_member, ReactionType.RELATABLE, start + timedelta(minutes=3)))

    [notification] = _notifications_for(db_session, member)
    assert notification.message == "Your post received 2 reactions"
    assert notification.batch_metadata == {"HELPFUL": 1, "RELATABLE": 1}


def test_self_reaction_does_not_notify(db_session, content_service, post, member) -> None:
    content_service.add_reaction(db_session, post.id, member.id, ReactionType.UPVOTE)
    assert _notifications_for(db_session, member) == []


def test_reaction_window_start_is_epoch_aligned() -> None:
    moment = datetime(2026, 3, 1, 10, 7, 30, tzinfo=UTC)
    assert reaction_window_start(moment, WINDOW) == datetime(2026, 3, 1, 10, 0, tzinfo=UTC)
    assert reaction_window_start(moment.replace(tzinfo=None), WINDOW) == datetime(2026, 3, 1, 10, 0, tzinfo=UTC)


def test_mark_read(db_session, content_service, thread, member, other_member) -> None:
    content_service.create_post(db_session, thread.id, other_member.id, "one")
    content_service.create_post(db_session, thread.id, other_member.id, "two")
    first, _ = _notifications_for(db_session, member)

    assert NotificationFanout.mark_read(db_session, member.id, first.id) is True
    assert NotificationFanout.mark_read(db_session, member.id, first.id) is False
    assert NotificationFanout.mark_all_read(db_session, member.id) == 1
    assert NotificationFanout.list_for(db_session, member.id, unread_only=True) == []

    with pytest.raises(EntityNotFound):
        NotificationFanout.mark_read(db_session, other_member.id, first.id)


def test_preferences_round_trip(db_session, member) -> None:
    assert member.preferences == NotificationPreferences()
    assert member.preferences.email.moderation is True
    assert member.preferences.email.replies is False

    updated = NotificationFanout.update_preferences(
        db_session, member.id, {"version": 1, "email": {"replies": True}}
    )
    assert updated.email.replies is True
    assert member.preferences.email.replies is True


@pytest.mark.parametrize(
    "document",
    [
        {"sms": {"replies": True}},
        {"version": 2},
        {"in_app": {"replies": "sometimes"}},
    ],
)
def test_malformed_preferences_are_rejected(db_session, member, document) -> None:
    with pytest.raises(InvariantViolation):
        NotificationFanout.update_preferences(db_session, member.id, document)
