# tests/services/test_expiry_sweeper.py
"""Expiry sweeps over warnings, restrictions and notification retention.

The sweeper commits per batch, so these tests run against their own
in-memory database instead of the rolled-back ``db_session``.
"""

import asyncio
from collections.abc import Iterator
from datetime import timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool
from sqlalchemy.sql import Select
from sqlalchemy.sql.dml import Update

from haven_forum.db.session import Base
from haven_forum.db.time import utcnow
from haven_forum.enums import NotificationType, RestrictionType, WarningType
from haven_forum.models import Notification, User, UserRestriction, UserWarning
from haven_forum.services.expiry import ExpirySweeper, ExpirySweepWorker, SweepResult


@pytest.fixture()
def sweep_session() -> Iterator[Session]:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    session = Session(bind=engine, autoflush=False, expire_on_commit=False)
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture()
def users(sweep_session: Session) -> tuple[User, User]:
    moderator = User(external_id="kc-mod", username="mod", roles=["moderator"])
    member = User(external_id="kc-member", username="member")
    sweep_session.add_all([moderator, member])
    sweep_session.commit()
    return moderator, member


def _warning(moderator: User, member: User, expires_in: timedelta | None) -> UserWarning:
    now = utcnow()
    return UserWarning(
        user_id=member.id,
        warned_by=moderator.id,
        warning_type=WarningType.INFORMAL,
        warning_text="Please be kind",
        warned_at=now,
        expires_at=now + expires_in if expires_in is not None else None,
        is_active=True,
    )


def _restriction(moderator: User, member: User, expires_in: timedelta | None) -> UserRestriction:
    now = utcnow()
    return UserRestriction(
        user_id=member.id,
        restriction_type=RestrictionType.MUTE,
        reason="Cooling off",
        imposed_by=moderator.id,
        starts_at=now,
        expires_at=now + expires_in if expires_in is not None else None,
        is_active=True,
    )


def _active_ids(session: Session) -> set:
    warnings = {w.id for w in session.query(UserWarning).filter(UserWarning.is_active.is_(True))}
    restrictions = {
        r.id for r in session.query(UserRestriction).filter(UserRestriction.is_active.is_(True))
    }
    return warnings | restrictions


def test_expired_warning_is_deactivated_once(sweep_session, users) -> None:
    warning = _warning(*users, expires_in=-timedelta(hours=1))
    sweep_session.add(warning)
    sweep_session.commit()
    sweeper = ExpirySweeper(db_session=sweep_session)

    first = sweeper.run()
    second = sweeper.run()

    sweep_session.refresh(warning)
    assert warning.is_active is False
    assert first.warnings_expired == 1
    assert second.warnings_expired == 0
    assert second.failed_batches == 0


def test_second_sweep_leaves_active_set_unchanged(sweep_session, users) -> None:
    sweep_session.add_all([
        _warning(*users, expires_in=-timedelta(days=2)),
        _warning(*users, expires_in=timedelta(days=2)),
        _warning(*users, expires_in=None),
        _restriction(*users, expires_in=-timedelta(minutes=5)),
        _restriction(*users, expires_in=timedelta(hours=3)),
        _restriction(*users, expires_in=None),
    ])
    sweep_session.commit()
    sweeper = ExpirySweeper(db_session=sweep_session, batch_size=2)
    now = utcnow()

    sweeper.run(now=now)
    after_one = _active_ids(sweep_session)
    result = sweeper.run(now=now)

    assert _active_ids(sweep_session) == after_one
    assert len(after_one) == 4
    assert (result.warnings_expired, result.restrictions_expired) == (0, 0)


def test_sweep_purges_expired_notifications(sweep_session, users) -> None:
    _, member = users
    old = Notification(
        recipient_id=member.id,
        notification_type=NotificationType.SYSTEM,
        title="Welcome",
        message="Welcome to the forum",
        created_at=utcnow() - timedelta(days=120),
    )
    recent = Notification(
        recipient_id=member.id,
        notification_type=NotificationType.SYSTEM,
        title="Reminder",
        message="Community guidelines updated",
    )
    sweep_session.add_all([old, recent])
    sweep_session.commit()
    recent_id = recent.id

    result = ExpirySweeper(db_session=sweep_session).run()

    assert result.notifications_purged == 1
    assert [n.id for n in sweep_session.query(Notification)] == [recent_id]


def test_failed_batch_is_skipped_and_retried_next_run(sweep_session, users, mocker) -> None:
    sweep_session.add_all([_restriction(*users, expires_in=-timedelta(hours=h)) for h in (1, 2)])
    sweep_session.commit()

    original_execute = sweep_session.execute
    failures = []

    def flaky_execute(statement, *args, **kwargs):
        if isinstance(statement, Update) and not failures:
            failures.append(statement)
            raise OperationalError(str(statement), {}, Exception("database is locked"))
        return original_execute(statement, *args, **kwargs)

    mocker.patch.object(sweep_session, "execute", side_effect=flaky_execute)
    sweeper = ExpirySweeper(db_session=sweep_session, batch_size=1)

    first = sweeper.run()
    assert first.failed_batches == 1
    assert first.restrictions_expired == 1
    assert len(first.errors) == 1

    second = sweeper.run()
    assert second.failed_batches == 0
    assert second.restrictions_expired == 1
    assert _active_ids(sweep_session) == set()


def test_failed_scan_does_not_stop_other_tables(sweep_session, users, mocker) -> None:
    moderator, member = users
    restriction = _restriction(moderator, member, expires_in=-timedelta(hours=1))
    warning = _warning(moderator, member, expires_in=-timedelta(hours=1))
    sweep_session.add_all([
        restriction,
        warning,
        Notification(
            recipient_id=member.id,
            notification_type=NotificationType.SYSTEM,
            title="Welcome",
            message="Welcome to the forum",
            created_at=utcnow() - timedelta(days=120),
        ),
    ])
    sweep_session.commit()

    original_execute = sweep_session.execute
    failures = []

    def failing_restriction_scan(statement, *args, **kwargs):
        if (
            isinstance(statement, Select)
            and not failures
            and UserRestriction.__table__ in statement.get_final_froms()
        ):
            failures.append(statement)
            raise OperationalError(str(statement), {}, Exception("disk I/O error"))
        return original_execute(statement, *args, **kwargs)

    mocker.patch.object(sweep_session, "execute", side_effect=failing_restriction_scan)

    result = ExpirySweeper(db_session=sweep_session).run()

    assert result.restrictions_expired == 0
    assert result.warnings_expired == 1
    assert result.notifications_purged == 1
    assert result.failed_batches == 1
    assert result.errors[0].startswith("user_restrictions scan")
    assert _active_ids(sweep_session) == {restriction.id}


@pytest.mark.asyncio
async def test_worker_runs_until_stopped(mocker) -> None:
    sweeper = mocker.Mock(spec=ExpirySweeper)
    sweeper.run.return_value = SweepResult(started_at=utcnow())
    worker = ExpirySweepWorker(sweeper=sweeper, interval_seconds=0.01, enabled=True)

    await worker.start()
    assert worker.running
    await asyncio.sleep(0.05)
    await worker.stop()

    assert not worker.running
    assert sweeper.run.call_count >= 1
    assert worker.last_result is sweeper.run.return_value


@pytest.mark.asyncio
async def test_worker_survives_failed_run(mocker) -> None:
    sweeper = mocker.Mock(spec=ExpirySweeper)
    sweeper.run.side_effect = OperationalError("SELECT 1", {}, Exception("connection refused"))
    worker = ExpirySweepWorker(sweeper=sweeper, interval_seconds=0.01, enabled=True)

    await worker.start()
    await asyncio.sleep(0.1)
    assert worker.running
    await worker.stop()

    assert sweeper.run.call_count >= 2


@pytest.mark.asyncio
async def test_disabled_worker_does_not_start(mocker) -> None:
    sweeper = mocker.Mock(spec=ExpirySweeper)
    worker = ExpirySweepWorker(sweeper=sweeper, enabled=False)

    await worker.start()

    assert not worker.running
    sweeper.run.assert_not_called()
