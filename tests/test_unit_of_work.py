# tests/test_unit_of_work.py
import pytest
from sqlalchemy.exc import OperationalError

from haven_forum.core.errors import InvariantViolation, ResourceUnavailable
from haven_forum.db.session import unit_of_work


def test_commits_on_success(mocker) -> None:
    session = mocker.MagicMock()
    with unit_of_work(lambda: session) as db:
        assert db is session
    session.commit.assert_called_once()
    session.rollback.assert_not_called()
    session.close.assert_called_once()


def test_transient_failure_becomes_resource_unavailable(mocker) -> None:
    session = mocker.MagicMock()
    session.commit.side_effect = OperationalError("COMMIT", {}, Exception("server closed the connection"))

    with pytest.raises(ResourceUnavailable):
        with unit_of_work(lambda: session):
            pass
    session.rollback.assert_called_once()


def test_domain_errors_roll_back_and_propagate(mocker) -> None:
    session = mocker.MagicMock()
    with pytest.raises(InvariantViolation):
        with unit_of_work(lambda: session):
            raise InvariantViolation("nope")
    session.rollback.assert_called_once()
    session.commit.assert_not_called()
