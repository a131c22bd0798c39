"""Database session configuration."""

from __future__ import annotations

from collections.abc import Callable, Generator, Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from haven_forum.core.errors import ResourceUnavailable
from haven_forum.core.settings import settings


class Base(DeclarativeBase):
    """Declarative base shared by all ORM models."""


# Ensure model modules are imported so that metadata is populated when create_all runs.
import haven_forum.models  # noqa: E402,F401

engine = create_engine(
    settings.effective_database_url,
    pool_pre_ping=True,
    echo=settings.sql_debug,
)

SessionLocal = sessionmaker(autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Yield a database session for dependency injection."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def unit_of_work(session_factory: Callable[[], Session] | None = None) -> Iterator[Session]:
    """Run a block as one transaction: commit on success, roll back on any error.

    Content writes and every side effect their events trigger share this
    boundary, so either all of them become visible or none do. Transient
    storage failures surface as ``ResourceUnavailable``.
    """
    db = (session_factory or SessionLocal)()
    try:
        yield db
        db.commit()
    except OperationalError as err:
        db.rollback()
        raise ResourceUnavailable(str(err.orig or err)) from err
    except DBAPIError as err:
        db.rollback()
        if err.connection_invalidated:
            raise ResourceUnavailable(str(err.orig or err)) from err
        raise
    except BaseException:
        db.rollback()
        raise
    finally:
        db.close()


# Flush-time invariant checks are registered on the Session class.
import haven_forum.db.guards  # noqa: E402,F401
