# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Generator, Iterator
from itertools import count
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SWEEP_ENABLED", "false")

from haven_forum.api.v1.dependencies import FORUM_USER_HEADER
from haven_forum.core.settings import Settings
from haven_forum.db.session import Base
from haven_forum.db.session import get_db as app_get_session
from haven_forum.db.time import utcnow
from haven_forum.enums import ThreadStatus
from haven_forum.main import app as fastapi_app
from haven_forum.models import Category, Post, Thread, User, count_words
from haven_forum.services import (
    AuditTrail,
    ContentService,
    EnforcementService,
    NotificationFanout,
    ReportWorkflowService,
)

TEST_DB_URL = "sqlite://"

_USER_COUNTER = count(1)
_CATEGORY_COUNTER = count(1)
_TEST_SETTINGS_INSTANCE = Settings()


def build_engine() -> Engine:
    """Return a fresh in-memory engine with the full schema created."""
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    return engine


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = build_engine()
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    connection = engine.connect()
    transaction = connection.begin()
    SessionLocal = sessionmaker(
        bind=connection,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )
    session = SessionLocal()
    outer_savepoint = [session.begin_nested()]

    @event.listens_for(session, "after_transaction_end")
    def restart_savepoint(sess: Session, trans) -> None:  # pragma: no cover - SQLAlchemy internals
        if trans is outer_savepoint[0]:
            outer_savepoint[0] = session.begin_nested()

    try:
        yield session
    finally:
        event.remove(session, "after_transaction_end", restart_savepoint)
        session.close()

        if transaction.is_active:
            transaction.rollback()
        connection.close()

        # Ensure each test sees a clean database even if commits occurred.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_session_dependency(app: FastAPI, db_session: Session) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """Provide a Settings instance aligned with runtime configuration."""
    return _TEST_SETTINGS_INSTANCE


def auth_headers(user: User) -> dict[str, str]:
    """Return the gateway identity header for ``user``."""
    return {FORUM_USER_HEADER: user.external_id}


# Factories


@pytest.fixture()
def make_user(db_session: Session) -> Callable[..., User]:
    """Return a factory that persists users with unique identities."""

    def _make(name: str | None = None, roles: list[str] | None = None, **fields: Any) -> User:
        n = next(_USER_COUNTER)
        username = name or f"member{n}"
        user = User(
            external_id=f"kc-{username}-{n}",
            username=username,
            display_name=f"{username.capitalize()} {n}",
            roles=roles or [],
            **fields,
        )
        db_session.add(user)
        db_session.flush()
        return user

    return _make


@pytest.fixture()
def make_category(db_session: Session) -> Callable[..., Category]:
    def _make(parent: Category | None = None, **fields: Any) -> Category:
        n = next(_CATEGORY_COUNTER)
        category = Category(
            name=fields.pop("name", f"Category {n}"),
            slug=fields.pop("slug", f"category-{n}"),
            parent_category_id=parent.id if parent else None,
            **fields,
        )
        db_session.add(category)
        db_session.flush()
        return category

    return _make


@pytest.fixture()
def make_thread(db_session: Session, category: Category) -> Callable[..., Thread]:
    def _make(creator: User | None, status: ThreadStatus = ThreadStatus.OPEN, **fields: Any) -> Thread:
        now = utcnow()
        thread = Thread(
            title=fields.pop("title", "Looking for advice"),
            creator_id=creator.id if creator else None,
            category_id=fields.pop("category_id", category.id),
            status=status,
            created_at=now,
            updated_at=now,
            last_activity_at=now,
            **fields,
        )
        db_session.add(thread)
        db_session.flush()
        return thread

    return _make


@pytest.fixture()
def make_post(db_session: Session) -> Callable[..., Post]:
    """Insert a post row directly, bypassing the content events."""

    def _make(thread: Thread, author: User | None, content: str = "Thanks for sharing this", **fields: Any) -> Post:
        post = Post(
            thread_id=thread.id,
            author_id=author.id if author else None,
            content=content,
            word_count=count_words(content),
            **fields,
        )
        db_session.add(post)
        db_session.flush()
        return post

    return _make


@pytest.fixture()
def member(make_user: Callable[..., User]) -> User:
    """Regular forum member who authors content."""
    return make_user("alice")


@pytest.fixture()
def other_member(make_user: Callable[..., User]) -> User:
    return make_user("bob")


@pytest.fixture()
def moderator(make_user: Callable[..., User]) -> User:
    return make_user("mod", roles=["moderator"])


@pytest.fixture()
def admin(make_user: Callable[..., User]) -> User:
    return make_user("root", roles=["admin"])


@pytest.fixture()
def category(make_category: Callable[..., Category]) -> Category:
    return make_category()


@pytest.fixture()
def thread(make_thread: Callable[..., Thread], member: User) -> Thread:
    """Open thread started by ``member``."""
    return make_thread(member)


@pytest.fixture()
def post(make_post: Callable[..., Post], thread: Thread, member: User) -> Post:
    """Top-level post by ``member`` in ``thread``."""
    return make_post(thread, member)


# Services


@pytest.fixture()
def audit() -> AuditTrail:
    return AuditTrail()


@pytest.fixture()
def content_service() -> ContentService:
    return ContentService()


@pytest.fixture()
def report_service(audit: AuditTrail) -> ReportWorkflowService:
    return ReportWorkflowService(audit=audit)


@pytest.fixture()
def enforcement(audit: AuditTrail) -> EnforcementService:
    return EnforcementService(audit=audit, notifications=NotificationFanout())


# Gateway identity headers


@pytest.fixture()
def member_headers(member: User) -> dict[str, str]:
    return auth_headers(member)


@pytest.fixture()
def other_headers(other_member: User) -> dict[str, str]:
    return auth_headers(other_member)


@pytest.fixture()
def moderator_headers(moderator: User) -> dict[str, str]:
    return auth_headers(moderator)


@pytest.fixture()
def admin_headers(admin: User) -> dict[str, str]:
    return auth_headers(admin)
