# src/haven_forum/db/guards.py
"""Flush-time checks for invariants that span more than one row.

The listeners are registered on the ``Session`` class so every session,
including the ones built by tests and the sweeper, is covered.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import event, inspect
from sqlalchemy.orm import ORMExecuteState, Session

from haven_forum.core.errors import InvariantViolation
from haven_forum.enums import ReportTargetType

_TARGET_COLUMNS = {
    ReportTargetType.THREAD: "thread_id",
    ReportTargetType.POST: "post_id",
    ReportTargetType.USER: "reported_user_id",
}


def _changed(obj: Any, attribute: str) -> bool:
    state = inspect(obj)
    if state.pending or state.transient:
        return True
    return state.attrs[attribute].history.has_changes()


def check_report_target(report: Any) -> None:
    """Require exactly one non-null target column, matching ``target_type``."""
    populated = [
        column for column in _TARGET_COLUMNS.values() if getattr(report, column) is not None
    ]
    expected = _TARGET_COLUMNS.get(report.target_type)
    if len(populated) != 1 or populated[0] != expected:
        raise InvariantViolation(
            f"Report must reference exactly one {report.target_type} target, got {populated or 'none'}"
        )


def _check_post_parent(session: Session, post: Any) -> None:
    from haven_forum.models import Post

    if post.parent_post_id is None or not _changed(post, "parent_post_id"):
        return
    if post.parent_post_id == post.id:
        raise InvariantViolation("A post cannot be its own parent")
    parent = session.get(Post, post.parent_post_id)
    if parent is None:
        raise InvariantViolation(f"Parent post {post.parent_post_id} does not exist")
    if parent.parent_post_id is not None:
        raise InvariantViolation("Replies may only nest one level deep")
    if parent.thread_id != post.thread_id:
        raise InvariantViolation("A reply must belong to the same thread as its parent")


def _check_category_parent(session: Session, category: Any) -> None:
    from haven_forum.models import Category

    if category.parent_category_id is None or not _changed(category, "parent_category_id"):
        return
    if category.parent_category_id == category.id:
        raise InvariantViolation("A category cannot be its own parent")
    parent = session.get(Category, category.parent_category_id)
    if parent is None:
        raise InvariantViolation(f"Parent category {category.parent_category_id} does not exist")
    if parent.parent_category_id is not None:
        raise InvariantViolation("Categories support a single level of nesting")


@event.listens_for(Session, "before_flush")
def enforce_flush_invariants(session: Session, flush_context: Any, instances: Any) -> None:
    from haven_forum.models import AUDIT_MODELS, Category, ContentReport, Post

    for obj in session.deleted:
        if isinstance(obj, AUDIT_MODELS):
            raise InvariantViolation(f"{type(obj).__name__} rows are append-only")

    with session.no_autoflush:
        for obj in session.dirty:
            if isinstance(obj, AUDIT_MODELS) and session.is_modified(obj):
                raise InvariantViolation(f"{type(obj).__name__} rows are append-only")

        for obj in list(session.new) + list(session.dirty):
            if isinstance(obj, Post):
                _check_post_parent(session, obj)
            elif isinstance(obj, Category):
                _check_category_parent(session, obj)
            elif isinstance(obj, ContentReport):
                check_report_target(obj)


@event.listens_for(Session, "do_orm_execute")
def reject_bulk_audit_mutation(state: ORMExecuteState) -> None:
    from haven_forum.models import AUDIT_MODELS

    if not (state.is_update or state.is_delete):
        return
    mapper = state.bind_mapper
    if mapper is not None and issubclass(mapper.class_, AUDIT_MODELS):
        raise InvariantViolation(f"{mapper.class_.__name__} rows are append-only")
