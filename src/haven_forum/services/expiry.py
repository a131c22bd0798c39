# src/haven_forum/services/expiry.py
"""Periodic expiry of warnings and restrictions, and notification retention.

This module provides the ExpirySweeper, which deactivates time-bounded
warnings and restrictions once their expiry has passed and purges expired
notifications, and the ExpirySweepWorker that runs it on a fixed interval.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from haven_forum.core.errors import ForumCoreError
from haven_forum.core.settings import settings
from haven_forum.db.session import SessionLocal
from haven_forum.db.time import utcnow
from haven_forum.models import Notification, UserRestriction, UserWarning

logger = logging.getLogger(__name__)


@dataclass
class SweepResult:
    """Outcome of one sweep run."""

    started_at: datetime
    finished_at: datetime | None = None
    restrictions_expired: int = 0
    warnings_expired: int = 0
    notifications_purged: int = 0
    failed_batches: int = 0
    errors: list[str] = field(default_factory=list)


class ExpirySweeper:
    """Deactivates expired warnings and restrictions in keyset-ordered batches.

    The selection predicate (``is_active AND expires_at IS NOT NULL AND
    expires_at < now``) is repeated in every UPDATE, so a row already handled
    by an overlapping sweep is matched zero times. Each batch commits on its
    own; a failing batch is rolled back, logged and left for the next run.
    """

    def __init__(self, db_session: Session | None = None, batch_size: int | None = None) -> None:
        """Initialize the sweeper.

        Args:
            db_session: Optional database session. If None, opens a new session per run.
            batch_size: Rows per batch. Defaults to ``SWEEP_BATCH_SIZE``.
        """
        self._db_session = db_session
        self.batch_size = max(1, batch_size or settings.sweep_batch_size)

    def run(self, now: datetime | None = None) -> SweepResult:
        if self._db_session is not None:
            return self._run_with_session(self._db_session, now)
        with SessionLocal() as db:
            return self._run_with_session(db, now)

    def _run_with_session(self, db: Session, now: datetime | None) -> SweepResult:
        moment = now or utcnow()
        result = SweepResult(started_at=moment)

        result.restrictions_expired = self._expire(db, UserRestriction, moment, result)
        result.warnings_expired = self._expire(db, UserWarning, moment, result)
        result.notifications_purged = self._purge_notifications(db, moment, result)

        result.finished_at = utcnow()
        logger.info(
            "Expiry sweep: %d restriction(s), %d warning(s) expired, %d notification(s) purged, "
            "%d failed batch(es)",
            result.restrictions_expired,
            result.warnings_expired,
            result.notifications_purged,
            result.failed_batches,
        )
        return result

    def _batches(self, db: Session, model: Any, criteria: tuple[Any, ...], result: SweepResult):
        """Yield successive primary-key batches of rows matching ``criteria``.

        A failed scan ends the walk over this table only; the remaining
        tables are still swept.
        """
        label = model.__tablename__
        cursor: uuid.UUID | None = None
        while True:
            query = select(model.id).where(*criteria)
            if cursor is not None:
                query = query.where(model.id > cursor)
            try:
                ids = list(db.execute(query.order_by(model.id).limit(self.batch_size)).scalars())
            except SQLAlchemyError as err:
                db.rollback()
                result.failed_batches += 1
                result.errors.append(f"{label} scan: {err}")
                logger.error("Expiry sweep scan of %s failed; skipping table", label, exc_info=True)
                return
            if not ids:
                return
            cursor = ids[-1]
            yield ids
            if len(ids) < self.batch_size:
                return

    def _apply_batch(self, db: Session, statement: Any, label: str, result: SweepResult) -> int:
        try:
            affected = db.execute(
                statement,
                execution_options={"synchronize_session": "fetch"},
            ).rowcount or 0
            db.commit()
        except SQLAlchemyError as err:
            db.rollback()
            result.failed_batches += 1
            result.errors.append(f"{label}: {err}")
            logger.error("Expiry sweep batch on %s failed; skipping", label, exc_info=True)
            return 0
        return affected

    def _expire(self, db: Session, model: Any, now: datetime, result: SweepResult) -> int:
        criteria = (
            model.is_active.is_(True),
            model.expires_at.is_not(None),
            model.expires_at < now,
        )
        total = 0
        for ids in self._batches(db, model, criteria, result):
            statement = (
                update(model)
                .where(model.id.in_(ids), *criteria)
                .values(is_active=False)
            )
            total += self._apply_batch(db, statement, model.__tablename__, result)
        return total

    def _purge_notifications(self, db: Session, now: datetime, result: SweepResult) -> int:
        criteria = (Notification.expires_at < now,)
        total = 0
        for ids in self._batches(db, Notification, criteria, result):
            statement = delete(Notification).where(Notification.id.in_(ids), *criteria)
            total += self._apply_batch(db, statement, Notification.__tablename__, result)
        return total


class ExpirySweepWorker:
    """Runs the expiry sweeper on a fixed interval in a worker thread."""

    def __init__(
        self,
        sweeper: ExpirySweeper | None = None,
        interval_seconds: float | None = None,
        enabled: bool | None = None,
    ) -> None:
        self.sweeper = sweeper or ExpirySweeper()
        self.interval = max(
            0.01,
            float(interval_seconds if interval_seconds is not None else settings.sweep_interval_seconds),
        )
        self.enabled = settings.sweep_enabled if enabled is None else enabled
        self.last_result: SweepResult | None = None
        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start the background sweep loop."""
        if not self.enabled:
            logger.info("Expiry sweeps disabled")
            return

        if self._task is None or self._task.done():
            self._stopping.clear()
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Stop the background sweep loop."""
        if self._task is None:
            return

        self._stopping.set()
        await self._task
        self._task = None

    async def run_once(self) -> SweepResult:
        self.last_result = await asyncio.to_thread(self.sweeper.run)
        return self.last_result

    async def _run(self) -> None:
        while not self._stopping.is_set():
            try:
                await self.run_once()
            except (SQLAlchemyError, ForumCoreError) as e:
                # Nothing was left half-applied; the next run retries.
                logger.error("ExpirySweepWorker run failed: %s", e, exc_info=True)

            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                continue
