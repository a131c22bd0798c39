# src/haven_forum/services/identity.py
"""Cache of identity-provider fields on ``User`` rows."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from haven_forum.core.errors import EntityNotFound
from haven_forum.db.time import utcnow
from haven_forum.models import User

logger = logging.getLogger(__name__)


class IdentityService:
    """Applies identity sync payloads. Never touches reputation or preferences."""

    @staticmethod
    def get_by_external_id(db: Session, external_id: str) -> User | None:
        return db.query(User).filter(User.external_id == external_id).first()

    def upsert_identity(
        self,
        db: Session,
        external_id: str,
        username: str,
        *,
        email: str | None = None,
        display_name: str | None = None,
        roles: Sequence[str] = (),
        groups: Sequence[str] = (),
    ) -> User:
        """Create the cached user or refresh its identity fields.

        Args:
            db: Database session
            external_id: Identity provider subject
            username: Login name
            email: Email address, if shared
            display_name: Public display name
            roles: Realm roles, e.g. ``["moderator"]``
            groups: Group memberships

        Returns:
            The created or refreshed user
        """
        fields = {
            "username": username,
            "email": email,
            "display_name": display_name,
            "roles": sorted(set(roles)),
            "groups": sorted(set(groups)),
            "last_synced_at": utcnow(),
        }

        user = self.get_by_external_id(db, external_id)
        if user is None:
            try:
                with db.begin_nested():
                    user = User(external_id=external_id, **fields)
                    db.add(user)
                logger.info("Cached new identity %s", external_id)
                return user
            except IntegrityError:
                # Another sync inserted it first; fall through to refresh.
                user = self.get_by_external_id(db, external_id)
                if user is None:
                    raise

        for name, value in fields.items():
            setattr(user, name, value)
        return user

    @staticmethod
    def request_account_deletion(db: Session, user_id: uuid.UUID) -> User:
        """Mark an account for deletion; it stops earning reputation and notifications."""
        user = db.get(User, user_id)
        if user is None:
            raise EntityNotFound("User", user_id)
        db.execute(
            update(User)
            .where(User.id == user_id, User.account_deletion_requested_at.is_(None))
            .values(account_deletion_requested_at=utcnow())
        )
        return user
