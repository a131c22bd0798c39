# src/haven_forum/api/v1/dependencies.py
"""Shared API dependencies for caller identity and common functionality."""

from typing import Annotated

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from haven_forum.db.session import get_db
from haven_forum.models import User
from haven_forum.reference import REFERENCE_DATA, ModerationTier

# Header set by the authenticating gateway in front of this service.
FORUM_USER_HEADER = "X-Forum-User"

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def get_current_user(
    db: SessionDep,
    x_forum_user: Annotated[str | None, Header(alias=FORUM_USER_HEADER)] = None,
) -> User:
    """Resolve the acting user from the gateway's identity header.

    Args:
        db: Database session
        x_forum_user: External identity subject forwarded by the gateway

    Returns:
        The cached user for that subject

    Raises:
        HTTPException: If the header is missing or the identity is unknown
    """
    if not x_forum_user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Missing {FORUM_USER_HEADER} header",
        )
    user = db.query(User).filter(User.external_id == x_forum_user).first()
    if user is None or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unknown user",
        )
    return user


CurrentUserDep = Annotated[User, Depends(get_current_user)]


def get_moderator_tier(current_user: CurrentUserDep) -> ModerationTier:
    """Require the caller to hold a moderation tier."""
    tier = REFERENCE_DATA.tier_for_roles(current_user.roles or ())
    if tier is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Moderator role required",
        )
    return tier


ModeratorTierDep = Annotated[ModerationTier, Depends(get_moderator_tier)]
