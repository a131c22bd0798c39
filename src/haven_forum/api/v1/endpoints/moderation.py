# src/haven_forum/api/v1/endpoints/moderation.py
"""Warning and restriction endpoints."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, status

from haven_forum.api.v1.dependencies import CurrentUserDep, ModeratorTierDep, SessionDep
from haven_forum.models import UserRestriction, UserWarning
from haven_forum.schemas.moderation import (
    LiftRequest,
    RestrictionCreate,
    RestrictionResponse,
    WarningCountsResponse,
    WarningCreate,
    WarningResponse,
)
from haven_forum.services.enforcement import EnforcementService

router = APIRouter(prefix="/moderation", tags=["moderation"])
enforcement_service = EnforcementService()


@router.post("/warnings", response_model=WarningResponse, status_code=status.HTTP_201_CREATED)
async def issue_warning(
    payload: WarningCreate,
    current_user: CurrentUserDep,
    _tier: ModeratorTierDep,
    db: SessionDep,
) -> UserWarning:
    warning = enforcement_service.issue_warning(
        db,
        current_user.id,
        payload.user_id,
        payload.warning_type,
        payload.warning_text,
        expires_at=payload.expires_at,
        related_post_id=payload.related_post_id,
        related_thread_id=payload.related_thread_id,
        related_report_id=payload.related_report_id,
    )
    db.commit()
    db.refresh(warning)
    return warning


@router.post("/warnings/{warning_id}/acknowledge", response_model=WarningResponse)
async def acknowledge_warning(
    warning_id: uuid.UUID,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> UserWarning:
    """Acknowledge a warning addressed to the caller."""
    warning = enforcement_service.acknowledge_warning(db, current_user.id, warning_id)
    db.commit()
    db.refresh(warning)
    return warning


@router.post("/warnings/{warning_id}/lift", response_model=WarningResponse)
async def lift_warning(
    warning_id: uuid.UUID,
    payload: LiftRequest,
    current_user: CurrentUserDep,
    _tier: ModeratorTierDep,
    db: SessionDep,
) -> UserWarning:
    warning = enforcement_service.lift_warning(db, current_user.id, warning_id, payload.reason)
    db.commit()
    db.refresh(warning)
    return warning


@router.post(
    "/restrictions",
    response_model=RestrictionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def impose_restriction(
    payload: RestrictionCreate,
    current_user: CurrentUserDep,
    _tier: ModeratorTierDep,
    db: SessionDep,
) -> UserRestriction:
    restriction = enforcement_service.impose_restriction(
        db,
        current_user.id,
        payload.user_id,
        payload.restriction_type,
        payload.reason,
        expires_at=payload.expires_at,
        category_id=payload.category_id,
        related_report_id=payload.related_report_id,
    )
    db.commit()
    db.refresh(restriction)
    return restriction


@router.post("/restrictions/{restriction_id}/lift", response_model=RestrictionResponse)
async def lift_restriction(
    restriction_id: uuid.UUID,
    payload: LiftRequest,
    current_user: CurrentUserDep,
    _tier: ModeratorTierDep,
    db: SessionDep,
) -> UserRestriction:
    restriction = enforcement_service.lift_restriction(
        db, current_user.id, restriction_id, payload.reason
    )
    db.commit()
    db.refresh(restriction)
    return restriction


@router.get("/users/{user_id}/restrictions", response_model=list[RestrictionResponse])
async def active_restrictions(
    user_id: uuid.UUID,
    _tier: ModeratorTierDep,
    db: SessionDep,
) -> list[UserRestriction]:
    """Restrictions currently in force for a user."""
    return enforcement_service.active_restrictions(db, user_id).restrictions


@router.get("/users/{user_id}/warning-counts", response_model=WarningCountsResponse)
async def warning_counts(
    user_id: uuid.UUID,
    _tier: ModeratorTierDep,
    db: SessionDep,
) -> dict[str, int]:
    counts = enforcement_service.warning_counts(db, user_id)
    return {
        "informal": counts.informal,
        "formal": counts.formal,
        "final": counts.final,
        "policy_violation": counts.policy_violation,
        "total": counts.total,
    }
