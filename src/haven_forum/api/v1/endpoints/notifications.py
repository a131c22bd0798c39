# src/haven_forum/api/v1/endpoints/notifications.py
"""Notification read-state and preference endpoints."""

from __future__ import annotations

import uuid
from typing import Any

from fastapi import APIRouter, Query, status

from haven_forum.api.v1.dependencies import CurrentUserDep, SessionDep
from haven_forum.models import Notification
from haven_forum.schemas.notification import MarkAllReadResponse, NotificationResponse
from haven_forum.schemas.preferences import NotificationPreferences
from haven_forum.services.notifications import NotificationFanout

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=list[NotificationResponse])
async def list_notifications(
    current_user: CurrentUserDep,
    db: SessionDep,
    unread_only: bool = Query(False),
    limit: int = Query(50, ge=1, le=200),
) -> list[Notification]:
    """List the caller's notifications, newest first."""
    return NotificationFanout.list_for(db, current_user.id, unread_only=unread_only, limit=limit)


@router.post("/{notification_id}/read", status_code=status.HTTP_200_OK)
async def mark_read(
    notification_id: uuid.UUID,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> dict[str, bool]:
    changed = NotificationFanout.mark_read(db, current_user.id, notification_id)
    db.commit()
    return {"updated": changed}


@router.post("/read-all", response_model=MarkAllReadResponse)
async def mark_all_read(current_user: CurrentUserDep, db: SessionDep) -> dict[str, int]:
    updated = NotificationFanout.mark_all_read(db, current_user.id)
    db.commit()
    return {"updated": updated}


@router.get("/preferences", response_model=NotificationPreferences)
async def get_preferences(current_user: CurrentUserDep) -> NotificationPreferences:
    return current_user.preferences


@router.put("/preferences", response_model=NotificationPreferences)
async def update_preferences(
    payload: dict[str, Any],
    current_user: CurrentUserDep,
    db: SessionDep,
) -> NotificationPreferences:
    """Replace the caller's notification preferences; unknown keys are rejected."""
    preferences = NotificationFanout.update_preferences(db, current_user.id, payload)
    db.commit()
    return preferences
