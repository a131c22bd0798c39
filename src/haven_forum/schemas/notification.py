# src/haven_forum/schemas/notification.py
"""Notification-related Pydantic schemas."""

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict

from haven_forum.enums import NotificationType


class NotificationResponse(BaseModel):
    """Schema for notification information returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    notification_type: NotificationType
    title: str
    message: str
    action_url: str | None
    related_user_id: uuid.UUID | None
    related_post_id: uuid.UUID | None
    related_thread_id: uuid.UUID | None
    related_category_id: uuid.UUID | None
    sent_via: list[str]
    is_read: bool
    read_at: datetime | None
    is_batched: bool
    batch_count: int | None
    batch_metadata: dict[str, Any] | None
    created_at: datetime
    expires_at: datetime


class MarkAllReadResponse(BaseModel):
    updated: int
