# src/haven_forum/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import (
    moderation_router,
    notifications_router,
    reactions_router,
    reports_router,
    system_router,
)

__all__ = [
    "moderation_router",
    "notifications_router",
    "reactions_router",
    "reports_router",
    "system_router",
]
