# src/haven_forum/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .moderation import router as moderation_router
from .notifications import router as notifications_router
from .reactions import router as reactions_router
from .reports import router as reports_router
from .system import router as system_router

__all__ = [
    "moderation_router",
    "notifications_router",
    "reactions_router",
    "reports_router",
    "system_router",
]
