# src/haven_forum/api/v1/endpoints/system.py
"""Operational endpoints."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, status

from haven_forum.api.v1.dependencies import ModeratorTierDep, SessionDep
from haven_forum.core.settings import settings
from haven_forum.schemas.moderation import SweepResponse
from haven_forum.services.expiry import ExpirySweeper, SweepResult

router = APIRouter(prefix="/system", tags=["system"])


@router.get("/config")
async def get_public_config() -> dict[str, object]:
    """Return a sanitized snapshot of runtime configuration.

    Excludes connection strings; suitable for operator dashboards.
    """
    return {
        "app": {"name": settings.app_name, "version": settings.app_version},
        "sweeps": {
            "enabled": settings.sweep_enabled,
            "interval_seconds": settings.sweep_interval_seconds,
            "batch_size": settings.sweep_batch_size,
        },
        "notifications": {
            "ttl_days": settings.notification_ttl_days,
            "reaction_batch_window_minutes": settings.reaction_batch_window_minutes,
        },
    }


@router.post("/sweep", response_model=SweepResponse)
async def run_sweep(tier: ModeratorTierDep, db: SessionDep) -> SweepResult:
    """Run the expiry sweep immediately instead of waiting for the next interval."""
    if tier.name != "admin":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin role required",
        )
    return ExpirySweeper(db_session=db).run()
