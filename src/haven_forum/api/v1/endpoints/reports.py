# src/haven_forum/api/v1/endpoints/reports.py
"""Content report endpoints."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, HTTPException, status

from haven_forum.api.v1.dependencies import CurrentUserDep, ModeratorTierDep, SessionDep
from haven_forum.models import ContentReport, ReportHistoryEntry, UserReportHistory
from haven_forum.schemas.report import (
    ReportAssign,
    ReportCreate,
    ReporterStatsResponse,
    ReportHistoryResponse,
    ReportResolve,
    ReportResponse,
    ReportReview,
    ReportSeverityUpdate,
)
from haven_forum.services.reports import ReportWorkflowService

router = APIRouter(prefix="/reports", tags=["reports"])
report_service = ReportWorkflowService()


@router.post("", response_model=ReportResponse, status_code=status.HTTP_201_CREATED)
async def create_report(
    payload: ReportCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> ContentReport:
    """File a report against a thread, post or user."""
    report = report_service.create_report(
        db,
        current_user.id,
        payload.target_type,
        payload.target_id,
        template_key=payload.template_key,
        category=payload.report_category,
        reason=payload.reason,
        severity=payload.severity,
        details=payload.details,
        is_anonymous=payload.is_anonymous,
    )
    db.commit()
    db.refresh(report)
    return report


@router.post("/{report_id}/assign", response_model=ReportResponse)
async def assign_report(
    report_id: uuid.UUID,
    payload: ReportAssign,
    current_user: CurrentUserDep,
    _tier: ModeratorTierDep,
    db: SessionDep,
) -> ContentReport:
    report = report_service.assign(db, report_id, payload.moderator_id, acted_by=current_user.id)
    db.commit()
    db.refresh(report)
    return report


@router.post("/{report_id}/review", response_model=ReportResponse)
async def start_review(
    report_id: uuid.UUID,
    payload: ReportReview,
    current_user: CurrentUserDep,
    _tier: ModeratorTierDep,
    db: SessionDep,
) -> ContentReport:
    report = report_service.start_review(db, report_id, acted_by=current_user.id, notes=payload.notes)
    db.commit()
    db.refresh(report)
    return report


@router.post("/{report_id}/resolve", response_model=ReportResponse)
async def resolve_report(
    report_id: uuid.UUID,
    payload: ReportResolve,
    current_user: CurrentUserDep,
    _tier: ModeratorTierDep,
    db: SessionDep,
) -> ContentReport:
    report = report_service.resolve(
        db,
        report_id,
        payload.outcome,
        acted_by=current_user.id,
        action_taken=payload.action_taken,
        resolution_notes=payload.resolution_notes,
    )
    db.commit()
    db.refresh(report)
    return report


@router.post("/{report_id}/escalate", response_model=ReportResponse)
async def escalate_report(
    report_id: uuid.UUID,
    payload: ReportReview,
    current_user: CurrentUserDep,
    _tier: ModeratorTierDep,
    db: SessionDep,
) -> ContentReport:
    report = report_service.escalate(db, report_id, acted_by=current_user.id, notes=payload.notes)
    db.commit()
    db.refresh(report)
    return report


@router.patch("/{report_id}/severity", response_model=ReportResponse)
async def change_severity(
    report_id: uuid.UUID,
    payload: ReportSeverityUpdate,
    current_user: CurrentUserDep,
    _tier: ModeratorTierDep,
    db: SessionDep,
) -> ContentReport:
    report = report_service.change_severity(db, report_id, payload.severity, acted_by=current_user.id)
    db.commit()
    db.refresh(report)
    return report


@router.get("/{report_id}/history", response_model=list[ReportHistoryResponse])
async def report_history(
    report_id: uuid.UUID,
    _tier: ModeratorTierDep,
    db: SessionDep,
) -> list[ReportHistoryEntry]:
    """Return the audit trail of a report, oldest first."""
    return report_service.history(db, report_id)


@router.get("/reporters/{user_id}", response_model=ReporterStatsResponse)
async def reporter_stats(
    user_id: uuid.UUID,
    _tier: ModeratorTierDep,
    db: SessionDep,
) -> UserReportHistory:
    history = report_service.reporter_history(db, user_id)
    if history is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No reports filed by this user",
        )
    return history
