# src/haven_forum/main.py
"""Main entry point for the Haven forum core service."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError

from haven_forum.api.v1 import (
    moderation_router,
    notifications_router,
    reactions_router,
    reports_router,
    system_router,
)
from haven_forum.core.errors import (
    DuplicateReaction,
    DuplicateReport,
    EntityNotFound,
    ForumCoreError,
    InvalidTransition,
    InvariantViolation,
    PermissionDenied,
    ResourceUnavailable,
)
from haven_forum.core.logging import configure_logging
from haven_forum.core.settings import settings
from haven_forum.services.expiry import ExpirySweepWorker

logger = logging.getLogger(__name__)

# Most specific first; the first match wins.
ERROR_STATUS: tuple[tuple[type[ForumCoreError], int], ...] = (
    (EntityNotFound, status.HTTP_404_NOT_FOUND),
    (DuplicateReaction, status.HTTP_409_CONFLICT),
    (DuplicateReport, status.HTTP_409_CONFLICT),
    (InvalidTransition, status.HTTP_409_CONFLICT),
    (InvariantViolation, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (PermissionDenied, status.HTTP_403_FORBIDDEN),
    (ResourceUnavailable, status.HTTP_503_SERVICE_UNAVAILABLE),
)

# Initialize FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Consistency and moderation workflow core for a peer-support forum",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routers
app.include_router(reports_router, prefix="/api/v1")
app.include_router(reactions_router, prefix="/api/v1")
app.include_router(notifications_router, prefix="/api/v1")
app.include_router(moderation_router, prefix="/api/v1")
app.include_router(system_router, prefix="/api/v1")


def status_for(exc: ForumCoreError) -> int:
    for error_type, code in ERROR_STATUS:
        if isinstance(exc, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


@app.exception_handler(ForumCoreError)
async def forum_error_handler(request: Request, exc: ForumCoreError) -> JSONResponse:
    code = status_for(exc)
    if code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    body: dict[str, object] = {"detail": str(exc), "error": type(exc).__name__}
    if isinstance(exc, InvalidTransition):
        body["current"] = exc.current
        body["requested"] = exc.requested
    return JSONResponse(status_code=code, content=body)


@app.exception_handler(OperationalError)
async def storage_error_handler(request: Request, exc: OperationalError) -> JSONResponse:
    logger.error("%s %s hit a storage error: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Storage temporarily unavailable", "error": "ResourceUnavailable"},
    )


@app.on_event("startup")
async def on_startup() -> None:
    configure_logging()
    if settings.sweep_enabled:
        worker = ExpirySweepWorker()
        await worker.start()
        app.state.sweep_worker = worker
    else:
        app.state.sweep_worker = None


@app.on_event("shutdown")
async def on_shutdown() -> None:
    worker: ExpirySweepWorker | None = getattr(app.state, "sweep_worker", None)
    if worker:
        await worker.stop()


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("haven_forum.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
