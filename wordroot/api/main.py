"""
WordRoot API - FastAPI Application
==================================
REST surface over the naming service.

Features:
- Field name suggestion and field registry
- Word-root dictionary management
- Notification tasks (unread count, read marking, resolution)
- Settings management
"""

import logging
import os
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ..errors import (
    DuplicateAbbreviation,
    DuplicateFieldName,
    InvalidTaskState,
    NamingError,
    NotFound,
    PartialMatchApproval,
    RootInUse,
    StorageUnavailable,
)
from ..naming import NamingService
from .deps import get_service
from .routers import fields, roots, settings, tasks

logger = logging.getLogger(__name__)

# (status, code) per domain error; checked in order, so subclasses first
ERROR_RESPONSES = [
    (NotFound, 404, "NOT_FOUND"),
    (DuplicateAbbreviation, 409, "DUPLICATE_ABBREVIATION"),
    (DuplicateFieldName, 409, "DUPLICATE_FIELD_NAME"),
    (RootInUse, 409, "ROOT_IN_USE"),
    (InvalidTaskState, 409, "INVALID_TASK_STATE"),
    (PartialMatchApproval, 409, "PARTIAL_MATCH_APPROVAL"),
    (StorageUnavailable, 503, "STORAGE_UNAVAILABLE"),
]


def configure_logging():
    """Configure root logging from WORDROOT_LOG_LEVEL (default INFO)."""
    level = os.getenv("WORDROOT_LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _error_response(request: Request, status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "error": {
                "code": code,
                "message": message,
            },
            "meta": {
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "path": str(request.url),
            },
        },
    )


async def naming_error_handler(request: Request, exc: NamingError):
    """Map domain errors to HTTP status codes."""
    for error_type, status_code, code in ERROR_RESPONSES:
        if isinstance(exc, error_type):
            if status_code >= 500:
                logger.error(f"{code} on {request.url.path}: {exc}")
            return _error_response(request, status_code, code, str(exc))
    return _error_response(request, 400, "NAMING_ERROR", str(exc))


async def value_error_handler(request: Request, exc: ValueError):
    """Invalid input that passed request validation (blank description, bad setting)."""
    return _error_response(request, 400, "INVALID_INPUT", str(exc))


def create_app(service: Optional[NamingService] = None) -> FastAPI:
    """
    Build the application.

    Args:
        service: Naming service to serve; defaults to the global singleton.
    """
    configure_logging()

    app = FastAPI(
        title="WordRoot API",
        description="Standardized database field naming from Chinese descriptions",
        version="1.0.0",
    )

    if service is not None:
        app.dependency_overrides[get_service] = lambda: service

    app.include_router(fields.router, prefix="/api")
    app.include_router(roots.router, prefix="/api/roots", tags=["Roots"])
    app.include_router(tasks.router, prefix="/api/tasks", tags=["Tasks"])
    app.include_router(settings.router, prefix="/api/settings", tags=["Settings"])

    app.add_exception_handler(NamingError, naming_error_handler)
    app.add_exception_handler(ValueError, value_error_handler)

    @app.get("/health", tags=["Root"])
    def health():
        """Simple health check endpoint."""
        return {"status": "healthy", "service": "wordroot-api"}

    return app


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "wordroot.api.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=int(os.getenv("API_PORT", 8000)),
    )
