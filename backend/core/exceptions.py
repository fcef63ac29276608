"""
Exception taxonomy and handlers for consistent API error responses.

Every domain error derives from APIError and is rendered as
{"detail", "error_code", "path"}.
"""

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from typing import Any, Dict, Optional
import logging

logger = logging.getLogger(__name__)


class APIError(HTTPException):
    """Base API error with consistent structure"""

    def __init__(
        self,
        status_code: int,
        detail: str,
        error_code: Optional[str] = None,
        headers: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.error_code = error_code

    def __str__(self) -> str:
        return str(self.detail)


class NotFoundError(APIError):
    """Referenced record does not exist"""

    def __init__(
        self, detail: str = "Resource not found", error_code: str = "NOT_FOUND"
    ):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND, detail=detail, error_code=error_code
        )


class ValidationError(APIError):
    """Validation error"""

    def __init__(
        self, detail: str = "Validation failed", error_code: str = "VALIDATION_ERROR"
    ):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            error_code=error_code,
        )


class InvalidGeometryError(ValidationError):
    """Item dimensions or coordinates out of range; raised before any write"""

    def __init__(self, detail: str = "Invalid geometry"):
        super().__init__(detail=detail, error_code="INVALID_GEOMETRY")


class InvalidTargetError(ValidationError):
    """Clone target is the source's own scope"""

    def __init__(self, detail: str = "Invalid clone target"):
        super().__init__(detail=detail, error_code="INVALID_TARGET")


class EditSessionError(ValidationError):
    """Edit session call made in a state that does not allow it"""

    def __init__(self, detail: str = "Invalid edit session state"):
        super().__init__(detail=detail, error_code="EDIT_SESSION_STATE")


class ConflictError(APIError):
    """Resource conflict error"""

    def __init__(self, detail: str = "Resource conflict", error_code: str = "CONFLICT"):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT, detail=detail, error_code=error_code
        )


class ExclusivityConflictError(ConflictError):
    """Default status for a scope could not be made exclusive"""

    def __init__(self, scope_key: str, detail: Optional[str] = None):
        super().__init__(
            detail=detail or f"Scope '{scope_key}' has more than one default layout",
            error_code="EXCLUSIVITY_CONFLICT",
        )
        self.scope_key = scope_key


class StoreUnavailableError(APIError):
    """The record store could not be reached or failed mid-operation"""

    def __init__(
        self,
        detail: str = "Record store unavailable",
        error_code: str = "STORE_UNAVAILABLE",
    ):
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=detail,
            error_code=error_code,
        )


async def handle_value_error(request: Request, exc: ValueError) -> JSONResponse:
    """Convert ValueError to consistent API response"""
    logger.warning(f"ValueError at {request.url.path}: {str(exc)}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "detail": str(exc),
            "error_code": "VALIDATION_ERROR",
            "path": str(request.url.path),
        },
    )


async def handle_api_error(request: Request, exc: APIError) -> JSONResponse:
    """Handle custom API errors"""
    if exc.status_code >= 500:
        logger.error(f"{exc.error_code} at {request.url.path}: {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "detail": exc.detail,
            "error_code": exc.error_code,
            "path": str(request.url.path),
        },
        headers=exc.headers,
    )


def register_exception_handlers(app):
    """Register all exception handlers with the FastAPI app"""
    app.add_exception_handler(ValueError, handle_value_error)
    app.add_exception_handler(APIError, handle_api_error)
