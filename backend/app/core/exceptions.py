"""
Custom exceptions and error handlers for consistent error responses.

Every failure leaves the API as {"success": false, "message", "error_code", "details"}.
"""

import logging
from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from typing import Any, Dict

logger = logging.getLogger(__name__)


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, error_code: str, status_code: int = 500, details: Dict[str, Any] = None):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class InputValidationError(AppException):
    """Raised when an input is malformed or out of range."""

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_VALIDATION_001",
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details
        )


class ResourceNotFoundError(AppException):
    """Raised when requested resource is not found."""

    def __init__(self, resource: str, resource_id: Any = None):
        message = f"{resource} not found"
        if resource_id:
            message = f"{resource} with ID {resource_id} not found"
        super().__init__(
            message=message,
            error_code="ERR_NOT_FOUND_001",
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource": resource, "id": resource_id}
        )


class ConflictError(AppException):
    """Raised when a write would break a uniqueness invariant."""

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_CONFLICT_001",
            status_code=status.HTTP_409_CONFLICT,
            details=details
        )


class ServiceUnavailableError(AppException):
    """Raised when the storage layer cannot be reached or timed out."""

    def __init__(self, message: str = "Storage backend unavailable"):
        super().__init__(
            message=message,
            error_code="ERR_UNAVAILABLE_001",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE
        )


def _error_body(message: str, error_code: str, details: Dict[str, Any] = None) -> Dict[str, Any]:
    return {
        "success": False,
        "message": message,
        "error_code": error_code,
        "details": details or {}
    }


# Global Exception Handlers

async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handler for custom application exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content=jsonable_encoder(_error_body(exc.message, exc.error_code, exc.details))
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handler for FastAPI HTTPException with standardized format."""
    # Map status code to error code
    error_code_map = {
        400: "ERR_BAD_REQUEST",
        401: "ERR_UNAUTHORIZED",
        403: "ERR_FORBIDDEN",
        404: "ERR_NOT_FOUND",
        405: "ERR_METHOD_NOT_ALLOWED",
        409: "ERR_CONFLICT",
        500: "ERR_INTERNAL_SERVER",
        503: "ERR_UNAVAILABLE"
    }

    error_code = error_code_map.get(exc.status_code, "ERR_UNKNOWN")

    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(str(exc.detail), error_code),
        headers=getattr(exc, "headers", None)
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handler for Pydantic validation errors. Malformed bodies are a 400, same as domain checks."""
    errors = exc.errors()
    message = "Validation error"
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "path", "query"))
        message = f"{field}: {first.get('msg')}" if field else first.get("msg", message)

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=jsonable_encoder(_error_body(message, "ERR_VALIDATION", {"errors": errors}))
    )


async def storage_unavailable_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handler for database connectivity failures and timeouts."""
    logger.error("Storage unavailable: %s: %s", type(exc).__name__, exc)
    unavailable = ServiceUnavailableError()
    return JSONResponse(
        status_code=unavailable.status_code,
        content=_error_body(unavailable.message, unavailable.error_code)
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handler for unhandled exceptions."""
    logger.exception("Unhandled exception: %s", type(exc).__name__)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body("An internal server error occurred", "ERR_INTERNAL_SERVER")
    )
