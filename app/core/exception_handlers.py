"""Global exception handlers for consistent error responses.

This module provides FastAPI exception handlers that intercept all errors
(domain and unexpected) and return consistent JSON responses with proper
HTTP status codes and traceability.

Design:
- AppError subclasses → appropriate HTTP status (403, 404, 409, 422, 429)
- RequestValidationError (malformed body) → 422 with the same envelope
- Unexpected Exception → generic 500 (safety net)
- All responses include request_id for distributed tracing
"""

import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.errors import (
    AppError,
    AuthorizationAppError,
    ConflictAppError,
    NotFoundAppError,
    RateLimitAppError,
    ValidationAppError,
)
from app.core.logging import get_request_id

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: tuple[tuple[type[AppError], int], ...] = (
    (RateLimitAppError, 429),
    (AuthorizationAppError, 403),
    (ValidationAppError, 422),
    (NotFoundAppError, 404),
    (ConflictAppError, 409),
)


def status_for_error(exc: AppError) -> int:
    """Map a domain error to its HTTP status code (400 for unknown subclasses)."""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 400


def _rate_limit_headers(exc: RateLimitAppError) -> dict[str, str]:
    details = exc.details or {}
    headers = {"Retry-After": str(details.get("retry_after", 0))}
    if settings.app.rate_limit_include_headers:
        headers["X-RateLimit-Limit"] = str(details.get("limit", 0))
        headers["X-RateLimit-Remaining"] = str(details.get("remaining", 0))
        headers["X-RateLimit-Reset"] = str(details.get("reset_at", 0))
    return headers


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle domain application errors with consistent JSON format.

    Routes domain errors to appropriate HTTP status codes:
    - RateLimitAppError → 429 Too Many Requests (+ Retry-After header)
    - AuthorizationAppError → 403 Forbidden
    - ValidationAppError → 422 Unprocessable Entity (per-field errors)
    - NotFoundAppError → 404 Not Found
    - ConflictAppError → 409 Conflict

    All responses include:
    - error.code: Machine-readable error code
    - error.message: Human-readable message
    - error.request_id: For distributed tracing
    - error.details: Optional structured context

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        JSONResponse with appropriate status code and error details.
    """
    status_code = status_for_error(exc)

    logger.warning(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "has_details": bool(exc.details),
            "request_path": request.url.path,
            "request_id": get_request_id(),
        }
    )

    error_content = {
        "code": exc.code,
        "message": exc.message,
        "request_id": get_request_id(),
    }

    # Include details only if present (optional structured context)
    if exc.details:
        error_content["details"] = exc.details

    headers = _rate_limit_headers(exc) if isinstance(exc, RateLimitAppError) else None

    return JSONResponse(
        status_code=status_code,
        content={"error": error_content},
        headers=headers,
    )


def _field_path(loc: tuple) -> str:
    # Drop the leading "body" segment FastAPI adds to request-body locations.
    parts = [str(part) for part in loc]
    if parts and parts[0] == "body":
        parts = parts[1:]
    return ".".join(parts) or "body"


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Translate FastAPI request validation errors into the 422 envelope."""
    fields: dict[str, list[str]] = {}
    for error in exc.errors():
        fields.setdefault(_field_path(tuple(error.get("loc", ()))), []).append(
            str(error.get("msg", "Invalid value."))
        )

    return await app_error_handler(
        request,
        ValidationAppError(
            code="validation_failed",
            message="The given data was invalid.",
            details={"fields": fields},
        ),
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors (safety net).

    Catches any exception not handled by specific handlers.
    Logs detailed information for debugging while returning generic message.
    Prevents information leakage (no stack traces to client).

    Args:
        request: FastAPI request object.
        exc: Exception instance (unexpected).

    Returns:
        JSONResponse with generic error (no implementation details leaked).
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
            "request_id": get_request_id(),
        }
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "internal_server_error",
                "message": "An unexpected error occurred. Please try again later.",
                "request_id": get_request_id(),
            }
        },
    )


def setup_exception_handlers(app) -> None:
    """Register all exception handlers with FastAPI app.

    Must be called during app initialization, before route registration.
    Order matters: specific handlers registered before general fallback.

    Args:
        app: FastAPI application instance.

    Example:
        >>> from fastapi import FastAPI
        >>> from app.core.exception_handlers import setup_exception_handlers
        >>> app = FastAPI()
        >>> setup_exception_handlers(app)
        >>> # Now all errors are handled consistently
    """
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(RequestValidationError)(request_validation_handler)
    app.exception_handler(Exception)(general_exception_handler)
