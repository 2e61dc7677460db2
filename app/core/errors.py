"""Application-level exception types.

This module defines domain errors raised by the limiter, authorizer,
validator and repository, enabling consistent error handling, logging, and
API responses. Each error is translated to an HTTP status exactly once, in
``app.core.exception_handlers``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Fields are optional to keep backward compatibility while encouraging
    consistent shapes across the codebase.
    """

    hint: str
    policy: str
    limit: int
    remaining: int
    reset_at: int
    retry_after: int
    capability: str
    capabilities: list[str]
    entity: str
    key: str
    field: str
    fields: dict[str, list[str]]
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when request input fails validation (per-field errors in details)."""


class AuthorizationAppError(AppError):
    """Raised when the resolved identity lacks a required capability."""


class RateLimitAppError(AppError):
    """Raised when a rate limit policy rejects the request."""


class NotFoundAppError(AppError):
    """Raised when a requested record does not exist."""


class ConflictAppError(AppError):
    """Raised when a write violates a storage-level unique constraint."""
