"""Error taxonomy shared by validation, repositories and the HTTP layer."""

from __future__ import annotations

from typing import Any

from shared.models import ErrorCode


class AppError(Exception):
    """Base error carrying the HTTP status and stable code for the envelope."""

    status_code = 500
    code: ErrorCode | None = None

    def __init__(self, message: str, *, details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(AppError):
    """Malformed or out-of-range client input.

    `details` enumerates every failing field as ``{"field": ..., "message": ...}``.
    """

    status_code = 400
    code = ErrorCode.VALIDATION_ERROR

    def __init__(self, message: str = "Validation error", *, details: list[dict[str, str]] | None = None) -> None:
        super().__init__(message, details=details or [])


class NotFoundError(AppError):
    status_code = 404
    code = ErrorCode.NOT_FOUND


class DatabaseError(AppError):
    """The datastore was unreachable or rejected the operation."""

    status_code = 503
    code = ErrorCode.DATABASE_ERROR


class RateLimitError(AppError):
    status_code = 429
    code = ErrorCode.RATE_LIMIT_EXCEEDED

    def __init__(self, message: str = "Too many requests", *, details: Any = None) -> None:
        super().__init__(message, details=details)
