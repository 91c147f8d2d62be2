"""
Domain error taxonomy.

Every error raised by the core services derives from AppError and carries the
HTTP status the API layer answers with. None of them should crash the process.
"""

from typing import Optional

from fastapi import status


class AppError(Exception):
    """Base class for recoverable application errors."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    default_message: str = "Request failed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AppError):
    """Malformed or missing input."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid input"


class DuplicateError(AppError):
    """Unique constraint violation, e.g. an email that is already registered."""

    status_code = status.HTTP_409_CONFLICT
    default_message = "Resource already exists"


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class UnauthorizedError(AppError):
    """Missing, invalid or expired credentials."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Could not validate credentials"


class ForbiddenError(AppError):
    """Authenticated but not permitted."""

    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Access denied"


class InvalidStateError(AppError):
    """A referral transition attempted from a state that disallows it."""

    status_code = status.HTTP_409_CONFLICT
    default_message = "Invalid state transition"


class InvalidTokenError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid or expired token"


class ExpiredTokenError(InvalidTokenError):
    default_message = "Token has expired"


class TenancyError(AppError):
    """Cross-college operation attempted."""

    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Cross-college access is not allowed"


class StorageUnavailableError(AppError):
    """Transient storage failure; safe for the caller to retry with backoff."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Storage temporarily unavailable"
