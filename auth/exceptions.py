"""Typed exceptions for request failures.

Each error carries its HTTP status and machine-readable code from the point
where it is raised. The API layer only reads these fields; it never guesses
a status from the message text.
"""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class ErrorRecord:
    """Normalized error description handed to the error translator."""

    kind: str
    code: str
    message: str
    status_code: int
    details: Any | None = None


class AppError(Exception):
    """Base class for all expected application errors."""

    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str, details: Any | None = None):
        self.message = message
        self.details = details
        super().__init__(message)

    def to_record(self) -> ErrorRecord:
        return ErrorRecord(
            kind=type(self).__name__,
            code=self.code,
            message=self.message,
            status_code=self.status_code,
            details=self.details,
        )


class ValidationError(AppError):
    """Malformed or weak input (bad email, weak password, bad body)."""

    status_code = 400
    code = "VALIDATION_ERROR"


class AuthenticationError(AppError):
    """Bad credentials, or a missing, invalid, expired or blacklisted token."""

    status_code = 401
    code = "NOT_AUTHENTICATED"


class InvalidTokenError(AuthenticationError):
    """
    Token signature, expiry or type check failed.

    Used for access, refresh and password-reset tokens.
    """

    code = "INVALID_TOKEN"


class AuthorizationError(AppError):
    """Authenticated, but the caller's role is not permitted."""

    status_code = 403
    code = "FORBIDDEN"


class NotFoundError(AppError):
    """Requested resource does not exist."""

    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, resource: str = "Resource", details: Any | None = None):
        super().__init__(f"{resource} not found", details)


class ConflictError(AppError):
    """Resource already exists (duplicate email)."""

    status_code = 409
    code = "ALREADY_EXISTS"


class RateLimitedError(AppError):
    """Too many attempts. Client should wait before retrying."""

    status_code = 429
    code = "RATE_LIMITED"

    def __init__(self, retry_after_seconds: int):
        self.retry_after_seconds = retry_after_seconds
        super().__init__(
            f"Too many requests. Retry after {retry_after_seconds} seconds.",
            {"retry_after_seconds": retry_after_seconds},
        )
