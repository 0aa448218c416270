"""
Domain exception classes.

Services raise these instead of ``HTTPException`` so they stay usable outside a
request; ``kanasu.main`` maps each class to an HTTP status code.
"""

from typing import Optional


class KanasuError(Exception):
    """Base class for all domain errors."""

    status_code: int = 500

    def __init__(self, message: str, original_exception: Optional[Exception] = None):
        super().__init__(message)
        self.message = message
        self.original_exception = original_exception


class ValidationError(KanasuError):
    """Missing or malformed input, out-of-range scores, bad enum values."""

    status_code = 400


class NotFoundError(KanasuError):
    """A referenced record does not exist."""

    status_code = 404


class StateConflictError(KanasuError):
    """A business rule forbids the operation in the current state."""

    status_code = 400


class DependencyError(KanasuError):
    """Delete blocked by related rows."""

    status_code = 400


class ExternalServiceError(KanasuError):
    """Object storage or SMS gateway failure."""

    status_code = 500


class AuthenticationError(KanasuError):
    """Credentials or one-time codes that do not check out."""

    status_code = 401
