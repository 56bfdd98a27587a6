"""
Domain errors raised by the matching services.

Every error carries a stable ``code`` so the HTTP layer (and any other caller)
can pick a message class without inspecting the message text.
"""

from __future__ import annotations


class MatchingError(Exception):
    """Base class for user-actionable matching failures."""

    code = "MATCHING_ERROR"
    status_code = 400

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ValidationError(MatchingError):
    """Malformed or out-of-range input (duration, extension increment, missing date)."""

    code = "VALIDATION_ERROR"
    status_code = 400


class ForbiddenError(MatchingError):
    """Caller is not the owning guest or an assigned cast."""

    code = "FORBIDDEN"
    status_code = 403


class NotFoundError(MatchingError):
    """Unknown matching, participant or cast id."""

    code = "NOT_FOUND"
    status_code = 404


class InvalidStateError(MatchingError):
    """Operation attempted from a status that does not permit it.

    Also raised when a guarded update loses a race against a concurrent
    duplicate request.
    """

    code = "INVALID_STATE"
    status_code = 409


class NoEligibleCastsError(MatchingError):
    """Group offer creation found no cast matching the filters."""

    code = "NO_ELIGIBLE_CASTS"
    status_code = 422
