"""
Error taxonomy for the Performance Observer service.

Every domain failure derives from :class:`ObserverError`, which carries the
HTTP status code the app-level error handler answers with.  Storage failures
never expose the underlying driver message to the caller.
"""

from __future__ import annotations


class ObserverError(Exception):
    """Base class for all failures surfaced to API callers."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, str]:
        return {"error": self.message}


class ValidationError(ObserverError):
    """Malformed or missing input; the message tells the caller what to fix."""

    status_code = 400


class InvalidMetricError(ValidationError):
    """Raised when a trend request names a metric that cannot be charted."""


class InsufficientSelectionError(ValidationError):
    """Raised when a comparison names fewer than two distinct records."""


class NotFoundError(ObserverError):
    """The identifier does not resolve to any record the caller may access."""

    status_code = 404


class NoMatchError(NotFoundError):
    """Raised when none of the identifiers in a comparison resolve."""


class AuthenticationError(ObserverError):
    """Missing or invalid credential on an operation that requires one."""

    status_code = 401


class StorageError(ObserverError):
    """Persistence failure.  Always carries an opaque message."""

    status_code = 500

    def __init__(self, message: str = "Storage failure") -> None:
        super().__init__(message)
