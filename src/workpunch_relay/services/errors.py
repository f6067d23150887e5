"""Error taxonomy for clock synchronization.

Every failure inside one sync attempt is mapped to exactly one of these
classes. Each carries a stable machine-readable ``kind`` and the HTTP status
the API layer answers with.
"""

from __future__ import annotations

from typing import ClassVar


class SyncError(Exception):
    """Base class for all clock synchronization failures."""

    kind: ClassVar[str] = "InternalError"
    status_code: ClassVar[int] = 500

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.kind)
        self.message = message or self.kind


class ValidationError(SyncError):
    """Client input rejected before any external call."""

    kind = "ValidationError"
    status_code = 400


class InvalidInstantError(ValidationError):
    """A timestamp did not parse to an unambiguous instant."""

    kind = "InvalidInstant"


class OrderingViolationError(ValidationError):
    """Clock-out is not strictly later than clock-in."""

    kind = "OrderingViolation"


class ConflictError(SyncError):
    """Business-rule rejection after querying external state. No write happened."""

    kind = "Conflict"
    status_code = 409


class ClockInMismatchError(ConflictError):
    """The active record's punch-in does not match the request's clock-in."""

    kind = "ClockInMismatch"
    status_code = 400


class NoActiveRecordError(ConflictError):
    """A clock-out arrived but the subject has no active record."""

    kind = "NoActiveRecord"
    status_code = 404


class CredentialsNotFoundError(SyncError):
    """No usable Salesforce credential exists for the requested tenant."""

    kind = "CredentialsNotFound"
    status_code = 404


class ExternalError(SyncError):
    """Base class for failures at the Salesforce boundary."""

    kind = "ExternalError"
    status_code = 500

    def __init__(
        self,
        message: str | None = None,
        *,
        status: int | None = None,
        error_code: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.error_code = error_code


class ExternalAuthError(ExternalError):
    """The access token is expired or invalid; the tenant must re-authorize."""

    kind = "ExternalAuthError"
    status_code = 401


class ExternalTransientError(ExternalError):
    """Network failure or 5xx from Salesforce. The caller may retry."""

    kind = "ExternalTransientError"


class ExternalRejectedError(ExternalError):
    """Salesforce rejected the request itself (malformed query, bad field, ...)."""

    kind = "ExternalRejectedError"
