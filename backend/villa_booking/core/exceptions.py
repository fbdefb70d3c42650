"""
Error taxonomy.

Every failure carries a stable `kind` and a human-readable `detail`. The API
layer renders them as {"error": kind, "detail": detail} with the HTTP status
attached to the class.

BookingError is the business taxonomy. Only VersionConflict is meant to be
retried by the caller (re-read, re-apply). InfrastructureError wraps
repository connectivity problems and is not a BookingError:
`except BookingError` does not catch an outage.
"""

from fastapi import status


class ServiceError(Exception):
    kind: str = "error"
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail

    def to_dict(self) -> dict:
        return {"error": self.kind, "detail": self.detail}


class BookingError(ServiceError):
    kind = "booking_error"
    status_code = status.HTTP_400_BAD_REQUEST


class InvalidInput(BookingError):
    kind = "invalid_input"
    status_code = status.HTTP_400_BAD_REQUEST


class InvalidUpdate(InvalidInput):
    kind = "invalid_update"


class InvalidProof(InvalidInput):
    kind = "invalid_proof"


class NotFound(BookingError):
    kind = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class Forbidden(BookingError):
    kind = "forbidden"
    status_code = status.HTTP_403_FORBIDDEN


class Conflict(BookingError):
    """Requested dates overlap an active booking."""

    kind = "conflict"
    status_code = status.HTTP_409_CONFLICT


class InvalidState(BookingError):
    kind = "invalid_state"
    status_code = status.HTTP_409_CONFLICT


class AlreadySubmitted(BookingError):
    kind = "already_submitted"
    status_code = status.HTTP_409_CONFLICT


class VersionConflict(BookingError):
    """A concurrent mutation won the race; re-read and re-apply."""

    kind = "version_conflict"
    status_code = status.HTTP_409_CONFLICT


class WindowExpired(BookingError):
    kind = "window_expired"
    status_code = status.HTTP_410_GONE


class InfrastructureError(ServiceError):
    kind = "infrastructure_error"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
