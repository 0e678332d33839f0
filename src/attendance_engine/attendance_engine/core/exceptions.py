from __future__ import annotations

from typing import Any, Optional


class DomainError(Exception):
    """Base exception for business rule violations.

    ``details`` carries structured context (distances, thresholds, ...) so the
    caller can build an actionable message.
    """

    code = "DOMAIN_ERROR"
    retryable = False

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = {k: v for k, v in details.items() if v is not None}

    def to_dict(self) -> dict:
        return {
            "error": self.message,
            "code": self.code,
            "details": self.details,
            "retryable": self.retryable,
        }


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    code = "VALIDATION_ERROR"


class AuthenticationError(DomainError):
    """Raised when no authenticated actor is present."""

    code = "AUTHENTICATION_ERROR"


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""

    code = "AUTHORIZATION_ERROR"


class InvalidLocationError(ValidationError):
    """Coordinates are missing, not numbers, or out of range."""

    code = "INVALID_LOCATION"


class LocationDeniedError(DomainError):
    """Device is outside the office geofence while verification is required."""

    code = "LOCATION_DENIED"

    def __init__(self, distance_meters: int, radius_meters: int):
        super().__init__(
            f"You are {distance_meters} meters from the office. "
            f"Please come within {radius_meters} meters to mark attendance.",
            distance_meters=distance_meters,
            radius_meters=radius_meters,
        )


class FaceNotVerifiedError(DomainError):
    """No registered face matched the probe below the threshold."""

    code = "FACE_NOT_VERIFIED"

    def __init__(
        self,
        message: str = "Face not recognized. Please register your face first or contact HR.",
        *,
        best_distance: Optional[float] = None,
        threshold: Optional[float] = None,
    ):
        super().__init__(message, best_distance=best_distance, threshold=threshold)


class AmbiguousMatchError(DomainError):
    """Two different users sit at the same minimum distance from the probe."""

    code = "AMBIGUOUS_MATCH"

    def __init__(self, user_ids: list[int], distance: float):
        super().__init__(
            "Face matches more than one registered employee. Please contact HR.",
            user_ids=user_ids,
            distance=distance,
        )


class AlreadyCheckedInError(DomainError):
    code = "ALREADY_CHECKED_IN"

    def __init__(self, user_id: int, work_date: Any):
        super().__init__("Already checked in today", user_id=user_id, work_date=str(work_date))


class AlreadyCheckedOutError(DomainError):
    code = "ALREADY_CHECKED_OUT"

    def __init__(self, user_id: int, work_date: Any):
        super().__init__("Already checked out today", user_id=user_id, work_date=str(work_date))


class NoActiveCheckInError(DomainError):
    code = "NO_ACTIVE_CHECK_IN"

    def __init__(self, user_id: int, work_date: Any):
        super().__init__("No check-in found for today", user_id=user_id, work_date=str(work_date))


class LockedRecordError(DomainError):
    """Attendance for the date has been locked for payroll."""

    code = "RECORD_LOCKED"

    def __init__(self, work_date: Any, user_id: Optional[int] = None):
        super().__init__(
            "Attendance for this date is locked and cannot be modified",
            user_id=user_id,
            work_date=str(work_date),
        )


class NotFoundError(DomainError):
    code = "NOT_FOUND"


class ConfigurationError(DomainError):
    """A required configuration record is missing or malformed."""

    code = "CONFIGURATION_ERROR"


class StoreUnavailableError(DomainError):
    """Transient storage/config failure; safe for the caller to retry."""

    code = "STORE_UNAVAILABLE"
    retryable = True
