"""
Admissions Service Errors

Every error raised by the admissions services derives from
AdmissionServiceError and belongs to one of four categories:

- NotFoundError (404): the referenced record does not exist for the school
- ValidationError (400): the request itself is malformed or incomplete
- StateConflictError (409): the request conflicts with current state
- PreconditionFailedError (422): a business precondition is not met

Routers turn these into HTTP responses; nothing here knows about HTTP
beyond the suggested status code.
"""

from datetime import date
from typing import Any
from uuid import UUID

from app.modules.admissions.models import ApplicationStatus, SessionStatus
from app.modules.admissions.transitions import (
    get_valid_session_transitions,
    get_valid_transitions,
)


class AdmissionServiceError(Exception):
    """Base exception for admissions service errors."""

    def __init__(
        self,
        message: str,
        error_code: str,
        status_code: int = 400,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class NotFoundError(AdmissionServiceError):
    """Raised when a referenced record does not exist for the school."""

    def __init__(self, message: str, error_code: str):
        super().__init__(message=message, error_code=error_code, status_code=404)


class ValidationError(AdmissionServiceError):
    """Raised when a request is malformed or missing required fields."""

    def __init__(self, message: str, error_code: str = "VALIDATION_ERROR"):
        super().__init__(message=message, error_code=error_code, status_code=400)


class StateConflictError(AdmissionServiceError):
    """Raised when a request conflicts with the current state of a record."""

    def __init__(self, message: str, error_code: str, details: dict[str, Any] | None = None):
        super().__init__(message=message, error_code=error_code, status_code=409, details=details)


class PreconditionFailedError(AdmissionServiceError):
    """Raised when a business precondition for an operation is not met."""

    def __init__(self, message: str, error_code: str):
        super().__init__(message=message, error_code=error_code, status_code=422)


# ============================================
# Not Found
# ============================================


def _not_found_message(entity: str, identifier: Any) -> str:
    return f"{entity} {identifier} not found" if identifier else f"{entity} not found"


class SessionNotFoundError(NotFoundError):
    """Raised when an admission session is not found."""

    def __init__(self, session_id: UUID | None = None):
        super().__init__(_not_found_message("Admission session", session_id), "SESSION_NOT_FOUND")


class SeatNotFoundError(NotFoundError):
    """Raised when a seat configuration is not found."""

    def __init__(self, seat_id: UUID | None = None):
        super().__init__(_not_found_message("Seat configuration", seat_id), "SEAT_NOT_FOUND")


class ApplicationNotFoundError(NotFoundError):
    """Raised when an application is not found."""

    def __init__(self, application_id: UUID | str | None = None):
        super().__init__(_not_found_message("Application", application_id), "APPLICATION_NOT_FOUND")


class DecisionNotFoundError(NotFoundError):
    """Raised when an application has no recorded decision."""

    def __init__(self, identifier: UUID | None = None):
        super().__init__(_not_found_message("Decision", identifier), "DECISION_NOT_FOUND")


class OfferNotFoundError(NotFoundError):
    """Raised when an application has no approved decision to offer against."""

    def __init__(self, application_id: UUID | None = None):
        message = (
            f"No offer exists for application {application_id}"
            if application_id
            else "Offer not found"
        )
        super().__init__(message, "OFFER_NOT_FOUND")


class MeritListNotFoundError(NotFoundError):
    """Raised when a merit list is not found."""

    def __init__(self, identifier: UUID | None = None):
        super().__init__(_not_found_message("Merit list", identifier), "MERIT_LIST_NOT_FOUND")


class ParentNotFoundError(NotFoundError):
    """Raised when a parent record is not found on an application."""

    def __init__(self, parent_id: UUID | None = None):
        super().__init__(_not_found_message("Parent", parent_id), "PARENT_NOT_FOUND")


class DocumentNotFoundError(NotFoundError):
    """Raised when a document is not found on an application."""

    def __init__(self, document_id: UUID | None = None):
        super().__init__(_not_found_message("Document", document_id), "DOCUMENT_NOT_FOUND")


# ============================================
# Validation
# ============================================


class InvalidDateRangeError(ValidationError):
    """Raised when an end date falls before its start date."""

    def __init__(self, start: date, end: date):
        super().__init__(
            f"End date {end.isoformat()} must not be before start date {start.isoformat()}",
            "INVALID_DATE_RANGE",
        )


class InvalidPhoneError(ValidationError):
    """Raised when a phone number can't be normalized."""

    def __init__(self):
        super().__init__("Phone number format is invalid", "INVALID_PHONE")


# ============================================
# State Conflicts
# ============================================


class InvalidStageTransitionError(StateConflictError):
    """Raised when an application status change is not on the stage graph."""

    def __init__(self, current_status: ApplicationStatus, requested_status: ApplicationStatus):
        self.current_status = current_status
        self.requested_status = requested_status
        self.valid_transitions = get_valid_transitions(current_status)
        allowed = [s.value for s in self.valid_transitions]
        super().__init__(
            f"Invalid stage transition: {current_status.value} -> {requested_status.value}. "
            f"Valid transitions: {allowed}",
            "INVALID_STAGE_TRANSITION",
            details={
                "current_status": current_status.value,
                "requested_status": requested_status.value,
                "valid_transitions": allowed,
            },
        )


class InvalidSessionTransitionError(StateConflictError):
    """Raised when a session status change is not allowed."""

    def __init__(self, current_status: SessionStatus, requested_status: SessionStatus):
        self.current_status = current_status
        self.requested_status = requested_status
        self.valid_transitions = get_valid_session_transitions(current_status)
        allowed = [s.value for s in self.valid_transitions]
        super().__init__(
            f"Invalid session status transition: {current_status.value} -> "
            f"{requested_status.value}. Valid transitions: {allowed}",
            "INVALID_SESSION_TRANSITION",
            details={
                "current_status": current_status.value,
                "requested_status": requested_status.value,
                "valid_transitions": allowed,
            },
        )


class DuplicateSessionNameError(StateConflictError):
    """Raised when a session name is reused within an academic year."""

    def __init__(self, name: str):
        super().__init__(
            f"An admission session named '{name}' already exists for this academic year",
            "DUPLICATE_SESSION_NAME",
        )


class SessionClosedError(StateConflictError):
    """Raised when modifying a closed session."""

    def __init__(self, session_id: UUID):
        super().__init__(f"Admission session {session_id} is closed", "SESSION_CLOSED")


class SessionNotOpenError(StateConflictError):
    """Raised when applying to a session that is not open."""

    def __init__(self, session_id: UUID, status: SessionStatus):
        super().__init__(
            f"Admission session {session_id} is not accepting applications "
            f"(status: {status.value})",
            "SESSION_NOT_OPEN",
            details={"session_status": status.value},
        )


class DuplicateClassSeatError(StateConflictError):
    """Raised when a class already has seats configured in the session."""

    def __init__(self, class_name: str):
        super().__init__(
            f"Seat configuration for class '{class_name}' already exists in this session",
            "DUPLICATE_CLASS_SEAT",
        )


class SeatCapacityExceededError(StateConflictError):
    """Raised when a seat increment would exceed the class capacity."""

    def __init__(self, class_name: str, total_seats: int, filled_seats: int, requested: int = 1):
        super().__init__(
            f"No seats available for class '{class_name}': "
            f"{filled_seats}/{total_seats} filled, requested {requested}",
            "SEAT_CAPACITY_EXCEEDED",
            details={
                "class_name": class_name,
                "total_seats": total_seats,
                "filled_seats": filled_seats,
                "requested": requested,
            },
        )


class FilledExceedsTotalError(StateConflictError):
    """Raised when total seats would drop below the filled count."""

    def __init__(self, filled_seats: int, total_seats: int):
        super().__init__(
            f"Total seats ({total_seats}) cannot be less than filled seats ({filled_seats})",
            "FILLED_EXCEEDS_TOTAL",
        )


class ApplicationLockedError(StateConflictError):
    """Raised when editing an application past the editable stages."""

    def __init__(self, status: ApplicationStatus):
        super().__init__(
            f"Application cannot be modified in '{status.value}' status",
            "APPLICATION_LOCKED",
            details={"current_status": status.value},
        )


class DecisionExistsError(StateConflictError):
    """Raised when an application already has a decision."""

    def __init__(self, application_id: UUID):
        super().__init__(
            f"A decision already exists for application {application_id}",
            "DECISION_EXISTS",
        )


class OfferAlreadyAcceptedError(StateConflictError):
    """Raised when an offer has already been accepted."""

    def __init__(self):
        super().__init__("Offer has already been accepted", "OFFER_ALREADY_ACCEPTED")


class OfferExpiredError(StateConflictError):
    """Raised when accepting an offer after its validity date."""

    def __init__(self, valid_until: date):
        super().__init__(
            f"Offer expired on {valid_until.isoformat()}",
            "OFFER_EXPIRED",
            details={"offer_valid_until": valid_until.isoformat()},
        )


class AlreadyEnrolledError(StateConflictError):
    """Raised when enrolling an application that is already enrolled."""

    def __init__(self, application_id: UUID):
        super().__init__(f"Application {application_id} is already enrolled", "ALREADY_ENROLLED")


class MeritListFinalizedError(StateConflictError):
    """Raised when changing a finalized merit list."""

    def __init__(self):
        super().__init__("Merit list is finalized and cannot be changed", "MERIT_LIST_FINALIZED")


# ============================================
# Preconditions
# ============================================


class InvalidApplicationStatusError(PreconditionFailedError):
    """Raised when an operation requires a different application status."""

    def __init__(self, status: ApplicationStatus, operation: str):
        self.current_status = status
        super().__init__(
            f"Cannot {operation} an application in '{status.value}' status",
            "INVALID_APPLICATION_STATUS",
        )


class OfferNotAcceptedError(PreconditionFailedError):
    """Raised when enrolling without an accepted offer."""

    def __init__(self):
        super().__init__("Offer must be accepted before enrollment", "OFFER_NOT_ACCEPTED")


class CannotDeleteSubmittedApplicationError(PreconditionFailedError):
    """Raised when deleting an application that is no longer a draft."""

    def __init__(self, status: ApplicationStatus):
        super().__init__(
            f"Only draft applications can be deleted (current status: {status.value})",
            "CANNOT_DELETE_SUBMITTED_APPLICATION",
        )


class CannotDeleteOpenSessionError(PreconditionFailedError):
    """Raised when deleting a session that is still open."""

    def __init__(self):
        super().__init__(
            "An open admission session cannot be deleted; close it first",
            "CANNOT_DELETE_OPEN_SESSION",
        )


class SessionHasApplicationsError(PreconditionFailedError):
    """Raised when deleting a session that still has applications."""

    def __init__(self, count: int):
        super().__init__(
            f"Admission session has {count} application(s) and cannot be deleted",
            "SESSION_HAS_APPLICATIONS",
        )


class NoApplicantsForMeritListError(PreconditionFailedError):
    """Raised when a merit list has no eligible applicants."""

    def __init__(self, class_name: str):
        super().__init__(
            f"No eligible applicants found for class '{class_name}'",
            "NO_APPLICANTS_FOR_MERIT_LIST",
        )


class NoBranchConfiguredError(PreconditionFailedError):
    """Raised when a school has no branch to enroll students into."""

    def __init__(self, school_id: UUID):
        super().__init__(
            f"School {school_id} has no branch to enroll students into",
            "NO_BRANCH_CONFIGURED",
        )
