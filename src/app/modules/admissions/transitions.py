"""
Admission Workflow State Machines

Legal status transitions for applications and sessions. Everything here is
pure: services consult these tables before writing a new status.
"""

from app.modules.admissions.models import ApplicationStatus, SessionStatus

# Application stage graph. Statuses without an entry (enrolled, rejected)
# are terminal.
VALID_STAGE_TRANSITIONS: dict[ApplicationStatus, set[ApplicationStatus]] = {
    ApplicationStatus.DRAFT: {ApplicationStatus.SUBMITTED},
    ApplicationStatus.SUBMITTED: {
        ApplicationStatus.UNDER_REVIEW,
        ApplicationStatus.DOCUMENTS_PENDING,
        ApplicationStatus.REJECTED,
    },
    ApplicationStatus.UNDER_REVIEW: {
        ApplicationStatus.DOCUMENTS_PENDING,
        ApplicationStatus.TEST_SCHEDULED,
        ApplicationStatus.SHORTLISTED,
        ApplicationStatus.APPROVED,
        ApplicationStatus.REJECTED,
    },
    ApplicationStatus.DOCUMENTS_PENDING: {
        ApplicationStatus.UNDER_REVIEW,
        ApplicationStatus.REJECTED,
    },
    ApplicationStatus.TEST_SCHEDULED: {
        ApplicationStatus.TEST_COMPLETED,
        ApplicationStatus.REJECTED,
    },
    ApplicationStatus.TEST_COMPLETED: {
        ApplicationStatus.SHORTLISTED,
        ApplicationStatus.APPROVED,
        ApplicationStatus.REJECTED,
        ApplicationStatus.WAITLISTED,
    },
    ApplicationStatus.SHORTLISTED: {
        ApplicationStatus.APPROVED,
        ApplicationStatus.REJECTED,
        ApplicationStatus.WAITLISTED,
    },
    ApplicationStatus.APPROVED: {
        ApplicationStatus.ENROLLED,
        ApplicationStatus.REJECTED,
    },
    ApplicationStatus.WAITLISTED: {
        ApplicationStatus.APPROVED,
        ApplicationStatus.REJECTED,
    },
    ApplicationStatus.REJECTED: set(),
    ApplicationStatus.ENROLLED: set(),
}

# Statuses from which (re)submission is accepted
SUBMITTABLE_STATUSES = {
    ApplicationStatus.DRAFT,
    ApplicationStatus.SUBMITTED,
    ApplicationStatus.DOCUMENTS_PENDING,
    ApplicationStatus.UNDER_REVIEW,
}

# Applicant details are frozen once a final outcome is reached
LOCKED_STATUSES = {
    ApplicationStatus.APPROVED,
    ApplicationStatus.REJECTED,
    ApplicationStatus.ENROLLED,
}

# Applications ranked on a merit list
MERIT_ELIGIBLE_STATUSES = {
    ApplicationStatus.SUBMITTED,
    ApplicationStatus.UNDER_REVIEW,
    ApplicationStatus.APPROVED,
    ApplicationStatus.WAITLISTED,
}

VALID_SESSION_TRANSITIONS: dict[SessionStatus, set[SessionStatus]] = {
    SessionStatus.UPCOMING: {SessionStatus.OPEN, SessionStatus.CLOSED},
    SessionStatus.OPEN: {SessionStatus.CLOSED},
    SessionStatus.CLOSED: {SessionStatus.OPEN},
}


def can_transition(current: ApplicationStatus, new: ApplicationStatus) -> bool:
    """Return True if an application may move from ``current`` to ``new``."""
    return new in VALID_STAGE_TRANSITIONS.get(current, set())


def get_valid_transitions(current: ApplicationStatus) -> list[ApplicationStatus]:
    """Return the statuses reachable from ``current``, sorted by value."""
    return sorted(VALID_STAGE_TRANSITIONS.get(current, set()), key=lambda s: s.value)


def can_transition_session(current: SessionStatus, new: SessionStatus) -> bool:
    return new in VALID_SESSION_TRANSITIONS.get(current, set())


def get_valid_session_transitions(current: SessionStatus) -> list[SessionStatus]:
    return sorted(VALID_SESSION_TRANSITIONS.get(current, set()), key=lambda s: s.value)
