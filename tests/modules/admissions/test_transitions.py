"""
Tests for the application and session state machines.
"""

import pytest

from app.modules.admissions.exceptions import (
    InvalidSessionTransitionError,
    InvalidStageTransitionError,
)
from app.modules.admissions.models import ApplicationStatus, SessionStatus
from app.modules.admissions.transitions import (
    LOCKED_STATUSES,
    SUBMITTABLE_STATUSES,
    VALID_STAGE_TRANSITIONS,
    can_transition,
    can_transition_session,
    get_valid_transitions,
)

S = ApplicationStatus


class TestStageGraph:
    """Tests for the application stage graph."""

    @pytest.mark.parametrize(
        "current,new",
        [
            (S.DRAFT, S.SUBMITTED),
            (S.SUBMITTED, S.UNDER_REVIEW),
            (S.SUBMITTED, S.DOCUMENTS_PENDING),
            (S.SUBMITTED, S.REJECTED),
            (S.UNDER_REVIEW, S.TEST_SCHEDULED),
            (S.UNDER_REVIEW, S.SHORTLISTED),
            (S.UNDER_REVIEW, S.APPROVED),
            (S.DOCUMENTS_PENDING, S.UNDER_REVIEW),
            (S.TEST_SCHEDULED, S.TEST_COMPLETED),
            (S.TEST_COMPLETED, S.WAITLISTED),
            (S.SHORTLISTED, S.APPROVED),
            (S.SHORTLISTED, S.WAITLISTED),
            (S.APPROVED, S.ENROLLED),
            (S.APPROVED, S.REJECTED),
            (S.WAITLISTED, S.APPROVED),
            (S.WAITLISTED, S.REJECTED),
        ],
    )
    def test_allowed_transitions(self, current, new):
        assert can_transition(current, new) is True

    @pytest.mark.parametrize(
        "current,new",
        [
            (S.DRAFT, S.APPROVED),
            (S.DRAFT, S.ENROLLED),
            (S.SUBMITTED, S.APPROVED),
            (S.SUBMITTED, S.ENROLLED),
            (S.DOCUMENTS_PENDING, S.APPROVED),
            (S.TEST_SCHEDULED, S.APPROVED),
            (S.SHORTLISTED, S.ENROLLED),
            (S.WAITLISTED, S.ENROLLED),
            (S.UNDER_REVIEW, S.UNDER_REVIEW),
        ],
    )
    def test_disallowed_transitions(self, current, new):
        assert can_transition(current, new) is False

    @pytest.mark.parametrize("terminal", [S.ENROLLED, S.REJECTED])
    def test_terminal_statuses_have_no_exits(self, terminal):
        """Enrolled and rejected applications can't move anywhere."""
        assert get_valid_transitions(terminal) == []
        for status in ApplicationStatus:
            assert can_transition(terminal, status) is False

    def test_every_status_has_an_entry(self):
        assert set(VALID_STAGE_TRANSITIONS) == set(ApplicationStatus)

    def test_valid_transitions_sorted_by_value(self):
        assert get_valid_transitions(S.SUBMITTED) == [
            S.DOCUMENTS_PENDING,
            S.REJECTED,
            S.UNDER_REVIEW,
        ]

    def test_resubmission_and_locked_sets(self):
        assert S.DRAFT in SUBMITTABLE_STATUSES
        assert S.UNDER_REVIEW in SUBMITTABLE_STATUSES
        assert S.APPROVED not in SUBMITTABLE_STATUSES
        assert LOCKED_STATUSES == {S.APPROVED, S.REJECTED, S.ENROLLED}


class TestSessionTransitions:
    """Tests for session status changes."""

    def test_allowed(self):
        assert can_transition_session(SessionStatus.UPCOMING, SessionStatus.OPEN)
        assert can_transition_session(SessionStatus.UPCOMING, SessionStatus.CLOSED)
        assert can_transition_session(SessionStatus.OPEN, SessionStatus.CLOSED)
        assert can_transition_session(SessionStatus.CLOSED, SessionStatus.OPEN)

    def test_same_state_is_rejected(self):
        for status in SessionStatus:
            assert can_transition_session(status, status) is False

    def test_open_cannot_go_back_to_upcoming(self):
        assert can_transition_session(SessionStatus.OPEN, SessionStatus.UPCOMING) is False


class TestTransitionErrors:
    """Tests for the error raised on an illegal stage change."""

    def test_stage_error_lists_valid_transitions(self):
        error = InvalidStageTransitionError(S.SUBMITTED, S.APPROVED)

        assert error.status_code == 409
        assert error.error_code == "INVALID_STAGE_TRANSITION"
        assert error.details["current_status"] == "submitted"
        assert error.details["requested_status"] == "approved"
        assert error.details["valid_transitions"] == [
            "documents_pending",
            "rejected",
            "under_review",
        ]

    def test_stage_error_from_terminal_status(self):
        error = InvalidStageTransitionError(S.ENROLLED, S.REJECTED)
        assert error.details["valid_transitions"] == []

    def test_session_error_is_conflict(self):
        error = InvalidSessionTransitionError(SessionStatus.OPEN, SessionStatus.UPCOMING)
        assert error.status_code == 409
        assert error.error_code == "INVALID_SESSION_TRANSITION"
