"""
Tests for admission application service.
"""

from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest

from app.modules.admissions import application_service, repository
from app.modules.admissions.exceptions import (
    ApplicationLockedError,
    ApplicationNotFoundError,
    CannotDeleteSubmittedApplicationError,
    InvalidPhoneError,
    InvalidStageTransitionError,
    NoBranchConfiguredError,
    SeatCapacityExceededError,
    SessionNotOpenError,
    ValidationError,
)
from app.modules.admissions.models import (
    AdmissionApplication,
    ApplicationParent,
    ApplicationStatus,
    SessionStatus,
    StageEventType,
)
from app.modules.admissions.schemas import ApplicationUpdate


class TestNormalizePhone:
    """Tests for phone normalization used by the public lookup."""

    def test_strips_separators(self):
        assert application_service.normalize_phone("+232 (76) 123-456.78") == "+2327612345678"

    def test_empty(self):
        assert application_service.normalize_phone(None) == ""
        assert application_service.normalize_phone("") == ""


class TestCreateApplication:
    """Tests for create_application."""

    @pytest.mark.asyncio
    async def test_create_in_open_session(
        self, mock_db, school_id, sample_session, sample_application, sample_application_create
    ):
        """Test an application created in an open session starts as a draft."""
        with (
            patch("app.modules.admissions.application_service.repository") as mock_repo,
            patch("app.modules.admissions.application_service.sequences") as mock_seq,
        ):
            mock_repo.get_session = AsyncMock(return_value=sample_session)
            mock_repo.create_application = AsyncMock(return_value=sample_application)
            mock_seq.next_application_number = AsyncMock(return_value="APP-20260110-0001")

            result = await application_service.create_application(
                mock_db, school_id, sample_application_create
            )

            assert result.status == ApplicationStatus.DRAFT
            mock_repo.create_application.assert_called_once_with(
                mock_db, school_id, sample_application_create, "APP-20260110-0001", None
            )
            mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_created_application_reads_back_as_draft(
        self, mock_db, school_id, sample_session, sample_application_create, user_id
    ):
        """Test the stored row carries the submitted details and reads back as a draft."""
        with (
            patch.object(repository, "get_session", AsyncMock(return_value=sample_session)),
            patch(
                "app.modules.admissions.application_service.sequences.next_application_number",
                AsyncMock(return_value="APP-20260110-0002"),
            ),
        ):
            created = await application_service.create_application(
                mock_db, school_id, sample_application_create, user_id
            )

        stored = mock_db.add.call_args.args[0]
        assert stored is created
        assert isinstance(stored, AdmissionApplication)
        assert stored.school_id == school_id
        assert stored.session_id == sample_session.id
        assert stored.application_number == "APP-20260110-0002"
        assert stored.student_name == "Aminata Kamara"
        assert stored.class_applying == "Grade 1"
        assert stored.previous_school == "Little Stars"
        assert stored.father_name == "Ibrahim Kamara"
        assert stored.father_phone == "+23276123456"
        assert stored.mother_phone == "+23277654321"
        assert stored.city == "Freetown"
        assert stored.created_by == user_id

        with patch.object(repository, "get_application", AsyncMock(return_value=stored)):
            fetched = await application_service.get_application(mock_db, school_id, uuid4())

        assert fetched.status == ApplicationStatus.DRAFT
        assert fetched.submitted_at is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [SessionStatus.UPCOMING, SessionStatus.CLOSED])
    async def test_create_in_session_not_open(
        self, mock_db, school_id, sample_session, sample_application_create, status
    ):
        sample_session.status = status

        with (
            patch("app.modules.admissions.application_service.repository") as mock_repo,
            patch("app.modules.admissions.application_service.sequences") as mock_seq,
        ):
            mock_repo.get_session = AsyncMock(return_value=sample_session)
            mock_seq.next_application_number = AsyncMock()

            with pytest.raises(SessionNotOpenError):
                await application_service.create_application(
                    mock_db, school_id, sample_application_create
                )

            mock_seq.next_application_number.assert_not_called()

    @pytest.mark.asyncio
    async def test_create_with_unknown_branch(
        self, mock_db, school_id, sample_session, sample_application_create
    ):
        sample_application_create.branch_id = uuid4()

        with (
            patch("app.modules.admissions.application_service.repository") as mock_repo,
            patch("app.modules.admissions.application_service.SchoolRepository") as mock_schools,
        ):
            mock_repo.get_session = AsyncMock(return_value=sample_session)
            mock_schools.get_branch = AsyncMock(return_value=None)

            with pytest.raises(ValidationError) as exc_info:
                await application_service.create_application(
                    mock_db, school_id, sample_application_create
                )

            assert exc_info.value.error_code == "INVALID_BRANCH"


class TestUpdateAndDelete:
    """Tests for editing and deleting applications."""

    @pytest.mark.asyncio
    async def test_update_locked_application(self, mock_db, school_id, approved_application):
        with patch("app.modules.admissions.application_service.repository") as mock_repo:
            mock_repo.get_application = AsyncMock(return_value=approved_application)

            with pytest.raises(ApplicationLockedError):
                await application_service.update_application(
                    mock_db,
                    school_id,
                    approved_application.id,
                    ApplicationUpdate(previous_school="Other School"),
                )

    @pytest.mark.asyncio
    async def test_update_only_sets_given_fields(self, mock_db, school_id, sample_application):
        with patch("app.modules.admissions.application_service.repository") as mock_repo:
            mock_repo.get_application = AsyncMock(return_value=sample_application)

            result = await application_service.update_application(
                mock_db,
                school_id,
                sample_application.id,
                ApplicationUpdate(previous_school="Little Stars"),
            )

            assert result.previous_school == "Little Stars"
            assert result.student_name == "Aminata Kamara"
            mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_delete_draft(self, mock_db, school_id, sample_application):
        with patch("app.modules.admissions.application_service.repository") as mock_repo:
            mock_repo.get_application = AsyncMock(return_value=sample_application)
            mock_repo.delete_application = AsyncMock()

            await application_service.delete_application(
                mock_db, school_id, sample_application.id
            )

            mock_repo.delete_application.assert_called_once_with(mock_db, sample_application)

    @pytest.mark.asyncio
    async def test_delete_submitted_fails(self, mock_db, school_id, sample_application):
        sample_application.status = ApplicationStatus.SUBMITTED

        with patch("app.modules.admissions.application_service.repository") as mock_repo:
            mock_repo.get_application = AsyncMock(return_value=sample_application)
            mock_repo.delete_application = AsyncMock()

            with pytest.raises(CannotDeleteSubmittedApplicationError):
                await application_service.delete_application(
                    mock_db, school_id, sample_application.id
                )

            mock_repo.delete_application.assert_not_called()

    @pytest.mark.asyncio
    async def test_get_missing_application(self, mock_db, school_id):
        with patch("app.modules.admissions.application_service.repository") as mock_repo:
            mock_repo.get_application = AsyncMock(return_value=None)

            with pytest.raises(ApplicationNotFoundError):
                await application_service.get_application(mock_db, school_id, uuid4())


class TestWorkflow:
    """Tests for submission and stage changes."""

    @pytest.mark.asyncio
    async def test_submit_draft(self, mock_db, school_id, sample_application):
        """Test submitting stamps submitted_at and logs a SUBMITTED event."""
        with patch("app.modules.admissions.application_service.repository") as mock_repo:
            mock_repo.get_application = AsyncMock(return_value=sample_application)
            mock_repo.append_stage_event = AsyncMock()

            result = await application_service.submit_application(
                mock_db, school_id, sample_application.id
            )

            assert result.status == ApplicationStatus.SUBMITTED
            assert result.submitted_at is not None
            kwargs = mock_repo.append_stage_event.call_args.kwargs
            assert kwargs["event_type"] == StageEventType.SUBMITTED
            assert kwargs["from_status"] == ApplicationStatus.DRAFT

    @pytest.mark.asyncio
    async def test_resubmit_from_documents_pending(self, mock_db, school_id, sample_application):
        sample_application.status = ApplicationStatus.DOCUMENTS_PENDING

        with patch("app.modules.admissions.application_service.repository") as mock_repo:
            mock_repo.get_application = AsyncMock(return_value=sample_application)
            mock_repo.append_stage_event = AsyncMock()

            result = await application_service.submit_application(
                mock_db, school_id, sample_application.id
            )

            assert result.status == ApplicationStatus.SUBMITTED

    @pytest.mark.asyncio
    async def test_submit_approved_fails(self, mock_db, school_id, approved_application):
        with patch("app.modules.admissions.application_service.repository") as mock_repo:
            mock_repo.get_application = AsyncMock(return_value=approved_application)

            with pytest.raises(InvalidStageTransitionError):
                await application_service.submit_application(
                    mock_db, school_id, approved_application.id
                )

    @pytest.mark.asyncio
    async def test_update_stage_valid(self, mock_db, school_id, sample_application, user_id):
        sample_application.status = ApplicationStatus.UNDER_REVIEW

        with patch("app.modules.admissions.application_service.repository") as mock_repo:
            mock_repo.get_application = AsyncMock(return_value=sample_application)
            mock_repo.append_stage_event = AsyncMock()

            result = await application_service.update_stage(
                mock_db, school_id, sample_application.id, ApplicationStatus.APPROVED, user_id
            )

            assert result.status == ApplicationStatus.APPROVED
            assert result.approved_by == user_id
            assert result.approved_at is not None
            kwargs = mock_repo.append_stage_event.call_args.kwargs
            assert kwargs["event_type"] == StageEventType.STAGE_CHANGED
            assert kwargs["to_status"] == ApplicationStatus.APPROVED

    @pytest.mark.asyncio
    async def test_update_stage_invalid(self, mock_db, school_id, sample_application):
        """Test submitted -> approved skips review and is rejected."""
        sample_application.status = ApplicationStatus.SUBMITTED

        with patch("app.modules.admissions.application_service.repository") as mock_repo:
            mock_repo.get_application = AsyncMock(return_value=sample_application)
            mock_repo.append_stage_event = AsyncMock()

            with pytest.raises(InvalidStageTransitionError) as exc_info:
                await application_service.update_stage(
                    mock_db, school_id, sample_application.id, ApplicationStatus.APPROVED
                )

            assert "under_review" in exc_info.value.details["valid_transitions"]
            assert sample_application.status == ApplicationStatus.SUBMITTED
            mock_repo.append_stage_event.assert_not_called()


class TestEnrollment:
    """Tests for the enrollment transaction."""

    @pytest.mark.asyncio
    async def test_enroll_creates_student(
        self,
        mock_db,
        school_id,
        approved_application,
        sample_branch,
        sample_student,
        sample_seat,
    ):
        """Test enrollment creates student, address and takes a seat in one commit."""
        with (
            patch("app.modules.admissions.application_service.repository") as mock_repo,
            patch("app.modules.admissions.application_service.sequences") as mock_seq,
            patch("app.modules.admissions.application_service.SchoolRepository") as mock_schools,
            patch(
                "app.modules.admissions.application_service.StudentRepository"
            ) as mock_students,
        ):
            mock_repo.get_application = AsyncMock(return_value=approved_application)
            mock_repo.get_seat_by_class = AsyncMock(return_value=sample_seat)
            mock_repo.consume_class_seat = AsyncMock(return_value=39)
            mock_repo.append_stage_event = AsyncMock()
            mock_schools.get_primary_branch = AsyncMock(return_value=sample_branch)
            mock_seq.next_admission_number = AsyncMock(return_value="ADM-2026-00001")
            mock_students.create = AsyncMock(return_value=sample_student)
            mock_students.create_address = AsyncMock()

            result = await application_service.update_stage(
                mock_db, school_id, approved_application.id, ApplicationStatus.ENROLLED
            )

            assert result.status == ApplicationStatus.ENROLLED
            assert result.enrolled_at is not None
            assert result.branch_id == sample_branch.id
            create_kwargs = mock_students.create.call_args.kwargs
            assert create_kwargs["admission_number"] == "ADM-2026-00001"
            assert create_kwargs["application_id"] == approved_application.id
            mock_students.create_address.assert_awaited_once()
            assert (
                mock_repo.append_stage_event.call_args.kwargs["event_type"]
                == StageEventType.ENROLLED
            )
            mock_db.commit.assert_awaited_once()
            mock_db.rollback.assert_not_called()

    @pytest.mark.asyncio
    async def test_enroll_with_full_class_rolls_back(
        self,
        mock_db,
        school_id,
        approved_application,
        sample_branch,
        sample_student,
        sample_seat,
    ):
        """Test a full class aborts enrollment and rolls back the student insert."""
        sample_seat.filled_seats = 40

        with (
            patch("app.modules.admissions.application_service.repository") as mock_repo,
            patch("app.modules.admissions.application_service.sequences") as mock_seq,
            patch("app.modules.admissions.application_service.SchoolRepository") as mock_schools,
            patch(
                "app.modules.admissions.application_service.StudentRepository"
            ) as mock_students,
        ):
            mock_repo.get_application = AsyncMock(return_value=approved_application)
            mock_repo.get_seat_by_class = AsyncMock(return_value=sample_seat)
            mock_repo.consume_class_seat = AsyncMock(return_value=None)
            mock_repo.append_stage_event = AsyncMock()
            mock_schools.get_primary_branch = AsyncMock(return_value=sample_branch)
            mock_seq.next_admission_number = AsyncMock(return_value="ADM-2026-00001")
            mock_students.create = AsyncMock(return_value=sample_student)
            mock_students.create_address = AsyncMock()

            with pytest.raises(SeatCapacityExceededError):
                await application_service.enroll_application(
                    mock_db, school_id, approved_application.id
                )

            assert approved_application.status == ApplicationStatus.APPROVED
            mock_repo.append_stage_event.assert_not_called()
            mock_db.rollback.assert_awaited_once()
            mock_db.commit.assert_not_called()

    @pytest.mark.asyncio
    async def test_enroll_without_branch(self, mock_db, school_id, approved_application):
        with (
            patch("app.modules.admissions.application_service.repository") as mock_repo,
            patch("app.modules.admissions.application_service.SchoolRepository") as mock_schools,
        ):
            mock_repo.get_application = AsyncMock(return_value=approved_application)
            mock_schools.get_primary_branch = AsyncMock(return_value=None)
            mock_schools.get_any_branch = AsyncMock(return_value=None)

            with pytest.raises(NoBranchConfiguredError):
                await application_service.enroll_application(
                    mock_db, school_id, approved_application.id
                )

            mock_db.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_enroll_not_approved(self, mock_db, school_id, sample_application):
        sample_application.status = ApplicationStatus.SHORTLISTED

        with patch("app.modules.admissions.application_service.repository") as mock_repo:
            mock_repo.get_application = AsyncMock(return_value=sample_application)

            with pytest.raises(InvalidStageTransitionError):
                await application_service.enroll_application(
                    mock_db, school_id, sample_application.id
                )


class TestStatusCheck:
    """Tests for the public status lookup."""

    @pytest.mark.asyncio
    async def test_matching_father_phone(self, mock_db, school_id, sample_application):
        with patch("app.modules.admissions.application_service.repository") as mock_repo:
            mock_repo.get_application_by_number = AsyncMock(return_value=sample_application)

            result = await application_service.check_application_status(
                mock_db, school_id, "APP-20260110-0001", "+232 76 123 456"
            )

            assert result == sample_application

    @pytest.mark.asyncio
    async def test_matching_parent_record_phone(
        self, mock_db, school_id, sample_session, application_factory
    ):
        parent = MagicMock(spec=ApplicationParent)
        parent.phone = "+23299887766"
        application = application_factory(
            school_id, sample_session.id, father_phone=None, mother_phone=None, parents=[parent]
        )

        with patch("app.modules.admissions.application_service.repository") as mock_repo:
            mock_repo.get_application_by_number = AsyncMock(return_value=application)

            result = await application_service.check_application_status(
                mock_db, school_id, application.application_number, "+23299887766"
            )

            assert result == application

    @pytest.mark.asyncio
    async def test_phone_mismatch_looks_like_not_found(
        self, mock_db, school_id, sample_application
    ):
        with patch("app.modules.admissions.application_service.repository") as mock_repo:
            mock_repo.get_application_by_number = AsyncMock(return_value=sample_application)

            with pytest.raises(ApplicationNotFoundError) as mismatch:
                await application_service.check_application_status(
                    mock_db, school_id, "APP-20260110-0001", "+23270000000"
                )

            mock_repo.get_application_by_number = AsyncMock(return_value=None)
            with pytest.raises(ApplicationNotFoundError) as missing:
                await application_service.check_application_status(
                    mock_db, school_id, "APP-20260110-9999", "+23270000000"
                )

            assert mismatch.value.message == missing.value.message

    @pytest.mark.asyncio
    @pytest.mark.parametrize("phone", ["12345", "0232761234567", "phone-number"])
    async def test_invalid_phone(self, mock_db, school_id, phone):
        with pytest.raises(InvalidPhoneError):
            await application_service.check_application_status(
                mock_db, school_id, "APP-20260110-0001", phone
            )
