"""
Fixtures for admissions tests.
"""

from datetime import UTC, date, datetime, timedelta
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from app.modules.admissions.models import (
    AdmissionApplication,
    AdmissionDecision,
    AdmissionSeat,
    AdmissionSession,
    ApplicationStatus,
    DecisionType,
    MeritList,
    SessionStatus,
)
from app.modules.admissions.schemas import (
    AcademicInfo,
    AddressInfo,
    ApplicationCreate,
    ParentContact,
    StudentInfo,
)
from app.modules.schools.models import Branch
from app.modules.students.models import Gender, Student


@pytest.fixture
def mock_db():
    """Create a mock database session."""
    db = AsyncMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.flush = AsyncMock()
    db.refresh = AsyncMock()
    db.execute = AsyncMock()
    db.add = MagicMock()
    return db


@pytest.fixture
def school_id():
    return uuid4()


@pytest.fixture
def user_id():
    return uuid4()


@pytest.fixture
def sample_session(school_id):
    """An open admission session."""
    session = MagicMock(spec=AdmissionSession)
    session.id = uuid4()
    session.school_id = school_id
    session.branch_id = None
    session.academic_year_id = None
    session.name = "2026 Intake"
    session.start_date = date(2026, 1, 1)
    session.end_date = date(2026, 3, 31)
    session.status = SessionStatus.OPEN
    session.settings = {"allow_online_application": True}
    session.seats = []
    return session


@pytest.fixture
def sample_seat(school_id, sample_session):
    """Grade 1 seats: 40 total, 38 filled."""
    seat = MagicMock(spec=AdmissionSeat)
    seat.id = uuid4()
    seat.school_id = school_id
    seat.session_id = sample_session.id
    seat.class_name = "Grade 1"
    seat.total_seats = 40
    seat.filled_seats = 38
    seat.waitlist_limit = 10
    return seat


@pytest.fixture
def sample_application_create(sample_session):
    return ApplicationCreate(
        session_id=sample_session.id,
        student=StudentInfo(
            name="Aminata Kamara",
            date_of_birth=date(2019, 5, 14),
            gender=Gender.FEMALE,
        ),
        academic=AcademicInfo(class_applying="Grade 1", previous_school="Little Stars"),
        address=AddressInfo(address_line1="12 Wilkinson Road", city="Freetown"),
        father=ParentContact(name="Ibrahim Kamara", phone="+23276123456"),
        mother=ParentContact(name="Fatmata Kamara", phone="+23277654321"),
    )


def make_application(school_id, session_id, **overrides):
    """Build a mock application; overrides set attributes."""
    app = MagicMock(spec=AdmissionApplication)
    app.id = uuid4()
    app.school_id = school_id
    app.session_id = session_id
    app.branch_id = None
    app.application_number = "APP-20260110-0001"
    app.student_name = "Aminata Kamara"
    app.date_of_birth = date(2019, 5, 14)
    app.gender = Gender.FEMALE
    app.blood_group = None
    app.national_id = None
    app.category = None
    app.previous_school = None
    app.previous_percentage = None
    app.class_applying = "Grade 1"
    app.address_line1 = "12 Wilkinson Road"
    app.address_line2 = None
    app.city = "Freetown"
    app.state = None
    app.postal_code = None
    app.country = "Sierra Leone"
    app.father_phone = "+23276123456"
    app.father_email = None
    app.mother_phone = "+23277654321"
    app.mother_email = None
    app.guardian_phone = None
    app.guardian_email = None
    app.parents = []
    app.status = ApplicationStatus.DRAFT
    app.submitted_at = None
    app.approved_at = None
    app.approved_by = None
    app.enrolled_at = None
    app.waitlist_position = None
    app.remarks = None
    for field, value in overrides.items():
        setattr(app, field, value)
    return app


@pytest.fixture
def sample_application(school_id, sample_session):
    return make_application(school_id, sample_session.id)


@pytest.fixture
def approved_application(school_id, sample_session):
    return make_application(
        school_id,
        sample_session.id,
        status=ApplicationStatus.APPROVED,
        approved_at=datetime.now(UTC),
    )


@pytest.fixture
def sample_branch(school_id):
    branch = MagicMock(spec=Branch)
    branch.id = uuid4()
    branch.school_id = school_id
    branch.code = "MAIN"
    branch.is_primary = True
    return branch


@pytest.fixture
def sample_student(school_id):
    student = MagicMock(spec=Student)
    student.id = uuid4()
    student.school_id = school_id
    student.admission_number = "ADM-2026-00001"
    return student


@pytest.fixture
def approved_decision(school_id, approved_application):
    decision = MagicMock(spec=AdmissionDecision)
    decision.id = uuid4()
    decision.school_id = school_id
    decision.application_id = approved_application.id
    decision.decision = DecisionType.APPROVED
    decision.decision_date = date.today()
    decision.waitlist_position = None
    decision.section_assigned = None
    decision.offer_letter_url = None
    decision.offer_valid_until = date.today() + timedelta(days=30)
    decision.offer_accepted = None
    decision.offer_accepted_at = None
    decision.remarks = None
    return decision


@pytest.fixture
def draft_merit_list(school_id, sample_session):
    merit_list = MagicMock(spec=MeritList)
    merit_list.id = uuid4()
    merit_list.school_id = school_id
    merit_list.session_id = sample_session.id
    merit_list.class_name = "Grade 1"
    merit_list.test_id = None
    merit_list.generated_at = datetime.now(UTC)
    merit_list.generated_by = None
    merit_list.cutoff_score = Decimal("60")
    merit_list.is_final = False
    merit_list.entries = [
        {
            "rank": 1,
            "application_id": str(uuid4()),
            "application_number": "APP-20260110-0002",
            "student_name": "Mohamed Sesay",
            "score": 90.0,
            "status": "submitted",
            "parent_phone": None,
            "parent_email": None,
        },
        {
            "rank": 2,
            "application_id": str(uuid4()),
            "application_number": "APP-20260110-0001",
            "student_name": "Aminata Kamara",
            "score": 55.0,
            "status": "submitted",
            "parent_phone": None,
            "parent_email": None,
        },
    ]
    return merit_list


@pytest.fixture
def application_factory():
    return make_application
