"""
Admissions Schemas

Pydantic schemas for request validation and response serialization.

Update schemas use "only if present" semantics: services apply
``model_dump(exclude_unset=True)`` so omitted fields are left untouched.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from app.modules.admissions.models import (
    ApplicationStatus,
    DecisionType,
    DocumentType,
    ParentRelation,
    ReviewStatus,
    ReviewType,
    SessionStatus,
    StageEventType,
    VerificationStatus,
)
from app.modules.students.models import Gender

# ============================================
# Sessions & Seats
# ============================================


class SessionSettings(BaseModel):
    """Per-session behaviour switches stored as JSON on the session."""

    allow_online_application: bool = True
    notify_on_application: bool = True
    auto_confirm_payment: bool = False
    max_applications_per_day: int | None = Field(None, ge=1)
    instructions: str | None = Field(None, max_length=5000)


class SessionCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    branch_id: UUID | None = None
    academic_year_id: UUID | None = None
    start_date: date
    end_date: date
    application_fee: Decimal = Field(Decimal("0"), ge=0)
    required_documents: list[DocumentType] = Field(default_factory=list)
    settings: SessionSettings = Field(default_factory=SessionSettings)


class SessionUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = None
    branch_id: UUID | None = None
    academic_year_id: UUID | None = None
    start_date: date | None = None
    end_date: date | None = None
    application_fee: Decimal | None = Field(None, ge=0)
    required_documents: list[DocumentType] | None = None
    settings: SessionSettings | None = None


class SessionStatusChange(BaseModel):
    status: SessionStatus


class DeadlineExtension(BaseModel):
    end_date: date


class SeatCreate(BaseModel):
    class_name: str = Field(..., min_length=1, max_length=50)
    total_seats: int = Field(..., ge=0)
    waitlist_limit: int | None = Field(None, ge=0)
    reserved_seats: dict[str, int] = Field(default_factory=dict)


class SeatUpdate(BaseModel):
    total_seats: int | None = Field(None, ge=0)
    waitlist_limit: int | None = Field(None, ge=0)
    reserved_seats: dict[str, int] | None = None


class SeatIncrement(BaseModel):
    count: int = 1


class SeatResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    session_id: UUID
    class_name: str
    total_seats: int
    filled_seats: int
    available_seats: int
    waitlist_limit: int
    reserved_seats: dict[str, int]
    created_at: datetime
    updated_at: datetime


class SessionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    school_id: UUID
    branch_id: UUID | None
    academic_year_id: UUID | None
    name: str
    description: str | None
    start_date: date
    end_date: date
    status: SessionStatus
    application_fee: Decimal
    required_documents: list[str]
    settings: dict
    created_at: datetime
    updated_at: datetime


class SessionDetailResponse(SessionResponse):
    seats: list[SeatResponse] = Field(default_factory=list)


class SessionListResponse(BaseModel):
    sessions: list[SessionResponse]
    total: int


class SessionStatsResponse(BaseModel):
    session_id: UUID
    total_seats: int
    filled_seats: int
    available_seats: int
    total_applications: int
    applications_by_status: dict[str, int]


# ============================================
# Applications
# ============================================


class StudentInfo(BaseModel):
    """Student details section."""

    name: str = Field(..., min_length=1, max_length=200)
    date_of_birth: date | None = None
    gender: Gender | None = None
    blood_group: str | None = Field(None, max_length=10)
    nationality: str | None = Field(None, max_length=100)
    religion: str | None = Field(None, max_length=100)
    category: str | None = Field(None, max_length=50)
    national_id: str | None = Field(None, max_length=30)


class AcademicInfo(BaseModel):
    """Class being applied for and prior schooling."""

    class_applying: str = Field(..., min_length=1, max_length=50)
    previous_school: str | None = Field(None, max_length=200)
    previous_class: str | None = Field(None, max_length=50)
    previous_percentage: Decimal | None = Field(None, ge=0, le=100)


class AddressInfo(BaseModel):
    address_line1: str | None = Field(None, max_length=255)
    address_line2: str | None = Field(None, max_length=255)
    city: str | None = Field(None, max_length=100)
    state: str | None = Field(None, max_length=100)
    postal_code: str | None = Field(None, max_length=20)
    country: str | None = Field(None, max_length=100)


class ParentContact(BaseModel):
    name: str | None = Field(None, max_length=200)
    phone: str | None = Field(None, max_length=20)
    email: EmailStr | None = None
    occupation: str | None = Field(None, max_length=200)


class GuardianContact(BaseModel):
    name: str | None = Field(None, max_length=200)
    phone: str | None = Field(None, max_length=20)
    email: EmailStr | None = None
    relation: str | None = Field(None, max_length=50)


class ApplicationCreate(BaseModel):
    """Request body for creating an admission application."""

    session_id: UUID
    branch_id: UUID | None = None
    enquiry_id: UUID | None = None
    student: StudentInfo
    academic: AcademicInfo
    address: AddressInfo = Field(default_factory=AddressInfo)
    father: ParentContact = Field(default_factory=ParentContact)
    mother: ParentContact = Field(default_factory=ParentContact)
    guardian: GuardianContact = Field(default_factory=GuardianContact)
    remarks: str | None = None


class ApplicationUpdate(BaseModel):
    """Partial update of applicant details. Unset fields are left unchanged."""

    branch_id: UUID | None = None
    student_name: str | None = Field(None, min_length=1, max_length=200)
    date_of_birth: date | None = None
    gender: Gender | None = None
    blood_group: str | None = Field(None, max_length=10)
    nationality: str | None = Field(None, max_length=100)
    religion: str | None = Field(None, max_length=100)
    category: str | None = Field(None, max_length=50)
    national_id: str | None = Field(None, max_length=30)
    class_applying: str | None = Field(None, min_length=1, max_length=50)
    previous_school: str | None = Field(None, max_length=200)
    previous_class: str | None = Field(None, max_length=50)
    previous_percentage: Decimal | None = Field(None, ge=0, le=100)
    address_line1: str | None = Field(None, max_length=255)
    address_line2: str | None = Field(None, max_length=255)
    city: str | None = Field(None, max_length=100)
    state: str | None = Field(None, max_length=100)
    postal_code: str | None = Field(None, max_length=20)
    country: str | None = Field(None, max_length=100)
    father_name: str | None = Field(None, max_length=200)
    father_phone: str | None = Field(None, max_length=20)
    father_email: EmailStr | None = None
    father_occupation: str | None = Field(None, max_length=200)
    mother_name: str | None = Field(None, max_length=200)
    mother_phone: str | None = Field(None, max_length=20)
    mother_email: EmailStr | None = None
    mother_occupation: str | None = Field(None, max_length=200)
    guardian_name: str | None = Field(None, max_length=200)
    guardian_phone: str | None = Field(None, max_length=20)
    guardian_email: EmailStr | None = None
    guardian_relation: str | None = Field(None, max_length=50)
    fee_paid: bool | None = None
    payment_reference: str | None = Field(None, max_length=100)
    remarks: str | None = None
    internal_notes: str | None = None


class StageUpdateRequest(BaseModel):
    status: ApplicationStatus
    remarks: str | None = None


class ApplicationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    school_id: UUID
    session_id: UUID
    branch_id: UUID | None
    enquiry_id: UUID | None
    application_number: str
    student_name: str
    date_of_birth: date | None
    gender: Gender | None
    blood_group: str | None
    nationality: str | None
    religion: str | None
    category: str | None
    national_id: str | None
    class_applying: str
    previous_school: str | None
    previous_class: str | None
    previous_percentage: Decimal | None
    address_line1: str | None
    address_line2: str | None
    city: str | None
    state: str | None
    postal_code: str | None
    country: str | None
    father_name: str | None
    father_phone: str | None
    father_email: str | None
    father_occupation: str | None
    mother_name: str | None
    mother_phone: str | None
    mother_email: str | None
    mother_occupation: str | None
    guardian_name: str | None
    guardian_phone: str | None
    guardian_email: str | None
    guardian_relation: str | None
    status: ApplicationStatus
    submitted_at: datetime | None
    approved_at: datetime | None
    enrolled_at: datetime | None
    waitlist_position: int | None
    fee_paid: bool
    payment_reference: str | None
    remarks: str | None
    internal_notes: str | None
    created_at: datetime
    updated_at: datetime


class ApplicationListResponse(BaseModel):
    applications: list[ApplicationResponse]
    total: int
    skip: int
    limit: int


class StageEventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    event_type: StageEventType
    from_status: ApplicationStatus | None
    to_status: ApplicationStatus
    changed_by: UUID | None
    remarks: str | None
    created_at: datetime


class ReviewCreate(BaseModel):
    review_type: ReviewType
    status: ReviewStatus
    comments: str | None = Field(None, max_length=2000)


class ReviewResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    application_id: UUID
    reviewer_id: UUID | None
    review_type: ReviewType
    status: ReviewStatus
    comments: str | None
    created_at: datetime


class ReviewResultResponse(BaseModel):
    """A recorded review and the application status it left behind."""

    review: ReviewResponse
    application_status: ApplicationStatus


class ReviewListResponse(BaseModel):
    reviews: list[ReviewResponse]
    total: int
    skip: int
    limit: int


class ParentCreate(BaseModel):
    relation: ParentRelation
    name: str = Field(..., min_length=1, max_length=200)
    phone: str | None = Field(None, max_length=20)
    email: EmailStr | None = None
    occupation: str | None = Field(None, max_length=200)
    education: str | None = Field(None, max_length=200)
    annual_income: Decimal | None = Field(None, ge=0)


class ParentUpdate(BaseModel):
    relation: ParentRelation | None = None
    name: str | None = Field(None, min_length=1, max_length=200)
    phone: str | None = Field(None, max_length=20)
    email: EmailStr | None = None
    occupation: str | None = Field(None, max_length=200)
    education: str | None = Field(None, max_length=200)
    annual_income: Decimal | None = Field(None, ge=0)


class ParentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    application_id: UUID
    relation: ParentRelation
    name: str
    phone: str | None
    email: str | None
    occupation: str | None
    education: str | None
    annual_income: Decimal | None


class DocumentCreate(BaseModel):
    document_type: DocumentType
    file_url: str = Field(..., min_length=1, max_length=500)
    file_name: str = Field(..., min_length=1, max_length=255)
    file_size: int | None = Field(None, ge=0)
    mime_type: str | None = Field(None, max_length=100)


class DocumentVerifyRequest(BaseModel):
    status: VerificationStatus
    remarks: str | None = None


class DocumentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    application_id: UUID
    document_type: DocumentType
    file_url: str
    file_name: str
    file_size: int | None
    mime_type: str | None
    verification_status: VerificationStatus
    verified_by: UUID | None
    verified_at: datetime | None
    remarks: str | None
    created_at: datetime


class StatusCheckRequest(BaseModel):
    """Public status lookup by application number and a registered phone."""

    school_id: UUID
    application_number: str = Field(..., min_length=1, max_length=50)
    phone: str = Field(..., min_length=1, max_length=20)


class StatusCheckResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    application_number: str
    student_name: str
    class_applying: str
    status: ApplicationStatus
    submitted_at: datetime | None
    updated_at: datetime


# ============================================
# Decisions & Offers
# ============================================


class DecisionCreate(BaseModel):
    application_id: UUID
    decision: DecisionType
    decision_date: date | None = None
    section_assigned: str | None = Field(None, max_length=20)
    waitlist_position: int | None = None
    rejection_reason: str | None = None
    offer_valid_until: date | None = None
    remarks: str | None = None


class DecisionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    application_id: UUID
    decision: DecisionType
    decision_date: date
    decided_by: UUID | None
    section_assigned: str | None
    waitlist_position: int | None
    rejection_reason: str | None
    offer_letter_url: str | None
    offer_valid_until: date | None
    offer_accepted: bool | None
    offer_accepted_at: datetime | None
    remarks: str | None
    created_at: datetime


class DecisionListResponse(BaseModel):
    decisions: list[DecisionResponse]
    total: int
    skip: int
    limit: int


class OfferLetterRequest(BaseModel):
    valid_until: date | None = None


class EnrollRequest(BaseModel):
    remarks: str | None = None


class PromoteRequest(BaseModel):
    section_assigned: str | None = Field(None, max_length=20)
    remarks: str | None = None


class WaitlistPositionUpdate(BaseModel):
    position: int


# ============================================
# Merit Lists
# ============================================


class MeritListEntry(BaseModel):
    """One ranked applicant on a merit list."""

    rank: int
    application_id: UUID
    application_number: str
    student_name: str
    score: float
    status: ApplicationStatus
    parent_phone: str | None = None
    parent_email: str | None = None


class MeritListGenerate(BaseModel):
    session_id: UUID
    class_name: str = Field(..., min_length=1, max_length=50)
    test_id: UUID | None = None
    cutoff_score: Decimal | None = Field(None, ge=0)


class CutoffUpdate(BaseModel):
    cutoff_score: Decimal | None = Field(None, ge=0)


class MeritListResponse(BaseModel):
    id: UUID
    session_id: UUID
    class_name: str
    test_id: UUID | None
    generated_at: datetime
    generated_by: UUID | None
    cutoff_score: Decimal | None
    is_final: bool
    total_count: int
    above_cutoff: int
    entries: list[MeritListEntry]
