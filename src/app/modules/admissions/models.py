"""
Admissions Models

Database models for the admission lifecycle: sessions and their per-class
seat configurations, applications with parents, documents and an
append-only stage log, staff reviews, decisions/offers, merit lists, and the
counters behind application and admission numbers.

Every table is tenant scoped by school_id.
"""

import enum
import uuid
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base
from app.modules.shared import BaseModel, pg_enum
from app.modules.students.models import Gender


class SessionStatus(str, enum.Enum):
    """Status of an admission session."""

    UPCOMING = "upcoming"
    OPEN = "open"
    CLOSED = "closed"


class ApplicationStatus(str, enum.Enum):
    """Stage of an admission application in the review workflow."""

    DRAFT = "draft"
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    DOCUMENTS_PENDING = "documents_pending"
    TEST_SCHEDULED = "test_scheduled"
    TEST_COMPLETED = "test_completed"
    SHORTLISTED = "shortlisted"
    APPROVED = "approved"
    REJECTED = "rejected"
    WAITLISTED = "waitlisted"
    ENROLLED = "enrolled"


class DecisionType(str, enum.Enum):
    """Outcome of an admission decision."""

    APPROVED = "approved"
    WAITLISTED = "waitlisted"
    REJECTED = "rejected"


class ParentRelation(str, enum.Enum):
    FATHER = "father"
    MOTHER = "mother"
    GUARDIAN = "guardian"


class DocumentType(str, enum.Enum):
    BIRTH_CERTIFICATE = "birth_certificate"
    PHOTO = "photo"
    NATIONAL_ID_CARD = "national_id_card"
    TRANSFER_CERTIFICATE = "transfer_certificate"
    MARKSHEET = "marksheet"
    MEDICAL_CERTIFICATE = "medical_certificate"
    ADDRESS_PROOF = "address_proof"
    CASTE_CERTIFICATE = "caste_certificate"
    INCOME_CERTIFICATE = "income_certificate"
    OTHER = "other"


class VerificationStatus(str, enum.Enum):
    """Verification state of an uploaded document."""

    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"
    RESUBMIT_REQUIRED = "resubmit_required"


class StageEventType(str, enum.Enum):
    """Kinds of entries in the application stage log."""

    SUBMITTED = "submitted"
    STAGE_CHANGED = "stage_changed"
    DECISION_RECORDED = "decision_recorded"
    OFFER_ACCEPTED = "offer_accepted"
    WAITLIST_PROMOTED = "waitlist_promoted"
    ENROLLED = "enrolled"
    REVIEW_RECORDED = "review_recorded"


class ReviewType(str, enum.Enum):
    """Kind of staff review recorded against an application."""

    INITIAL_SCREENING = "initial_screening"
    DOCUMENT_VERIFICATION = "document_verification"
    ACADEMIC_REVIEW = "academic_review"
    INTERVIEW = "interview"
    FINAL_DECISION = "final_decision"


class ReviewStatus(str, enum.Enum):
    """Outcome of a review."""

    APPROVED = "approved"
    REJECTED = "rejected"
    PENDING_INFO = "pending_info"
    ESCALATED = "escalated"


# ============================================
# Sessions & Seats
# ============================================


class AdmissionSession(BaseModel):
    """
    An admission cycle for one or more classes.

    Status moves upcoming -> open -> closed and may be reopened.
    Seats are owned by the session and deleted with it.
    """

    __tablename__ = "admission_sessions"

    school_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("schools.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    branch_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("branches.id", ondelete="SET NULL"),
        nullable=True,
    )
    academic_year_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[SessionStatus] = mapped_column(
        pg_enum(SessionStatus, "admission_session_status"),
        nullable=False,
        default=SessionStatus.UPCOMING,
    )
    application_fee: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False, default=Decimal("0")
    )
    required_documents: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    # {allow_online_application, notify_on_application, auto_confirm_payment,
    #  max_applications_per_day, instructions}
    settings: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)

    created_by: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    updated_by: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)

    seats: Mapped[list["AdmissionSeat"]] = relationship(
        "AdmissionSeat",
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="AdmissionSeat.class_name",
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint("end_date >= start_date", name="ck_admission_sessions_date_range"),
        Index(
            "uq_admission_sessions_school_year_name",
            "school_id",
            "academic_year_id",
            "name",
            unique=True,
        ),
        Index("ix_admission_sessions_school_status", "school_id", "status"),
    )

    def __repr__(self) -> str:
        return f"<AdmissionSession(id={self.id}, name={self.name}, status={self.status.value})>"


class AdmissionSeat(BaseModel):
    """
    Seat configuration for one class within a session.

    filled_seats never exceeds total_seats; it is only changed through
    conditional updates in the repository.
    """

    __tablename__ = "admission_seats"

    school_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("schools.id", ondelete="CASCADE"),
        nullable=False,
    )
    session_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("admission_sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    class_name: Mapped[str] = mapped_column(String(50), nullable=False)
    total_seats: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    filled_seats: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    waitlist_limit: Mapped[int] = mapped_column(Integer, nullable=False, default=10)
    # category -> reserved seat count
    reserved_seats: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)

    session: Mapped["AdmissionSession"] = relationship("AdmissionSession", back_populates="seats")

    __table_args__ = (
        UniqueConstraint("session_id", "class_name", name="uq_admission_seats_session_class"),
        CheckConstraint("total_seats >= 0", name="ck_admission_seats_total_non_negative"),
        CheckConstraint(
            "filled_seats >= 0 AND filled_seats <= total_seats",
            name="ck_admission_seats_filled_within_total",
        ),
    )

    @property
    def available_seats(self) -> int:
        return max(self.total_seats - self.filled_seats, 0)

    def __repr__(self) -> str:
        return f"<AdmissionSeat(class={self.class_name}, {self.filled_seats}/{self.total_seats})>"


# ============================================
# Applications
# ============================================


class AdmissionApplication(BaseModel):
    """
    A prospective student's admission application.

    The status column follows the stage graph in transitions.py. The
    application number is generated once at creation.
    """

    __tablename__ = "admission_applications"

    school_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("schools.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    session_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("admission_sessions.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    branch_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("branches.id", ondelete="SET NULL"),
        nullable=True,
    )
    enquiry_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    application_number: Mapped[str] = mapped_column(String(50), nullable=False)

    # Student details
    student_name: Mapped[str] = mapped_column(String(200), nullable=False)
    date_of_birth: Mapped[date | None] = mapped_column(Date, nullable=True)
    gender: Mapped[Gender | None] = mapped_column(
        pg_enum(Gender, "gender"), nullable=True
    )
    blood_group: Mapped[str | None] = mapped_column(String(10), nullable=True)
    nationality: Mapped[str | None] = mapped_column(String(100), nullable=True)
    religion: Mapped[str | None] = mapped_column(String(100), nullable=True)
    category: Mapped[str | None] = mapped_column(String(50), nullable=True)
    national_id: Mapped[str | None] = mapped_column(String(30), nullable=True)

    # Academic details
    class_applying: Mapped[str] = mapped_column(String(50), nullable=False)
    previous_school: Mapped[str | None] = mapped_column(String(200), nullable=True)
    previous_class: Mapped[str | None] = mapped_column(String(50), nullable=True)
    previous_percentage: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)

    # Address
    address_line1: Mapped[str | None] = mapped_column(String(255), nullable=True)
    address_line2: Mapped[str | None] = mapped_column(String(255), nullable=True)
    city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    state: Mapped[str | None] = mapped_column(String(100), nullable=True)
    postal_code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    country: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Parent / guardian contact
    father_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    father_phone: Mapped[str | None] = mapped_column(String(20), nullable=True)
    father_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    father_occupation: Mapped[str | None] = mapped_column(String(200), nullable=True)
    mother_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    mother_phone: Mapped[str | None] = mapped_column(String(20), nullable=True)
    mother_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    mother_occupation: Mapped[str | None] = mapped_column(String(200), nullable=True)
    guardian_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    guardian_phone: Mapped[str | None] = mapped_column(String(20), nullable=True)
    guardian_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    guardian_relation: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # Workflow
    status: Mapped[ApplicationStatus] = mapped_column(
        pg_enum(ApplicationStatus, "admission_application_status"),
        nullable=False,
        default=ApplicationStatus.DRAFT,
    )
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    approved_by: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    enrolled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    waitlist_position: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Payment
    fee_paid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    payment_reference: Mapped[str | None] = mapped_column(String(100), nullable=True)

    remarks: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Staff-only, never returned by the public status lookup
    internal_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_by: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    updated_by: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)

    parents: Mapped[list["ApplicationParent"]] = relationship(
        "ApplicationParent",
        back_populates="application",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    documents: Mapped[list["ApplicationDocument"]] = relationship(
        "ApplicationDocument",
        back_populates="application",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    stage_events: Mapped[list["ApplicationStageEvent"]] = relationship(
        "ApplicationStageEvent",
        back_populates="application",
        cascade="all, delete-orphan",
        order_by="ApplicationStageEvent.created_at",
        lazy="noload",
    )

    __table_args__ = (
        UniqueConstraint(
            "school_id", "application_number", name="uq_admission_applications_number"
        ),
        Index("ix_admission_applications_session_status", "session_id", "status"),
        Index("ix_admission_applications_session_class", "session_id", "class_applying"),
    )

    def __repr__(self) -> str:
        return (
            f"<AdmissionApplication(number={self.application_number}, "
            f"status={self.status.value})>"
        )


class ApplicationParent(BaseModel):
    """A parent or guardian attached to an application."""

    __tablename__ = "application_parents"

    school_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("schools.id", ondelete="CASCADE"),
        nullable=False,
    )
    application_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("admission_applications.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    relation: Mapped[ParentRelation] = mapped_column(
        pg_enum(ParentRelation, "parent_relation"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(20), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    occupation: Mapped[str | None] = mapped_column(String(200), nullable=True)
    education: Mapped[str | None] = mapped_column(String(200), nullable=True)
    annual_income: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)

    application: Mapped["AdmissionApplication"] = relationship(
        "AdmissionApplication", back_populates="parents"
    )


class ApplicationDocument(BaseModel):
    """Metadata for a document attached to an application. File storage is external."""

    __tablename__ = "application_documents"

    school_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("schools.id", ondelete="CASCADE"),
        nullable=False,
    )
    application_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("admission_applications.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    document_type: Mapped[DocumentType] = mapped_column(
        pg_enum(DocumentType, "application_document_type"), nullable=False
    )
    file_url: Mapped[str] = mapped_column(String(500), nullable=False)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_size: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    mime_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    verification_status: Mapped[VerificationStatus] = mapped_column(
        pg_enum(VerificationStatus, "document_verification_status"),
        nullable=False,
        default=VerificationStatus.PENDING,
    )
    verified_by: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    verified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    remarks: Mapped[str | None] = mapped_column(Text, nullable=True)

    application: Mapped["AdmissionApplication"] = relationship(
        "AdmissionApplication", back_populates="documents"
    )


class ApplicationStageEvent(Base):
    """
    Append-only log of workflow events for an application.

    Rows are inserted, never updated; they only disappear when their draft
    application is deleted.
    """

    __tablename__ = "application_stage_events"
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    school_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("schools.id", ondelete="CASCADE"),
        nullable=False,
    )
    application_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("admission_applications.id", ondelete="CASCADE"),
        nullable=False,
    )
    event_type: Mapped[StageEventType] = mapped_column(
        pg_enum(StageEventType, "stage_event_type"), nullable=False
    )
    from_status: Mapped[ApplicationStatus | None] = mapped_column(
        pg_enum(ApplicationStatus, "admission_application_status"),
        nullable=True,
    )
    to_status: Mapped[ApplicationStatus] = mapped_column(
        pg_enum(ApplicationStatus, "admission_application_status"),
        nullable=False,
    )
    changed_by: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    remarks: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    application: Mapped["AdmissionApplication"] = relationship(
        "AdmissionApplication", back_populates="stage_events"
    )

    __table_args__ = (
        Index("ix_application_stage_events_application", "application_id", "created_at"),
    )


class ApplicationReview(BaseModel):
    """
    A staff review of an application.

    Reviews are recorded once and never edited. The outcome may move the
    application along the stage graph; that move is logged as a stage event.
    """

    __tablename__ = "application_reviews"

    school_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("schools.id", ondelete="CASCADE"),
        nullable=False,
    )
    application_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("admission_applications.id", ondelete="CASCADE"),
        nullable=False,
    )
    reviewer_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    review_type: Mapped[ReviewType] = mapped_column(
        pg_enum(ReviewType, "application_review_type"), nullable=False
    )
    status: Mapped[ReviewStatus] = mapped_column(
        pg_enum(ReviewStatus, "application_review_status"), nullable=False
    )
    comments: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("ix_application_reviews_application", "application_id", "created_at"),
        Index("ix_application_reviews_school", "school_id", "created_at"),
    )


# ============================================
# Decisions & Merit Lists
# ============================================


class AdmissionDecision(BaseModel):
    """
    The single decision recorded for an application, with offer details.

    waitlist_position is set only for waitlisted decisions and
    rejection_reason only for rejected ones.
    """

    __tablename__ = "admission_decisions"

    school_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("schools.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    application_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("admission_applications.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    decision: Mapped[DecisionType] = mapped_column(
        pg_enum(DecisionType, "admission_decision_type"), nullable=False
    )
    decision_date: Mapped[date] = mapped_column(Date, nullable=False)
    decided_by: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    section_assigned: Mapped[str | None] = mapped_column(String(20), nullable=True)
    waitlist_position: Mapped[int | None] = mapped_column(Integer, nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    offer_letter_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    offer_valid_until: Mapped[date | None] = mapped_column(Date, nullable=True)
    offer_accepted: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    offer_accepted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    remarks: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "decision <> 'waitlisted' OR waitlist_position > 0",
            name="ck_admission_decisions_waitlist_position",
        ),
    )


class MeritList(BaseModel):
    """
    Ranked snapshot of eligible applicants for one session and class.

    entries is a JSON array of MeritListEntry dicts ordered by rank. It is
    rebuilt wholesale on regeneration and frozen once is_final is set.
    """

    __tablename__ = "merit_lists"

    school_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("schools.id", ondelete="CASCADE"),
        nullable=False,
    )
    session_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("admission_sessions.id", ondelete="CASCADE"),
        nullable=False,
    )
    class_name: Mapped[str] = mapped_column(String(50), nullable=False)
    test_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    generated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    generated_by: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    cutoff_score: Mapped[Decimal | None] = mapped_column(Numeric(6, 2), nullable=True)
    entries: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    is_final: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (
        Index("ix_merit_lists_key", "school_id", "session_id", "class_name", "generated_at"),
    )


# ============================================
# Sequence Counters
# ============================================


class ApplicationNumberSequence(Base):
    """Per school, per day counter behind APP-YYYYMMDD-NNNN numbers."""

    __tablename__ = "application_number_sequences"

    school_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("schools.id", ondelete="CASCADE"),
        primary_key=True,
    )
    date_prefix: Mapped[str] = mapped_column(String(8), primary_key=True)
    last_sequence: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class AdmissionNumberSequence(Base):
    """Per school, branch and year counter behind ADM-YYYY-NNNNN numbers."""

    __tablename__ = "admission_number_sequences"

    school_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("schools.id", ondelete="CASCADE"),
        primary_key=True,
    )
    branch_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("branches.id", ondelete="CASCADE"),
        primary_key=True,
    )
    year: Mapped[int] = mapped_column(Integer, primary_key=True)
    last_sequence: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
