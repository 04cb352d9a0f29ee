"""create admissions schema

Revision ID: a7c3e91f2b04
Revises:
Create Date: 2026-10-17 09:00:00.000000

This migration:
1. Creates the enum types used by schools, students and admissions
2. Creates schools and branches (tenants and campuses)
3. Creates admission sessions, seat configurations and applications with
   their parents, documents and stage log
4. Creates decisions, merit lists and students
5. Creates the counter tables behind application and admission numbers

Enum types are created explicitly with checkfirst so the models can use
create_type=False.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "a7c3e91f2b04"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


ENUM_TYPES = {
    "school_status": ("active", "suspended", "deactivated"),
    "gender": ("male", "female", "other"),
    "student_status": ("active", "inactive", "graduated", "transferred"),
    "address_type": ("current", "permanent"),
    "admission_session_status": ("upcoming", "open", "closed"),
    "admission_application_status": (
        "draft",
        "submitted",
        "under_review",
        "documents_pending",
        "test_scheduled",
        "test_completed",
        "shortlisted",
        "approved",
        "rejected",
        "waitlisted",
        "enrolled",
    ),
    "admission_decision_type": ("approved", "waitlisted", "rejected"),
    "parent_relation": ("father", "mother", "guardian"),
    "application_document_type": (
        "birth_certificate",
        "photo",
        "national_id_card",
        "transfer_certificate",
        "marksheet",
        "medical_certificate",
        "address_proof",
        "caste_certificate",
        "income_certificate",
        "other",
    ),
    "document_verification_status": ("pending", "verified", "rejected", "resubmit_required"),
    "stage_event_type": (
        "submitted",
        "stage_changed",
        "decision_recorded",
        "offer_accepted",
        "waitlist_promoted",
        "enrolled",
    ),
}


def _enum(name: str) -> postgresql.ENUM:
    return postgresql.ENUM(*ENUM_TYPES[name], name=name, create_type=False)


def _base_columns() -> list[sa.Column]:
    """Primary key and timestamps (from BaseModel)."""
    return [
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def _school_fk() -> sa.Column:
    return sa.Column(
        "school_id",
        postgresql.UUID(as_uuid=True),
        sa.ForeignKey("schools.id", ondelete="CASCADE"),
        nullable=False,
    )


def upgrade() -> None:
    """Create the admissions schema."""
    bind = op.get_bind()
    for name in ENUM_TYPES:
        postgresql.ENUM(*ENUM_TYPES[name], name=name).create(bind, checkfirst=True)

    # ============================================
    # Schools & Branches
    # ============================================

    op.create_table(
        "schools",
        *_base_columns(),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("country_code", sa.String(length=2), nullable=True),
        sa.Column("city", sa.String(length=100), nullable=True),
        sa.Column("status", _enum("school_status"), nullable=False, server_default="active"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_schools_name"), "schools", ["name"], unique=False)

    op.create_table(
        "branches",
        *_base_columns(),
        _school_fk(),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("code", sa.String(length=20), nullable=False),
        sa.Column("is_primary", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("school_id", "code", name="uq_branches_school_code"),
    )
    op.create_index(op.f("ix_branches_school_id"), "branches", ["school_id"], unique=False)
    op.create_index("ix_branches_school_primary", "branches", ["school_id", "is_primary"])

    # ============================================
    # Sessions & Seats
    # ============================================

    op.create_table(
        "admission_sessions",
        *_base_columns(),
        _school_fk(),
        sa.Column(
            "branch_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("branches.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("academic_year_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column(
            "status",
            _enum("admission_session_status"),
            nullable=False,
            server_default="upcoming",
        ),
        sa.Column("application_fee", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column(
            "required_documents",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column(
            "settings",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("updated_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("end_date >= start_date", name="ck_admission_sessions_date_range"),
    )
    op.create_index(
        op.f("ix_admission_sessions_school_id"), "admission_sessions", ["school_id"]
    )
    op.create_index(
        "uq_admission_sessions_school_year_name",
        "admission_sessions",
        ["school_id", "academic_year_id", "name"],
        unique=True,
    )
    op.create_index(
        "ix_admission_sessions_school_status", "admission_sessions", ["school_id", "status"]
    )

    op.create_table(
        "admission_seats",
        *_base_columns(),
        _school_fk(),
        sa.Column(
            "session_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("admission_sessions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("class_name", sa.String(length=50), nullable=False),
        sa.Column("total_seats", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("filled_seats", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("waitlist_limit", sa.Integer(), nullable=False, server_default="10"),
        sa.Column(
            "reserved_seats",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("session_id", "class_name", name="uq_admission_seats_session_class"),
        sa.CheckConstraint("total_seats >= 0", name="ck_admission_seats_total_non_negative"),
        sa.CheckConstraint(
            "filled_seats >= 0 AND filled_seats <= total_seats",
            name="ck_admission_seats_filled_within_total",
        ),
    )
    op.create_index(op.f("ix_admission_seats_session_id"), "admission_seats", ["session_id"])

    # ============================================
    # Applications
    # ============================================

    op.create_table(
        "admission_applications",
        *_base_columns(),
        _school_fk(),
        sa.Column(
            "session_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("admission_sessions.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column(
            "branch_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("branches.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("enquiry_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("application_number", sa.String(length=50), nullable=False),
        # Student details
        sa.Column("student_name", sa.String(length=200), nullable=False),
        sa.Column("date_of_birth", sa.Date(), nullable=True),
        sa.Column("gender", _enum("gender"), nullable=True),
        sa.Column("blood_group", sa.String(length=10), nullable=True),
        sa.Column("nationality", sa.String(length=100), nullable=True),
        sa.Column("religion", sa.String(length=100), nullable=True),
        sa.Column("category", sa.String(length=50), nullable=True),
        sa.Column("national_id", sa.String(length=30), nullable=True),
        # Academic details
        sa.Column("class_applying", sa.String(length=50), nullable=False),
        sa.Column("previous_school", sa.String(length=200), nullable=True),
        sa.Column("previous_class", sa.String(length=50), nullable=True),
        sa.Column("previous_percentage", sa.Numeric(5, 2), nullable=True),
        # Address
        sa.Column("address_line1", sa.String(length=255), nullable=True),
        sa.Column("address_line2", sa.String(length=255), nullable=True),
        sa.Column("city", sa.String(length=100), nullable=True),
        sa.Column("state", sa.String(length=100), nullable=True),
        sa.Column("postal_code", sa.String(length=20), nullable=True),
        sa.Column("country", sa.String(length=100), nullable=True),
        # Parent / guardian contact
        sa.Column("father_name", sa.String(length=200), nullable=True),
        sa.Column("father_phone", sa.String(length=20), nullable=True),
        sa.Column("father_email", sa.String(length=255), nullable=True),
        sa.Column("father_occupation", sa.String(length=200), nullable=True),
        sa.Column("mother_name", sa.String(length=200), nullable=True),
        sa.Column("mother_phone", sa.String(length=20), nullable=True),
        sa.Column("mother_email", sa.String(length=255), nullable=True),
        sa.Column("mother_occupation", sa.String(length=200), nullable=True),
        sa.Column("guardian_name", sa.String(length=200), nullable=True),
        sa.Column("guardian_phone", sa.String(length=20), nullable=True),
        sa.Column("guardian_email", sa.String(length=255), nullable=True),
        sa.Column("guardian_relation", sa.String(length=50), nullable=True),
        # Workflow
        sa.Column(
            "status",
            _enum("admission_application_status"),
            nullable=False,
            server_default="draft",
        ),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("approved_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("enrolled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("waitlist_position", sa.Integer(), nullable=True),
        # Payment
        sa.Column("fee_paid", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("payment_reference", sa.String(length=100), nullable=True),
        sa.Column("remarks", sa.Text(), nullable=True),
        sa.Column("internal_notes", sa.Text(), nullable=True),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("updated_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "school_id", "application_number", name="uq_admission_applications_number"
        ),
    )
    op.create_index(
        op.f("ix_admission_applications_school_id"), "admission_applications", ["school_id"]
    )
    op.create_index(
        op.f("ix_admission_applications_session_id"), "admission_applications", ["session_id"]
    )
    op.create_index(
        "ix_admission_applications_session_status",
        "admission_applications",
        ["session_id", "status"],
    )
    op.create_index(
        "ix_admission_applications_session_class",
        "admission_applications",
        ["session_id", "class_applying"],
    )

    op.create_table(
        "application_parents",
        *_base_columns(),
        _school_fk(),
        sa.Column(
            "application_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("admission_applications.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("relation", _enum("parent_relation"), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("phone", sa.String(length=20), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("occupation", sa.String(length=200), nullable=True),
        sa.Column("education", sa.String(length=200), nullable=True),
        sa.Column("annual_income", sa.Numeric(14, 2), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_application_parents_application_id"), "application_parents", ["application_id"]
    )

    op.create_table(
        "application_documents",
        *_base_columns(),
        _school_fk(),
        sa.Column(
            "application_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("admission_applications.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("document_type", _enum("application_document_type"), nullable=False),
        sa.Column("file_url", sa.String(length=500), nullable=False),
        sa.Column("file_name", sa.String(length=255), nullable=False),
        sa.Column("file_size", sa.BigInteger(), nullable=True),
        sa.Column("mime_type", sa.String(length=100), nullable=True),
        sa.Column(
            "verification_status",
            _enum("document_verification_status"),
            nullable=False,
            server_default="pending",
        ),
        sa.Column("verified_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("remarks", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_application_documents_application_id"),
        "application_documents",
        ["application_id"],
    )

    op.create_table(
        "application_stage_events",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        _school_fk(),
        sa.Column(
            "application_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("admission_applications.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("event_type", _enum("stage_event_type"), nullable=False),
        sa.Column("from_status", _enum("admission_application_status"), nullable=True),
        sa.Column("to_status", _enum("admission_application_status"), nullable=False),
        sa.Column("changed_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("remarks", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_application_stage_events_application",
        "application_stage_events",
        ["application_id", "created_at"],
    )

    # ============================================
    # Decisions & Merit Lists
    # ============================================

    op.create_table(
        "admission_decisions",
        *_base_columns(),
        _school_fk(),
        sa.Column(
            "application_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("admission_applications.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("decision", _enum("admission_decision_type"), nullable=False),
        sa.Column("decision_date", sa.Date(), nullable=False),
        sa.Column("decided_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("section_assigned", sa.String(length=20), nullable=True),
        sa.Column("waitlist_position", sa.Integer(), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("offer_letter_url", sa.String(length=500), nullable=True),
        sa.Column("offer_valid_until", sa.Date(), nullable=True),
        sa.Column("offer_accepted", sa.Boolean(), nullable=True),
        sa.Column("offer_accepted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("remarks", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("application_id", name="uq_admission_decisions_application_id"),
        sa.CheckConstraint(
            "decision <> 'waitlisted' OR waitlist_position > 0",
            name="ck_admission_decisions_waitlist_position",
        ),
    )
    op.create_index(
        op.f("ix_admission_decisions_school_id"), "admission_decisions", ["school_id"]
    )

    op.create_table(
        "merit_lists",
        *_base_columns(),
        _school_fk(),
        sa.Column(
            "session_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("admission_sessions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("class_name", sa.String(length=50), nullable=False),
        sa.Column("test_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("generated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("generated_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("cutoff_score", sa.Numeric(6, 2), nullable=True),
        sa.Column(
            "entries",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column("is_final", sa.Boolean(), nullable=False, server_default="false"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_merit_lists_key",
        "merit_lists",
        ["school_id", "session_id", "class_name", "generated_at"],
    )

    # ============================================
    # Students
    # ============================================

    op.create_table(
        "students",
        *_base_columns(),
        _school_fk(),
        sa.Column(
            "branch_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("branches.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column(
            "application_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("admission_applications.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("admission_number", sa.String(length=20), nullable=False),
        sa.Column("first_name", sa.String(length=100), nullable=False),
        sa.Column("middle_name", sa.String(length=100), nullable=True),
        sa.Column("last_name", sa.String(length=100), nullable=False, server_default=""),
        sa.Column("date_of_birth", sa.Date(), nullable=True),
        sa.Column("gender", _enum("gender"), nullable=True),
        sa.Column("blood_group", sa.String(length=5), nullable=True),
        sa.Column("national_id", sa.String(length=30), nullable=True),
        sa.Column("status", _enum("student_status"), nullable=False, server_default="active"),
        sa.Column("admission_date", sa.Date(), nullable=False),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("application_id", name="uq_students_application_id"),
        sa.UniqueConstraint(
            "school_id", "admission_number", name="uq_students_school_admission_number"
        ),
    )
    op.create_index(op.f("ix_students_school_id"), "students", ["school_id"])
    op.create_index(op.f("ix_students_branch_id"), "students", ["branch_id"])

    op.create_table(
        "student_addresses",
        *_base_columns(),
        _school_fk(),
        sa.Column(
            "student_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("students.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "address_type", _enum("address_type"), nullable=False, server_default="current"
        ),
        sa.Column("address_line1", sa.String(length=255), nullable=False),
        sa.Column("address_line2", sa.String(length=255), nullable=True),
        sa.Column("city", sa.String(length=100), nullable=True),
        sa.Column("state", sa.String(length=100), nullable=True),
        sa.Column("postal_code", sa.String(length=20), nullable=True),
        sa.Column("country", sa.String(length=100), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_student_addresses_student_id"), "student_addresses", ["student_id"])

    # ============================================
    # Sequence Counters
    # ============================================

    op.create_table(
        "application_number_sequences",
        _school_fk(),
        sa.Column("date_prefix", sa.String(length=8), nullable=False),
        sa.Column("last_sequence", sa.Integer(), nullable=False, server_default="0"),
        sa.PrimaryKeyConstraint("school_id", "date_prefix"),
    )

    op.create_table(
        "admission_number_sequences",
        _school_fk(),
        sa.Column(
            "branch_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("branches.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("last_sequence", sa.Integer(), nullable=False, server_default="0"),
        sa.PrimaryKeyConstraint("school_id", "branch_id", "year"),
    )


def downgrade() -> None:
    """Drop the admissions schema."""
    for table in (
        "admission_number_sequences",
        "application_number_sequences",
        "student_addresses",
        "students",
        "merit_lists",
        "admission_decisions",
        "application_stage_events",
        "application_documents",
        "application_parents",
        "admission_applications",
        "admission_seats",
        "admission_sessions",
        "branches",
        "schools",
    ):
        op.drop_table(table)

    bind = op.get_bind()
    for name in reversed(list(ENUM_TYPES)):
        postgresql.ENUM(*ENUM_TYPES[name], name=name).drop(bind, checkfirst=True)
