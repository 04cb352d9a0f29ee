"""
Student Models

Database models for enrolled students. A student row is produced when an
admission application is enrolled; it carries the admission number that
identifies the student within the school.
"""

import uuid
from datetime import date
from enum import Enum

from sqlalchemy import Date, ForeignKey, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.modules.shared import BaseModel, pg_enum


class Gender(str, Enum):
    """Gender values shared by applications and students."""

    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class StudentStatus(str, Enum):
    """Status of a student record."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    GRADUATED = "graduated"
    TRANSFERRED = "transferred"


class AddressType(str, Enum):
    """Kinds of student address."""

    CURRENT = "current"
    PERMANENT = "permanent"


class Student(BaseModel):
    """
    Student model.

    Multi-tenant: scoped by school_id, placed in a branch. application_id
    links back to the admission application the record was derived from.
    """

    __tablename__ = "students"

    school_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("schools.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    branch_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("branches.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    # ON DELETE SET NULL: the student outlives the application record
    application_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("admission_applications.id", ondelete="SET NULL"),
        nullable=True,
        unique=True,
    )

    admission_number: Mapped[str] = mapped_column(String(20), nullable=False)

    # Profile
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    middle_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    date_of_birth: Mapped[date | None] = mapped_column(Date, nullable=True)
    gender: Mapped[Gender | None] = mapped_column(
        pg_enum(Gender, "gender"),
        nullable=True,
    )
    blood_group: Mapped[str | None] = mapped_column(String(5), nullable=True)
    national_id: Mapped[str | None] = mapped_column(String(30), nullable=True)

    status: Mapped[StudentStatus] = mapped_column(
        pg_enum(StudentStatus, "student_status"),
        nullable=False,
        default=StudentStatus.ACTIVE,
    )
    admission_date: Mapped[date] = mapped_column(Date, nullable=False)
    created_by: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)

    addresses: Mapped[list["StudentAddress"]] = relationship(
        "StudentAddress",
        back_populates="student",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        UniqueConstraint("school_id", "admission_number", name="uq_students_school_admission_number"),
    )

    def __repr__(self) -> str:
        return f"<Student(id={self.id}, admission_number={self.admission_number})>"

    @property
    def full_name(self) -> str:
        """Return the student's full name."""
        return " ".join(p for p in (self.first_name, self.middle_name, self.last_name) if p)


class StudentAddress(BaseModel):
    """Postal address of a student."""

    __tablename__ = "student_addresses"

    school_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("schools.id", ondelete="CASCADE"),
        nullable=False,
    )
    student_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    address_type: Mapped[AddressType] = mapped_column(
        pg_enum(AddressType, "address_type"),
        nullable=False,
        default=AddressType.CURRENT,
    )
    address_line1: Mapped[str] = mapped_column(String(255), nullable=False)
    address_line2: Mapped[str | None] = mapped_column(String(255), nullable=True)
    city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    state: Mapped[str | None] = mapped_column(String(100), nullable=True)
    postal_code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    country: Mapped[str | None] = mapped_column(String(100), nullable=True)

    student: Mapped["Student"] = relationship("Student", back_populates="addresses")
