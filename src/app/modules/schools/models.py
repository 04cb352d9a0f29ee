"""
School Models

Database models for school (tenant) management.
Each school is a tenant in the multi-tenant architecture; a school has one
or more branches (campuses), one of which may be flagged as primary.
"""

import uuid
from enum import Enum

from sqlalchemy import Boolean, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.modules.shared import BaseModel, pg_enum


class SchoolStatus(str, Enum):
    """Status of a school tenant."""

    ACTIVE = "active"
    SUSPENDED = "suspended"
    DEACTIVATED = "deactivated"


class School(BaseModel):
    """
    School tenant model.

    All admissions data (sessions, applications, decisions, students)
    references this model via school_id.
    """

    __tablename__ = "schools"

    name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        index=True,
    )
    country_code: Mapped[str | None] = mapped_column(
        String(2),
        nullable=True,
    )
    city: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
    )

    status: Mapped[SchoolStatus] = mapped_column(
        pg_enum(SchoolStatus, "school_status"),
        nullable=False,
        default=SchoolStatus.ACTIVE,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    branches: Mapped[list["Branch"]] = relationship(
        "Branch",
        back_populates="school",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<School(id={self.id}, name={self.name}, status={self.status.value})>"


class Branch(BaseModel):
    """A campus of a school. Students are enrolled into a branch."""

    __tablename__ = "branches"

    school_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("schools.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    code: Mapped[str] = mapped_column(String(20), nullable=False)
    is_primary: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    school: Mapped["School"] = relationship("School", back_populates="branches")

    __table_args__ = (
        UniqueConstraint("school_id", "code", name="uq_branches_school_code"),
        Index("ix_branches_school_primary", "school_id", "is_primary"),
    )

    def __repr__(self) -> str:
        return f"<Branch(id={self.id}, code={self.code}, primary={self.is_primary})>"
