"""
Student Repository

Database operations for student records.
"""

import logging
import re
from datetime import date
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.modules.students.models import AddressType, Gender, Student, StudentAddress, StudentStatus

logger = logging.getLogger(__name__)


def split_full_name(full_name: str) -> tuple[str, str | None, str]:
    """
    Split a full name into (first, middle, last).

    The first token is the first name, the last token is the last name and
    anything between is kept as the middle name.

    >>> split_full_name("Amara  Jalloh")
    ('Amara', None, 'Jalloh')
    """
    parts = [p for p in re.split(r"\s+", full_name.strip()) if p]
    if not parts:
        return "", None, ""
    if len(parts) == 1:
        return parts[0], None, ""
    middle = " ".join(parts[1:-1]) or None
    return parts[0], middle, parts[-1]


class StudentRepository:
    """Repository for student database operations."""

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        school_id: UUID,
        branch_id: UUID,
        admission_number: str,
        full_name: str,
        admission_date: date,
        application_id: UUID | None = None,
        date_of_birth: date | None = None,
        gender: Gender | None = None,
        blood_group: str | None = None,
        national_id: str | None = None,
        created_by: UUID | None = None,
    ) -> Student:
        """
        Create a new active student record.

        Args:
            db: Database session
            school_id: Tenant the student belongs to
            branch_id: Branch the student is enrolled into
            admission_number: Unique admission number within the school
            full_name: Student's full name, split into name parts
            admission_date: Date of admission

        Returns:
            Created Student instance (flushed, not committed)
        """
        first_name, middle_name, last_name = split_full_name(full_name)

        student = Student(
            school_id=school_id,
            branch_id=branch_id,
            application_id=application_id,
            admission_number=admission_number,
            first_name=first_name,
            middle_name=middle_name,
            last_name=last_name,
            date_of_birth=date_of_birth,
            gender=gender,
            blood_group=blood_group,
            national_id=national_id,
            status=StudentStatus.ACTIVE,
            admission_date=admission_date,
            created_by=created_by,
        )

        db.add(student)
        await db.flush()

        logger.info(f"Created student {student.id} with admission number {admission_number}")
        return student

    @staticmethod
    async def create_address(
        db: AsyncSession,
        *,
        school_id: UUID,
        student_id: UUID,
        address_line1: str,
        address_line2: str | None = None,
        city: str | None = None,
        state: str | None = None,
        postal_code: str | None = None,
        country: str | None = None,
        address_type: AddressType = AddressType.CURRENT,
    ) -> StudentAddress:
        address = StudentAddress(
            school_id=school_id,
            student_id=student_id,
            address_type=address_type,
            address_line1=address_line1,
            address_line2=address_line2,
            city=city,
            state=state,
            postal_code=postal_code,
            country=country,
        )

        db.add(address)
        await db.flush()
        return address

    @staticmethod
    async def get_by_application_id(
        db: AsyncSession, school_id: UUID, application_id: UUID
    ) -> Student | None:
        result = await db.execute(
            select(Student).where(
                Student.school_id == school_id,
                Student.application_id == application_id,
            )
        )
        return result.scalar_one_or_none()
