"""
Application and Admission Number Generation

Human readable numbers are backed by counter rows that are incremented with
a single INSERT ... ON CONFLICT DO UPDATE ... RETURNING statement. PostgreSQL
takes a row lock for the upsert, so concurrent callers always receive
distinct values without a read-modify-write race.

Formats:
- Application number: {prefix}-YYYYMMDD-NNNN, per (school, date)
- Admission number:   {prefix}-YYYY-NNNNN,    per (school, branch, year)
"""

import logging
from datetime import date
from uuid import UUID

from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.modules.admissions.models import AdmissionNumberSequence, ApplicationNumberSequence

logger = logging.getLogger(__name__)


def format_application_number(on_date: date, sequence: int, prefix: str | None = None) -> str:
    """
    >>> format_application_number(date(2026, 3, 9), 7)
    'APP-20260309-0007'
    """
    return f"{prefix or settings.application_number_prefix}-{on_date:%Y%m%d}-{sequence:04d}"


def format_admission_number(year: int, sequence: int, prefix: str | None = None) -> str:
    """
    >>> format_admission_number(2026, 42)
    'ADM-2026-00042'
    """
    return f"{prefix or settings.admission_number_prefix}-{year}-{sequence:05d}"


async def _next_application_sequence(db: AsyncSession, school_id: UUID, date_prefix: str) -> int:
    stmt = insert(ApplicationNumberSequence).values(
        school_id=school_id, date_prefix=date_prefix, last_sequence=1
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=[
            ApplicationNumberSequence.school_id,
            ApplicationNumberSequence.date_prefix,
        ],
        set_={"last_sequence": ApplicationNumberSequence.last_sequence + 1},
    ).returning(ApplicationNumberSequence.last_sequence)

    result = await db.execute(stmt)
    return result.scalar_one()


async def _next_admission_sequence(
    db: AsyncSession, school_id: UUID, branch_id: UUID, year: int
) -> int:
    stmt = insert(AdmissionNumberSequence).values(
        school_id=school_id, branch_id=branch_id, year=year, last_sequence=1
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=[
            AdmissionNumberSequence.school_id,
            AdmissionNumberSequence.branch_id,
            AdmissionNumberSequence.year,
        ],
        set_={"last_sequence": AdmissionNumberSequence.last_sequence + 1},
    ).returning(AdmissionNumberSequence.last_sequence)

    result = await db.execute(stmt)
    return result.scalar_one()


async def next_application_number(
    db: AsyncSession, school_id: UUID, on_date: date | None = None
) -> str:
    """Allocate the next application number for a school on a given day."""
    on_date = on_date or date.today()
    sequence = await _next_application_sequence(db, school_id, f"{on_date:%Y%m%d}")
    number = format_application_number(on_date, sequence)
    logger.debug(f"Allocated application number {number} for school {school_id}")
    return number


async def next_admission_number(
    db: AsyncSession, school_id: UUID, branch_id: UUID, year: int | None = None
) -> str:
    """Allocate the next admission number for a school branch in a year."""
    year = year or date.today().year
    sequence = await _next_admission_sequence(db, school_id, branch_id, year)
    number = format_admission_number(year, sequence)
    logger.debug(f"Allocated admission number {number} for school {school_id}")
    return number
