"""
School Repository

Database operations for schools and their branches.
"""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.modules.schools.models import Branch, School, SchoolStatus

logger = logging.getLogger(__name__)


class SchoolRepository:
    """Repository for school and branch database operations."""

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        name: str,
        country_code: str | None = None,
        city: str | None = None,
    ) -> School:
        """Create a new active school record."""
        school = School(
            name=name,
            country_code=country_code,
            city=city,
            status=SchoolStatus.ACTIVE,
            is_active=True,
        )

        db.add(school)
        await db.flush()
        await db.refresh(school)

        logger.info(f"Created school: {school.id} - {school.name}")
        return school

    @staticmethod
    async def get_by_id(db: AsyncSession, school_id: UUID) -> School | None:
        result = await db.execute(select(School).where(School.id == school_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def create_branch(
        db: AsyncSession,
        *,
        school_id: UUID,
        name: str,
        code: str,
        is_primary: bool = False,
    ) -> Branch:
        """Create a branch for a school."""
        branch = Branch(school_id=school_id, name=name, code=code, is_primary=is_primary)

        db.add(branch)
        await db.flush()
        await db.refresh(branch)

        logger.info(f"Created branch {branch.code} for school {school_id}")
        return branch

    @staticmethod
    async def get_branch(db: AsyncSession, school_id: UUID, branch_id: UUID) -> Branch | None:
        result = await db.execute(
            select(Branch).where(Branch.id == branch_id, Branch.school_id == school_id)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def get_primary_branch(db: AsyncSession, school_id: UUID) -> Branch | None:
        """
        Get the school's primary branch.

        Args:
            db: Database session
            school_id: School UUID

        Returns:
            The active primary branch, or None if none is flagged
        """
        result = await db.execute(
            select(Branch)
            .where(
                Branch.school_id == school_id,
                Branch.is_primary.is_(True),
                Branch.is_active.is_(True),
            )
            .limit(1)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def get_any_branch(db: AsyncSession, school_id: UUID) -> Branch | None:
        """Get the oldest active branch of a school, used when no primary branch exists."""
        result = await db.execute(
            select(Branch)
            .where(Branch.school_id == school_id, Branch.is_active.is_(True))
            .order_by(Branch.created_at, Branch.id)
            .limit(1)
        )
        return result.scalar_one_or_none()
