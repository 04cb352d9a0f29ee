"""
Seed Demo School

Creates a school with a primary branch, an open admission session with seat
configurations, and prints an admissions officer token for trying the API.
Run this script once after applying the migrations.

Usage:
    python scripts/seed_demo_school.py
"""

import asyncio
import sys
import uuid
from datetime import date, timedelta
from pathlib import Path

# Add the src directory to the path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from sqlalchemy import select

from app.core.database import async_session_maker, atomic, engine
from app.core.security import create_access_token
from app.modules.admissions import session_service
from app.modules.admissions.schemas import SeatCreate, SessionCreate
from app.modules.schools.models import School
from app.modules.schools.repository import SchoolRepository

SCHOOL_NAME = "EK Demo Academy"
SEATS = {"Nursery": 30, "Grade 1": 40, "Grade 7": 35}


async def seed_demo_school() -> None:
    """Create the demo school, branch, session and seats if they don't exist."""
    async with async_session_maker() as db:
        result = await db.execute(select(School).where(School.name == SCHOOL_NAME))
        school = result.scalar_one_or_none()

        if school:
            print(f"Demo school already exists: {school.name}")
            print(f"  ID: {school.id}")
            return

        async with atomic(db):
            school = await SchoolRepository.create(
                db, name=SCHOOL_NAME, country_code="SL", city="Freetown"
            )
            branch = await SchoolRepository.create_branch(
                db, school_id=school.id, name="Main Campus", code="MAIN", is_primary=True
            )

        today = date.today()
        session = await session_service.create_session(
            db,
            school.id,
            SessionCreate(
                name=f"{today.year} Intake",
                branch_id=branch.id,
                start_date=today,
                end_date=today + timedelta(days=90),
            ),
        )
        for class_name, total in SEATS.items():
            await session_service.create_seat(
                db, school.id, session.id, SeatCreate(class_name=class_name, total_seats=total)
            )
        await session_service.open_session(db, school.id, session.id)

        token = create_access_token(
            str(uuid.uuid4()),
            school_id=str(school.id),
            role="admissions_officer",
            email="officer@demo.eksms.dev",
        )

        print("Demo school created successfully!")
        print(f"  School: {school.name} ({school.id})")
        print(f"  Branch: {branch.name} ({branch.id})")
        print(f"  Session: {session.name} ({session.id}) - open")
        print(f"  Seats: {', '.join(f'{k}={v}' for k, v in SEATS.items())}")
        print(f"  Access token: {token}")

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(seed_demo_school())
