"""
Tests for student repository.
"""

from datetime import date
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from app.modules.students.models import AddressType, StudentStatus
from app.modules.students.repository import StudentRepository, split_full_name


@pytest.fixture
def mock_db():
    db = AsyncMock()
    db.flush = AsyncMock()
    db.add = MagicMock()
    return db


class TestSplitFullName:
    """Tests for split_full_name."""

    @pytest.mark.parametrize(
        "full_name,expected",
        [
            ("Amara Jalloh", ("Amara", None, "Jalloh")),
            ("  Amara   Jalloh ", ("Amara", None, "Jalloh")),
            ("Fatmata Binta Sesay", ("Fatmata", "Binta", "Sesay")),
            ("Mohamed Lamin Osman Kamara", ("Mohamed", "Lamin Osman", "Kamara")),
            ("Kadiatu", ("Kadiatu", None, "")),
            ("   ", ("", None, "")),
        ],
    )
    def test_split(self, full_name, expected):
        assert split_full_name(full_name) == expected


class TestStudentRepository:
    """Tests for StudentRepository."""

    @pytest.mark.asyncio
    async def test_create_splits_name(self, mock_db):
        """Test the student is created active with the name split into parts."""
        application_id = uuid4()

        student = await StudentRepository.create(
            mock_db,
            school_id=uuid4(),
            branch_id=uuid4(),
            admission_number="ADM-2026-00001",
            full_name="Fatmata Binta Sesay",
            admission_date=date(2026, 4, 1),
            application_id=application_id,
        )

        assert student.first_name == "Fatmata"
        assert student.middle_name == "Binta"
        assert student.last_name == "Sesay"
        assert student.status == StudentStatus.ACTIVE
        assert student.application_id == application_id
        mock_db.add.assert_called_once_with(student)
        mock_db.flush.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_create_address_defaults_to_current(self, mock_db):
        address = await StudentRepository.create_address(
            mock_db,
            school_id=uuid4(),
            student_id=uuid4(),
            address_line1="12 Wilkinson Road",
            city="Freetown",
        )

        assert address.address_type == AddressType.CURRENT
        assert address.city == "Freetown"
        mock_db.add.assert_called_once_with(address)
