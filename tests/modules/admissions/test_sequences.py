"""
Tests for application and admission number generation.
"""

from datetime import date
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from app.modules.admissions import sequences


class TestFormatting:
    """Tests for number formats."""

    def test_application_number(self):
        assert sequences.format_application_number(date(2026, 3, 9), 7) == "APP-20260309-0007"

    def test_application_number_past_four_digits(self):
        assert sequences.format_application_number(date(2026, 3, 9), 12345) == (
            "APP-20260309-12345"
        )

    def test_admission_number(self):
        assert sequences.format_admission_number(2026, 42) == "ADM-2026-00042"

    def test_custom_prefix(self):
        assert sequences.format_admission_number(2026, 1, prefix="EKA") == "EKA-2026-00001"


class TestAllocation:
    """Tests for allocation through the counter upsert."""

    @pytest.mark.asyncio
    async def test_next_application_number(self, mock_db, school_id):
        result = MagicMock()
        result.scalar_one.return_value = 3
        mock_db.execute = AsyncMock(return_value=result)

        number = await sequences.next_application_number(mock_db, school_id, date(2026, 1, 10))

        assert number == "APP-20260110-0003"
        mock_db.execute.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_next_admission_number(self, mock_db, school_id):
        result = MagicMock()
        result.scalar_one.return_value = 1
        mock_db.execute = AsyncMock(return_value=result)

        number = await sequences.next_admission_number(mock_db, school_id, uuid4(), 2026)

        assert number == "ADM-2026-00001"
