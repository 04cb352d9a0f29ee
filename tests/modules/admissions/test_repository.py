"""
Tests for the single-statement counter updates in the admissions repository
and the number sequences.

The statements are captured from db.execute and compiled for PostgreSQL so
the guards that keep concurrent callers apart are checked as SQL.
"""

import re
from datetime import UTC, date, datetime
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from sqlalchemy.dialects import postgresql

from app.modules.admissions import repository, sequences
from app.modules.admissions.models import AdmissionSeat, AdmissionSession


def _compile(stmt):
    compiled = stmt.compile(dialect=postgresql.dialect())
    return " ".join(str(compiled).split()), compiled.params


def _executed(mock_db):
    return _compile(mock_db.execute.call_args.args[0])


def _returning(mock_db, method, value):
    result = MagicMock()
    getattr(result, method).return_value = value
    mock_db.execute = AsyncMock(return_value=result)


class TestSeatCounters:
    """Tests for increment_seat_filled and consume_class_seat."""

    @pytest.mark.asyncio
    async def test_increment_guards_capacity_and_clamps(self, mock_db, school_id):
        _returning(mock_db, "scalar_one_or_none", 40)
        seat_id = uuid4()

        filled = await repository.increment_seat_filled(mock_db, school_id, seat_id, 2)

        assert filled == 40
        sql, params = _executed(mock_db)
        assert sql.startswith("UPDATE admission_seats SET filled_seats=greatest(")
        assert re.search(
            r"\(?admission_seats\.filled_seats \+ %\(\w+\)s\)? <= admission_seats\.total_seats",
            sql,
        )
        assert "admission_seats.id = " in sql
        assert "admission_seats.school_id = " in sql
        assert sql.endswith("RETURNING admission_seats.filled_seats")
        assert seat_id in params.values()
        assert school_id in params.values()
        assert 2 in params.values()
        # GREATEST(filled + n, 0)
        assert 0 in params.values()

    @pytest.mark.asyncio
    async def test_increment_past_capacity_returns_none(self, mock_db, school_id):
        _returning(mock_db, "scalar_one_or_none", None)

        assert await repository.increment_seat_filled(mock_db, school_id, uuid4(), 1) is None

    @pytest.mark.asyncio
    async def test_consume_scoped_to_session_and_class(self, mock_db, school_id):
        _returning(mock_db, "scalar_one_or_none", 39)
        session_id = uuid4()

        filled = await repository.consume_class_seat(mock_db, school_id, session_id, "Grade 1")

        assert filled == 39
        sql, params = _executed(mock_db)
        assert sql.startswith("UPDATE admission_seats SET filled_seats=")
        assert "greatest" not in sql
        assert "admission_seats.session_id = " in sql
        assert "admission_seats.class_name = " in sql
        assert re.search(
            r"\(?admission_seats\.filled_seats \+ %\(\w+\)s\)? <= admission_seats\.total_seats",
            sql,
        )
        assert sql.endswith("RETURNING admission_seats.filled_seats")
        assert session_id in params.values()
        assert "Grade 1" in params.values()


class TestSessionDelete:
    """Tests for deleting a session together with its seats."""

    def test_seats_cascade_with_session(self):
        cascade = AdmissionSession.seats.property.cascade
        assert cascade.delete
        assert cascade.delete_orphan

        foreign_key = next(iter(AdmissionSeat.__table__.c.session_id.foreign_keys))
        assert foreign_key.ondelete == "CASCADE"

    @pytest.mark.asyncio
    async def test_delete_session_deletes_through_orm(self, mock_db, sample_session):
        await repository.delete_session(mock_db, sample_session)

        mock_db.delete.assert_awaited_once_with(sample_session)
        mock_db.flush.assert_awaited_once()


class TestOfferAcceptance:
    """Tests for mark_offer_accepted."""

    @pytest.mark.asyncio
    async def test_conditional_accept(self, mock_db, school_id, approved_decision):
        _returning(mock_db, "scalar_one_or_none", approved_decision)
        today = date(2026, 2, 1)
        accepted_at = datetime(2026, 2, 1, 10, 0, tzinfo=UTC)

        result = await repository.mark_offer_accepted(
            mock_db, school_id, approved_decision.id, accepted_at, today
        )

        assert result == approved_decision
        sql, params = _executed(mock_db)
        assert sql.startswith("UPDATE admission_decisions SET")
        assert "admission_decisions.decision = " in sql
        assert "admission_decisions.offer_accepted IS NOT true" in sql
        assert (
            "admission_decisions.offer_valid_until IS NULL OR "
            "admission_decisions.offer_valid_until >= "
        ) in sql
        assert "admission_decisions.offer_accepted_at" in sql.split("RETURNING")[1]
        assert today in params.values()
        assert accepted_at in params.values()

    @pytest.mark.asyncio
    async def test_lost_race_returns_none(self, mock_db, school_id):
        _returning(mock_db, "scalar_one_or_none", None)

        result = await repository.mark_offer_accepted(
            mock_db, school_id, uuid4(), datetime.now(UTC), date.today()
        )

        assert result is None


class TestSequenceUpserts:
    """Tests for the counter upserts behind application and admission numbers."""

    @pytest.mark.asyncio
    async def test_application_counter_upsert(self, mock_db, school_id):
        _returning(mock_db, "scalar_one", 8)

        number = await sequences.next_application_number(mock_db, school_id, date(2026, 1, 10))

        assert number == "APP-20260110-0008"
        sql, params = _executed(mock_db)
        assert sql.startswith("INSERT INTO application_number_sequences")
        assert re.search(
            r"ON CONFLICT \(school_id, date_prefix\) DO UPDATE SET last_sequence = "
            r"\(?application_number_sequences\.last_sequence \+ %\(\w+\)s\)?",
            sql,
        )
        assert sql.endswith("RETURNING application_number_sequences.last_sequence")
        assert params["date_prefix"] == "20260110"
        assert params["last_sequence"] == 1

    @pytest.mark.asyncio
    async def test_admission_counter_upsert(self, mock_db, school_id):
        _returning(mock_db, "scalar_one", 12)
        branch_id = uuid4()

        number = await sequences.next_admission_number(mock_db, school_id, branch_id, 2026)

        assert number == "ADM-2026-00012"
        sql, params = _executed(mock_db)
        assert sql.startswith("INSERT INTO admission_number_sequences")
        assert re.search(
            r"ON CONFLICT \(school_id, branch_id, year\) DO UPDATE SET last_sequence = "
            r"\(?admission_number_sequences\.last_sequence \+ %\(\w+\)s\)?",
            sql,
        )
        assert sql.endswith("RETURNING admission_number_sequences.last_sequence")
        assert params["branch_id"] == branch_id
        assert params["year"] == 2026
