"""
Tests for merit list ranking and lifecycle.
"""

from datetime import UTC, datetime, timedelta
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest

from app.modules.admissions import merit_service
from app.modules.admissions.exceptions import (
    MeritListFinalizedError,
    NoApplicantsForMeritListError,
    SessionNotFoundError,
)
from app.modules.admissions.models import ApplicationStatus, MeritList
from app.modules.admissions.schemas import MeritListGenerate
from app.modules.admissions.scoring import PlaceholderScorer, PreviousPercentageScorer


def _applicants(application_factory, school_id, session_id, percentages):
    base = datetime(2026, 1, 10, 9, 0, tzinfo=UTC)
    return [
        application_factory(
            school_id,
            session_id,
            application_number=f"APP-20260110-{i + 1:04d}",
            status=ApplicationStatus.SUBMITTED,
            submitted_at=base + timedelta(minutes=i),
            previous_percentage=Decimal(str(pct)),
        )
        for i, pct in enumerate(percentages)
    ]


class TestScoring:
    """Tests for the built-in scorers."""

    def test_placeholder_scorer(self, sample_application):
        scorer = PlaceholderScorer()
        assert scorer.score(sample_application) == 50.0

        sample_application.category = "general"
        sample_application.previous_school = "Little Stars"
        assert scorer.score(sample_application) == 65.0

    def test_previous_percentage_scorer(self, sample_application):
        scorer = PreviousPercentageScorer()
        assert scorer.score(sample_application) == 0.0

        sample_application.previous_percentage = Decimal("78.5")
        assert scorer.score(sample_application) == 78.5


class TestRanking:
    """Tests for rank_candidates and cutoff filtering."""

    def test_rank_by_score_descending(self, application_factory, school_id, sample_session):
        apps = _applicants(application_factory, school_id, sample_session.id, [80, 70, 55, 90])

        entries = merit_service.rank_candidates((a, float(a.previous_percentage)) for a in apps)

        assert [e.score for e in entries] == [90.0, 80.0, 70.0, 55.0]
        assert [e.rank for e in entries] == [1, 2, 3, 4]
        assert entries[0].application_number == "APP-20260110-0004"

    def test_ties_broken_by_submission_time(self, application_factory, school_id, sample_session):
        apps = _applicants(application_factory, school_id, sample_session.id, [70, 70])
        apps.reverse()

        entries = merit_service.rank_candidates((app, 70.0) for app in apps)

        assert [e.application_number for e in entries] == [
            "APP-20260110-0001",
            "APP-20260110-0002",
        ]

    def test_unsubmitted_ranks_after_submitted_on_tie(
        self, application_factory, school_id, sample_session
    ):
        apps = _applicants(application_factory, school_id, sample_session.id, [60, 60])
        apps[0].submitted_at = None

        entries = merit_service.rank_candidates((app, 60.0) for app in apps)

        assert entries[0].application_number == "APP-20260110-0002"

    def test_cutoff_keeps_contiguous_ranks(self, application_factory, school_id, sample_session):
        """Test cutoff 60 on [80, 70, 55, 90] keeps three entries ranked 1..3."""
        apps = _applicants(application_factory, school_id, sample_session.id, [80, 70, 55, 90])
        ranked = merit_service.rank_candidates((a, float(a.previous_percentage)) for a in apps)

        kept = merit_service.apply_cutoff(ranked, Decimal("60"))

        assert [e.score for e in kept] == [90.0, 80.0, 70.0]
        assert [e.rank for e in kept] == [1, 2, 3]

    def test_no_cutoff_keeps_everything(self, application_factory, school_id, sample_session):
        apps = _applicants(application_factory, school_id, sample_session.id, [10, 20])
        ranked = merit_service.rank_candidates((a, float(a.previous_percentage)) for a in apps)

        assert merit_service.apply_cutoff(ranked, None) == ranked

    def test_above_cutoff_count(self, draft_merit_list):
        assert merit_service.entries_above_cutoff(draft_merit_list.entries, Decimal("60")) == 1
        assert merit_service.entries_above_cutoff(draft_merit_list.entries, None) == 2

    def test_build_response(self, draft_merit_list):
        response = merit_service.build_merit_list_response(draft_merit_list)

        assert response.total_count == 2
        assert response.above_cutoff == 1
        assert response.entries[0].rank == 1


class TestGenerateMeritList:
    """Tests for generate_merit_list."""

    @pytest.mark.asyncio
    async def test_generate_with_cutoff(
        self, mock_db, school_id, sample_session, application_factory
    ):
        apps = _applicants(application_factory, school_id, sample_session.id, [80, 70, 55, 90])
        data = MeritListGenerate(
            session_id=sample_session.id, class_name="Grade 1", cutoff_score=Decimal("60")
        )
        stored = MagicMock(spec=MeritList)
        stored.id = uuid4()

        with patch("app.modules.admissions.merit_service.repository") as mock_repo:
            mock_repo.get_session = AsyncMock(return_value=sample_session)
            mock_repo.get_final_merit_list = AsyncMock(return_value=None)
            mock_repo.list_merit_candidates = AsyncMock(return_value=apps)
            mock_repo.delete_draft_merit_lists = AsyncMock(return_value=1)
            mock_repo.create_merit_list = AsyncMock(return_value=stored)

            result = await merit_service.generate_merit_list(
                mock_db, school_id, data, scorer=PreviousPercentageScorer()
            )

            assert result == stored
            kwargs = mock_repo.create_merit_list.call_args.kwargs
            assert [e["score"] for e in kwargs["entries"]] == [90.0, 80.0, 70.0]
            assert kwargs["entries"][0]["application_id"] == str(apps[3].id)
            assert kwargs["cutoff_score"] == Decimal("60")
            mock_repo.delete_draft_merit_lists.assert_awaited_once()
            mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_generate_without_applicants(self, mock_db, school_id, sample_session):
        data = MeritListGenerate(session_id=sample_session.id, class_name="Grade 1")

        with patch("app.modules.admissions.merit_service.repository") as mock_repo:
            mock_repo.get_session = AsyncMock(return_value=sample_session)
            mock_repo.get_final_merit_list = AsyncMock(return_value=None)
            mock_repo.list_merit_candidates = AsyncMock(return_value=[])
            mock_repo.create_merit_list = AsyncMock()

            with pytest.raises(NoApplicantsForMeritListError):
                await merit_service.generate_merit_list(mock_db, school_id, data)

            mock_repo.create_merit_list.assert_not_called()

    @pytest.mark.asyncio
    async def test_regenerate_finalized(
        self, mock_db, school_id, sample_session, draft_merit_list
    ):
        draft_merit_list.is_final = True
        data = MeritListGenerate(session_id=sample_session.id, class_name="Grade 1")

        with patch("app.modules.admissions.merit_service.repository") as mock_repo:
            mock_repo.get_session = AsyncMock(return_value=sample_session)
            mock_repo.get_final_merit_list = AsyncMock(return_value=draft_merit_list)
            mock_repo.list_merit_candidates = AsyncMock()

            with pytest.raises(MeritListFinalizedError):
                await merit_service.generate_merit_list(mock_db, school_id, data)

            mock_repo.list_merit_candidates.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_session(self, mock_db, school_id):
        data = MeritListGenerate(session_id=uuid4(), class_name="Grade 1")

        with patch("app.modules.admissions.merit_service.repository") as mock_repo:
            mock_repo.get_session = AsyncMock(return_value=None)

            with pytest.raises(SessionNotFoundError):
                await merit_service.generate_merit_list(mock_db, school_id, data)


class TestMeritListLifecycle:
    """Tests for finalize, cutoff update and delete."""

    @pytest.mark.asyncio
    async def test_finalize(self, mock_db, school_id, draft_merit_list):
        with patch("app.modules.admissions.merit_service.repository") as mock_repo:
            mock_repo.get_merit_list = AsyncMock(return_value=draft_merit_list)

            result = await merit_service.finalize_merit_list(
                mock_db, school_id, draft_merit_list.id
            )

            assert result.is_final is True
            mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_update_cutoff_keeps_entries(self, mock_db, school_id, draft_merit_list):
        """Test changing the cutoff only changes the derived above-cutoff count."""
        with patch("app.modules.admissions.merit_service.repository") as mock_repo:
            mock_repo.get_merit_list = AsyncMock(return_value=draft_merit_list)

            result = await merit_service.update_merit_list_cutoff(
                mock_db, school_id, draft_merit_list.id, Decimal("50")
            )

            response = merit_service.build_merit_list_response(result)
            assert response.total_count == 2
            assert response.above_cutoff == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize("operation", ["finalize", "cutoff", "delete"])
    async def test_finalized_list_is_frozen(
        self, mock_db, school_id, draft_merit_list, operation
    ):
        draft_merit_list.is_final = True

        with patch("app.modules.admissions.merit_service.repository") as mock_repo:
            mock_repo.get_merit_list = AsyncMock(return_value=draft_merit_list)
            mock_repo.delete_merit_list = AsyncMock()

            with pytest.raises(MeritListFinalizedError):
                if operation == "finalize":
                    await merit_service.finalize_merit_list(
                        mock_db, school_id, draft_merit_list.id
                    )
                elif operation == "cutoff":
                    await merit_service.update_merit_list_cutoff(
                        mock_db, school_id, draft_merit_list.id, Decimal("10")
                    )
                else:
                    await merit_service.delete_merit_list(
                        mock_db, school_id, draft_merit_list.id
                    )

            mock_repo.delete_merit_list.assert_not_called()
            mock_db.commit.assert_not_called()
