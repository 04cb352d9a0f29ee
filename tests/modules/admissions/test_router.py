"""
Tests for admissions API error mapping and access control.
"""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from app.core import rate_limit
from app.core.auth import CurrentUser, get_admissions_staff
from app.core.database import get_db
from app.core.rate_limit import RateLimitExceeded
from app.main import app
from app.modules.admissions.exceptions import (
    ApplicationNotFoundError,
    InvalidStageTransitionError,
    SessionNotFoundError,
)
from app.modules.admissions.models import (
    ApplicationReview,
    ApplicationStatus,
    ReviewStatus,
    ReviewType,
)

API = "/api/v1/admissions"


@pytest.fixture(autouse=True)
def clear_rate_limits():
    rate_limit._memory_store.clear()
    yield
    rate_limit._memory_store.clear()


@pytest.fixture
def staff_user():
    return CurrentUser(id=uuid4(), school_id=uuid4(), role="admissions_officer")


@pytest.fixture
def client(mock_db, staff_user):
    async def override_get_db():
        yield mock_db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_admissions_staff] = lambda: staff_user
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestErrorMapping:
    """Tests for service error to HTTP response conversion."""

    def test_not_found_maps_to_404(self, client, staff_user):
        session_id = uuid4()

        with patch("app.modules.admissions.router.session_service") as mock_service:
            mock_service.get_session = AsyncMock(side_effect=SessionNotFoundError(session_id))

            response = client.get(f"{API}/sessions/{session_id}")

        assert response.status_code == 404
        assert response.json()["detail"]["error"] == "SESSION_NOT_FOUND"
        mock_service.get_session.assert_awaited_once()
        assert mock_service.get_session.call_args.args[1] == staff_user.school_id

    def test_invalid_transition_details_in_body(self, client):
        application_id = uuid4()

        with patch("app.modules.admissions.router.application_service") as mock_service:
            mock_service.update_stage = AsyncMock(
                side_effect=InvalidStageTransitionError(
                    ApplicationStatus.DRAFT, ApplicationStatus.APPROVED
                )
            )

            response = client.post(
                f"{API}/applications/{application_id}/stage", json={"status": "approved"}
            )

        assert response.status_code == 409
        detail = response.json()["detail"]
        assert detail["error"] == "INVALID_STAGE_TRANSITION"
        assert detail["current_status"] == "draft"
        assert detail["valid_transitions"] == ["submitted"]

    def test_review_returns_resulting_status(self, client, staff_user, sample_application):
        sample_application.status = ApplicationStatus.UNDER_REVIEW
        review = MagicMock(
            spec=ApplicationReview,
            id=uuid4(),
            application_id=sample_application.id,
            reviewer_id=staff_user.id,
            review_type=ReviewType.INITIAL_SCREENING,
            status=ReviewStatus.APPROVED,
            comments=None,
            created_at=datetime.now(UTC),
        )

        with patch("app.modules.admissions.router.review_service") as mock_service:
            mock_service.create_review = AsyncMock(return_value=(review, sample_application))

            response = client.post(
                f"{API}/applications/{sample_application.id}/reviews",
                json={"review_type": "initial_screening", "status": "approved"},
            )

        assert response.status_code == 201
        body = response.json()
        assert body["application_status"] == "under_review"
        assert body["review"]["review_type"] == "initial_screening"
        assert mock_service.create_review.call_args.args[4] == staff_user.id

    def test_unknown_stage_value_rejected(self, client):
        response = client.post(
            f"{API}/applications/{uuid4()}/stage", json={"status": "withdrawn"}
        )

        assert response.status_code == 422


class TestAccess:
    """Tests for authentication on staff and public routes."""

    def test_staff_route_requires_token(self, mock_db):
        async def override_get_db():
            yield mock_db

        app.dependency_overrides[get_db] = override_get_db
        try:
            response = TestClient(app).get(f"{API}/sessions")
        finally:
            app.dependency_overrides.clear()

        assert response.status_code in (401, 403)

    def test_no_database_debug_route(self):
        response = TestClient(app).get("/debug/db")

        assert response.status_code == 404

    def test_status_check_is_public(self, mock_db):
        async def override_get_db():
            yield mock_db

        app.dependency_overrides[get_db] = override_get_db
        try:
            with patch("app.modules.admissions.router.application_service") as mock_service:
                mock_service.check_application_status = AsyncMock(
                    side_effect=ApplicationNotFoundError()
                )

                response = TestClient(app).post(
                    f"{API}/status-check",
                    json={
                        "school_id": str(uuid4()),
                        "application_number": "APP-20260110-0001",
                        "phone": "+23276123456",
                    },
                )
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 404
        assert response.json()["detail"]["error"] == "APPLICATION_NOT_FOUND"


class TestRateLimits:
    """Tests for rate limits on staff decisions and the public status check."""

    def test_decision_over_limit_returns_429(self, client, staff_user):
        with (
            patch(
                "app.modules.admissions.decision_router.enforce_rate_limit",
                AsyncMock(side_effect=RateLimitExceeded(30, 60)),
            ) as mock_limit,
            patch("app.modules.admissions.decision_router.decision_service") as mock_service,
        ):
            mock_service.create_decision = AsyncMock()

            response = client.post(
                f"{API}/decisions",
                json={
                    "application_id": str(uuid4()),
                    "decision": "approved",
                    "decision_date": "2026-02-01",
                },
            )

        assert response.status_code == 429
        assert response.json()["detail"]["error"] == "RATE_LIMIT_EXCEEDED"
        assert mock_limit.call_args.args[0] == f"staff:decide:{staff_user.id}"
        mock_service.create_decision.assert_not_called()

    def test_status_check_limited_per_client(self, mock_db):
        async def override_get_db():
            yield mock_db

        limit = 3
        body = {
            "school_id": str(uuid4()),
            "application_number": "APP-20260110-0001",
            "phone": "+23276123456",
        }

        app.dependency_overrides[get_db] = override_get_db
        try:
            with (
                patch("app.core.rate_limit.get_redis", return_value=None),
                patch("app.modules.admissions.router.RATE_LIMIT_STATUS_CHECK", (limit, 60)),
                patch("app.modules.admissions.router.application_service") as mock_service,
            ):
                mock_service.check_application_status = AsyncMock(
                    side_effect=ApplicationNotFoundError()
                )
                test_client = TestClient(app)
                codes = [
                    test_client.post(f"{API}/status-check", json=body).status_code
                    for _ in range(limit + 1)
                ]
        finally:
            app.dependency_overrides.clear()

        assert codes == [404] * limit + [429]
        assert mock_service.check_application_status.await_count == limit
