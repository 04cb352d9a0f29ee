"""
Admissions Router

API endpoints for admission sessions, seat configuration and the
application lifecycle. All endpoints except the public status check require
an admissions staff token; the school is taken from the token.

Endpoints:
- /admissions/sessions - Session CRUD, status changes, deadline, stats
- /admissions/sessions/{id}/seats, /admissions/seats/{id} - Seat configuration
- /admissions/applications - Application CRUD, submit, stage changes, history
- /admissions/applications/{id}/reviews, /admissions/reviews - Staff reviews
- /admissions/applications/{id}/parents - Parent records
- /admissions/applications/{id}/documents - Document metadata and verification
- /admissions/status-check - Public status lookup by number and phone
"""

import logging
from datetime import datetime
from typing import NoReturn
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import CurrentUser, get_admissions_staff
from app.core.database import get_db
from app.core.rate_limit import client_ip, enforce_rate_limit
from app.modules.admissions import application_service, review_service, session_service
from app.modules.admissions.exceptions import AdmissionServiceError
from app.modules.admissions.models import (
    ApplicationStatus,
    ReviewStatus,
    ReviewType,
    SessionStatus,
)
from app.modules.admissions.schemas import (
    ApplicationCreate,
    ApplicationListResponse,
    ApplicationResponse,
    ApplicationUpdate,
    DeadlineExtension,
    DocumentCreate,
    DocumentResponse,
    DocumentVerifyRequest,
    ParentCreate,
    ParentResponse,
    ParentUpdate,
    ReviewCreate,
    ReviewListResponse,
    ReviewResponse,
    ReviewResultResponse,
    SeatCreate,
    SeatIncrement,
    SeatResponse,
    SeatUpdate,
    SessionCreate,
    SessionDetailResponse,
    SessionListResponse,
    SessionResponse,
    SessionStatsResponse,
    SessionStatusChange,
    SessionUpdate,
    StageEventResponse,
    StageUpdateRequest,
    StatusCheckRequest,
    StatusCheckResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()

# (requests, window seconds) per client IP
RATE_LIMIT_STATUS_CHECK = (10, 60)


# ============================================
# Helper Functions
# ============================================


def _handle_service_error(e: AdmissionServiceError) -> NoReturn:
    """Convert service errors to HTTPExceptions."""
    raise HTTPException(
        status_code=e.status_code,
        detail={
            "error": e.error_code,
            "message": e.message,
            **e.details,
        },
    ) from e


ERROR_RESPONSES = {
    401: {"description": "Unauthorized - invalid or missing token"},
    403: {"description": "Forbidden - not admissions staff"},
}


# ============================================
# Sessions
# ============================================


@router.post(
    "/sessions",
    response_model=SessionDetailResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create Admission Session",
    description="""
Create an admission session for the school. New sessions start as `upcoming`
and must be opened before applications are accepted.

Session names are unique per school and academic year.
""",
    responses={
        **ERROR_RESPONSES,
        400: {"description": "Invalid date range"},
        409: {
            "description": "Duplicate session name",
            "content": {
                "application/json": {
                    "example": {
                        "error": "DUPLICATE_SESSION_NAME",
                        "message": "An admission session named '2026 Intake' already exists",
                    }
                }
            },
        },
    },
)
async def create_session(
    data: SessionCreate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_admissions_staff),
) -> SessionDetailResponse:
    try:
        session = await session_service.create_session(db, user.school_id, data, user.id)
        return SessionDetailResponse.model_validate(session)
    except AdmissionServiceError as e:
        _handle_service_error(e)


@router.get(
    "/sessions",
    response_model=SessionListResponse,
    summary="List Admission Sessions",
    responses=ERROR_RESPONSES,
)
async def list_sessions(
    branch_id: UUID | None = Query(None, description="Filter by branch"),
    academic_year_id: UUID | None = Query(None, description="Filter by academic year"),
    session_status: SessionStatus | None = Query(
        None, alias="status", description="Filter by session status"
    ),
    search: str | None = Query(None, min_length=1, max_length=100, description="Name search"),
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_admissions_staff),
) -> SessionListResponse:
    try:
        sessions, total = await session_service.list_sessions(
            db,
            user.school_id,
            branch_id=branch_id,
            academic_year_id=academic_year_id,
            status=session_status,
            search=search,
        )
        return SessionListResponse(
            sessions=[SessionResponse.model_validate(s) for s in sessions],
            total=total,
        )
    except AdmissionServiceError as e:
        _handle_service_error(e)


@router.get(
    "/sessions/{session_id}",
    response_model=SessionDetailResponse,
    summary="Get Admission Session",
    responses={**ERROR_RESPONSES, 404: {"description": "Session not found"}},
)
async def get_session(
    session_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_admissions_staff),
) -> SessionDetailResponse:
    try:
        session = await session_service.get_session(db, user.school_id, session_id)
        return SessionDetailResponse.model_validate(session)
    except AdmissionServiceError as e:
        _handle_service_error(e)


@router.patch(
    "/sessions/{session_id}",
    response_model=SessionDetailResponse,
    summary="Update Admission Session",
    description="Update the fields present in the request body. Closed sessions can't be changed.",
    responses={**ERROR_RESPONSES, 404: {"description": "Session not found"}},
)
async def update_session(
    session_id: UUID,
    data: SessionUpdate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_admissions_staff),
) -> SessionDetailResponse:
    try:
        session = await session_service.update_session(
            db, user.school_id, session_id, data, user.id
        )
        return SessionDetailResponse.model_validate(session)
    except AdmissionServiceError as e:
        _handle_service_error(e)


@router.delete(
    "/sessions/{session_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Admission Session",
    description="Only sessions that are not open and have no applications can be deleted.",
    responses={
        **ERROR_RESPONSES,
        404: {"description": "Session not found"},
        422: {"description": "Session is open or has applications"},
    },
)
async def delete_session(
    session_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_admissions_staff),
) -> Response:
    try:
        await session_service.delete_session(db, user.school_id, session_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except AdmissionServiceError as e:
        _handle_service_error(e)


@router.post(
    "/sessions/{session_id}/status",
    response_model=SessionDetailResponse,
    summary="Change Session Status",
    description="""
Move a session between `upcoming`, `open` and `closed`.

**Allowed transitions:**
- upcoming -> open, closed
- open -> closed
- closed -> open (reopen)
""",
    responses={**ERROR_RESPONSES, 409: {"description": "Invalid status transition"}},
)
async def change_session_status(
    session_id: UUID,
    data: SessionStatusChange,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_admissions_staff),
) -> SessionDetailResponse:
    try:
        session = await session_service.change_session_status(
            db, user.school_id, session_id, data.status, user.id
        )
        return SessionDetailResponse.model_validate(session)
    except AdmissionServiceError as e:
        _handle_service_error(e)


@router.post(
    "/sessions/{session_id}/open",
    response_model=SessionDetailResponse,
    summary="Open Session",
    responses={**ERROR_RESPONSES, 409: {"description": "Invalid status transition"}},
)
async def open_session(
    session_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_admissions_staff),
) -> SessionDetailResponse:
    try:
        session = await session_service.open_session(db, user.school_id, session_id, user.id)
        return SessionDetailResponse.model_validate(session)
    except AdmissionServiceError as e:
        _handle_service_error(e)


@router.post(
    "/sessions/{session_id}/close",
    response_model=SessionDetailResponse,
    summary="Close Session",
    responses={**ERROR_RESPONSES, 409: {"description": "Invalid status transition"}},
)
async def close_session(
    session_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_admissions_staff),
) -> SessionDetailResponse:
    try:
        session = await session_service.close_session(db, user.school_id, session_id, user.id)
        return SessionDetailResponse.model_validate(session)
    except AdmissionServiceError as e:
        _handle_service_error(e)


@router.post(
    "/sessions/{session_id}/extend-deadline",
    response_model=SessionDetailResponse,
    summary="Extend Session Deadline",
    responses={
        **ERROR_RESPONSES,
        400: {"description": "End date before start date"},
        409: {"description": "Session is closed"},
    },
)
async def extend_deadline(
    session_id: UUID,
    data: DeadlineExtension,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_admissions_staff),
) -> SessionDetailResponse:
    try:
        session = await session_service.extend_deadline(
            db, user.school_id, session_id, data.end_date, user.id
        )
        return SessionDetailResponse.model_validate(session)
    except AdmissionServiceError as e:
        _handle_service_error(e)


@router.get(
    "/sessions/{session_id}/stats",
    response_model=SessionStatsResponse,
    summary="Get Session Statistics",
    description="Seat totals across all classes and application counts by status.",
    responses={**ERROR_RESPONSES, 404: {"description": "Session not found"}},
)
async def get_session_stats(
    session_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_admissions_staff),
) -> SessionStatsResponse:
    try:
        stats = await session_service.get_session_stats(db, user.school_id, session_id)
        return SessionStatsResponse(**stats)
    except AdmissionServiceError as e:
        _handle_service_error(e)


# ============================================
# Seats
# ============================================


@router.post(
    "/sessions/{session_id}/seats",
    response_model=SeatResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add Seat Configuration",
    responses={
        **ERROR_RESPONSES,
        404: {"description": "Session not found"},
        409: {"description": "Class already configured or session closed"},
    },
)
async def create_seat(
    session_id: UUID,
    data: SeatCreate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_admissions_staff),
) -> SeatResponse:
    try:
        seat = await session_service.create_seat(db, user.school_id, session_id, data)
        return SeatResponse.model_validate(seat)
    except AdmissionServiceError as e:
        _handle_service_error(e)


@router.get(
    "/sessions/{session_id}/seats",
    response_model=list[SeatResponse],
    summary="List Seat Configurations",
    responses={**ERROR_RESPONSES, 404: {"description": "Session not found"}},
)
async def list_seats(
    session_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_admissions_staff),
) -> list[SeatResponse]:
    try:
        seats = await session_service.list_seats(db, user.school_id, session_id)
        return [SeatResponse.model_validate(seat) for seat in seats]
    except AdmissionServiceError as e:
        _handle_service_error(e)


@router.patch(
    "/seats/{seat_id}",
    response_model=SeatResponse,
    summary="Update Seat Configuration",
    responses={
        **ERROR_RESPONSES,
        404: {"description": "Seat not found"},
        409: {"description": "Total seats below filled seats"},
    },
)
async def update_seat(
    seat_id: UUID,
    data: SeatUpdate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_admissions_staff),
) -> SeatResponse:
    try:
        seat = await session_service.update_seat(db, user.school_id, seat_id, data)
        return SeatResponse.model_validate(seat)
    except AdmissionServiceError as e:
        _handle_service_error(e)


@router.delete(
    "/seats/{seat_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Seat Configuration",
    responses={**ERROR_RESPONSES, 404: {"description": "Seat not found"}},
)
async def delete_seat(
    seat_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_admissions_staff),
) -> Response:
    try:
        await session_service.delete_seat(db, user.school_id, seat_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except AdmissionServiceError as e:
        _handle_service_error(e)


@router.post(
    "/seats/{seat_id}/increment",
    response_model=SeatResponse,
    summary="Adjust Filled Seats",
    description="""
Change the filled count of a seat configuration by `count` (default 1).

The adjustment is applied atomically: it fails with `SEAT_CAPACITY_EXCEEDED`
rather than pushing the filled count past the total. Negative counts
release seats and never drop below zero.
""",
    responses={
        **ERROR_RESPONSES,
        404: {"description": "Seat not found"},
        409: {
            "description": "No seats available",
            "content": {
                "application/json": {
                    "example": {
                        "error": "SEAT_CAPACITY_EXCEEDED",
                        "message": "No seats available for class 'Grade 1': 40 of 40 filled",
                        "class_name": "Grade 1",
                        "total_seats": 40,
                        "filled_seats": 40,
                        "requested": 1,
                    }
                }
            },
        },
    },
)
async def increment_filled_seats(
    seat_id: UUID,
    data: SeatIncrement,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_admissions_staff),
) -> SeatResponse:
    try:
        seat = await session_service.increment_filled_seats(
            db, user.school_id, seat_id, data.count
        )
        return SeatResponse.model_validate(seat)
    except AdmissionServiceError as e:
        _handle_service_error(e)


# ============================================
# Applications
# ============================================


@router.post(
    "/applications",
    response_model=ApplicationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create Application",
    description="""
Create a draft admission application in an open session.

An application number of the form `APP-YYYYMMDD-NNNN` is assigned on creation
and never changes. The application must be submitted before review.
""",
    responses={
        **ERROR_RESPONSES,
        400: {"description": "Missing student name or class"},
        404: {"description": "Session not found"},
        409: {"description": "Session is not open"},
    },
)
async def create_application(
    data: ApplicationCreate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_admissions_staff),
) -> ApplicationResponse:
    try:
        application = await application_service.create_application(
            db, user.school_id, data, user.id
        )
        return ApplicationResponse.model_validate(application)
    except AdmissionServiceError as e:
        _handle_service_error(e)


@router.get(
    "/applications",
    response_model=ApplicationListResponse,
    summary="List Applications",
    description="""
Get paginated list of applications, newest first.

**Filters:** session, branch, status, class, submission window, and `search`
over student name and application number.

**Pagination:** `skip` (default 0) and `limit` (1-100, default 20).
""",
    responses=ERROR_RESPONSES,
)
async def list_applications(
    session_id: UUID | None = Query(None, description="Filter by session"),
    branch_id: UUID | None = Query(None, description="Filter by branch"),
    application_status: ApplicationStatus | None = Query(
        None, alias="status", description="Filter by application status"
    ),
    class_applying: str | None = Query(None, max_length=50, description="Filter by class"),
    search: str | None = Query(None, min_length=1, max_length=100, description="Search term"),
    submitted_after: datetime | None = Query(None, description="Submitted at or after"),
    submitted_before: datetime | None = Query(None, description="Submitted at or before"),
    skip: int = Query(0, ge=0, description="Records to skip"),
    limit: int = Query(20, ge=1, le=100, description="Maximum records to return"),
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_admissions_staff),
) -> ApplicationListResponse:
    try:
        result = await application_service.list_applications(
            db,
            user.school_id,
            session_id=session_id,
            branch_id=branch_id,
            status=application_status,
            class_applying=class_applying,
            search=search,
            submitted_after=submitted_after,
            submitted_before=submitted_before,
            skip=skip,
            limit=limit,
        )
        return ApplicationListResponse(
            applications=[ApplicationResponse.model_validate(a) for a in result["applications"]],
            total=result["total"],
            skip=result["skip"],
            limit=result["limit"],
        )
    except AdmissionServiceError as e:
        _handle_service_error(e)


@router.get(
    "/applications/by-number/{application_number}",
    response_model=ApplicationResponse,
    summary="Get Application By Number",
    responses={**ERROR_RESPONSES, 404: {"description": "Application not found"}},
)
async def get_application_by_number(
    application_number: str,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_admissions_staff),
) -> ApplicationResponse:
    try:
        application = await application_service.get_application_by_number(
            db, user.school_id, application_number
        )
        return ApplicationResponse.model_validate(application)
    except AdmissionServiceError as e:
        _handle_service_error(e)


@router.get(
    "/applications/{application_id}",
    response_model=ApplicationResponse,
    summary="Get Application",
    responses={**ERROR_RESPONSES, 404: {"description": "Application not found"}},
)
async def get_application(
    application_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_admissions_staff),
) -> ApplicationResponse:
    try:
        application = await application_service.get_application(
            db, user.school_id, application_id
        )
        return ApplicationResponse.model_validate(application)
    except AdmissionServiceError as e:
        _handle_service_error(e)


@router.patch(
    "/applications/{application_id}",
    response_model=ApplicationResponse,
    summary="Update Application",
    description="""
Update the applicant fields present in the request body.

Approved, rejected and enrolled applications are locked and return
`APPLICATION_LOCKED`.
""",
    responses={
        **ERROR_RESPONSES,
        404: {"description": "Application not found"},
        409: {"description": "Application is locked"},
    },
)
async def update_application(
    application_id: UUID,
    data: ApplicationUpdate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_admissions_staff),
) -> ApplicationResponse:
    try:
        application = await application_service.update_application(
            db, user.school_id, application_id, data, user.id
        )
        return ApplicationResponse.model_validate(application)
    except AdmissionServiceError as e:
        _handle_service_error(e)


@router.delete(
    "/applications/{application_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Draft Application",
    responses={
        **ERROR_RESPONSES,
        404: {"description": "Application not found"},
        422: {"description": "Application is no longer a draft"},
    },
)
async def delete_application(
    application_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_admissions_staff),
) -> Response:
    try:
        await application_service.delete_application(db, user.school_id, application_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except AdmissionServiceError as e:
        _handle_service_error(e)


@router.post(
    "/applications/{application_id}/submit",
    response_model=ApplicationResponse,
    summary="Submit Application",
    description="""
Submit a draft application, or resubmit one that is `submitted`,
`documents_pending` or `under_review`. Student name and class are required.
""",
    responses={
        **ERROR_RESPONSES,
        400: {"description": "Missing required fields"},
        404: {"description": "Application not found"},
        409: {"description": "Application can't be submitted from its current status"},
    },
)
async def submit_application(
    application_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_admissions_staff),
) -> ApplicationResponse:
    try:
        application = await application_service.submit_application(
            db, user.school_id, application_id, user.id
        )
        return ApplicationResponse.model_validate(application)
    except AdmissionServiceError as e:
        _handle_service_error(e)


@router.post(
    "/applications/{application_id}/stage",
    response_model=ApplicationResponse,
    summary="Change Application Stage",
    description="""
Move an application to a new stage.

Only transitions on the stage graph are accepted; otherwise the response is
`INVALID_STAGE_TRANSITION` with the current status, the requested status and
the list of valid next stages. Moving to `enrolled` creates the student
record and takes a seat in the same transaction.
""",
    responses={
        **ERROR_RESPONSES,
        404: {"description": "Application not found"},
        409: {
            "description": "Invalid stage transition",
            "content": {
                "application/json": {
                    "example": {
                        "error": "INVALID_STAGE_TRANSITION",
                        "message": "Cannot move application from 'draft' to 'approved'",
                        "current_status": "draft",
                        "requested_status": "approved",
                        "valid_transitions": ["submitted"],
                    }
                }
            },
        },
    },
)
async def update_stage(
    application_id: UUID,
    data: StageUpdateRequest,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_admissions_staff),
) -> ApplicationResponse:
    try:
        application = await application_service.update_stage(
            db, user.school_id, application_id, data.status, user.id, data.remarks
        )
        return ApplicationResponse.model_validate(application)
    except AdmissionServiceError as e:
        _handle_service_error(e)


@router.get(
    "/applications/{application_id}/history",
    response_model=list[StageEventResponse],
    summary="Get Stage History",
    description="Every stage change of the application, oldest first.",
    responses={**ERROR_RESPONSES, 404: {"description": "Application not found"}},
)
async def get_stage_history(
    application_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_admissions_staff),
) -> list[StageEventResponse]:
    try:
        events = await application_service.get_stage_history(db, user.school_id, application_id)
        return [StageEventResponse.model_validate(event) for event in events]
    except AdmissionServiceError as e:
        _handle_service_error(e)


# ============================================
# Reviews
# ============================================


@router.post(
    "/applications/{application_id}/reviews",
    response_model=ReviewResultResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record Review",
    description="""
Record a staff review of an application.

**Status effects:**
- `rejected` moves the application to rejected
- `pending_info` moves it to documents_pending
- approved `initial_screening` moves it to under_review
- approved `document_verification` moves documents_pending back to under_review
- approved `final_decision` moves it to approved

Any status change is logged in the stage history. A review whose status
change is not allowed from the current stage is refused.
""",
    responses={
        **ERROR_RESPONSES,
        404: {"description": "Application not found"},
        409: {"description": "Review outcome not allowed from current stage"},
    },
)
async def create_review(
    application_id: UUID,
    data: ReviewCreate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_admissions_staff),
) -> ReviewResultResponse:
    try:
        review, application = await review_service.create_review(
            db, user.school_id, application_id, data, user.id
        )
        return ReviewResultResponse(
            review=ReviewResponse.model_validate(review),
            application_status=application.status,
        )
    except AdmissionServiceError as e:
        _handle_service_error(e)


@router.get(
    "/applications/{application_id}/reviews",
    response_model=list[ReviewResponse],
    summary="List Application Reviews",
    description="Every review of the application, newest first.",
    responses={**ERROR_RESPONSES, 404: {"description": "Application not found"}},
)
async def list_application_reviews(
    application_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_admissions_staff),
) -> list[ReviewResponse]:
    try:
        reviews = await review_service.get_reviews_by_application(
            db, user.school_id, application_id
        )
        return [ReviewResponse.model_validate(review) for review in reviews]
    except AdmissionServiceError as e:
        _handle_service_error(e)


@router.get(
    "/reviews",
    response_model=ReviewListResponse,
    summary="List Reviews",
    description="Paginated reviews across the school, newest first.",
    responses=ERROR_RESPONSES,
)
async def list_reviews(
    application_id: UUID | None = Query(None, description="Filter by application"),
    reviewer_id: UUID | None = Query(None, description="Filter by reviewer"),
    review_type: ReviewType | None = Query(None, description="Filter by review type"),
    review_status: ReviewStatus | None = Query(
        None, alias="status", description="Filter by review outcome"
    ),
    skip: int = Query(0, ge=0, description="Records to skip"),
    limit: int = Query(20, ge=1, le=100, description="Maximum records to return"),
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_admissions_staff),
) -> ReviewListResponse:
    try:
        result = await review_service.list_reviews(
            db,
            user.school_id,
            application_id=application_id,
            reviewer_id=reviewer_id,
            review_type=review_type,
            status=review_status,
            skip=skip,
            limit=limit,
        )
        return ReviewListResponse(
            reviews=[ReviewResponse.model_validate(r) for r in result["reviews"]],
            total=result["total"],
            skip=result["skip"],
            limit=result["limit"],
        )
    except AdmissionServiceError as e:
        _handle_service_error(e)


# ============================================
# Parents
# ============================================


@router.post(
    "/applications/{application_id}/parents",
    response_model=ParentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add Parent",
    responses={**ERROR_RESPONSES, 404: {"description": "Application not found"}},
)
async def add_parent(
    application_id: UUID,
    data: ParentCreate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_admissions_staff),
) -> ParentResponse:
    try:
        parent = await application_service.add_parent(db, user.school_id, application_id, data)
        return ParentResponse.model_validate(parent)
    except AdmissionServiceError as e:
        _handle_service_error(e)


@router.get(
    "/applications/{application_id}/parents",
    response_model=list[ParentResponse],
    summary="List Parents",
    responses={**ERROR_RESPONSES, 404: {"description": "Application not found"}},
)
async def list_parents(
    application_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_admissions_staff),
) -> list[ParentResponse]:
    try:
        parents = await application_service.list_parents(db, user.school_id, application_id)
        return [ParentResponse.model_validate(parent) for parent in parents]
    except AdmissionServiceError as e:
        _handle_service_error(e)


@router.patch(
    "/applications/{application_id}/parents/{parent_id}",
    response_model=ParentResponse,
    summary="Update Parent",
    responses={**ERROR_RESPONSES, 404: {"description": "Application or parent not found"}},
)
async def update_parent(
    application_id: UUID,
    parent_id: UUID,
    data: ParentUpdate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_admissions_staff),
) -> ParentResponse:
    try:
        parent = await application_service.update_parent(
            db, user.school_id, application_id, parent_id, data
        )
        return ParentResponse.model_validate(parent)
    except AdmissionServiceError as e:
        _handle_service_error(e)


@router.delete(
    "/applications/{application_id}/parents/{parent_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove Parent",
    responses={**ERROR_RESPONSES, 404: {"description": "Application or parent not found"}},
)
async def delete_parent(
    application_id: UUID,
    parent_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_admissions_staff),
) -> Response:
    try:
        await application_service.delete_parent(db, user.school_id, application_id, parent_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except AdmissionServiceError as e:
        _handle_service_error(e)


# ============================================
# Documents
# ============================================


@router.post(
    "/applications/{application_id}/documents",
    response_model=DocumentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add Document",
    description="Record metadata for a document already uploaded to file storage.",
    responses={**ERROR_RESPONSES, 404: {"description": "Application not found"}},
)
async def add_document(
    application_id: UUID,
    data: DocumentCreate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_admissions_staff),
) -> DocumentResponse:
    try:
        document = await application_service.add_document(
            db, user.school_id, application_id, data
        )
        return DocumentResponse.model_validate(document)
    except AdmissionServiceError as e:
        _handle_service_error(e)


@router.get(
    "/applications/{application_id}/documents",
    response_model=list[DocumentResponse],
    summary="List Documents",
    responses={**ERROR_RESPONSES, 404: {"description": "Application not found"}},
)
async def list_documents(
    application_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_admissions_staff),
) -> list[DocumentResponse]:
    try:
        documents = await application_service.list_documents(db, user.school_id, application_id)
        return [DocumentResponse.model_validate(document) for document in documents]
    except AdmissionServiceError as e:
        _handle_service_error(e)


@router.delete(
    "/applications/{application_id}/documents/{document_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Document",
    responses={**ERROR_RESPONSES, 404: {"description": "Document not found"}},
)
async def delete_document(
    application_id: UUID,
    document_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_admissions_staff),
) -> Response:
    try:
        await application_service.delete_document(
            db, user.school_id, application_id, document_id
        )
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except AdmissionServiceError as e:
        _handle_service_error(e)


@router.post(
    "/applications/{application_id}/documents/{document_id}/verify",
    response_model=DocumentResponse,
    summary="Verify Document",
    responses={**ERROR_RESPONSES, 404: {"description": "Document not found"}},
)
async def verify_document(
    application_id: UUID,
    document_id: UUID,
    data: DocumentVerifyRequest,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_admissions_staff),
) -> DocumentResponse:
    try:
        document = await application_service.verify_document(
            db,
            user.school_id,
            application_id,
            document_id,
            data.status,
            verified_by=user.id,
            remarks=data.remarks,
        )
        logger.info(f"User {user.id} set document {document_id} to {data.status.value}")
        return DocumentResponse.model_validate(document)
    except AdmissionServiceError as e:
        _handle_service_error(e)


# ============================================
# Public Status Check
# ============================================


@router.post(
    "/status-check",
    response_model=StatusCheckResponse,
    summary="Check Application Status",
    description="""
Public endpoint for parents to check an application's progress.

The phone number must match a parent or guardian phone registered on the
application. A mismatch returns the same 404 as an unknown application
number.
""",
    responses={
        400: {"description": "Invalid phone number"},
        404: {"description": "Application not found"},
        429: {"description": "Too many requests"},
    },
)
async def check_application_status(
    data: StatusCheckRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> StatusCheckResponse:
    await enforce_rate_limit(
        f"status_check:{client_ip(request)}", *RATE_LIMIT_STATUS_CHECK
    )

    try:
        application = await application_service.check_application_status(
            db, data.school_id, data.application_number, data.phone
        )
        return StatusCheckResponse.model_validate(application)
    except AdmissionServiceError as e:
        _handle_service_error(e)
