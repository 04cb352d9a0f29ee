"""
Admission Decisions Router

API endpoints for decisions, offers, enrollment, the waitlist and merit
lists. All endpoints require an admissions staff token.

Endpoints:
- /admissions/decisions - Record, list and get decisions
- /admissions/applications/{id}/decision - Decision of an application
- /admissions/applications/{id}/offer-letter, /accept-offer - Offer handling
- /admissions/applications/{id}/enroll - Enroll after offer acceptance
- /admissions/applications/{id}/promote, /waitlist-position - Waitlist
- /admissions/merit-lists - Generate, read, finalize, re-cut and delete
"""

import logging
from datetime import date
from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import CurrentUser, get_admissions_staff
from app.core.database import get_db
from app.core.rate_limit import enforce_rate_limit
from app.modules.admissions import decision_service, merit_service
from app.modules.admissions.exceptions import AdmissionServiceError
from app.modules.admissions.models import DecisionType
from app.modules.admissions.router import ERROR_RESPONSES, _handle_service_error
from app.modules.admissions.schemas import (
    ApplicationResponse,
    CutoffUpdate,
    DecisionCreate,
    DecisionListResponse,
    DecisionResponse,
    EnrollRequest,
    MeritListGenerate,
    MeritListResponse,
    OfferLetterRequest,
    PromoteRequest,
    WaitlistPositionUpdate,
)
from app.modules.admissions.scoring import SCORERS

logger = logging.getLogger(__name__)

router = APIRouter()

# (requests, window seconds) per staff member
RATE_LIMIT_DECISION = (30, 60)
RATE_LIMIT_PROMOTE = (30, 60)
RATE_LIMIT_ENROLL = (30, 60)


async def _check_staff_rate_limit(
    user: CurrentUser,
    action: str,
    limit: int,
    window_seconds: int,
) -> None:
    """
    Check the rate limit for a staff action.

    Raises:
        RateLimitExceeded: If the staff member is over the limit for the action
    """
    await enforce_rate_limit(f"staff:{action}:{user.id}", limit, window_seconds)


# ============================================
# Decisions
# ============================================


@router.post(
    "/decisions",
    response_model=DecisionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record Decision",
    description="""
Record the admission decision for an application.

**Rules:**
- One decision per application (`DECISION_EXISTS` otherwise)
- `waitlisted` requires a positive `waitlist_position`
- `rejected` requires a non-empty `rejection_reason`
- `decision_date` is required

The application moves to the matching status in the same transaction.
""",
    responses={
        **ERROR_RESPONSES,
        429: {"description": "Too many requests"},
        400: {"description": "Missing decision date, waitlist position or rejection reason"},
        404: {"description": "Application not found"},
        409: {
            "description": "Decision already recorded",
            "content": {
                "application/json": {
                    "example": {
                        "error": "DECISION_EXISTS",
                        "message": "A decision has already been recorded for this application",
                    }
                }
            },
        },
    },
)
async def create_decision(
    data: DecisionCreate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_admissions_staff),
) -> DecisionResponse:
    await _check_staff_rate_limit(user, "decide", *RATE_LIMIT_DECISION)

    try:
        decision = await decision_service.create_decision(db, user.school_id, data, user.id)
        return DecisionResponse.model_validate(decision)
    except AdmissionServiceError as e:
        _handle_service_error(e)


@router.get(
    "/decisions",
    response_model=DecisionListResponse,
    summary="List Decisions",
    responses=ERROR_RESPONSES,
)
async def list_decisions(
    application_id: UUID | None = Query(None, description="Filter by application"),
    decision: DecisionType | None = Query(None, description="Filter by decision type"),
    decided_by: UUID | None = Query(None, description="Filter by deciding user"),
    date_from: date | None = Query(None, description="Decided on or after"),
    date_to: date | None = Query(None, description="Decided on or before"),
    skip: int = Query(0, ge=0, description="Records to skip"),
    limit: int = Query(20, ge=1, le=100, description="Maximum records to return"),
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_admissions_staff),
) -> DecisionListResponse:
    try:
        result = await decision_service.list_decisions(
            db,
            user.school_id,
            application_id=application_id,
            decision=decision,
            decided_by=decided_by,
            date_from=date_from,
            date_to=date_to,
            skip=skip,
            limit=limit,
        )
        return DecisionListResponse(
            decisions=[DecisionResponse.model_validate(d) for d in result["decisions"]],
            total=result["total"],
            skip=result["skip"],
            limit=result["limit"],
        )
    except AdmissionServiceError as e:
        _handle_service_error(e)


@router.get(
    "/decisions/{decision_id}",
    response_model=DecisionResponse,
    summary="Get Decision",
    responses={**ERROR_RESPONSES, 404: {"description": "Decision not found"}},
)
async def get_decision(
    decision_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_admissions_staff),
) -> DecisionResponse:
    try:
        decision = await decision_service.get_decision(db, user.school_id, decision_id)
        return DecisionResponse.model_validate(decision)
    except AdmissionServiceError as e:
        _handle_service_error(e)


@router.get(
    "/applications/{application_id}/decision",
    response_model=DecisionResponse,
    summary="Get Application Decision",
    responses={**ERROR_RESPONSES, 404: {"description": "No decision for the application"}},
)
async def get_decision_by_application(
    application_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_admissions_staff),
) -> DecisionResponse:
    try:
        decision = await decision_service.get_decision_by_application(
            db, user.school_id, application_id
        )
        return DecisionResponse.model_validate(decision)
    except AdmissionServiceError as e:
        _handle_service_error(e)


# ============================================
# Offers & Enrollment
# ============================================


@router.post(
    "/applications/{application_id}/offer-letter",
    response_model=DecisionResponse,
    summary="Generate Offer Letter",
    description="""
Issue the offer letter for an approved application.

Without `valid_until` the offer is valid for the configured number of days
(30 by default).
""",
    responses={
        **ERROR_RESPONSES,
        404: {"description": "No approved offer for the application"},
        409: {"description": "Offer already accepted"},
    },
)
async def generate_offer_letter(
    application_id: UUID,
    data: OfferLetterRequest,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_admissions_staff),
) -> DecisionResponse:
    try:
        decision = await decision_service.generate_offer_letter(
            db, user.school_id, application_id, data.valid_until
        )
        return DecisionResponse.model_validate(decision)
    except AdmissionServiceError as e:
        _handle_service_error(e)


@router.post(
    "/applications/{application_id}/accept-offer",
    response_model=DecisionResponse,
    summary="Accept Offer",
    responses={
        **ERROR_RESPONSES,
        404: {"description": "No approved offer for the application"},
        409: {"description": "Offer already accepted or expired"},
    },
)
async def accept_offer(
    application_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_admissions_staff),
) -> DecisionResponse:
    try:
        decision = await decision_service.accept_offer(
            db, user.school_id, application_id, user.id
        )
        return DecisionResponse.model_validate(decision)
    except AdmissionServiceError as e:
        _handle_service_error(e)


@router.post(
    "/applications/{application_id}/enroll",
    response_model=ApplicationResponse,
    summary="Enroll Applicant",
    description="""
Enroll an approved applicant whose offer has been accepted.

Creates the student record with a new admission number (`ADM-YYYY-NNNNN`)
and takes one seat for the class. Everything is rolled back if any step
fails, e.g. when the class is full.
""",
    responses={
        **ERROR_RESPONSES,
        429: {"description": "Too many requests"},
        404: {"description": "Application not found"},
        409: {"description": "Already enrolled or class full"},
        422: {"description": "Not approved or offer not accepted"},
    },
)
async def enroll(
    application_id: UUID,
    data: EnrollRequest,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_admissions_staff),
) -> ApplicationResponse:
    await _check_staff_rate_limit(user, "enroll", *RATE_LIMIT_ENROLL)

    try:
        application = await decision_service.enroll(
            db, user.school_id, application_id, user.id, data.remarks
        )
        return ApplicationResponse.model_validate(application)
    except AdmissionServiceError as e:
        _handle_service_error(e)


# ============================================
# Waitlist
# ============================================


@router.post(
    "/applications/{application_id}/promote",
    response_model=DecisionResponse,
    summary="Promote From Waitlist",
    responses={
        **ERROR_RESPONSES,
        429: {"description": "Too many requests"},
        400: {"description": "Application is not waitlisted"},
        404: {"description": "Application or decision not found"},
    },
)
async def promote_from_waitlist(
    application_id: UUID,
    data: PromoteRequest,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_admissions_staff),
) -> DecisionResponse:
    await _check_staff_rate_limit(user, "promote", *RATE_LIMIT_PROMOTE)

    try:
        decision = await decision_service.promote_from_waitlist(
            db,
            user.school_id,
            application_id,
            promoted_by=user.id,
            section_assigned=data.section_assigned,
            remarks=data.remarks,
        )
        return DecisionResponse.model_validate(decision)
    except AdmissionServiceError as e:
        _handle_service_error(e)


@router.put(
    "/applications/{application_id}/waitlist-position",
    response_model=DecisionResponse,
    summary="Update Waitlist Position",
    responses={
        **ERROR_RESPONSES,
        400: {"description": "Invalid position or application not waitlisted"},
        404: {"description": "Application or decision not found"},
    },
)
async def update_waitlist_position(
    application_id: UUID,
    data: WaitlistPositionUpdate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_admissions_staff),
) -> DecisionResponse:
    try:
        decision = await decision_service.update_waitlist_position(
            db, user.school_id, application_id, data.position, user.id
        )
        return DecisionResponse.model_validate(decision)
    except AdmissionServiceError as e:
        _handle_service_error(e)


# ============================================
# Merit Lists
# ============================================


@router.post(
    "/merit-lists",
    response_model=MeritListResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Generate Merit List",
    description="""
Rank the eligible applicants (`submitted`, `under_review`, `approved`,
`waitlisted`) of a session and class.

Entries are ordered by score, highest first; ties go to the earlier
submission, then the lower application number. With `cutoff_score`, entries
below the cutoff are left out. An existing draft list for the same session,
class and test is replaced; a finalized one blocks regeneration.

**Scoring:**
- `placeholder` (default): 50 base, +5 with a category, +10 with a previous school
- `previous_percentage`: the percentage from the previous class
""",
    responses={
        **ERROR_RESPONSES,
        404: {"description": "Session not found"},
        409: {"description": "Merit list already finalized"},
        422: {"description": "No eligible applicants"},
    },
)
async def generate_merit_list(
    data: MeritListGenerate,
    scoring: Literal["placeholder", "previous_percentage"] = Query(
        "placeholder", description="Scoring strategy"
    ),
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_admissions_staff),
) -> MeritListResponse:
    try:
        merit_list = await merit_service.generate_merit_list(
            db, user.school_id, data, user.id, scorer=SCORERS[scoring]
        )
        return merit_service.build_merit_list_response(merit_list)
    except AdmissionServiceError as e:
        _handle_service_error(e)


@router.get(
    "/merit-lists",
    response_model=list[MeritListResponse],
    summary="List Merit Lists",
    responses=ERROR_RESPONSES,
)
async def list_merit_lists(
    session_id: UUID | None = Query(None, description="Filter by session"),
    class_name: str | None = Query(None, max_length=50, description="Filter by class"),
    is_final: bool | None = Query(None, description="Filter by finalized flag"),
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_admissions_staff),
) -> list[MeritListResponse]:
    try:
        merit_lists = await merit_service.list_merit_lists(
            db, user.school_id, session_id=session_id, class_name=class_name, is_final=is_final
        )
        return [merit_service.build_merit_list_response(m) for m in merit_lists]
    except AdmissionServiceError as e:
        _handle_service_error(e)


@router.get(
    "/merit-lists/latest",
    response_model=MeritListResponse,
    summary="Get Latest Merit List",
    description="The most recently generated list for a session, class and optional test.",
    responses={**ERROR_RESPONSES, 404: {"description": "No merit list for the key"}},
)
async def get_latest_merit_list(
    session_id: UUID = Query(..., description="Session"),
    class_name: str = Query(..., min_length=1, max_length=50, description="Class"),
    test_id: UUID | None = Query(None, description="Entrance test"),
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_admissions_staff),
) -> MeritListResponse:
    try:
        merit_list = await merit_service.get_merit_list(
            db, user.school_id, session_id, class_name, test_id
        )
        return merit_service.build_merit_list_response(merit_list)
    except AdmissionServiceError as e:
        _handle_service_error(e)


@router.get(
    "/merit-lists/{merit_list_id}",
    response_model=MeritListResponse,
    summary="Get Merit List",
    responses={**ERROR_RESPONSES, 404: {"description": "Merit list not found"}},
)
async def get_merit_list(
    merit_list_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_admissions_staff),
) -> MeritListResponse:
    try:
        merit_list = await merit_service.get_merit_list_by_id(db, user.school_id, merit_list_id)
        return merit_service.build_merit_list_response(merit_list)
    except AdmissionServiceError as e:
        _handle_service_error(e)


@router.post(
    "/merit-lists/{merit_list_id}/finalize",
    response_model=MeritListResponse,
    summary="Finalize Merit List",
    description="Freeze a merit list. Finalized lists can't be regenerated, re-cut or deleted.",
    responses={
        **ERROR_RESPONSES,
        404: {"description": "Merit list not found"},
        409: {"description": "Merit list already finalized"},
    },
)
async def finalize_merit_list(
    merit_list_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_admissions_staff),
) -> MeritListResponse:
    try:
        merit_list = await merit_service.finalize_merit_list(db, user.school_id, merit_list_id)
        logger.info(f"User {user.id} finalized merit list {merit_list_id}")
        return merit_service.build_merit_list_response(merit_list)
    except AdmissionServiceError as e:
        _handle_service_error(e)


@router.put(
    "/merit-lists/{merit_list_id}/cutoff",
    response_model=MeritListResponse,
    summary="Update Merit List Cutoff",
    responses={
        **ERROR_RESPONSES,
        404: {"description": "Merit list not found"},
        409: {"description": "Merit list already finalized"},
    },
)
async def update_merit_list_cutoff(
    merit_list_id: UUID,
    data: CutoffUpdate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_admissions_staff),
) -> MeritListResponse:
    try:
        merit_list = await merit_service.update_merit_list_cutoff(
            db, user.school_id, merit_list_id, data.cutoff_score
        )
        return merit_service.build_merit_list_response(merit_list)
    except AdmissionServiceError as e:
        _handle_service_error(e)


@router.delete(
    "/merit-lists/{merit_list_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Merit List",
    responses={
        **ERROR_RESPONSES,
        404: {"description": "Merit list not found"},
        409: {"description": "Merit list already finalized"},
    },
)
async def delete_merit_list(
    merit_list_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_admissions_staff),
) -> Response:
    try:
        await merit_service.delete_merit_list(db, user.school_id, merit_list_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except AdmissionServiceError as e:
        _handle_service_error(e)
