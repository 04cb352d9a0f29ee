"""
Application Review Service

Staff reviews of an application (screening, document checks, academic
review, interview, final decision). A review outcome can move the
application along the stage graph:

- rejected                       -> rejected
- pending_info                   -> documents_pending
- approved initial_screening     -> under_review
- approved document_verification -> under_review (only from documents_pending)
- approved final_decision        -> approved
- anything else leaves the status unchanged

The derived move must be a legal transition; otherwise the review is not
recorded.
"""

import logging
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import atomic
from app.modules.admissions import repository
from app.modules.admissions.exceptions import (
    ApplicationNotFoundError,
    InvalidStageTransitionError,
)
from app.modules.admissions.models import (
    AdmissionApplication,
    ApplicationReview,
    ApplicationStatus,
    ReviewStatus,
    ReviewType,
    StageEventType,
)
from app.modules.admissions.schemas import ReviewCreate
from app.modules.admissions.session_service import require_school
from app.modules.admissions.transitions import can_transition

logger = logging.getLogger(__name__)

_APPROVED_REVIEW_STATUS = {
    ReviewType.INITIAL_SCREENING: ApplicationStatus.UNDER_REVIEW,
    ReviewType.FINAL_DECISION: ApplicationStatus.APPROVED,
}


def determine_review_status(
    current: ApplicationStatus, review_type: ReviewType, review_status: ReviewStatus
) -> ApplicationStatus:
    """
    Application status implied by a review outcome.

    >>> determine_review_status(
    ...     ApplicationStatus.SUBMITTED, ReviewType.INITIAL_SCREENING, ReviewStatus.APPROVED
    ... ).value
    'under_review'
    """
    if review_status == ReviewStatus.REJECTED:
        return ApplicationStatus.REJECTED
    if review_status == ReviewStatus.PENDING_INFO:
        return ApplicationStatus.DOCUMENTS_PENDING
    if review_status == ReviewStatus.APPROVED:
        if review_type == ReviewType.DOCUMENT_VERIFICATION:
            if current == ApplicationStatus.DOCUMENTS_PENDING:
                return ApplicationStatus.UNDER_REVIEW
            return current
        return _APPROVED_REVIEW_STATUS.get(review_type, current)
    return current


async def create_review(
    db: AsyncSession,
    school_id: UUID,
    application_id: UUID,
    data: ReviewCreate,
    reviewer_id: UUID | None = None,
) -> tuple[ApplicationReview, AdmissionApplication]:
    """
    Record a review and apply the status change it implies.

    The review insert, the status change and its stage event commit
    together.

    Returns:
        The review and the (possibly updated) application

    Raises:
        ApplicationNotFoundError: If the application doesn't exist
        InvalidStageTransitionError: If the implied status is not reachable
            from the application's current status
    """
    require_school(school_id)

    async with atomic(db):
        application = await repository.get_application(
            db, school_id, application_id, for_update=True
        )
        if not application:
            logger.warning(f"Review for unknown application {application_id}")
            raise ApplicationNotFoundError(application_id)

        previous_status = application.status
        target_status = determine_review_status(previous_status, data.review_type, data.status)
        if target_status != previous_status and not can_transition(
            previous_status, target_status
        ):
            logger.warning(
                f"Review {data.review_type.value}/{data.status.value} on {application_id} "
                f"would move {previous_status.value} -> {target_status.value}"
            )
            raise InvalidStageTransitionError(previous_status, target_status)

        review = await repository.create_review(db, school_id, application_id, data, reviewer_id)

        if target_status != previous_status:
            application.status = target_status
            application.updated_by = reviewer_id
            if target_status == ApplicationStatus.APPROVED:
                application.approved_at = datetime.now(UTC)
                application.approved_by = reviewer_id
            await repository.append_stage_event(
                db,
                school_id=school_id,
                application_id=application_id,
                event_type=StageEventType.REVIEW_RECORDED,
                from_status=previous_status,
                to_status=target_status,
                changed_by=reviewer_id,
                remarks=data.comments
                or f"{data.review_type.value} review: {data.status.value}",
            )

    logger.info(
        f"Recorded {data.review_type.value} review ({data.status.value}) for application "
        f"{application.application_number}; status {application.status.value}"
    )
    return review, application


async def get_reviews_by_application(
    db: AsyncSession, school_id: UUID, application_id: UUID
) -> list[ApplicationReview]:
    """
    All reviews of an application, newest first.

    Raises:
        ApplicationNotFoundError: If the application doesn't exist
    """
    require_school(school_id)
    application = await repository.get_application(db, school_id, application_id)
    if not application:
        raise ApplicationNotFoundError(application_id)
    return await repository.list_application_reviews(db, school_id, application_id)


async def list_reviews(
    db: AsyncSession,
    school_id: UUID,
    *,
    application_id: UUID | None = None,
    reviewer_id: UUID | None = None,
    review_type: ReviewType | None = None,
    status: ReviewStatus | None = None,
    skip: int = 0,
    limit: int = 20,
) -> dict:
    require_school(school_id)
    limit = min(max(1, limit), 100)
    skip = max(0, skip)

    reviews, total = await repository.list_reviews(
        db,
        school_id,
        application_id=application_id,
        reviewer_id=reviewer_id,
        review_type=review_type,
        status=status,
        skip=skip,
        limit=limit,
    )
    return {"reviews": reviews, "total": total, "skip": skip, "limit": limit}
