"""
Admission Decision Service

One decision per application, and everything that hangs off it:
- Recording approve / waitlist / reject decisions
- Offer letters, offer expiry and acceptance
- Enrollment of an accepted offer (shared routine in application_service)
- Waitlist promotion and repositioning
"""

import logging
from datetime import UTC, date, datetime, timedelta
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import atomic
from app.modules.admissions import repository
from app.modules.admissions.application_service import enroll_in_transaction
from app.modules.admissions.exceptions import (
    AlreadyEnrolledError,
    ApplicationNotFoundError,
    DecisionExistsError,
    DecisionNotFoundError,
    InvalidApplicationStatusError,
    InvalidStageTransitionError,
    OfferAlreadyAcceptedError,
    OfferExpiredError,
    OfferNotAcceptedError,
    OfferNotFoundError,
    ValidationError,
)
from app.modules.admissions.models import (
    AdmissionApplication,
    AdmissionDecision,
    ApplicationStatus,
    DecisionType,
    StageEventType,
)
from app.modules.admissions.schemas import DecisionCreate
from app.modules.admissions.session_service import require_school
from app.modules.admissions.transitions import can_transition

logger = logging.getLogger(__name__)

DECISION_TO_STATUS = {
    DecisionType.APPROVED: ApplicationStatus.APPROVED,
    DecisionType.WAITLISTED: ApplicationStatus.WAITLISTED,
    DecisionType.REJECTED: ApplicationStatus.REJECTED,
}


def validate_decision(data: DecisionCreate) -> None:
    """
    Check the per-type requirements of a decision.

    Raises:
        ValidationError: On a missing decision date, a waitlisted decision
            without a positive position, or a rejection without a reason
    """
    if data.decision_date is None:
        raise ValidationError("Decision date is required", "DECISION_DATE_REQUIRED")

    if data.decision == DecisionType.WAITLISTED:
        if data.waitlist_position is None or data.waitlist_position <= 0:
            raise ValidationError(
                "A positive waitlist position is required for waitlisted decisions",
                "WAITLIST_POSITION_REQUIRED",
            )

    if data.decision == DecisionType.REJECTED:
        if not (data.rejection_reason or "").strip():
            raise ValidationError(
                "A rejection reason is required for rejected decisions",
                "REJECTION_REASON_REQUIRED",
            )


async def _get_application(
    db: AsyncSession, school_id: UUID, application_id: UUID, *, for_update: bool = False
) -> AdmissionApplication:
    application = await repository.get_application(
        db, school_id, application_id, for_update=for_update
    )
    if not application:
        logger.warning(f"Application not found: {application_id} (school {school_id})")
        raise ApplicationNotFoundError(application_id)
    return application


# ============================================
# Decisions
# ============================================


async def create_decision(
    db: AsyncSession,
    school_id: UUID,
    data: DecisionCreate,
    decided_by: UUID | None = None,
) -> AdmissionDecision:
    """
    Record the decision for an application and move it to the matching status.

    The decision insert, the status change and the stage event commit
    together or not at all.

    Raises:
        ValidationError: If the decision fails its per-type requirements
        ApplicationNotFoundError: If the application doesn't exist
        DecisionExistsError: If the application already has a decision
        InvalidStageTransitionError: If the application can't move to the decided status
    """
    require_school(school_id)
    validate_decision(data)

    async with atomic(db):
        # Concurrent decisions for one application serialize on this lock
        application = await _get_application(
            db, school_id, data.application_id, for_update=True
        )

        existing = await repository.get_decision_by_application(db, school_id, application.id)
        if existing:
            logger.warning(
                f"Decision already recorded for application {application.id}: "
                f"{existing.decision.value}"
            )
            raise DecisionExistsError(application.id)

        target_status = DECISION_TO_STATUS[data.decision]
        previous_status = application.status
        if previous_status != target_status and not can_transition(
            previous_status, target_status
        ):
            logger.warning(
                f"Decision {data.decision.value} not allowed for application {application.id} "
                f"in {previous_status.value}"
            )
            raise InvalidStageTransitionError(previous_status, target_status)

        decision = await repository.create_decision(
            db, school_id, data, data.decision_date, decided_by
        )

        application.status = target_status
        application.updated_by = decided_by
        if target_status == ApplicationStatus.APPROVED:
            application.approved_at = datetime.now(UTC)
            application.approved_by = decided_by
            application.waitlist_position = None
        elif target_status == ApplicationStatus.WAITLISTED:
            application.waitlist_position = data.waitlist_position
        else:
            application.waitlist_position = None

        await repository.append_stage_event(
            db,
            school_id=school_id,
            application_id=application.id,
            event_type=StageEventType.DECISION_RECORDED,
            from_status=previous_status,
            to_status=target_status,
            changed_by=decided_by,
            remarks=data.remarks or f"Decision: {data.decision.value}",
        )

    logger.info(
        f"Recorded {data.decision.value} decision {decision.id} for application "
        f"{application.application_number}"
    )
    return decision


async def get_decision(
    db: AsyncSession, school_id: UUID, decision_id: UUID
) -> AdmissionDecision:
    """
    Raises:
        DecisionNotFoundError: If the decision doesn't exist for the school
    """
    require_school(school_id)
    decision = await repository.get_decision(db, school_id, decision_id)
    if not decision:
        raise DecisionNotFoundError(decision_id)
    return decision


async def get_decision_by_application(
    db: AsyncSession, school_id: UUID, application_id: UUID
) -> AdmissionDecision:
    require_school(school_id)
    decision = await repository.get_decision_by_application(db, school_id, application_id)
    if not decision:
        raise DecisionNotFoundError(application_id)
    return decision


async def list_decisions(
    db: AsyncSession,
    school_id: UUID,
    *,
    application_id: UUID | None = None,
    decision: DecisionType | None = None,
    decided_by: UUID | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    skip: int = 0,
    limit: int = 20,
) -> dict:
    require_school(school_id)
    limit = min(max(1, limit), 100)
    skip = max(0, skip)

    decisions, total = await repository.list_decisions(
        db,
        school_id,
        application_id=application_id,
        decision=decision,
        decided_by=decided_by,
        date_from=date_from,
        date_to=date_to,
        skip=skip,
        limit=limit,
    )
    return {"decisions": decisions, "total": total, "skip": skip, "limit": limit}


# ============================================
# Offers
# ============================================


async def _get_approved_offer(
    db: AsyncSession, school_id: UUID, application_id: UUID
) -> AdmissionDecision:
    require_school(school_id)
    decision = await repository.get_decision_by_application(db, school_id, application_id)
    if not decision or decision.decision != DecisionType.APPROVED:
        logger.warning(f"No approved offer for application {application_id}")
        raise OfferNotFoundError(application_id)
    return decision


async def generate_offer_letter(
    db: AsyncSession,
    school_id: UUID,
    application_id: UUID,
    valid_until: date | None = None,
) -> AdmissionDecision:
    """
    Attach an offer letter reference and validity window to an approved decision.

    Rendering the letter is left to the document service; only the URL is stored.

    Raises:
        OfferNotFoundError: If the application has no approved decision
        OfferAlreadyAcceptedError: If the offer was already accepted
        ValidationError: If valid_until is in the past
    """
    decision = await _get_approved_offer(db, school_id, application_id)
    if decision.offer_accepted:
        raise OfferAlreadyAcceptedError()

    today = date.today()
    valid_until = valid_until or today + timedelta(days=settings.offer_validity_days)
    if valid_until < today:
        raise ValidationError("Offer validity must not be in the past", "INVALID_OFFER_VALIDITY")

    async with atomic(db):
        decision.offer_valid_until = valid_until
        decision.offer_letter_url = settings.offer_letter_url_template.format(
            application_id=application_id
        )
        await db.flush()

    logger.info(f"Offer letter issued for application {application_id}, valid until {valid_until}")
    return decision


async def accept_offer(
    db: AsyncSession,
    school_id: UUID,
    application_id: UUID,
    accepted_by: UUID | None = None,
) -> AdmissionDecision:
    """
    Accept the offer for an approved application.

    The acceptance is a single conditional UPDATE, so two concurrent
    acceptances can't both succeed; the loser sees OfferAlreadyAcceptedError.

    Raises:
        OfferNotFoundError: If the application has no approved decision
        OfferAlreadyAcceptedError: If the offer was already accepted
        OfferExpiredError: If the offer validity date has passed
    """
    decision = await _get_approved_offer(db, school_id, application_id)

    if decision.offer_accepted:
        raise OfferAlreadyAcceptedError()

    today = date.today()
    if decision.offer_valid_until is not None and decision.offer_valid_until < today:
        logger.warning(
            f"Offer for application {application_id} expired on {decision.offer_valid_until}"
        )
        raise OfferExpiredError(decision.offer_valid_until)

    async with atomic(db):
        updated = await repository.mark_offer_accepted(
            db, school_id, decision.id, datetime.now(UTC), today
        )
        if updated is None:
            logger.warning(f"Offer for application {application_id} accepted concurrently")
            raise OfferAlreadyAcceptedError()

        await repository.append_stage_event(
            db,
            school_id=school_id,
            application_id=application_id,
            event_type=StageEventType.OFFER_ACCEPTED,
            from_status=ApplicationStatus.APPROVED,
            to_status=ApplicationStatus.APPROVED,
            changed_by=accepted_by,
            remarks="Offer accepted",
        )

    logger.info(f"Offer accepted for application {application_id}")
    return updated


# ============================================
# Enrollment
# ============================================


async def enroll(
    db: AsyncSession,
    school_id: UUID,
    application_id: UUID,
    enrolled_by: UUID | None = None,
    remarks: str | None = None,
) -> AdmissionApplication:
    """
    Enroll an approved application whose offer has been accepted.

    Raises:
        ApplicationNotFoundError: If the application doesn't exist
        AlreadyEnrolledError: If the application is already enrolled
        InvalidApplicationStatusError: If the application is not approved
        OfferNotAcceptedError: If there is no accepted offer
        SeatCapacityExceededError: If the class has no free seat
        NoBranchConfiguredError: If the school has no branch
    """
    require_school(school_id)

    async with atomic(db):
        application = await _get_application(db, school_id, application_id, for_update=True)

        if application.status == ApplicationStatus.ENROLLED:
            logger.warning(f"Application {application_id} is already enrolled")
            raise AlreadyEnrolledError(application_id)
        if application.status != ApplicationStatus.APPROVED:
            logger.warning(
                f"Enroll rejected for {application_id}: status {application.status.value}"
            )
            raise InvalidApplicationStatusError(application.status, "enroll")

        decision = await repository.get_decision_by_application(db, school_id, application_id)
        if not decision or not decision.offer_accepted:
            logger.warning(f"Enroll rejected for {application_id}: offer not accepted")
            raise OfferNotAcceptedError()

        await enroll_in_transaction(
            db,
            school_id,
            application,
            enrolled_by,
            remarks,
            event_remarks="Enrolled after offer acceptance",
        )

    return application


# ============================================
# Waitlist
# ============================================


async def _get_waitlisted_decision(
    db: AsyncSession, school_id: UUID, application_id: UUID
) -> AdmissionDecision:
    decision = await repository.get_decision_by_application(db, school_id, application_id)
    if not decision:
        raise DecisionNotFoundError(application_id)
    if decision.decision != DecisionType.WAITLISTED:
        logger.warning(
            f"Waitlist operation on application {application_id} with "
            f"{decision.decision.value} decision"
        )
        raise ValidationError("Application is not waitlisted", "NOT_WAITLISTED")
    return decision


async def promote_from_waitlist(
    db: AsyncSession,
    school_id: UUID,
    application_id: UUID,
    promoted_by: UUID | None = None,
    section_assigned: str | None = None,
    remarks: str | None = None,
) -> AdmissionDecision:
    """
    Turn a waitlisted decision into an approval.

    Raises:
        ApplicationNotFoundError: If the application doesn't exist
        DecisionNotFoundError: If the application has no decision
        ValidationError: If the decision is not waitlisted
        InvalidStageTransitionError: If the application has moved past the waitlist
    """
    require_school(school_id)

    now = datetime.now(UTC)
    async with atomic(db):
        application = await _get_application(db, school_id, application_id, for_update=True)
        decision = await _get_waitlisted_decision(db, school_id, application_id)

        # The decision record keeps its type after later stage updates
        previous_status = application.status
        if not can_transition(previous_status, ApplicationStatus.APPROVED):
            logger.warning(
                f"Promotion rejected for {application_id}: status {previous_status.value}"
            )
            raise InvalidStageTransitionError(previous_status, ApplicationStatus.APPROVED)

        decision.decision = DecisionType.APPROVED
        decision.waitlist_position = None
        decision.decided_by = promoted_by
        decision.decision_date = now.date()
        if section_assigned:
            decision.section_assigned = section_assigned
        if remarks:
            decision.remarks = remarks

        application.status = ApplicationStatus.APPROVED
        application.waitlist_position = None
        application.approved_at = now
        application.approved_by = promoted_by
        application.updated_by = promoted_by

        await repository.append_stage_event(
            db,
            school_id=school_id,
            application_id=application_id,
            event_type=StageEventType.WAITLIST_PROMOTED,
            from_status=previous_status,
            to_status=ApplicationStatus.APPROVED,
            changed_by=promoted_by,
            remarks=remarks or "Promoted from waitlist",
        )

    logger.info(f"Promoted application {application.application_number} from waitlist")
    return decision


async def update_waitlist_position(
    db: AsyncSession,
    school_id: UUID,
    application_id: UUID,
    position: int,
    updated_by: UUID | None = None,
) -> AdmissionDecision:
    """Move a waitlisted application to a new position."""
    require_school(school_id)
    if position <= 0:
        raise ValidationError("Waitlist position must be positive", "INVALID_WAITLIST_POSITION")

    async with atomic(db):
        application = await _get_application(db, school_id, application_id, for_update=True)
        decision = await _get_waitlisted_decision(db, school_id, application_id)
        if application.status != ApplicationStatus.WAITLISTED:
            logger.warning(
                f"Waitlist reposition rejected for {application_id}: "
                f"status {application.status.value}"
            )
            raise InvalidApplicationStatusError(application.status, "reposition")

        decision.waitlist_position = position
        application.waitlist_position = position
        application.updated_by = updated_by
        await db.flush()

    logger.info(f"Waitlist position of application {application_id} set to {position}")
    return decision
