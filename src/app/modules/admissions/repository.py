"""
Admissions Repository

Database operations for admission sessions, seats, applications, decisions
and merit lists. Functions flush but never commit: the calling service
decides the transaction boundary (see app.core.database.atomic).

Design Principles:
- Every query is scoped by school_id
- Counter changes (seat fills, offer acceptance) are single conditional
  UPDATE ... RETURNING statements, so concurrent requests cannot
  overshoot capacity or accept an offer twice
- Only database access here, no business rules
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import and_, delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import (
    AdmissionApplication,
    AdmissionDecision,
    AdmissionSeat,
    AdmissionSession,
    ApplicationDocument,
    ApplicationParent,
    ApplicationReview,
    ApplicationStageEvent,
    ApplicationStatus,
    DecisionType,
    MeritList,
    ReviewStatus,
    ReviewType,
    SessionStatus,
    StageEventType,
)
from .schemas import (
    ApplicationCreate,
    DecisionCreate,
    DocumentCreate,
    ParentCreate,
    ReviewCreate,
    SeatCreate,
    SessionCreate,
)

# ============================================
# Sessions
# ============================================


async def create_session(
    db: AsyncSession, school_id: UUID, data: SessionCreate, created_by: UUID | None
) -> AdmissionSession:
    """Create a new admission session in UPCOMING status."""
    session = AdmissionSession(
        school_id=school_id,
        branch_id=data.branch_id,
        academic_year_id=data.academic_year_id,
        name=data.name.strip(),
        description=data.description,
        start_date=data.start_date,
        end_date=data.end_date,
        status=SessionStatus.UPCOMING,
        application_fee=data.application_fee,
        required_documents=[doc.value for doc in data.required_documents],
        settings=data.settings.model_dump(),
        seats=[],
        created_by=created_by,
        updated_by=created_by,
    )

    db.add(session)
    await db.flush()
    await db.refresh(session)
    return session


async def get_session(
    db: AsyncSession, school_id: UUID, session_id: UUID
) -> AdmissionSession | None:
    result = await db.execute(
        select(AdmissionSession).where(
            AdmissionSession.id == session_id,
            AdmissionSession.school_id == school_id,
        )
    )
    return result.scalar_one_or_none()


async def get_session_by_name(
    db: AsyncSession,
    school_id: UUID,
    name: str,
    academic_year_id: UUID | None,
    exclude_id: UUID | None = None,
) -> AdmissionSession | None:
    """Find a session with the same name in the same academic year (case-insensitive)."""
    query = select(AdmissionSession).where(
        AdmissionSession.school_id == school_id,
        func.lower(AdmissionSession.name) == name.strip().lower(),
    )
    if academic_year_id is None:
        query = query.where(AdmissionSession.academic_year_id.is_(None))
    else:
        query = query.where(AdmissionSession.academic_year_id == academic_year_id)
    if exclude_id is not None:
        query = query.where(AdmissionSession.id != exclude_id)

    result = await db.execute(query.limit(1))
    return result.scalar_one_or_none()


async def list_sessions(
    db: AsyncSession,
    school_id: UUID,
    *,
    branch_id: UUID | None = None,
    academic_year_id: UUID | None = None,
    status: SessionStatus | None = None,
    search: str | None = None,
) -> tuple[list[AdmissionSession], int]:
    """
    List sessions for a school with optional filters.

    Returns:
        Tuple of (sessions ordered by start date desc then name, total count)
    """
    conditions = [AdmissionSession.school_id == school_id]
    if branch_id is not None:
        conditions.append(AdmissionSession.branch_id == branch_id)
    if academic_year_id is not None:
        conditions.append(AdmissionSession.academic_year_id == academic_year_id)
    if status is not None:
        conditions.append(AdmissionSession.status == status)
    if search:
        pattern = f"%{search.strip()}%"
        conditions.append(
            or_(
                AdmissionSession.name.ilike(pattern),
                AdmissionSession.description.ilike(pattern),
            )
        )

    where_clause = and_(*conditions)

    total = await db.scalar(select(func.count()).select_from(AdmissionSession).where(where_clause))
    result = await db.execute(
        select(AdmissionSession)
        .where(where_clause)
        .order_by(AdmissionSession.start_date.desc(), AdmissionSession.name)
    )
    return list(result.scalars().all()), total or 0


async def delete_session(db: AsyncSession, session: AdmissionSession) -> None:
    """Delete a session; its seats go with it."""
    await db.delete(session)
    await db.flush()


async def count_session_applications(db: AsyncSession, school_id: UUID, session_id: UUID) -> int:
    total = await db.scalar(
        select(func.count())
        .select_from(AdmissionApplication)
        .where(
            AdmissionApplication.school_id == school_id,
            AdmissionApplication.session_id == session_id,
        )
    )
    return total or 0


async def count_applications_by_status(
    db: AsyncSession, school_id: UUID, session_id: UUID
) -> dict[str, int]:
    """Return {status value: count} for a session's applications."""
    result = await db.execute(
        select(AdmissionApplication.status, func.count())
        .where(
            AdmissionApplication.school_id == school_id,
            AdmissionApplication.session_id == session_id,
        )
        .group_by(AdmissionApplication.status)
    )
    return {status.value: count for status, count in result.all()}


# ============================================
# Seats
# ============================================


async def create_seat(
    db: AsyncSession,
    school_id: UUID,
    session_id: UUID,
    data: SeatCreate,
    waitlist_limit: int,
) -> AdmissionSeat:
    seat = AdmissionSeat(
        school_id=school_id,
        session_id=session_id,
        class_name=data.class_name.strip(),
        total_seats=data.total_seats,
        filled_seats=0,
        waitlist_limit=waitlist_limit,
        reserved_seats=data.reserved_seats,
    )

    db.add(seat)
    await db.flush()
    await db.refresh(seat)
    return seat


async def get_seat(db: AsyncSession, school_id: UUID, seat_id: UUID) -> AdmissionSeat | None:
    result = await db.execute(
        select(AdmissionSeat).where(
            AdmissionSeat.id == seat_id,
            AdmissionSeat.school_id == school_id,
        )
    )
    return result.scalar_one_or_none()


async def get_seat_by_class(
    db: AsyncSession, school_id: UUID, session_id: UUID, class_name: str
) -> AdmissionSeat | None:
    result = await db.execute(
        select(AdmissionSeat).where(
            AdmissionSeat.school_id == school_id,
            AdmissionSeat.session_id == session_id,
            AdmissionSeat.class_name == class_name,
        )
    )
    return result.scalar_one_or_none()


async def list_seats(db: AsyncSession, school_id: UUID, session_id: UUID) -> list[AdmissionSeat]:
    result = await db.execute(
        select(AdmissionSeat)
        .where(
            AdmissionSeat.school_id == school_id,
            AdmissionSeat.session_id == session_id,
        )
        .order_by(AdmissionSeat.class_name)
    )
    return list(result.scalars().all())


async def delete_seat(db: AsyncSession, seat: AdmissionSeat) -> None:
    await db.delete(seat)
    await db.flush()


async def increment_seat_filled(
    db: AsyncSession, school_id: UUID, seat_id: UUID, count: int
) -> int | None:
    """
    Atomically add ``count`` to a seat's filled count.

    The update only applies while the result stays within total_seats.
    A negative result is clamped to zero.

    Returns:
        The new filled count, or None if the seat is missing or the
        increment would exceed capacity
    """
    result = await db.execute(
        update(AdmissionSeat)
        .where(
            AdmissionSeat.id == seat_id,
            AdmissionSeat.school_id == school_id,
            AdmissionSeat.filled_seats + count <= AdmissionSeat.total_seats,
        )
        .values(filled_seats=func.greatest(AdmissionSeat.filled_seats + count, 0))
        .returning(AdmissionSeat.filled_seats)
        .execution_options(synchronize_session=False)
    )
    return result.scalar_one_or_none()


async def consume_class_seat(
    db: AsyncSession, school_id: UUID, session_id: UUID, class_name: str
) -> int | None:
    """
    Take one seat for a class in a session, if one is free.

    Returns:
        The new filled count, or None if no seat row matched the capacity guard
    """
    result = await db.execute(
        update(AdmissionSeat)
        .where(
            AdmissionSeat.school_id == school_id,
            AdmissionSeat.session_id == session_id,
            AdmissionSeat.class_name == class_name,
            AdmissionSeat.filled_seats + 1 <= AdmissionSeat.total_seats,
        )
        .values(filled_seats=AdmissionSeat.filled_seats + 1)
        .returning(AdmissionSeat.filled_seats)
    )
    return result.scalar_one_or_none()


# ============================================
# Applications
# ============================================


async def create_application(
    db: AsyncSession,
    school_id: UUID,
    data: ApplicationCreate,
    application_number: str,
    created_by: UUID | None,
) -> AdmissionApplication:
    """Create a new application in DRAFT status."""
    application = AdmissionApplication(
        school_id=school_id,
        session_id=data.session_id,
        branch_id=data.branch_id,
        enquiry_id=data.enquiry_id,
        application_number=application_number,
        # Student
        student_name=data.student.name.strip(),
        date_of_birth=data.student.date_of_birth,
        gender=data.student.gender,
        blood_group=data.student.blood_group,
        nationality=data.student.nationality,
        religion=data.student.religion,
        category=data.student.category,
        national_id=data.student.national_id,
        # Academic
        class_applying=data.academic.class_applying.strip(),
        previous_school=data.academic.previous_school,
        previous_class=data.academic.previous_class,
        previous_percentage=data.academic.previous_percentage,
        # Address
        address_line1=data.address.address_line1,
        address_line2=data.address.address_line2,
        city=data.address.city,
        state=data.address.state,
        postal_code=data.address.postal_code,
        country=data.address.country,
        # Parents
        father_name=data.father.name,
        father_phone=data.father.phone,
        father_email=data.father.email,
        father_occupation=data.father.occupation,
        mother_name=data.mother.name,
        mother_phone=data.mother.phone,
        mother_email=data.mother.email,
        mother_occupation=data.mother.occupation,
        guardian_name=data.guardian.name,
        guardian_phone=data.guardian.phone,
        guardian_email=data.guardian.email,
        guardian_relation=data.guardian.relation,
        # Workflow
        status=ApplicationStatus.DRAFT,
        remarks=data.remarks,
        created_by=created_by,
        updated_by=created_by,
    )

    db.add(application)
    await db.flush()
    await db.refresh(application)
    return application


async def get_application(
    db: AsyncSession, school_id: UUID, application_id: UUID, *, for_update: bool = False
) -> AdmissionApplication | None:
    """
    Get an application by ID.

    With ``for_update`` the row is locked until the transaction ends, which
    serializes concurrent enrollments of the same application.
    """
    query = select(AdmissionApplication).where(
        AdmissionApplication.id == application_id,
        AdmissionApplication.school_id == school_id,
    )
    if for_update:
        query = query.with_for_update()
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def get_application_by_number(
    db: AsyncSession, school_id: UUID, application_number: str
) -> AdmissionApplication | None:
    result = await db.execute(
        select(AdmissionApplication).where(
            AdmissionApplication.school_id == school_id,
            AdmissionApplication.application_number == application_number.strip().upper(),
        )
    )
    return result.scalar_one_or_none()


async def list_applications(
    db: AsyncSession,
    school_id: UUID,
    *,
    session_id: UUID | None = None,
    branch_id: UUID | None = None,
    status: ApplicationStatus | None = None,
    class_applying: str | None = None,
    search: str | None = None,
    submitted_after: datetime | None = None,
    submitted_before: datetime | None = None,
    skip: int = 0,
    limit: int = 20,
) -> tuple[list[AdmissionApplication], int]:
    """
    List applications with filters and pagination, newest first.

    Returns:
        Tuple of (applications, total count before pagination)
    """
    conditions = [AdmissionApplication.school_id == school_id]
    if session_id is not None:
        conditions.append(AdmissionApplication.session_id == session_id)
    if branch_id is not None:
        conditions.append(AdmissionApplication.branch_id == branch_id)
    if status is not None:
        conditions.append(AdmissionApplication.status == status)
    if class_applying:
        conditions.append(AdmissionApplication.class_applying == class_applying)
    if search:
        pattern = f"%{search.strip()}%"
        conditions.append(
            or_(
                AdmissionApplication.student_name.ilike(pattern),
                AdmissionApplication.application_number.ilike(pattern),
            )
        )
    if submitted_after is not None:
        conditions.append(AdmissionApplication.submitted_at >= submitted_after)
    if submitted_before is not None:
        conditions.append(AdmissionApplication.submitted_at <= submitted_before)

    where_clause = and_(*conditions)

    total = await db.scalar(
        select(func.count()).select_from(AdmissionApplication).where(where_clause)
    )
    result = await db.execute(
        select(AdmissionApplication)
        .where(where_clause)
        .order_by(AdmissionApplication.created_at.desc(), AdmissionApplication.id)
        .offset(skip)
        .limit(limit)
    )
    return list(result.scalars().all()), total or 0


async def list_merit_candidates(
    db: AsyncSession,
    school_id: UUID,
    session_id: UUID,
    class_name: str,
    statuses: set[ApplicationStatus],
) -> list[AdmissionApplication]:
    """Applications eligible for ranking, in submission order."""
    result = await db.execute(
        select(AdmissionApplication)
        .where(
            AdmissionApplication.school_id == school_id,
            AdmissionApplication.session_id == session_id,
            AdmissionApplication.class_applying == class_name,
            AdmissionApplication.status.in_(statuses),
        )
        .order_by(
            AdmissionApplication.submitted_at.asc().nulls_last(),
            AdmissionApplication.application_number,
        )
    )
    return list(result.scalars().all())


async def delete_application(db: AsyncSession, application: AdmissionApplication) -> None:
    """Delete an application together with its parents, documents and stage events."""
    await db.execute(
        delete(ApplicationStageEvent).where(
            ApplicationStageEvent.application_id == application.id
        )
    )
    await db.delete(application)
    await db.flush()


# ============================================
# Stage Log
# ============================================


async def append_stage_event(
    db: AsyncSession,
    *,
    school_id: UUID,
    application_id: UUID,
    event_type: StageEventType,
    from_status: ApplicationStatus | None,
    to_status: ApplicationStatus,
    changed_by: UUID | None,
    remarks: str | None = None,
) -> ApplicationStageEvent:
    """Append an entry to an application's stage log."""
    event = ApplicationStageEvent(
        school_id=school_id,
        application_id=application_id,
        event_type=event_type,
        from_status=from_status,
        to_status=to_status,
        changed_by=changed_by,
        remarks=remarks,
    )
    db.add(event)
    await db.flush()
    return event


async def list_stage_events(
    db: AsyncSession, school_id: UUID, application_id: UUID
) -> list[ApplicationStageEvent]:
    result = await db.execute(
        select(ApplicationStageEvent)
        .where(
            ApplicationStageEvent.school_id == school_id,
            ApplicationStageEvent.application_id == application_id,
        )
        .order_by(ApplicationStageEvent.created_at, ApplicationStageEvent.id)
    )
    return list(result.scalars().all())


# ============================================
# Reviews
# ============================================


async def create_review(
    db: AsyncSession,
    school_id: UUID,
    application_id: UUID,
    data: ReviewCreate,
    reviewer_id: UUID | None,
) -> ApplicationReview:
    review = ApplicationReview(
        school_id=school_id,
        application_id=application_id,
        reviewer_id=reviewer_id,
        review_type=data.review_type,
        status=data.status,
        comments=data.comments,
    )
    db.add(review)
    await db.flush()
    await db.refresh(review)
    return review


async def list_application_reviews(
    db: AsyncSession, school_id: UUID, application_id: UUID
) -> list[ApplicationReview]:
    result = await db.execute(
        select(ApplicationReview)
        .where(
            ApplicationReview.school_id == school_id,
            ApplicationReview.application_id == application_id,
        )
        .order_by(ApplicationReview.created_at.desc(), ApplicationReview.id)
    )
    return list(result.scalars().all())


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
) -> tuple[list[ApplicationReview], int]:
    """Reviews newest first, with the total matching count."""
    conditions = [ApplicationReview.school_id == school_id]
    if application_id is not None:
        conditions.append(ApplicationReview.application_id == application_id)
    if reviewer_id is not None:
        conditions.append(ApplicationReview.reviewer_id == reviewer_id)
    if review_type is not None:
        conditions.append(ApplicationReview.review_type == review_type)
    if status is not None:
        conditions.append(ApplicationReview.status == status)

    where_clause = and_(*conditions)

    total = await db.scalar(select(func.count()).select_from(ApplicationReview).where(where_clause))
    result = await db.execute(
        select(ApplicationReview)
        .where(where_clause)
        .order_by(ApplicationReview.created_at.desc(), ApplicationReview.id)
        .offset(skip)
        .limit(limit)
    )
    return list(result.scalars().all()), total or 0


# ============================================
# Parents & Documents
# ============================================


async def create_parent(
    db: AsyncSession, school_id: UUID, application_id: UUID, data: ParentCreate
) -> ApplicationParent:
    parent = ApplicationParent(
        school_id=school_id,
        application_id=application_id,
        **data.model_dump(),
    )
    db.add(parent)
    await db.flush()
    await db.refresh(parent)
    return parent


async def get_parent(
    db: AsyncSession, school_id: UUID, application_id: UUID, parent_id: UUID
) -> ApplicationParent | None:
    result = await db.execute(
        select(ApplicationParent).where(
            ApplicationParent.id == parent_id,
            ApplicationParent.application_id == application_id,
            ApplicationParent.school_id == school_id,
        )
    )
    return result.scalar_one_or_none()


async def list_parents(
    db: AsyncSession, school_id: UUID, application_id: UUID
) -> list[ApplicationParent]:
    result = await db.execute(
        select(ApplicationParent)
        .where(
            ApplicationParent.school_id == school_id,
            ApplicationParent.application_id == application_id,
        )
        .order_by(ApplicationParent.relation, ApplicationParent.created_at)
    )
    return list(result.scalars().all())


async def create_document(
    db: AsyncSession, school_id: UUID, application_id: UUID, data: DocumentCreate
) -> ApplicationDocument:
    document = ApplicationDocument(
        school_id=school_id,
        application_id=application_id,
        **data.model_dump(),
    )
    db.add(document)
    await db.flush()
    await db.refresh(document)
    return document


async def get_document(
    db: AsyncSession, school_id: UUID, application_id: UUID, document_id: UUID
) -> ApplicationDocument | None:
    result = await db.execute(
        select(ApplicationDocument).where(
            ApplicationDocument.id == document_id,
            ApplicationDocument.application_id == application_id,
            ApplicationDocument.school_id == school_id,
        )
    )
    return result.scalar_one_or_none()


async def list_documents(
    db: AsyncSession, school_id: UUID, application_id: UUID
) -> list[ApplicationDocument]:
    result = await db.execute(
        select(ApplicationDocument)
        .where(
            ApplicationDocument.school_id == school_id,
            ApplicationDocument.application_id == application_id,
        )
        .order_by(ApplicationDocument.created_at)
    )
    return list(result.scalars().all())


async def delete_record(db: AsyncSession, record: ApplicationParent | ApplicationDocument) -> None:
    await db.delete(record)
    await db.flush()


# ============================================
# Decisions
# ============================================


async def create_decision(
    db: AsyncSession,
    school_id: UUID,
    data: DecisionCreate,
    decision_date: date,
    decided_by: UUID | None,
) -> AdmissionDecision:
    decision = AdmissionDecision(
        school_id=school_id,
        application_id=data.application_id,
        decision=data.decision,
        decision_date=decision_date,
        decided_by=decided_by,
        section_assigned=data.section_assigned,
        waitlist_position=(
            data.waitlist_position if data.decision == DecisionType.WAITLISTED else None
        ),
        rejection_reason=(
            data.rejection_reason.strip()
            if data.decision == DecisionType.REJECTED and data.rejection_reason
            else None
        ),
        offer_valid_until=data.offer_valid_until,
        remarks=data.remarks,
    )
    db.add(decision)
    await db.flush()
    await db.refresh(decision)
    return decision


async def get_decision(
    db: AsyncSession, school_id: UUID, decision_id: UUID
) -> AdmissionDecision | None:
    result = await db.execute(
        select(AdmissionDecision).where(
            AdmissionDecision.id == decision_id,
            AdmissionDecision.school_id == school_id,
        )
    )
    return result.scalar_one_or_none()


async def get_decision_by_application(
    db: AsyncSession, school_id: UUID, application_id: UUID
) -> AdmissionDecision | None:
    result = await db.execute(
        select(AdmissionDecision).where(
            AdmissionDecision.application_id == application_id,
            AdmissionDecision.school_id == school_id,
        )
    )
    return result.scalar_one_or_none()


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
) -> tuple[list[AdmissionDecision], int]:
    conditions = [AdmissionDecision.school_id == school_id]
    if application_id is not None:
        conditions.append(AdmissionDecision.application_id == application_id)
    if decision is not None:
        conditions.append(AdmissionDecision.decision == decision)
    if decided_by is not None:
        conditions.append(AdmissionDecision.decided_by == decided_by)
    if date_from is not None:
        conditions.append(AdmissionDecision.decision_date >= date_from)
    if date_to is not None:
        conditions.append(AdmissionDecision.decision_date <= date_to)

    where_clause = and_(*conditions)

    total = await db.scalar(select(func.count()).select_from(AdmissionDecision).where(where_clause))
    result = await db.execute(
        select(AdmissionDecision)
        .where(where_clause)
        .order_by(AdmissionDecision.decision_date.desc(), AdmissionDecision.created_at.desc())
        .offset(skip)
        .limit(limit)
    )
    return list(result.scalars().all()), total or 0


async def mark_offer_accepted(
    db: AsyncSession,
    school_id: UUID,
    decision_id: UUID,
    accepted_at: datetime,
    today: date,
) -> AdmissionDecision | None:
    """
    Accept an approved offer in one conditional statement.

    Returns:
        The updated decision, or None if it was already accepted, expired or
        not approved by the time the statement ran
    """
    result = await db.execute(
        update(AdmissionDecision)
        .where(
            AdmissionDecision.id == decision_id,
            AdmissionDecision.school_id == school_id,
            AdmissionDecision.decision == DecisionType.APPROVED,
            AdmissionDecision.offer_accepted.is_not(True),
            or_(
                AdmissionDecision.offer_valid_until.is_(None),
                AdmissionDecision.offer_valid_until >= today,
            ),
        )
        .values(offer_accepted=True, offer_accepted_at=accepted_at)
        .returning(AdmissionDecision)
    )
    return result.scalar_one_or_none()


# ============================================
# Merit Lists
# ============================================


def _merit_key_conditions(
    school_id: UUID, session_id: UUID, class_name: str, test_id: UUID | None
) -> list:
    conditions = [
        MeritList.school_id == school_id,
        MeritList.session_id == session_id,
        MeritList.class_name == class_name,
    ]
    if test_id is None:
        conditions.append(MeritList.test_id.is_(None))
    else:
        conditions.append(MeritList.test_id == test_id)
    return conditions


async def get_latest_merit_list(
    db: AsyncSession,
    school_id: UUID,
    session_id: UUID,
    class_name: str,
    test_id: UUID | None = None,
) -> MeritList | None:
    """Most recently generated list for (session, class, test)."""
    result = await db.execute(
        select(MeritList)
        .where(*_merit_key_conditions(school_id, session_id, class_name, test_id))
        .order_by(MeritList.generated_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def get_final_merit_list(
    db: AsyncSession,
    school_id: UUID,
    session_id: UUID,
    class_name: str,
    test_id: UUID | None = None,
) -> MeritList | None:
    result = await db.execute(
        select(MeritList)
        .where(
            *_merit_key_conditions(school_id, session_id, class_name, test_id),
            MeritList.is_final.is_(True),
        )
        .limit(1)
    )
    return result.scalar_one_or_none()


async def get_merit_list(
    db: AsyncSession, school_id: UUID, merit_list_id: UUID
) -> MeritList | None:
    result = await db.execute(
        select(MeritList).where(
            MeritList.id == merit_list_id,
            MeritList.school_id == school_id,
        )
    )
    return result.scalar_one_or_none()


async def list_merit_lists(
    db: AsyncSession,
    school_id: UUID,
    *,
    session_id: UUID | None = None,
    class_name: str | None = None,
    is_final: bool | None = None,
) -> list[MeritList]:
    query = select(MeritList).where(MeritList.school_id == school_id)
    if session_id is not None:
        query = query.where(MeritList.session_id == session_id)
    if class_name:
        query = query.where(MeritList.class_name == class_name)
    if is_final is not None:
        query = query.where(MeritList.is_final.is_(is_final))

    result = await db.execute(query.order_by(MeritList.generated_at.desc()))
    return list(result.scalars().all())


async def delete_draft_merit_lists(
    db: AsyncSession,
    school_id: UUID,
    session_id: UUID,
    class_name: str,
    test_id: UUID | None = None,
) -> int:
    """Delete the non-final lists for a key. Returns the number removed."""
    result = await db.execute(
        delete(MeritList).where(
            *_merit_key_conditions(school_id, session_id, class_name, test_id),
            MeritList.is_final.is_(False),
        )
    )
    return result.rowcount or 0


async def create_merit_list(
    db: AsyncSession,
    *,
    school_id: UUID,
    session_id: UUID,
    class_name: str,
    test_id: UUID | None,
    generated_at: datetime,
    generated_by: UUID | None,
    cutoff_score: Decimal | None,
    entries: list[dict],
) -> MeritList:
    merit_list = MeritList(
        school_id=school_id,
        session_id=session_id,
        class_name=class_name,
        test_id=test_id,
        generated_at=generated_at,
        generated_by=generated_by,
        cutoff_score=cutoff_score,
        entries=entries,
        is_final=False,
    )
    db.add(merit_list)
    await db.flush()
    await db.refresh(merit_list)
    return merit_list


async def delete_merit_list(db: AsyncSession, merit_list: MeritList) -> None:
    await db.delete(merit_list)
    await db.flush()
