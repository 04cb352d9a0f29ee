"""
Admission Application Service

Business logic for admission applications.

This module implements:
1. Intake: create (session must be open), update while not locked, delete
   while still a draft
2. Submission: draft -> submitted, plus resubmission from submitted,
   documents_pending or under_review
3. Stage changes: every change is checked against the stage graph in
   transitions.py and recorded in the append-only stage log
4. Enrollment: moving to ENROLLED runs one transaction that resolves the
   branch, allocates an admission number, creates the student (and
   address), consumes a seat and records the event. Any failure rolls the
   whole thing back. The decision service reuses the same routine.
5. Parents, document metadata and the public status lookup
"""

import logging
import re
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import atomic
from app.modules.admissions import repository, sequences
from app.modules.admissions.exceptions import (
    ApplicationLockedError,
    ApplicationNotFoundError,
    CannotDeleteSubmittedApplicationError,
    DocumentNotFoundError,
    InvalidPhoneError,
    InvalidStageTransitionError,
    NoBranchConfiguredError,
    ParentNotFoundError,
    SeatCapacityExceededError,
    SessionNotFoundError,
    SessionNotOpenError,
    ValidationError,
)
from app.modules.admissions.models import (
    AdmissionApplication,
    ApplicationDocument,
    ApplicationParent,
    ApplicationStageEvent,
    ApplicationStatus,
    SessionStatus,
    StageEventType,
    VerificationStatus,
)
from app.modules.admissions.schemas import (
    ApplicationCreate,
    ApplicationUpdate,
    DocumentCreate,
    ParentCreate,
    ParentUpdate,
)
from app.modules.admissions.session_service import require_school
from app.modules.admissions.transitions import (
    LOCKED_STATUSES,
    SUBMITTABLE_STATUSES,
    can_transition,
)
from app.modules.schools.repository import SchoolRepository
from app.modules.students.models import Student
from app.modules.students.repository import StudentRepository

logger = logging.getLogger(__name__)

PHONE_PATTERN = re.compile(r"^\+?[1-9]\d{9,14}$")

# Columns that may not be cleared through an update
_NON_NULLABLE_APPLICATION_FIELDS = {"student_name", "class_applying", "fee_paid"}


def normalize_phone(phone: str | None) -> str:
    """Strip spaces, dashes, dots and brackets from a phone number."""
    if not phone:
        return ""
    return re.sub(r"[\s\-().]", "", phone)


async def get_application(
    db: AsyncSession, school_id: UUID, application_id: UUID
) -> AdmissionApplication:
    """
    Get an application by ID.

    Raises:
        ApplicationNotFoundError: If the application doesn't exist for the school
    """
    require_school(school_id)
    application = await repository.get_application(db, school_id, application_id)
    if not application:
        logger.warning(f"Application not found: {application_id} (school {school_id})")
        raise ApplicationNotFoundError(application_id)
    return application


async def get_application_by_number(
    db: AsyncSession, school_id: UUID, application_number: str
) -> AdmissionApplication:
    require_school(school_id)
    application = await repository.get_application_by_number(db, school_id, application_number)
    if not application:
        raise ApplicationNotFoundError(application_number)
    return application


# ============================================
# Intake
# ============================================


async def create_application(
    db: AsyncSession,
    school_id: UUID,
    data: ApplicationCreate,
    created_by: UUID | None = None,
) -> AdmissionApplication:
    """
    Create a draft application in an open session.

    The application number is allocated in the same transaction as the
    insert, so a failed insert does not consume a number.

    Args:
        db: Database session
        school_id: Tenant the application belongs to
        data: Applicant details
        created_by: Acting user, for audit

    Returns:
        The created AdmissionApplication in DRAFT status

    Raises:
        ValidationError: If the student name or class is blank, or the branch is unknown
        SessionNotFoundError: If the session doesn't exist
        SessionNotOpenError: If the session is not open
    """
    require_school(school_id)
    if not data.student.name.strip():
        raise ValidationError("Student name is required", "STUDENT_NAME_REQUIRED")
    if not data.academic.class_applying.strip():
        raise ValidationError("Class applying for is required", "CLASS_REQUIRED")

    session = await repository.get_session(db, school_id, data.session_id)
    if not session:
        logger.warning(f"Application for unknown session {data.session_id}")
        raise SessionNotFoundError(data.session_id)
    if session.status != SessionStatus.OPEN:
        logger.warning(
            f"Application rejected: session {session.id} is {session.status.value}, not open"
        )
        raise SessionNotOpenError(session.id, session.status)

    branch_id = data.branch_id or session.branch_id
    if data.branch_id is not None:
        branch = await SchoolRepository.get_branch(db, school_id, data.branch_id)
        if not branch:
            raise ValidationError(f"Branch {data.branch_id} not found", "INVALID_BRANCH")

    async with atomic(db):
        application_number = await sequences.next_application_number(db, school_id)
        application = await repository.create_application(
            db, school_id, data, application_number, created_by
        )
        if application.branch_id is None and branch_id is not None:
            application.branch_id = branch_id

    logger.info(
        f"Created application {application.application_number} ({application.id}) "
        f"for class {application.class_applying} in session {session.id}"
    )
    return application


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
) -> dict:
    """
    List applications with filters and pagination.

    Returns:
        Dict with applications, total, skip and limit
    """
    require_school(school_id)
    limit = min(max(1, limit), 100)
    skip = max(0, skip)

    applications, total = await repository.list_applications(
        db,
        school_id,
        session_id=session_id,
        branch_id=branch_id,
        status=status,
        class_applying=class_applying,
        search=search,
        submitted_after=submitted_after,
        submitted_before=submitted_before,
        skip=skip,
        limit=limit,
    )

    return {"applications": applications, "total": total, "skip": skip, "limit": limit}


async def update_application(
    db: AsyncSession,
    school_id: UUID,
    application_id: UUID,
    data: ApplicationUpdate,
    updated_by: UUID | None = None,
) -> AdmissionApplication:
    """
    Update the applicant fields present in ``data``.

    Raises:
        ApplicationNotFoundError: If the application doesn't exist
        ApplicationLockedError: If the application is approved, rejected or enrolled
    """
    application = await get_application(db, school_id, application_id)

    if application.status in LOCKED_STATUSES:
        logger.warning(f"Update rejected for {application_id}: status {application.status.value}")
        raise ApplicationLockedError(application.status)

    updates = {
        field: value
        for field, value in data.model_dump(exclude_unset=True).items()
        if not (value is None and field in _NON_NULLABLE_APPLICATION_FIELDS)
    }
    for field in ("student_name", "class_applying"):
        if field in updates:
            updates[field] = updates[field].strip()
            if not updates[field]:
                raise ValidationError(f"{field} cannot be blank", "MISSING_REQUIRED_FIELDS")

    async with atomic(db):
        for field, value in updates.items():
            setattr(application, field, value)
        application.updated_by = updated_by
        await db.flush()

    logger.info(f"Updated application {application_id}: fields={sorted(updates)}")
    return application


async def delete_application(db: AsyncSession, school_id: UUID, application_id: UUID) -> None:
    """
    Delete a draft application with its parents, documents and stage log.

    Raises:
        ApplicationNotFoundError: If the application doesn't exist
        CannotDeleteSubmittedApplicationError: If it has left DRAFT
    """
    application = await get_application(db, school_id, application_id)

    if application.status != ApplicationStatus.DRAFT:
        logger.warning(f"Refusing to delete application {application_id} in {application.status}")
        raise CannotDeleteSubmittedApplicationError(application.status)

    async with atomic(db):
        await repository.delete_application(db, application)

    logger.info(f"Deleted draft application {application.application_number}")


# ============================================
# Workflow
# ============================================


async def submit_application(
    db: AsyncSession,
    school_id: UUID,
    application_id: UUID,
    submitted_by: UUID | None = None,
) -> AdmissionApplication:
    """
    Submit (or resubmit) an application.

    Accepted from DRAFT, and as a resubmission from SUBMITTED,
    DOCUMENTS_PENDING or UNDER_REVIEW.

    Raises:
        ApplicationNotFoundError: If the application doesn't exist
        InvalidStageTransitionError: If the current status doesn't accept submission
        ValidationError: If student name or class is missing
    """
    application = await get_application(db, school_id, application_id)

    if application.status not in SUBMITTABLE_STATUSES:
        logger.warning(
            f"Submit rejected for {application_id}: status {application.status.value}"
        )
        raise InvalidStageTransitionError(application.status, ApplicationStatus.SUBMITTED)

    if not (application.student_name or "").strip() or not (
        application.class_applying or ""
    ).strip():
        raise ValidationError(
            "Student name and class are required to submit", "MISSING_REQUIRED_FIELDS"
        )

    previous_status = application.status
    async with atomic(db):
        application.status = ApplicationStatus.SUBMITTED
        application.submitted_at = datetime.now(UTC)
        application.updated_by = submitted_by
        await repository.append_stage_event(
            db,
            school_id=school_id,
            application_id=application.id,
            event_type=StageEventType.SUBMITTED,
            from_status=previous_status,
            to_status=ApplicationStatus.SUBMITTED,
            changed_by=submitted_by,
            remarks="Application submitted",
        )

    logger.info(
        f"Application {application.application_number} submitted "
        f"(from {previous_status.value})"
    )
    return application


async def update_stage(
    db: AsyncSession,
    school_id: UUID,
    application_id: UUID,
    new_status: ApplicationStatus,
    changed_by: UUID | None = None,
    remarks: str | None = None,
) -> AdmissionApplication:
    """
    Move an application along the stage graph.

    Moving to ENROLLED runs the enrollment transaction (see enroll_application).

    Raises:
        ApplicationNotFoundError: If the application doesn't exist
        InvalidStageTransitionError: If the transition is not on the graph
    """
    require_school(school_id)
    if new_status == ApplicationStatus.ENROLLED:
        return await enroll_application(db, school_id, application_id, changed_by, remarks)

    application = await get_application(db, school_id, application_id)

    if not can_transition(application.status, new_status):
        logger.warning(
            f"Invalid stage transition for {application_id}: "
            f"{application.status.value} -> {new_status.value}"
        )
        raise InvalidStageTransitionError(application.status, new_status)

    previous_status = application.status
    async with atomic(db):
        application.status = new_status
        application.updated_by = changed_by
        if remarks:
            application.remarks = remarks
        if new_status == ApplicationStatus.APPROVED:
            application.approved_at = datetime.now(UTC)
            application.approved_by = changed_by
        await repository.append_stage_event(
            db,
            school_id=school_id,
            application_id=application.id,
            event_type=StageEventType.STAGE_CHANGED,
            from_status=previous_status,
            to_status=new_status,
            changed_by=changed_by,
            remarks=remarks,
        )

    logger.info(
        f"Application {application.application_number}: "
        f"{previous_status.value} -> {new_status.value}"
    )
    return application


async def get_stage_history(
    db: AsyncSession, school_id: UUID, application_id: UUID
) -> list[ApplicationStageEvent]:
    await get_application(db, school_id, application_id)
    return await repository.list_stage_events(db, school_id, application_id)


# ============================================
# Enrollment
# ============================================


async def _resolve_branch_id(
    db: AsyncSession, school_id: UUID, application: AdmissionApplication
) -> UUID:
    """Application branch, else the school's primary branch, else any branch."""
    if application.branch_id:
        return application.branch_id

    branch = await SchoolRepository.get_primary_branch(db, school_id)
    if branch is None:
        branch = await SchoolRepository.get_any_branch(db, school_id)
    if branch is None:
        logger.error(f"School {school_id} has no branch; cannot enroll {application.id}")
        raise NoBranchConfiguredError(school_id)
    return branch.id


async def _consume_seat(db: AsyncSession, school_id: UUID, application: AdmissionApplication):
    seat = await repository.get_seat_by_class(
        db, school_id, application.session_id, application.class_applying
    )
    if seat is None:
        logger.warning(
            f"No seat configuration for class {application.class_applying} in session "
            f"{application.session_id}; enrolling without seat accounting"
        )
        return

    new_filled = await repository.consume_class_seat(
        db, school_id, application.session_id, application.class_applying
    )
    if new_filled is None:
        logger.warning(
            f"Enrollment of {application.application_number} blocked: "
            f"class {seat.class_name} is full ({seat.filled_seats}/{seat.total_seats})"
        )
        raise SeatCapacityExceededError(seat.class_name, seat.total_seats, seat.filled_seats)


async def enroll_in_transaction(
    db: AsyncSession,
    school_id: UUID,
    application: AdmissionApplication,
    changed_by: UUID | None = None,
    remarks: str | None = None,
    event_remarks: str | None = None,
) -> Student:
    """
    Convert an application into a student record.

    Must run inside an ``atomic`` block opened by the caller; nothing here
    commits. Steps: resolve the branch, allocate the admission number,
    create the student (and current address when address line 1 is set),
    take a seat for the class, mark the application ENROLLED and log it.
    """
    previous_status = application.status
    now = datetime.now(UTC)

    branch_id = await _resolve_branch_id(db, school_id, application)
    admission_number = await sequences.next_admission_number(db, school_id, branch_id, now.year)

    student = await StudentRepository.create(
        db,
        school_id=school_id,
        branch_id=branch_id,
        application_id=application.id,
        admission_number=admission_number,
        full_name=application.student_name,
        admission_date=now.date(),
        date_of_birth=application.date_of_birth,
        gender=application.gender,
        blood_group=application.blood_group,
        national_id=application.national_id,
        created_by=changed_by,
    )

    if application.address_line1:
        await StudentRepository.create_address(
            db,
            school_id=school_id,
            student_id=student.id,
            address_line1=application.address_line1,
            address_line2=application.address_line2,
            city=application.city,
            state=application.state,
            postal_code=application.postal_code,
            country=application.country,
        )

    await _consume_seat(db, school_id, application)

    application.status = ApplicationStatus.ENROLLED
    application.enrolled_at = now
    application.updated_by = changed_by
    if application.branch_id is None:
        application.branch_id = branch_id
    if remarks:
        application.remarks = remarks

    await repository.append_stage_event(
        db,
        school_id=school_id,
        application_id=application.id,
        event_type=StageEventType.ENROLLED,
        from_status=previous_status,
        to_status=ApplicationStatus.ENROLLED,
        changed_by=changed_by,
        remarks=event_remarks or remarks or f"Enrolled with admission number {admission_number}",
    )

    logger.info(
        f"Enrolled application {application.application_number} as student {student.id} "
        f"({admission_number})"
    )
    return student


async def enroll_application(
    db: AsyncSession,
    school_id: UUID,
    application_id: UUID,
    changed_by: UUID | None = None,
    remarks: str | None = None,
) -> AdmissionApplication:
    """
    Stage change to ENROLLED.

    The application row is locked for the duration so concurrent enrollments
    of the same application serialize.

    Raises:
        ApplicationNotFoundError: If the application doesn't exist
        InvalidStageTransitionError: If the application is not APPROVED
        NoBranchConfiguredError: If the school has no branch
        SeatCapacityExceededError: If the class is full
    """
    async with atomic(db):
        application = await repository.get_application(
            db, school_id, application_id, for_update=True
        )
        if not application:
            raise ApplicationNotFoundError(application_id)

        if not can_transition(application.status, ApplicationStatus.ENROLLED):
            logger.warning(
                f"Invalid stage transition for {application_id}: "
                f"{application.status.value} -> enrolled"
            )
            raise InvalidStageTransitionError(application.status, ApplicationStatus.ENROLLED)

        await enroll_in_transaction(db, school_id, application, changed_by, remarks)

    return application


# ============================================
# Parents
# ============================================


async def _get_editable_application(
    db: AsyncSession, school_id: UUID, application_id: UUID
) -> AdmissionApplication:
    application = await get_application(db, school_id, application_id)
    if application.status in LOCKED_STATUSES:
        raise ApplicationLockedError(application.status)
    return application


async def add_parent(
    db: AsyncSession, school_id: UUID, application_id: UUID, data: ParentCreate
) -> ApplicationParent:
    await _get_editable_application(db, school_id, application_id)

    async with atomic(db):
        parent = await repository.create_parent(db, school_id, application_id, data)

    logger.info(f"Added {data.relation.value} to application {application_id}")
    return parent


async def list_parents(
    db: AsyncSession, school_id: UUID, application_id: UUID
) -> list[ApplicationParent]:
    await get_application(db, school_id, application_id)
    return await repository.list_parents(db, school_id, application_id)


async def update_parent(
    db: AsyncSession,
    school_id: UUID,
    application_id: UUID,
    parent_id: UUID,
    data: ParentUpdate,
) -> ApplicationParent:
    await _get_editable_application(db, school_id, application_id)
    parent = await repository.get_parent(db, school_id, application_id, parent_id)
    if not parent:
        raise ParentNotFoundError(parent_id)

    updates = data.model_dump(exclude_unset=True)
    if updates.get("relation") is None:
        updates.pop("relation", None)
    if updates.get("name") is None:
        updates.pop("name", None)

    async with atomic(db):
        for field, value in updates.items():
            setattr(parent, field, value)
        await db.flush()

    return parent


async def delete_parent(
    db: AsyncSession, school_id: UUID, application_id: UUID, parent_id: UUID
) -> None:
    await _get_editable_application(db, school_id, application_id)
    parent = await repository.get_parent(db, school_id, application_id, parent_id)
    if not parent:
        raise ParentNotFoundError(parent_id)

    async with atomic(db):
        await repository.delete_record(db, parent)

    logger.info(f"Removed parent {parent_id} from application {application_id}")


# ============================================
# Documents
# ============================================


async def add_document(
    db: AsyncSession, school_id: UUID, application_id: UUID, data: DocumentCreate
) -> ApplicationDocument:
    """Attach document metadata. The file itself lives in external storage."""
    application = await get_application(db, school_id, application_id)
    if application.status == ApplicationStatus.ENROLLED:
        raise ApplicationLockedError(application.status)

    async with atomic(db):
        document = await repository.create_document(db, school_id, application_id, data)

    logger.info(f"Added {data.document_type.value} document to application {application_id}")
    return document


async def list_documents(
    db: AsyncSession, school_id: UUID, application_id: UUID
) -> list[ApplicationDocument]:
    await get_application(db, school_id, application_id)
    return await repository.list_documents(db, school_id, application_id)


async def get_document(
    db: AsyncSession, school_id: UUID, application_id: UUID, document_id: UUID
) -> ApplicationDocument:
    document = await repository.get_document(db, school_id, application_id, document_id)
    if not document:
        raise DocumentNotFoundError(document_id)
    return document


async def delete_document(
    db: AsyncSession, school_id: UUID, application_id: UUID, document_id: UUID
) -> None:
    document = await get_document(db, school_id, application_id, document_id)

    async with atomic(db):
        await repository.delete_record(db, document)

    logger.info(f"Deleted document {document_id} from application {application_id}")


async def verify_document(
    db: AsyncSession,
    school_id: UUID,
    application_id: UUID,
    document_id: UUID,
    status: VerificationStatus,
    verified_by: UUID | None = None,
    remarks: str | None = None,
) -> ApplicationDocument:
    """Record the outcome of a document check."""
    document = await get_document(db, school_id, application_id, document_id)

    async with atomic(db):
        document.verification_status = status
        document.remarks = remarks
        if status == VerificationStatus.PENDING:
            document.verified_by = None
            document.verified_at = None
        else:
            document.verified_by = verified_by
            document.verified_at = datetime.now(UTC)
        await db.flush()

    logger.info(f"Document {document_id} marked {status.value}")
    return document


# ============================================
# Public Status Lookup
# ============================================


def _registered_phones(application: AdmissionApplication) -> set[str]:
    phones = {
        normalize_phone(application.father_phone),
        normalize_phone(application.mother_phone),
        normalize_phone(application.guardian_phone),
    }
    phones.update(normalize_phone(parent.phone) for parent in application.parents or [])
    phones.discard("")
    return phones


async def check_application_status(
    db: AsyncSession, school_id: UUID, application_number: str, phone: str
) -> AdmissionApplication:
    """
    Public lookup of an application's status.

    The phone must belong to a parent or guardian on the application. A
    mismatch is reported exactly like a missing application so the lookup
    doesn't reveal which numbers exist.

    Raises:
        InvalidPhoneError: If the phone number is malformed
        ApplicationNotFoundError: If no application matches number and phone
    """
    require_school(school_id)
    normalized = normalize_phone(phone)
    if not PHONE_PATTERN.match(normalized):
        raise InvalidPhoneError()

    application = await repository.get_application_by_number(db, school_id, application_number)
    if not application or normalized not in _registered_phones(application):
        logger.info(f"Status lookup miss for application number {application_number}")
        raise ApplicationNotFoundError()

    return application


