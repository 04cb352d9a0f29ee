"""
Admission Session Service

Business logic for admission sessions and their per-class seat
configurations.

This module implements:
1. Session lifecycle: create, update, status changes (upcoming -> open ->
   closed, with reopen), deadline extension and guarded deletion
2. Seat allocation: per-class capacity with filled <= total enforced by a
   conditional update in the repository
3. Session statistics: seat totals and application counts by status

A closed session rejects edits to itself and to its seats.
"""

import logging
from datetime import date
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import atomic
from app.modules.admissions import repository
from app.modules.admissions.exceptions import (
    CannotDeleteOpenSessionError,
    DuplicateClassSeatError,
    DuplicateSessionNameError,
    FilledExceedsTotalError,
    InvalidDateRangeError,
    InvalidSessionTransitionError,
    SeatCapacityExceededError,
    SeatNotFoundError,
    SessionClosedError,
    SessionHasApplicationsError,
    SessionNotFoundError,
    ValidationError,
)
from app.modules.admissions.models import AdmissionSeat, AdmissionSession, SessionStatus
from app.modules.admissions.schemas import SeatCreate, SeatUpdate, SessionCreate, SessionUpdate
from app.modules.admissions.transitions import can_transition_session

logger = logging.getLogger(__name__)

# Columns that may not be cleared through an update
_NON_NULLABLE_SESSION_FIELDS = {
    "name",
    "start_date",
    "end_date",
    "application_fee",
    "required_documents",
    "settings",
}


def require_school(school_id: UUID | None) -> None:
    if school_id is None:
        raise ValidationError("School ID is required", "SCHOOL_ID_REQUIRED")


async def get_session(
    db: AsyncSession, school_id: UUID, session_id: UUID
) -> AdmissionSession:
    """
    Get an admission session (seats are loaded with it).

    Raises:
        SessionNotFoundError: If the session doesn't exist for the school
    """
    require_school(school_id)
    session = await repository.get_session(db, school_id, session_id)
    if not session:
        logger.warning(f"Admission session not found: {session_id} (school {school_id})")
        raise SessionNotFoundError(session_id)
    return session


def _ensure_not_closed(session: AdmissionSession) -> None:
    if session.status == SessionStatus.CLOSED:
        logger.warning(f"Rejected change to closed session {session.id}")
        raise SessionClosedError(session.id)


# ============================================
# Sessions
# ============================================


async def create_session(
    db: AsyncSession,
    school_id: UUID,
    data: SessionCreate,
    created_by: UUID | None = None,
) -> AdmissionSession:
    """
    Create an admission session in UPCOMING status.

    Args:
        db: Database session
        school_id: Tenant the session belongs to
        data: Session details
        created_by: Acting user, for audit

    Returns:
        The created AdmissionSession

    Raises:
        ValidationError: If the school or name is missing
        InvalidDateRangeError: If end_date is before start_date
        DuplicateSessionNameError: If the name is taken in the academic year
    """
    require_school(school_id)
    if not data.name.strip():
        raise ValidationError("Session name is required", "SESSION_NAME_REQUIRED")
    if data.end_date < data.start_date:
        raise InvalidDateRangeError(data.start_date, data.end_date)

    existing = await repository.get_session_by_name(
        db, school_id, data.name, data.academic_year_id
    )
    if existing:
        logger.warning(f"Duplicate admission session name '{data.name}' for school {school_id}")
        raise DuplicateSessionNameError(data.name)

    async with atomic(db):
        session = await repository.create_session(db, school_id, data, created_by)

    logger.info(f"Created admission session {session.id} '{session.name}' for school {school_id}")
    return session


async def list_sessions(
    db: AsyncSession,
    school_id: UUID,
    *,
    branch_id: UUID | None = None,
    academic_year_id: UUID | None = None,
    status: SessionStatus | None = None,
    search: str | None = None,
) -> tuple[list[AdmissionSession], int]:
    require_school(school_id)
    return await repository.list_sessions(
        db,
        school_id,
        branch_id=branch_id,
        academic_year_id=academic_year_id,
        status=status,
        search=search,
    )


async def update_session(
    db: AsyncSession,
    school_id: UUID,
    session_id: UUID,
    data: SessionUpdate,
    updated_by: UUID | None = None,
) -> AdmissionSession:
    """
    Update the fields present in ``data``.

    Settings are merged into the stored settings rather than replaced.

    Raises:
        SessionNotFoundError: If the session doesn't exist
        SessionClosedError: If the session is closed
        DuplicateSessionNameError: If a new name collides
        InvalidDateRangeError: If the resulting date range is inverted
    """
    session = await get_session(db, school_id, session_id)
    _ensure_not_closed(session)

    updates = {
        field: value
        for field, value in data.model_dump(exclude_unset=True).items()
        if not (value is None and field in _NON_NULLABLE_SESSION_FIELDS)
    }

    new_name = updates.get("name")
    academic_year_id = updates.get("academic_year_id", session.academic_year_id)
    if new_name is not None and not new_name.strip():
        raise ValidationError("Session name is required", "SESSION_NAME_REQUIRED")
    if new_name is not None or "academic_year_id" in updates:
        existing = await repository.get_session_by_name(
            db,
            school_id,
            new_name or session.name,
            academic_year_id,
            exclude_id=session.id,
        )
        if existing:
            raise DuplicateSessionNameError(new_name or session.name)

    start_date = updates.get("start_date", session.start_date)
    end_date = updates.get("end_date", session.end_date)
    if end_date < start_date:
        raise InvalidDateRangeError(start_date, end_date)

    if "required_documents" in updates:
        updates["required_documents"] = [doc.value for doc in updates["required_documents"]]
    if "settings" in updates:
        updates["settings"] = {**(session.settings or {}), **updates["settings"]}
    if "name" in updates:
        updates["name"] = updates["name"].strip()

    async with atomic(db):
        for field, value in updates.items():
            setattr(session, field, value)
        session.updated_by = updated_by
        await db.flush()

    logger.info(f"Updated admission session {session_id}: fields={sorted(updates)}")
    return session


async def change_session_status(
    db: AsyncSession,
    school_id: UUID,
    session_id: UUID,
    new_status: SessionStatus,
    updated_by: UUID | None = None,
) -> AdmissionSession:
    """
    Move a session to a new status.

    Allowed: upcoming -> open, upcoming -> closed, open -> closed, closed -> open.

    Raises:
        SessionNotFoundError: If the session doesn't exist
        InvalidSessionTransitionError: For any other pair, including same-state
    """
    session = await get_session(db, school_id, session_id)

    if not can_transition_session(session.status, new_status):
        logger.warning(
            f"Invalid session transition for {session_id}: "
            f"{session.status.value} -> {new_status.value}"
        )
        raise InvalidSessionTransitionError(session.status, new_status)

    old_status = session.status
    async with atomic(db):
        session.status = new_status
        session.updated_by = updated_by
        await db.flush()

    logger.info(f"Session {session_id} status {old_status.value} -> {new_status.value}")
    return session


async def open_session(
    db: AsyncSession, school_id: UUID, session_id: UUID, updated_by: UUID | None = None
) -> AdmissionSession:
    return await change_session_status(db, school_id, session_id, SessionStatus.OPEN, updated_by)


async def close_session(
    db: AsyncSession, school_id: UUID, session_id: UUID, updated_by: UUID | None = None
) -> AdmissionSession:
    return await change_session_status(db, school_id, session_id, SessionStatus.CLOSED, updated_by)


async def extend_deadline(
    db: AsyncSession,
    school_id: UUID,
    session_id: UUID,
    new_end_date: date,
    updated_by: UUID | None = None,
) -> AdmissionSession:
    """Move a session's end date. The session must not be closed."""
    session = await get_session(db, school_id, session_id)
    _ensure_not_closed(session)

    if new_end_date < session.start_date:
        raise InvalidDateRangeError(session.start_date, new_end_date)

    async with atomic(db):
        session.end_date = new_end_date
        session.updated_by = updated_by
        await db.flush()

    logger.info(f"Extended session {session_id} deadline to {new_end_date.isoformat()}")
    return session


async def delete_session(db: AsyncSession, school_id: UUID, session_id: UUID) -> None:
    """
    Delete a session and its seat configurations.

    Raises:
        SessionNotFoundError: If the session doesn't exist
        CannotDeleteOpenSessionError: If the session is open
        SessionHasApplicationsError: If any application references the session
    """
    session = await get_session(db, school_id, session_id)

    if session.status == SessionStatus.OPEN:
        logger.warning(f"Refusing to delete open session {session_id}")
        raise CannotDeleteOpenSessionError()

    application_count = await repository.count_session_applications(db, school_id, session_id)
    if application_count > 0:
        logger.warning(f"Refusing to delete session {session_id} with {application_count} apps")
        raise SessionHasApplicationsError(application_count)

    async with atomic(db):
        await repository.delete_session(db, session)

    logger.info(f"Deleted admission session {session_id}")


async def get_session_stats(db: AsyncSession, school_id: UUID, session_id: UUID) -> dict:
    """
    Seat and application totals for a session.

    Returns:
        Dict with session_id, total_seats, filled_seats, available_seats,
        total_applications and applications_by_status
    """
    await get_session(db, school_id, session_id)

    seats = await repository.list_seats(db, school_id, session_id)
    by_status = await repository.count_applications_by_status(db, school_id, session_id)

    total_seats = sum(seat.total_seats for seat in seats)
    filled_seats = sum(seat.filled_seats for seat in seats)

    return {
        "session_id": session_id,
        "total_seats": total_seats,
        "filled_seats": filled_seats,
        "available_seats": max(total_seats - filled_seats, 0),
        "total_applications": sum(by_status.values()),
        "applications_by_status": by_status,
    }


# ============================================
# Seats
# ============================================


async def create_seat(
    db: AsyncSession, school_id: UUID, session_id: UUID, data: SeatCreate
) -> AdmissionSeat:
    """
    Add a seat configuration for a class.

    A waitlist limit of 0 or None falls back to the configured default.

    Raises:
        SessionNotFoundError: If the session doesn't exist
        SessionClosedError: If the session is closed
        DuplicateClassSeatError: If the class already has seats in the session
    """
    session = await get_session(db, school_id, session_id)
    _ensure_not_closed(session)

    class_name = data.class_name.strip()
    if not class_name:
        raise ValidationError("Class name is required", "CLASS_NAME_REQUIRED")
    if data.total_seats < 0:
        raise ValidationError("Total seats cannot be negative", "INVALID_TOTAL_SEATS")

    existing = await repository.get_seat_by_class(db, school_id, session_id, class_name)
    if existing:
        raise DuplicateClassSeatError(class_name)

    waitlist_limit = data.waitlist_limit or settings.default_waitlist_limit

    async with atomic(db):
        seat = await repository.create_seat(db, school_id, session_id, data, waitlist_limit)

    logger.info(f"Created {data.total_seats} seats for class {class_name} in session {session_id}")
    return seat


async def get_seat(db: AsyncSession, school_id: UUID, seat_id: UUID) -> AdmissionSeat:
    require_school(school_id)
    seat = await repository.get_seat(db, school_id, seat_id)
    if not seat:
        logger.warning(f"Seat configuration not found: {seat_id}")
        raise SeatNotFoundError(seat_id)
    return seat


async def list_seats(db: AsyncSession, school_id: UUID, session_id: UUID) -> list[AdmissionSeat]:
    await get_session(db, school_id, session_id)
    return await repository.list_seats(db, school_id, session_id)


async def update_seat(
    db: AsyncSession, school_id: UUID, seat_id: UUID, data: SeatUpdate
) -> AdmissionSeat:
    """
    Update a seat configuration.

    Raises:
        SeatNotFoundError: If the seat doesn't exist
        SessionClosedError: If its session is closed
        FilledExceedsTotalError: If the new total is below the filled count
    """
    seat = await get_seat(db, school_id, seat_id)
    session = await get_session(db, school_id, seat.session_id)
    _ensure_not_closed(session)

    updates = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}

    if "total_seats" in updates and updates["total_seats"] < seat.filled_seats:
        raise FilledExceedsTotalError(seat.filled_seats, updates["total_seats"])

    async with atomic(db):
        for field, value in updates.items():
            setattr(seat, field, value)
        await db.flush()

    logger.info(f"Updated seat {seat_id}: fields={sorted(updates)}")
    return seat


async def delete_seat(db: AsyncSession, school_id: UUID, seat_id: UUID) -> None:
    seat = await get_seat(db, school_id, seat_id)
    session = await get_session(db, school_id, seat.session_id)
    _ensure_not_closed(session)

    async with atomic(db):
        await repository.delete_seat(db, seat)

    logger.info(f"Deleted seat {seat_id} ({seat.class_name})")


async def increment_filled_seats(
    db: AsyncSession, school_id: UUID, seat_id: UUID, count: int = 1
) -> AdmissionSeat:
    """
    Change a seat's filled count by ``count``.

    The change is applied by one conditional UPDATE, so two concurrent
    increments can never push filled past total. A negative count that
    would go below zero is clamped to zero.

    Raises:
        SeatNotFoundError: If the seat doesn't exist
        SeatCapacityExceededError: If filled + count would exceed total
    """
    seat = await get_seat(db, school_id, seat_id)

    async with atomic(db):
        new_filled = await repository.increment_seat_filled(db, school_id, seat_id, count)
        if new_filled is None:
            logger.warning(
                f"Seat capacity exceeded for {seat.class_name}: "
                f"{seat.filled_seats}/{seat.total_seats} (+{count})"
            )
            raise SeatCapacityExceededError(
                seat.class_name, seat.total_seats, seat.filled_seats, count
            )
        # Row is locked by the UPDATE above until commit
        seat.filled_seats = new_filled

    logger.info(f"Seat {seat_id} filled count now {new_filled}/{seat.total_seats}")
    return seat
