"""
Merit List Service

Ranks eligible applicants for a session and class.

Lists are snapshots: generation scores every eligible application, sorts by
score (highest first, earlier submission and then application number
breaking ties), numbers the ranks 1..N and stores the result as JSON. A
draft list for the same key is replaced in the same transaction. Once a
list is finalized it can no longer be regenerated, re-cut or deleted.
"""

import logging
from collections.abc import Iterable
from datetime import UTC, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import atomic
from app.modules.admissions import repository
from app.modules.admissions.exceptions import (
    MeritListFinalizedError,
    MeritListNotFoundError,
    NoApplicantsForMeritListError,
    SessionNotFoundError,
)
from app.modules.admissions.models import AdmissionApplication, MeritList
from app.modules.admissions.schemas import MeritListEntry, MeritListGenerate, MeritListResponse
from app.modules.admissions.scoring import MeritScorer, default_scorer
from app.modules.admissions.session_service import require_school
from app.modules.admissions.transitions import MERIT_ELIGIBLE_STATUSES

logger = logging.getLogger(__name__)

_NEVER = datetime.max.replace(tzinfo=UTC)


# ============================================
# Ranking
# ============================================


def _contact(application: AdmissionApplication) -> tuple[str | None, str | None]:
    phone = application.father_phone or application.mother_phone or application.guardian_phone
    email = application.father_email or application.mother_email or application.guardian_email
    return phone, email


def rank_candidates(
    scored: Iterable[tuple[AdmissionApplication, float]],
) -> list[MeritListEntry]:
    """
    Order scored applications and assign ranks starting at 1.

    Scores [80, 70, 55, 90] come out as 90, 80, 70, 55 with ranks 1..4.
    """
    ordered = sorted(
        scored,
        key=lambda pair: (
            -pair[1],
            pair[0].submitted_at or _NEVER,
            pair[0].application_number,
        ),
    )

    entries = []
    for rank, (application, score) in enumerate(ordered, start=1):
        phone, email = _contact(application)
        entries.append(
            MeritListEntry(
                rank=rank,
                application_id=application.id,
                application_number=application.application_number,
                student_name=application.student_name,
                score=float(score),
                status=application.status,
                parent_phone=phone,
                parent_email=email,
            )
        )
    return entries


def apply_cutoff(entries: list[MeritListEntry], cutoff: Decimal | None) -> list[MeritListEntry]:
    """Drop entries scoring strictly below the cutoff. Ranks stay contiguous."""
    if cutoff is None:
        return entries
    return [entry for entry in entries if entry.score >= float(cutoff)]


def entries_above_cutoff(entries: list[dict], cutoff: Decimal | None) -> int:
    if cutoff is None:
        return len(entries)
    return sum(1 for entry in entries if float(entry["score"]) >= float(cutoff))


def build_merit_list_response(merit_list: MeritList) -> MeritListResponse:
    entries = merit_list.entries or []
    return MeritListResponse(
        id=merit_list.id,
        session_id=merit_list.session_id,
        class_name=merit_list.class_name,
        test_id=merit_list.test_id,
        generated_at=merit_list.generated_at,
        generated_by=merit_list.generated_by,
        cutoff_score=merit_list.cutoff_score,
        is_final=merit_list.is_final,
        total_count=len(entries),
        above_cutoff=entries_above_cutoff(entries, merit_list.cutoff_score),
        entries=[MeritListEntry.model_validate(entry) for entry in entries],
    )


# ============================================
# Merit List Operations
# ============================================


async def generate_merit_list(
    db: AsyncSession,
    school_id: UUID,
    data: MeritListGenerate,
    generated_by: UUID | None = None,
    scorer: MeritScorer | None = None,
) -> MeritList:
    """
    Build and store a merit list for one session and class.

    Args:
        db: Database session
        school_id: Tenant
        data: Session, class, optional test and cutoff
        generated_by: Acting user
        scorer: Scoring strategy; the placeholder scorer when omitted

    Raises:
        SessionNotFoundError: If the session doesn't exist
        MeritListFinalizedError: If a final list already exists for the key
        NoApplicantsForMeritListError: If nobody is eligible
    """
    require_school(school_id)
    scorer = scorer or default_scorer
    class_name = data.class_name.strip()

    session = await repository.get_session(db, school_id, data.session_id)
    if not session:
        raise SessionNotFoundError(data.session_id)

    final = await repository.get_final_merit_list(
        db, school_id, data.session_id, class_name, data.test_id
    )
    if final:
        logger.warning(
            f"Merit list for {class_name} in session {data.session_id} is finalized; "
            f"regeneration refused"
        )
        raise MeritListFinalizedError()

    candidates = await repository.list_merit_candidates(
        db, school_id, data.session_id, class_name, MERIT_ELIGIBLE_STATUSES
    )
    if not candidates:
        logger.warning(f"No eligible applicants for {class_name} in session {data.session_id}")
        raise NoApplicantsForMeritListError(class_name)

    ranked = rank_candidates((app, scorer.score(app)) for app in candidates)
    kept = apply_cutoff(ranked, data.cutoff_score)

    async with atomic(db):
        replaced = await repository.delete_draft_merit_lists(
            db, school_id, data.session_id, class_name, data.test_id
        )
        merit_list = await repository.create_merit_list(
            db,
            school_id=school_id,
            session_id=data.session_id,
            class_name=class_name,
            test_id=data.test_id,
            generated_at=datetime.now(UTC),
            generated_by=generated_by,
            cutoff_score=data.cutoff_score,
            entries=[entry.model_dump(mode="json") for entry in kept],
        )

    logger.info(
        f"Generated merit list {merit_list.id} for {class_name}: {len(kept)} of "
        f"{len(ranked)} applicants kept (replaced {replaced} draft list(s))"
    )
    return merit_list


async def get_merit_list(
    db: AsyncSession,
    school_id: UUID,
    session_id: UUID,
    class_name: str,
    test_id: UUID | None = None,
) -> MeritList:
    """Latest list for (session, class, test)."""
    require_school(school_id)
    merit_list = await repository.get_latest_merit_list(
        db, school_id, session_id, class_name.strip(), test_id
    )
    if not merit_list:
        raise MeritListNotFoundError()
    return merit_list


async def get_merit_list_by_id(
    db: AsyncSession, school_id: UUID, merit_list_id: UUID
) -> MeritList:
    require_school(school_id)
    merit_list = await repository.get_merit_list(db, school_id, merit_list_id)
    if not merit_list:
        raise MeritListNotFoundError(merit_list_id)
    return merit_list


async def list_merit_lists(
    db: AsyncSession,
    school_id: UUID,
    *,
    session_id: UUID | None = None,
    class_name: str | None = None,
    is_final: bool | None = None,
) -> list[MeritList]:
    require_school(school_id)
    return await repository.list_merit_lists(
        db, school_id, session_id=session_id, class_name=class_name, is_final=is_final
    )


async def _get_draft(db: AsyncSession, school_id: UUID, merit_list_id: UUID) -> MeritList:
    merit_list = await get_merit_list_by_id(db, school_id, merit_list_id)
    if merit_list.is_final:
        logger.warning(f"Merit list {merit_list_id} is finalized")
        raise MeritListFinalizedError()
    return merit_list


async def finalize_merit_list(
    db: AsyncSession, school_id: UUID, merit_list_id: UUID
) -> MeritList:
    """
    Freeze a merit list. This cannot be undone.

    Raises:
        MeritListNotFoundError: If the list doesn't exist
        MeritListFinalizedError: If it is already final
    """
    merit_list = await _get_draft(db, school_id, merit_list_id)

    async with atomic(db):
        merit_list.is_final = True
        await db.flush()

    logger.info(f"Finalized merit list {merit_list_id} ({merit_list.class_name})")
    return merit_list


async def delete_merit_list(db: AsyncSession, school_id: UUID, merit_list_id: UUID) -> None:
    merit_list = await _get_draft(db, school_id, merit_list_id)

    async with atomic(db):
        await repository.delete_merit_list(db, merit_list)

    logger.info(f"Deleted merit list {merit_list_id}")


async def update_merit_list_cutoff(
    db: AsyncSession,
    school_id: UUID,
    merit_list_id: UUID,
    cutoff_score: Decimal | None,
) -> MeritList:
    """
    Change the cutoff of a draft list.

    Stored entries are left as they are; above_cutoff is recomputed from
    them whenever the list is read.
    """
    merit_list = await _get_draft(db, school_id, merit_list_id)

    async with atomic(db):
        merit_list.cutoff_score = cutoff_score
        await db.flush()

    logger.info(f"Merit list {merit_list_id} cutoff set to {cutoff_score}")
    return merit_list
