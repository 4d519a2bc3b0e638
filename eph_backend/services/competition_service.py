"""
Competition catalogue service.

Create / update / delete for organisers, filtered listing for everyone,
and the response enrichment (lifecycle, registration window, stats,
per-user flags) shared by list and detail.
"""
import logging
import math
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import String, and_, cast, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from eph_backend.core.clock import to_naive_utc
from eph_backend.errors import (
    BadRequestError,
    CompetitionNotFoundError,
    ErrorCode,
    ForbiddenError,
    InvalidStateError,
)
from eph_backend.orm.competition import Competition, SourceType
from eph_backend.orm.registration import Registration, RegistrationStatus, registration_team_members
from eph_backend.orm.submission import Submission
from eph_backend.orm.user import User
from eph_backend.schemas.competition import CompetitionCreate
from eph_backend.services.capacity import CapacityManager
from eph_backend.services.competition_store import CompetitionStore
from eph_backend.services.json_fields import normalize_stages, normalize_structured, parse_stages
from eph_backend.services.lifecycle import (
    LifecycleStatus,
    classify_competition,
    days_remaining,
    derive_status,
    is_registration_open,
    refresh_status,
)

logger = logging.getLogger(__name__)

TEXT_FIELDS = ("description", "sponsor", "location", "banner_image_url", "rules")
# Columns a PATCH may change but never clear
REQUIRED_FIELDS = ("start_date", "end_date", "total_seats")


# ================= VALIDATION =================

def validate_schedule(
    start_date: datetime,
    end_date: datetime,
    registration_deadline: Optional[datetime] = None
) -> None:
    if start_date >= end_date:
        raise BadRequestError("Start date must be before end date", code=ErrorCode.INVALID_SCHEDULE)
    if registration_deadline is not None and registration_deadline > start_date:
        raise BadRequestError(
            "Registration deadline cannot be after the start date",
            code=ErrorCode.INVALID_SCHEDULE
        )


def _clean_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None


def _ensure_can_manage(competition: Competition, actor: User, action: str) -> None:
    if actor.is_admin or competition.created_by == actor.id:
        return
    logger.warning(f"[COMPETITION] User {actor.id} tried to {action} competition {competition.id}")
    raise ForbiddenError(
        f"You can only {action} competitions you created",
        code=ErrorCode.OWNERSHIP_VIOLATION
    )


# ================= WRITE OPERATIONS =================

async def create_competition(
    db: AsyncSession,
    payload: CompetitionCreate,
    creator: User,
    now: datetime
) -> Competition:
    start_date = to_naive_utc(payload.start_date)
    end_date = to_naive_utc(payload.end_date)
    deadline = to_naive_utc(payload.registration_deadline)
    validate_schedule(start_date, end_date, deadline)

    competition = Competition(
        title=payload.title,
        source_type=payload.source_type,
        prize_pool=payload.prize_pool,
        start_date=start_date,
        end_date=end_date,
        registration_deadline=deadline,
        max_team_size=payload.max_team_size,
        total_seats=payload.total_seats,
        seats_remaining=payload.total_seats,
        stages=normalize_stages(payload.stages),
        tags=list(payload.tags),
        eligibility_criteria=normalize_structured(payload.eligibility_criteria, {}),
        contact_info=normalize_structured(payload.contact_info, {}),
        status=payload.status,
        is_featured=payload.is_featured,
        is_active=payload.is_active,
        created_by=creator.id,
    )
    for field in TEXT_FIELDS:
        setattr(competition, field, _clean_text(getattr(payload, field)))
    refresh_status(competition, now)

    db.add(competition)
    await db.commit()

    logger.info(
        f"[COMPETITION] Created {competition.id} '{competition.title}' by user {creator.id} "
        f"seats={competition.total_seats} team_size<={competition.max_team_size}"
    )
    return await CompetitionStore(db).get_competition(competition.id, refresh=True)


async def update_competition(
    db: AsyncSession,
    competition_id: int,
    changes: Dict[str, Any],
    actor: User,
    now: datetime
) -> Competition:
    """
    Apply a partial update. changes holds only the fields the client sent.

    Date order is validated against the merged (stored + incoming) values.
    A total_seats change goes through CapacityManager.resize first, because
    the reload it does would discard attribute changes not yet flushed.
    """
    store = CompetitionStore(db)
    competition = await store.get_competition(competition_id)
    if competition is None:
        raise CompetitionNotFoundError(competition_id)
    _ensure_can_manage(competition, actor, "update")

    changes = dict(changes)
    fields = sorted(changes)
    cleared = sorted(key for key in REQUIRED_FIELDS if key in changes and changes[key] is None)
    if cleared:
        raise BadRequestError(
            f"{', '.join(cleared)} cannot be null",
            code=ErrorCode.INVALID_INPUT,
            details={"fields": cleared}
        )
    for key in ("start_date", "end_date", "registration_deadline"):
        if key in changes:
            changes[key] = to_naive_utc(changes[key])

    if any(key in changes for key in ("start_date", "end_date", "registration_deadline")):
        validate_schedule(
            changes.get("start_date") or competition.start_date,
            changes.get("end_date") or competition.end_date,
            changes["registration_deadline"] if "registration_deadline" in changes
            else competition.registration_deadline,
        )

    try:
        new_total = changes.pop("total_seats", None)
        if new_total is not None and new_total != competition.total_seats:
            competition = await CapacityManager(store).resize(competition, new_total)

        if "stages" in changes:
            changes["stages"] = normalize_stages(changes["stages"])
        for key in ("eligibility_criteria", "contact_info"):
            if key in changes:
                changes[key] = normalize_structured(changes[key], {})
        for key in TEXT_FIELDS:
            if key in changes:
                changes[key] = _clean_text(changes[key])
        if changes.get("tags") is None:
            changes.pop("tags", None)
        for key in ("title", "source_type", "max_team_size", "status", "is_featured", "is_active"):
            if key in changes and changes[key] is None:
                changes.pop(key)

        for key, value in changes.items():
            setattr(competition, key, value)
        refresh_status(competition, now)

        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(
        f"[COMPETITION] Updated {competition_id} by user {actor.id} fields={fields}"
    )
    return await store.get_competition(competition_id, refresh=True)


async def delete_competition(db: AsyncSession, competition_id: int, actor: User) -> None:
    store = CompetitionStore(db)
    competition = await store.get_competition(competition_id)
    if competition is None:
        raise CompetitionNotFoundError(competition_id)
    _ensure_can_manage(competition, actor, "delete")

    registration_count = (await db.execute(
        select(func.count(Registration.id)).where(Registration.competition_id == competition_id)
    )).scalar() or 0
    if registration_count > 0:
        raise InvalidStateError("Cannot delete competition with existing registrations")

    submission_count = (await db.execute(
        select(func.count(Submission.id)).where(Submission.competition_id == competition_id)
    )).scalar() or 0
    if submission_count > 0:
        raise InvalidStateError("Cannot delete competition with existing submissions")

    await db.delete(competition)
    await db.commit()
    logger.info(f"[COMPETITION] Deleted {competition_id} by user {actor.id}")


# ================= READ OPERATIONS =================

def _competition_filters(
    now: datetime,
    source_type: Optional[SourceType] = None,
    is_active: str = "true",
    search: Optional[str] = None,
    upcoming: bool = False,
    ongoing: bool = False,
    past: bool = False,
    tag: Optional[str] = None,
    featured: Optional[bool] = None,
) -> List:
    filters = []
    if source_type is not None:
        filters.append(Competition.source_type == source_type)
    if is_active != "all":
        filters.append(Competition.is_active == (is_active == "true"))

    if upcoming:
        filters.append(Competition.start_date > now)
    elif ongoing:
        filters.append(and_(Competition.start_date <= now, Competition.end_date > now))
    elif past:
        filters.append(Competition.end_date <= now)

    if search:
        pattern = f"%{search.strip()}%"
        filters.append(or_(
            Competition.title.ilike(pattern),
            Competition.description.ilike(pattern),
            Competition.sponsor.ilike(pattern),
        ))
    if tag:
        # Tags are stored as a JSON array; match the quoted element in its text form.
        filters.append(cast(Competition.tags, String).like(f'%"{tag.strip()}"%'))
    if featured is not None:
        filters.append(Competition.is_featured == featured)
    return filters


def pagination(page: int, limit: int, total: int, label: str) -> Dict[str, Any]:
    total_pages = math.ceil(total / limit) if limit else 0
    return {
        "currentPage": page,
        "totalPages": total_pages,
        label: total,
        "hasNextPage": page < total_pages,
        "hasPrevPage": page > 1,
    }


async def list_competitions(
    db: AsyncSession,
    now: datetime,
    page: int = 1,
    limit: int = 20,
    **filters
) -> Tuple[List[Competition], int]:
    conditions = _competition_filters(now, **filters)

    total = (await db.execute(
        select(func.count(Competition.id)).where(*conditions)
    )).scalar() or 0

    result = await db.execute(
        select(Competition)
        .where(*conditions)
        .order_by(Competition.start_date.asc(), Competition.id.asc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return list(result.scalars().all()), total


async def get_competition_or_404(db: AsyncSession, competition_id: int) -> Competition:
    competition = await CompetitionStore(db).get_competition(competition_id)
    if competition is None:
        raise CompetitionNotFoundError(competition_id)
    return competition


def _is_participant(registration: Registration, user_id: int) -> bool:
    if registration.leader_id == user_id:
        return True
    return any(member.id == user_id for member in (registration.team_members or []))


def serialize_competition(
    competition: Competition,
    now: datetime,
    user_id: Optional[int] = None,
    detail: bool = False
) -> Dict[str, Any]:
    """Competition as returned by the API, with computed fields and stats."""
    registrations = list(competition.registrations or [])
    submissions = list(competition.submissions or [])
    lifecycle = classify_competition(competition, now)

    data = competition.to_dict()
    data.update({
        "stages": parse_stages(competition.stages),
        "eligibility_criteria": competition.eligibility_criteria if competition.eligibility_criteria is not None else {},
        "contact_info": competition.contact_info if competition.contact_info is not None else {},
        "status": derive_status(competition, now).value,
        "lifecycle": lifecycle.value,
        "registration_open": is_registration_open(competition, now),
        "days_remaining": days_remaining(competition, now),
        "posted_by": competition.creator.to_public_dict() if competition.creator else None,
        "user_registered": bool(user_id) and any(_is_participant(r, user_id) for r in registrations),
        "user_submitted": bool(user_id) and any(s.leader_id == user_id for s in submissions),
    })

    stats = {
        "totalRegistrations": len(registrations),
        "confirmedRegistrations": sum(1 for r in registrations if r.status == RegistrationStatus.CONFIRMED),
        "seatsRemaining": competition.seats_remaining,
        "totalSubmissions": len(submissions),
    }
    if detail:
        stats.update({
            "isUpcoming": lifecycle == LifecycleStatus.UPCOMING,
            "isOngoing": lifecycle == LifecycleStatus.ONGOING,
            "isPast": lifecycle == LifecycleStatus.COMPLETED,
        })
    data["stats"] = stats
    return data


# ================= REGISTRATION LISTINGS =================

async def list_user_registrations(
    db: AsyncSession,
    user: User,
    status: Optional[RegistrationStatus] = None,
    page: int = 1,
    limit: int = 20
) -> Tuple[List[Registration], int]:
    """Registrations where the user leads or is a team member, newest first."""
    member_of = select(registration_team_members.c.registration_id).where(
        registration_team_members.c.user_id == user.id
    )
    conditions = [or_(Registration.leader_id == user.id, Registration.id.in_(member_of))]
    if status is not None:
        conditions.append(Registration.status == status)

    total = (await db.execute(
        select(func.count(Registration.id)).where(*conditions)
    )).scalar() or 0
    result = await db.execute(
        select(Registration)
        .where(*conditions)
        .order_by(Registration.created_at.desc(), Registration.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return list(result.scalars().all()), total


async def list_competition_registrations(
    db: AsyncSession,
    competition_id: int,
    status: Optional[RegistrationStatus] = None,
    page: int = 1,
    limit: int = 50
) -> Tuple[Competition, List[Registration], int]:
    competition = await get_competition_or_404(db, competition_id)

    conditions = [Registration.competition_id == competition_id]
    if status is not None:
        conditions.append(Registration.status == status)

    total = (await db.execute(
        select(func.count(Registration.id)).where(*conditions)
    )).scalar() or 0
    result = await db.execute(
        select(Registration)
        .where(*conditions)
        .order_by(Registration.created_at.desc(), Registration.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return competition, list(result.scalars().all()), total
