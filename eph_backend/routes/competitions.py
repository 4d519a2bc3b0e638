"""
eph_backend/routes/competitions.py
Competition catalogue and registration entry point.

Public listing/detail take an optional bearer token to fill the
user_registered / user_submitted flags. Writes need a token.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from eph_backend.config import settings
from eph_backend.core.clock import Clock, get_clock
from eph_backend.core.rate_limit import limiter
from eph_backend.database import get_db
from eph_backend.orm.competition import SourceType
from eph_backend.orm.registration import RegistrationStatus
from eph_backend.orm.user import User, UserRole, REGISTRATION_VIEWER_ROLES
from eph_backend.rbac import get_current_user, get_current_user_optional, require_roles
from eph_backend.schemas.competition import CompetitionCreate, CompetitionUpdate
from eph_backend.schemas.registration import RegisterRequest
from eph_backend.services import competition_service
from eph_backend.services.competition_store import CompetitionStore
from eph_backend.services.email_service import get_email_service
from eph_backend.services.registration_service import RegistrationGuard, RegistrationRequest

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/competitions", tags=["Competitions"])


def get_registration_guard(
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    notifier=Depends(get_email_service),
) -> RegistrationGuard:
    return RegistrationGuard(CompetitionStore(db), clock, notifier)


# ================= CATALOGUE =================

@router.post("", status_code=status.HTTP_201_CREATED)
async def create_competition(
    data: CompetitionCreate,
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Create a competition. Admin only."""
    now = clock.now()
    competition = await competition_service.create_competition(db, data, current_user, now)
    return {
        "success": True,
        "message": "Competition created successfully",
        "data": {
            "competition": competition_service.serialize_competition(competition, now, current_user.id)
        }
    }


@router.get("")
async def list_competitions(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    source_type: Optional[SourceType] = None,
    is_active: str = Query("true", pattern="^(true|false|all)$"),
    search: Optional[str] = Query(None, max_length=200),
    upcoming: bool = False,
    ongoing: bool = False,
    past: bool = False,
    tag: Optional[str] = Query(None, max_length=100),
    featured: Optional[bool] = None,
    current_user: Optional[User] = Depends(get_current_user_optional),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """
    List competitions ordered by start date.

    upcoming / ongoing / past are mutually exclusive; the first one set wins.
    """
    now = clock.now()
    competitions, total = await competition_service.list_competitions(
        db,
        now,
        page=page,
        limit=limit,
        source_type=source_type,
        is_active=is_active,
        search=search,
        upcoming=upcoming,
        ongoing=ongoing,
        past=past,
        tag=tag,
        featured=featured,
    )
    user_id = current_user.id if current_user else None
    return {
        "success": True,
        "data": {
            "competitions": [
                competition_service.serialize_competition(c, now, user_id) for c in competitions
            ],
            "pagination": competition_service.pagination(page, limit, total, "totalCompetitions"),
        }
    }


@router.get("/{competition_id}")
async def get_competition(
    competition_id: int,
    current_user: Optional[User] = Depends(get_current_user_optional),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    now = clock.now()
    competition = await competition_service.get_competition_or_404(db, competition_id)
    user_id = current_user.id if current_user else None
    return {
        "success": True,
        "data": {
            "competition": competition_service.serialize_competition(competition, now, user_id, detail=True)
        }
    }


@router.patch("/{competition_id}")
async def update_competition(
    competition_id: int,
    data: CompetitionUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Partial update. Creator or admin."""
    now = clock.now()
    competition = await competition_service.update_competition(
        db, competition_id, data.model_dump(exclude_unset=True), current_user, now
    )
    return {
        "success": True,
        "message": "Competition updated successfully",
        "data": {
            "competition": competition_service.serialize_competition(competition, now, current_user.id)
        }
    }


@router.delete("/{competition_id}")
async def delete_competition(
    competition_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Delete a competition with no registrations or submissions. Creator or admin."""
    await competition_service.delete_competition(db, competition_id, current_user)
    return {"success": True, "message": "Competition deleted successfully"}


# ================= REGISTRATION =================

@router.post("/{competition_id}/register", status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.RATE_LIMIT_REGISTER)
async def register_for_competition(
    request: Request,
    competition_id: int,
    data: RegisterRequest,
    current_user: User = Depends(get_current_user),
    guard: RegistrationGuard = Depends(get_registration_guard),
):
    """Register the current user (as leader) for a competition. Takes one seat."""
    registration = await guard.register(
        competition_id,
        current_user,
        RegistrationRequest(
            type=data.type,
            team_name=data.team_name,
            member_emails=data.member_emails,
            abstract=data.abstract,
        )
    )
    return {
        "success": True,
        "message": "Registration successful",
        "data": {"registration": registration.to_dict()}
    }


@router.get("/{competition_id}/registrations")
async def list_competition_registrations(
    competition_id: int,
    status_filter: Optional[RegistrationStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=settings.MAX_PAGE_SIZE),
    current_user: User = Depends(require_roles(*REGISTRATION_VIEWER_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    """Registrations for one competition, with contact details. Admin, hiring and investor roles."""
    competition, registrations, total = await competition_service.list_competition_registrations(
        db, competition_id, status=status_filter, page=page, limit=limit
    )
    return {
        "success": True,
        "data": {
            "competition": {
                "id": competition.id,
                "title": competition.title,
                "start_date": competition.start_date.isoformat(),
                "end_date": competition.end_date.isoformat(),
            },
            "registrations": [
                r.to_dict(include_contact=True, include_competition=False) for r in registrations
            ],
            "pagination": competition_service.pagination(page, limit, total, "totalRegistrations"),
        }
    }
