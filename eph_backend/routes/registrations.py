"""
eph_backend/routes/registrations.py
The current user's registrations, and cancellation.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from eph_backend.config import settings
from eph_backend.database import get_db
from eph_backend.orm.registration import RegistrationStatus
from eph_backend.orm.user import User
from eph_backend.rbac import get_current_user
from eph_backend.routes.competitions import get_registration_guard
from eph_backend.services import competition_service
from eph_backend.services.registration_service import RegistrationGuard

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/registrations", tags=["Registrations"])


@router.get("/me")
async def my_registrations(
    status_filter: Optional[RegistrationStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Registrations the current user leads or is a team member of, newest first."""
    registrations, total = await competition_service.list_user_registrations(
        db, current_user, status=status_filter, page=page, limit=limit
    )
    return {
        "success": True,
        "data": {
            "registrations": [r.to_dict() for r in registrations],
            "pagination": competition_service.pagination(page, limit, total, "totalRegistrations"),
        }
    }


@router.delete("/{registration_id}")
async def cancel_registration(
    registration_id: int,
    current_user: User = Depends(get_current_user),
    guard: RegistrationGuard = Depends(get_registration_guard),
):
    """Cancel a registration and release its seat. Team leader only, before the start date."""
    competition = await guard.cancel(registration_id, current_user)
    return {
        "success": True,
        "message": "Registration cancelled successfully",
        "data": {
            "competition_id": competition.id,
            "seats_remaining": competition.seats_remaining,
        }
    }
