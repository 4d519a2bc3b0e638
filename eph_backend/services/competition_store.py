"""
Competition Store

Explicit persistence handle for the capacity and registration logic.
Wraps one AsyncSession; callers own the transaction (commit / rollback).

Seat counters are only changed through the two conditional UPDATEs below,
so the database, not the application, decides who gets the last seat.
"""
import logging
from typing import Iterable, List, Optional, Set

from sqlalchemy import case, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from eph_backend.orm.competition import Competition
from eph_backend.orm.registration import Registration, registration_team_members
from eph_backend.orm.submission import Submission
from eph_backend.orm.user import User

logger = logging.getLogger(__name__)


class CompetitionStore:

    def __init__(self, db: AsyncSession):
        self.db = db

    # ---------------------------------------------------------------- reads

    async def get_competition(self, competition_id: int, refresh: bool = False) -> Optional[Competition]:
        """Load a competition. refresh=True overwrites any stale copy held by the session."""
        stmt = select(Competition).where(Competition.id == competition_id)
        if refresh:
            stmt = stmt.execution_options(populate_existing=True)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_registration(self, registration_id: int, refresh: bool = False) -> Optional[Registration]:
        stmt = select(Registration).where(Registration.id == registration_id)
        if refresh:
            stmt = stmt.execution_options(populate_existing=True)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def registered_user_ids(self, competition_id: int, user_ids: Iterable[int]) -> Set[int]:
        """Users among user_ids already in a registration for the competition, as leader or team member."""
        ids = list(user_ids)
        if not ids:
            return set()

        leaders = await self.db.execute(
            select(Registration.leader_id).where(
                Registration.competition_id == competition_id,
                Registration.leader_id.in_(ids)
            )
        )
        members = await self.db.execute(
            select(registration_team_members.c.user_id)
            .join(Registration, Registration.id == registration_team_members.c.registration_id)
            .where(
                Registration.competition_id == competition_id,
                registration_team_members.c.user_id.in_(ids)
            )
        )
        return set(leaders.scalars().all()) | set(members.scalars().all())

    async def has_submission(self, competition_id: int, leader_id: int) -> bool:
        result = await self.db.execute(
            select(func.count(Submission.id)).where(
                Submission.competition_id == competition_id,
                Submission.leader_id == leader_id
            )
        )
        return (result.scalar() or 0) > 0

    async def find_active_users_by_email(self, emails: Iterable[str]) -> List[User]:
        lowered = [e.lower() for e in emails]
        if not lowered:
            return []
        result = await self.db.execute(
            select(User).where(
                func.lower(User.email).in_(lowered),
                User.is_active == True
            )
        )
        return list(result.scalars().all())

    # --------------------------------------------------------- seat counters

    async def decrement_seats_if_available(self, competition_id: int, count: int) -> bool:
        """
        UPDATE competitions SET seats_remaining = seats_remaining - :count
        WHERE id = :id AND seats_remaining >= :count

        Returns True when the row was updated.
        """
        result = await self.db.execute(
            update(Competition)
            .where(
                Competition.id == competition_id,
                Competition.seats_remaining >= count
            )
            .values(seats_remaining=Competition.seats_remaining - count)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def increment_seats_clamped(self, competition_id: int, count: int) -> bool:
        """seats_remaining = min(total_seats, seats_remaining + count), in one statement."""
        released = Competition.seats_remaining + count
        result = await self.db.execute(
            update(Competition)
            .where(Competition.id == competition_id)
            .values(
                seats_remaining=case(
                    (released > Competition.total_seats, Competition.total_seats),
                    else_=released
                )
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def resize_capacity(self, competition_id: int, total_seats: int) -> bool:
        """
        Set total_seats and shift seats_remaining by the same delta, refusing
        (False) when the shift would take seats_remaining below zero.
        """
        delta = total_seats - Competition.total_seats
        result = await self.db.execute(
            update(Competition)
            .where(
                Competition.id == competition_id,
                Competition.seats_remaining + delta >= 0
            )
            .values(
                total_seats=total_seats,
                seats_remaining=Competition.seats_remaining + delta
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    # ---------------------------------------------------------- unit of work

    def add(self, instance) -> None:
        self.db.add(instance)

    async def delete(self, instance) -> None:
        await self.db.delete(instance)

    async def flush(self) -> None:
        await self.db.flush()

    async def commit(self) -> None:
        await self.db.commit()

    async def rollback(self) -> None:
        await self.db.rollback()
