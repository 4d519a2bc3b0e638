"""
Registration Guard

Accepts or rejects registration and cancellation attempts for a
(competition, user) pair:

    NotRegistered --register--> Registered --cancel--> (deleted, seat released)
                                     |
                                     +-- a Submission exists --> cancel refused

register() checks, in order, first failure wins:
    1. competition exists and is active (not cancelled)
    2. registration window still open (now <= end_date, deadline if set)
    3. user not already registered
    4. a seat can be reserved
    5. 1 + len(member_emails) <= max_team_size
    6. every member is an active user not already registered

cancel() checks:
    1. registration exists
    2. actor is the registration leader
    3. now < start_date
    4. actor has no submission for the competition

Checks run inside one transaction. Any failure rolls back, so a seat
reserved at step 4 is returned if step 5 or 6 fails.
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from sqlalchemy.exc import IntegrityError

from eph_backend.core.clock import Clock
from eph_backend.errors import (
    AlreadyRegisteredError,
    CancellationNotAllowedError,
    CompetitionNotFoundError,
    MemberConflictError,
    NotRegistrationLeaderError,
    RegistrationClosedError,
    RegistrationNotFoundError,
    TeamTooLargeError,
)
from eph_backend.orm.competition import Competition
from eph_backend.orm.registration import Registration, RegistrationStatus, RegistrationType
from eph_backend.orm.user import User
from eph_backend.services.capacity import CapacityManager
from eph_backend.services.competition_store import CompetitionStore
from eph_backend.services.notifications import dispatch_notification

logger = logging.getLogger(__name__)

# One seat per registration regardless of team size.
SEATS_PER_REGISTRATION = 1


@dataclass
class RegistrationRequest:
    type: RegistrationType = RegistrationType.INDIVIDUAL
    team_name: Optional[str] = None
    member_emails: List[str] = field(default_factory=list)
    abstract: Optional[str] = None

    def normalized_emails(self) -> List[str]:
        """Trimmed, lower-cased, de-duplicated, order kept."""
        seen = []
        for email in self.member_emails or []:
            cleaned = (email or "").strip().lower()
            if cleaned and cleaned not in seen:
                seen.append(cleaned)
        return seen


class RegistrationGuard:

    def __init__(self, store: CompetitionStore, clock: Clock, notifier=None):
        self.store = store
        self.clock = clock
        self.capacity = CapacityManager(store)
        self.notifier = notifier

    # ------------------------------------------------------------- register

    async def register(self, competition_id: int, user: User, request: RegistrationRequest) -> Registration:
        now = self.clock.now()
        user_id, user_email, user_name = user.id, user.email, user.name

        competition = await self.store.get_competition(competition_id)
        if competition is None:
            raise CompetitionNotFoundError(competition_id)

        self._check_open(competition, now)

        if await self.store.registered_user_ids(competition.id, [user_id]):
            logger.info(f"[REGISTER] Duplicate attempt competition={competition.id} user={user_id}")
            raise AlreadyRegisteredError()

        emails = request.normalized_emails()
        try:
            competition = await self.capacity.reserve_seats(competition, SEATS_PER_REGISTRATION)

            team_size = 1 + len(emails)
            if team_size > competition.max_team_size:
                raise TeamTooLargeError(competition.max_team_size, team_size)

            members = []
            if request.type == RegistrationType.TEAM and emails:
                members = await self._resolve_members(competition, user_id, user_email, emails)

            team_name = None
            if request.type == RegistrationType.TEAM:
                team_name = (request.team_name or "").strip() or None

            registration = Registration(
                competition_id=competition.id,
                leader_id=user_id,
                type=request.type,
                team_name=team_name,
                abstract=(request.abstract or "").strip() or None,
                status=RegistrationStatus.CONFIRMED,
            )
            registration.team_members = members
            self.store.add(registration)
            await self.store.flush()
            registration_id = registration.id
            await self.store.commit()
        except IntegrityError:
            # Unique (competition_id, leader_id) lost a race with a parallel request
            await self.store.rollback()
            logger.info(f"[REGISTER] Unique constraint hit competition={competition_id} user={user_id}")
            raise AlreadyRegisteredError()
        except Exception:
            await self.store.rollback()
            raise

        logger.info(
            f"[REGISTER] Registration {registration_id} created competition={competition_id} "
            f"leader={user_id} type={request.type.value} members={len(members)}"
        )

        self._notify(
            "send_competition_registration_email",
            user_email, user_name, competition.title,
            name=f"registration-email-{registration_id}"
        )
        return await self.store.get_registration(registration_id, refresh=True)

    def _check_open(self, competition: Competition, now) -> None:
        if not competition.is_active or competition.is_cancelled:
            raise RegistrationClosedError("Competition is not active")
        if now > competition.end_date:
            raise RegistrationClosedError("Competition registration has ended")
        if competition.registration_deadline is not None and now >= competition.registration_deadline:
            raise RegistrationClosedError("Registration deadline has passed")

    async def _resolve_members(
        self,
        competition: Competition,
        leader_id: int,
        leader_email: str,
        emails: List[str]
    ) -> List[User]:
        if leader_email.lower() in emails:
            raise MemberConflictError("Team leader cannot also be listed as a team member")

        users = await self.store.find_active_users_by_email(emails)
        found = {u.email.lower() for u in users}
        missing = [e for e in emails if e not in found]
        if missing:
            raise MemberConflictError(
                "Some team members not found or inactive",
                details={"emails": missing}
            )

        taken = await self.store.registered_user_ids(competition.id, [u.id for u in users])
        for member in users:
            if member.id in taken:
                raise MemberConflictError(
                    f"Team member {member.name} is already registered for this competition",
                    details={"email": member.email}
                )
        return users

    # --------------------------------------------------------------- cancel

    async def cancel(self, registration_id: int, actor: User) -> Competition:
        now = self.clock.now()
        actor_id, actor_email, actor_name = actor.id, actor.email, actor.name

        registration = await self.store.get_registration(registration_id)
        if registration is None:
            raise RegistrationNotFoundError(registration_id)

        if registration.leader_id != actor_id:
            logger.warning(
                f"[CANCEL] User {actor_id} is not the leader of registration {registration_id}"
            )
            raise NotRegistrationLeaderError()

        competition = registration.competition
        if now >= competition.start_date:
            raise CancellationNotAllowedError("Cannot cancel registration after competition has started")

        if await self.store.has_submission(competition.id, actor_id):
            raise CancellationNotAllowedError("Cannot cancel registration after submitting project")

        try:
            competition = await self.capacity.release_seats(competition, SEATS_PER_REGISTRATION)
            await self.store.delete(registration)
            await self.store.commit()
        except Exception:
            await self.store.rollback()
            raise

        logger.info(
            f"[CANCEL] Registration {registration_id} cancelled competition={competition.id} "
            f"leader={actor_id} seats_remaining={competition.seats_remaining}"
        )

        self._notify(
            "send_registration_cancelled_email",
            actor_email, actor_name, competition.title,
            name=f"cancellation-email-{registration_id}"
        )
        return competition

    # -------------------------------------------------------------- helpers

    def _notify(self, method: str, *args, name: str) -> None:
        if self.notifier is None:
            return
        send = getattr(self.notifier, method, None)
        if send is None:
            logger.warning(f"[NOTIFY] Notifier has no {method}, skipping")
            return

        async def _send():
            return await send(*args)

        dispatch_notification(_send(), name=name)
