"""
eph_backend/tests/test_registration_service.py
Registration guard: check order, team handling, cancellation gate,
and notification isolation.
"""
from datetime import timedelta

import pytest

from eph_backend.errors import (
    AlreadyRegisteredError,
    CancellationNotAllowedError,
    CapacityExceededError,
    CompetitionNotFoundError,
    MemberConflictError,
    NotRegistrationLeaderError,
    RegistrationClosedError,
    RegistrationNotFoundError,
    TeamTooLargeError,
)
from eph_backend.orm.competition import CompetitionStatus
from eph_backend.orm.registration import RegistrationType
from eph_backend.services.competition_store import CompetitionStore
from eph_backend.services.lifecycle import LifecycleStatus, classify_competition, is_registration_open
from eph_backend.services.notifications import drain_notifications
from eph_backend.services.registration_service import RegistrationGuard, RegistrationRequest
from eph_backend.tests.conftest import NOW


@pytest.fixture
def guard(db, clock, notifier):
    return RegistrationGuard(CompetitionStore(db), clock, notifier)


async def reload(db, competition_id):
    return await CompetitionStore(db).get_competition(competition_id, refresh=True)


def team(*emails, name="Team Rocket"):
    return RegistrationRequest(type=RegistrationType.TEAM, team_name=name, member_emails=list(emails))


# ================= WALKTHROUGH =================

class TestTwoSeatWalkthrough:
    """
    total_seats=2, start=T+1d, end=T+2d. A registers, A again, B, C;
    A cancels at T; at T+1.5d B cannot cancel.
    """

    async def test_walkthrough(self, db, guard, clock, make_user, make_competition):
        comp = await make_competition(total_seats=2)
        comp_id = comp.id
        a = await make_user("a@example.edu")
        b = await make_user("b@example.edu")
        c = await make_user("c@example.edu")

        reg_a = await guard.register(comp_id, a, RegistrationRequest())
        reg_a_id = reg_a.id
        assert reg_a.leader_id == a.id
        assert (await reload(db, comp_id)).seats_remaining == 1

        with pytest.raises(AlreadyRegisteredError):
            await guard.register(comp_id, a, RegistrationRequest())
        assert (await reload(db, comp_id)).seats_remaining == 1

        reg_b = await guard.register(comp_id, b, RegistrationRequest())
        reg_b_id = reg_b.id
        assert (await reload(db, comp_id)).seats_remaining == 0

        with pytest.raises(CapacityExceededError):
            await guard.register(comp_id, c, RegistrationRequest())
        assert (await reload(db, comp_id)).seats_remaining == 0

        # the refused attempt rolled back, which expires loaded instances
        await db.refresh(a)
        await db.refresh(b)

        updated = await guard.cancel(reg_a_id, a)
        assert updated.seats_remaining == 1
        assert await CompetitionStore(db).get_registration(reg_a_id) is None

        clock.set(NOW + timedelta(days=1, hours=12))
        comp = await reload(db, comp_id)
        assert classify_competition(comp, clock.now()) == LifecycleStatus.ONGOING

        with pytest.raises(CancellationNotAllowedError):
            await guard.cancel(reg_b_id, b)
        assert (await reload(db, comp_id)).seats_remaining == 1
        assert await CompetitionStore(db).get_registration(reg_b_id) is not None


# ================= REGISTER =================

class TestRegister:

    async def test_unknown_competition(self, guard, make_user):
        user = await make_user("a@example.edu")
        with pytest.raises(CompetitionNotFoundError):
            await guard.register(9999, user, RegistrationRequest())

    async def test_inactive_competition(self, guard, make_user, make_competition):
        comp = await make_competition(is_active=False)
        user = await make_user("a@example.edu")
        with pytest.raises(RegistrationClosedError) as exc:
            await guard.register(comp.id, user, RegistrationRequest())
        assert exc.value.message == "Competition is not active"

    async def test_cancelled_competition(self, guard, make_user, make_competition):
        comp = await make_competition(status=CompetitionStatus.CANCELLED)
        user = await make_user("a@example.edu")
        with pytest.raises(RegistrationClosedError):
            await guard.register(comp.id, user, RegistrationRequest())

    async def test_after_end_date(self, guard, clock, make_user, make_competition):
        comp = await make_competition()
        user = await make_user("a@example.edu")
        clock.set(comp.end_date + timedelta(seconds=1))
        with pytest.raises(RegistrationClosedError) as exc:
            await guard.register(comp.id, user, RegistrationRequest())
        assert exc.value.message == "Competition registration has ended"

    async def test_after_deadline(self, guard, make_user, make_competition):
        comp = await make_competition(registration_deadline=NOW - timedelta(hours=1))
        user = await make_user("a@example.edu")
        with pytest.raises(RegistrationClosedError):
            await guard.register(comp.id, user, RegistrationRequest())

    async def test_at_deadline_matches_open_flag(self, guard, db, make_user, make_competition):
        comp = await make_competition(total_seats=2, registration_deadline=NOW)
        comp_id = comp.id
        user = await make_user("a@example.edu")
        assert is_registration_open(comp, NOW) is False

        with pytest.raises(RegistrationClosedError) as exc:
            await guard.register(comp_id, user, RegistrationRequest())

        assert exc.value.message == "Registration deadline has passed"
        assert (await reload(db, comp_id)).seats_remaining == 2

    async def test_just_before_deadline_accepted(self, guard, clock, make_user, make_competition):
        comp = await make_competition(registration_deadline=NOW)
        user = await make_user("a@example.edu")
        clock.set(NOW - timedelta(seconds=1))

        registration = await guard.register(comp.id, user, RegistrationRequest())

        assert registration.competition_id == comp.id

    async def test_closed_checked_before_duplicate(self, guard, clock, make_user, make_competition):
        comp = await make_competition()
        user = await make_user("a@example.edu")
        await guard.register(comp.id, user, RegistrationRequest())

        clock.set(comp.end_date + timedelta(days=1))
        with pytest.raises(RegistrationClosedError):
            await guard.register(comp.id, user, RegistrationRequest())

    async def test_duplicate_checked_before_capacity(self, guard, make_user, make_competition):
        comp = await make_competition(total_seats=1)
        user = await make_user("a@example.edu")
        await guard.register(comp.id, user, RegistrationRequest())

        with pytest.raises(AlreadyRegisteredError):
            await guard.register(comp.id, user, RegistrationRequest())

    async def test_team_member_cannot_register_separately(self, guard, make_user, make_competition):
        comp = await make_competition(total_seats=5)
        leader = await make_user("lead@example.edu")
        member = await make_user("member@example.edu")
        await guard.register(comp.id, leader, team("member@example.edu"))

        with pytest.raises(AlreadyRegisteredError):
            await guard.register(comp.id, member, RegistrationRequest())

    async def test_team_too_large_releases_seat(self, db, guard, make_user, make_competition):
        comp = await make_competition(total_seats=5, max_team_size=2)
        comp_id = comp.id
        leader = await make_user("lead@example.edu")
        await make_user("m1@example.edu")
        await make_user("m2@example.edu")

        with pytest.raises(TeamTooLargeError) as exc:
            await guard.register(comp.id, leader, team("m1@example.edu", "m2@example.edu"))

        assert exc.value.message == "Team size cannot exceed 2 members"
        assert (await reload(db, comp_id)).seats_remaining == 5

    async def test_capacity_checked_before_team_size(self, guard, make_user, make_competition):
        comp = await make_competition(total_seats=1, seats_remaining=0, max_team_size=1)
        leader = await make_user("lead@example.edu")
        with pytest.raises(CapacityExceededError):
            await guard.register(comp.id, leader, team("x@example.edu", "y@example.edu"))

    async def test_team_registration_links_members(self, db, guard, make_user, make_competition):
        comp = await make_competition(total_seats=3, max_team_size=3)
        leader = await make_user("lead@example.edu")
        await make_user("m1@example.edu")
        await make_user("m2@example.edu")

        registration = await guard.register(
            comp.id, leader, team(" M1@example.edu ", "m2@example.edu", "m1@example.edu")
        )

        assert registration.type == RegistrationType.TEAM
        assert registration.team_name == "Team Rocket"
        assert sorted(m.email for m in registration.team_members) == ["m1@example.edu", "m2@example.edu"]
        assert registration.team_size == 3
        # one seat per registration, whatever the team size
        assert (await reload(db, comp.id)).seats_remaining == 2

    async def test_unknown_member(self, db, guard, make_user, make_competition):
        comp = await make_competition(total_seats=3)
        comp_id = comp.id
        leader = await make_user("lead@example.edu")
        await make_user("m1@example.edu")

        with pytest.raises(MemberConflictError) as exc:
            await guard.register(comp.id, leader, team("m1@example.edu", "ghost@example.edu"))

        assert exc.value.message == "Some team members not found or inactive"
        assert exc.value.details == {"emails": ["ghost@example.edu"]}
        assert (await reload(db, comp_id)).seats_remaining == 3

    async def test_inactive_member(self, guard, make_user, make_competition):
        comp = await make_competition(total_seats=3)
        leader = await make_user("lead@example.edu")
        await make_user("gone@example.edu", is_active=False)

        with pytest.raises(MemberConflictError):
            await guard.register(comp.id, leader, team("gone@example.edu"))

    async def test_member_already_registered(self, db, guard, make_user, make_competition):
        comp = await make_competition(total_seats=3)
        comp_id = comp.id
        first = await make_user("first@example.edu")
        second = await make_user("second@example.edu", name="Second Student")
        await guard.register(comp.id, second, RegistrationRequest())

        with pytest.raises(MemberConflictError) as exc:
            await guard.register(comp.id, first, team("second@example.edu"))

        assert exc.value.message == "Team member Second Student is already registered for this competition"
        assert (await reload(db, comp_id)).seats_remaining == 2

    async def test_leader_listed_as_member(self, guard, make_user, make_competition):
        comp = await make_competition(total_seats=3)
        leader = await make_user("lead@example.edu")
        with pytest.raises(MemberConflictError):
            await guard.register(comp.id, leader, team("LEAD@example.edu"))

    async def test_individual_ignores_team_fields(self, guard, make_user, make_competition):
        comp = await make_competition(total_seats=3, max_team_size=3)
        user = await make_user("a@example.edu")
        registration = await guard.register(
            comp.id, user, RegistrationRequest(team_name="Solo", abstract="  An idea  ")
        )
        assert registration.team_name is None
        assert registration.abstract == "An idea"
        assert registration.team_members == []


# ================= CANCEL =================

class TestCancel:

    async def test_unknown_registration(self, guard, make_user):
        user = await make_user("a@example.edu")
        with pytest.raises(RegistrationNotFoundError):
            await guard.cancel(12345, user)

    async def test_only_leader_may_cancel(self, db, guard, make_user, make_competition):
        comp = await make_competition(total_seats=3)
        leader = await make_user("lead@example.edu")
        member = await make_user("m1@example.edu")
        registration = await guard.register(comp.id, leader, team("m1@example.edu"))

        with pytest.raises(NotRegistrationLeaderError) as exc:
            await guard.cancel(registration.id, member)

        assert exc.value.status_code == 403
        assert (await reload(db, comp.id)).seats_remaining == 2

    async def test_at_start_date_refused(self, db, guard, clock, make_user, make_competition):
        comp = await make_competition(total_seats=2)
        user = await make_user("a@example.edu")
        registration = await guard.register(comp.id, user, RegistrationRequest())

        clock.set(comp.start_date)
        with pytest.raises(CancellationNotAllowedError) as exc:
            await guard.cancel(registration.id, user)

        assert exc.value.message == "Cannot cancel registration after competition has started"
        assert (await reload(db, comp.id)).seats_remaining == 1
        assert await CompetitionStore(db).get_registration(registration.id) is not None

    async def test_after_submission_refused(self, db, guard, make_user, make_competition, make_submission):
        comp = await make_competition()
        user = await make_user("a@example.edu")
        registration = await guard.register(comp.id, user, RegistrationRequest())
        await make_submission(comp, user)

        with pytest.raises(CancellationNotAllowedError) as exc:
            await guard.cancel(registration.id, user)

        assert exc.value.message == "Cannot cancel registration after submitting project"
        assert (await reload(db, comp.id)).seats_remaining == 1
        assert await CompetitionStore(db).get_registration(registration.id) is not None

    async def test_cancel_frees_member_slots(self, db, guard, make_user, make_competition):
        comp = await make_competition(total_seats=3)
        leader = await make_user("lead@example.edu")
        member = await make_user("m1@example.edu")
        registration = await guard.register(comp.id, leader, team("m1@example.edu"))

        await guard.cancel(registration.id, leader)
        again = await guard.register(comp.id, member, RegistrationRequest())

        assert again.leader_id == member.id
        assert (await reload(db, comp.id)).seats_remaining == 2


# ================= NOTIFICATIONS =================

class TestNotifications:

    async def test_register_and_cancel_notify_leader(self, guard, notifier, make_user, make_competition):
        comp = await make_competition()
        user = await make_user("a@example.edu")

        registration = await guard.register(comp.id, user, RegistrationRequest())
        await guard.cancel(registration.id, user)
        await drain_notifications()

        assert notifier.sent == [
            ("registered", "a@example.edu", "Campus Hackathon"),
            ("cancelled", "a@example.edu", "Campus Hackathon"),
        ]

    async def test_failed_send_does_not_fail_registration(self, db, guard, notifier, make_user, make_competition):
        comp = await make_competition()
        user = await make_user("a@example.edu")
        notifier.fail = True

        registration = await guard.register(comp.id, user, RegistrationRequest())
        await drain_notifications()

        assert registration.id is not None
        assert (await reload(db, comp.id)).seats_remaining == 1

    async def test_rejected_attempt_sends_nothing(self, guard, notifier, make_user, make_competition):
        comp = await make_competition(seats_remaining=0)
        user = await make_user("a@example.edu")

        with pytest.raises(CapacityExceededError):
            await guard.register(comp.id, user, RegistrationRequest())
        await drain_notifications()

        assert notifier.sent == []
