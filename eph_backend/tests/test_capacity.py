"""
eph_backend/tests/test_capacity.py
Seat accounting: bounds, over-booking, release clamp and the
last-seat race between two independent sessions.
"""
import asyncio

import pytest

from eph_backend.errors import APIError, CapacityExceededError
from eph_backend.services.capacity import CapacityManager
from eph_backend.services.competition_store import CompetitionStore


async def seats(db, competition_id):
    competition = await CompetitionStore(db).get_competition(competition_id, refresh=True)
    return competition.seats_remaining


# ================= RESERVE =================

class TestReserveSeats:

    async def test_reserve_decrements(self, db, make_competition):
        comp = await make_competition(total_seats=3)
        capacity = CapacityManager(CompetitionStore(db))

        updated = await capacity.reserve_seats(comp, 2)
        await db.commit()

        assert updated.seats_remaining == 1
        assert await seats(db, comp.id) == 1

    async def test_zero_seats_refused_and_unchanged(self, db, make_competition):
        comp = await make_competition(total_seats=2, seats_remaining=0)
        competition_id = comp.id
        capacity = CapacityManager(CompetitionStore(db))

        with pytest.raises(CapacityExceededError) as exc:
            await capacity.reserve_seats(comp, 1)
        await db.rollback()

        assert exc.value.status_code == 400
        assert exc.value.details["seats_remaining"] == 0
        assert await seats(db, competition_id) == 0

    async def test_count_above_remaining_refused(self, db, make_competition):
        comp = await make_competition(total_seats=5, seats_remaining=2)
        competition_id = comp.id
        capacity = CapacityManager(CompetitionStore(db))

        with pytest.raises(CapacityExceededError):
            await capacity.reserve_seats(comp, 3)
        await db.rollback()

        assert await seats(db, competition_id) == 2

    async def test_count_must_be_positive(self, db, make_competition):
        comp = await make_competition()
        capacity = CapacityManager(CompetitionStore(db))
        with pytest.raises(ValueError):
            await capacity.reserve_seats(comp, 0)

    async def test_uncommitted_reservation_rolls_back(self, db, make_competition):
        comp = await make_competition(total_seats=2)
        competition_id = comp.id
        capacity = CapacityManager(CompetitionStore(db))

        await capacity.reserve_seats(comp, 1)
        await db.rollback()

        assert await seats(db, competition_id) == 2


# ================= RELEASE =================

class TestReleaseSeats:

    async def test_release_increments(self, db, make_competition):
        comp = await make_competition(total_seats=4, seats_remaining=1)
        capacity = CapacityManager(CompetitionStore(db))

        updated = await capacity.release_seats(comp, 2)
        await db.commit()

        assert updated.seats_remaining == 3

    async def test_release_is_clamped_to_total(self, db, make_competition):
        comp = await make_competition(total_seats=2, seats_remaining=1)
        capacity = CapacityManager(CompetitionStore(db))

        for _ in range(5):
            comp = await capacity.release_seats(comp, 1)
        await db.commit()

        assert comp.seats_remaining == 2
        assert await seats(db, comp.id) == 2

    async def test_bounds_hold_over_mixed_sequence(self, db, make_competition):
        comp = await make_competition(total_seats=3)
        capacity = CapacityManager(CompetitionStore(db))

        for step in ["r", "r", "r", "r", "x", "x", "x", "x", "r", "x"]:
            if step == "r":
                try:
                    comp = await capacity.reserve_seats(comp, 1)
                except CapacityExceededError:
                    pass
            else:
                comp = await capacity.release_seats(comp, 1)
            await db.commit()
            assert 0 <= comp.seats_remaining <= comp.total_seats


# ================= RESIZE =================

class TestResize:

    async def test_growing_total_adds_free_seats(self, db, make_competition):
        comp = await make_competition(total_seats=5, seats_remaining=2)
        capacity = CapacityManager(CompetitionStore(db))

        updated = await capacity.resize(comp, 8)
        await db.commit()

        assert (updated.total_seats, updated.seats_remaining) == (8, 5)

    async def test_shrinking_below_taken_refused(self, db, make_competition):
        comp = await make_competition(total_seats=5, seats_remaining=1)
        competition_id = comp.id
        capacity = CapacityManager(CompetitionStore(db))

        with pytest.raises(APIError) as exc:
            await capacity.resize(comp, 3)
        await db.rollback()

        assert exc.value.status_code == 400
        assert exc.value.details["seats_taken"] == 4
        assert await seats(db, competition_id) == 1


# ================= CONCURRENCY =================

class TestLastSeatRace:

    async def test_two_sessions_one_seat(self, session_factory, make_competition):
        comp = await make_competition(total_seats=1)
        competition_id = comp.id

        async def attempt():
            async with session_factory() as session:
                store = CompetitionStore(session)
                competition = await store.get_competition(competition_id)
                try:
                    await CapacityManager(store).reserve_seats(competition, 1)
                    await session.commit()
                    return "reserved"
                except CapacityExceededError:
                    await session.rollback()
                    return "refused"

        outcomes = await asyncio.gather(attempt(), attempt())

        assert sorted(outcomes) == ["refused", "reserved"]
        async with session_factory() as session:
            assert await seats(session, competition_id) == 0

    async def test_many_sessions_never_overbook(self, session_factory, make_competition):
        comp = await make_competition(total_seats=3)
        competition_id = comp.id

        async def attempt():
            async with session_factory() as session:
                store = CompetitionStore(session)
                competition = await store.get_competition(competition_id)
                try:
                    await CapacityManager(store).reserve_seats(competition, 1)
                    await session.commit()
                    return True
                except CapacityExceededError:
                    await session.rollback()
                    return False

        outcomes = await asyncio.gather(*[attempt() for _ in range(8)])

        assert outcomes.count(True) == 3
        async with session_factory() as session:
            assert await seats(session, competition_id) == 0
