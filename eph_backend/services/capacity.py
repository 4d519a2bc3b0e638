"""
Capacity Manager

The only code path allowed to change Competition.seats_remaining.

- reserve_seats: atomic conditional decrement; raises CapacityExceededError
  and leaves the row untouched when fewer than `count` seats remain.
- release_seats: atomic increment clamped to total_seats; never raises on
  over-release.
- resize: changes total_seats and shifts seats_remaining by the same
  delta; refused when that would go below zero.

None of these commit. The caller's transaction decides whether the
change sticks, so a later failed check can roll the reservation back.
"""
import logging

from eph_backend.errors import BadRequestError, CapacityExceededError, ErrorCode
from eph_backend.orm.competition import Competition
from eph_backend.services.competition_store import CompetitionStore

logger = logging.getLogger(__name__)


class CapacityManager:

    def __init__(self, store: CompetitionStore):
        self.store = store

    async def reserve_seats(self, competition: Competition, count: int = 1) -> Competition:
        if count < 1:
            raise ValueError(f"Seat count must be at least 1, got {count}")

        competition_id = competition.id
        reserved = await self.store.decrement_seats_if_available(competition_id, count)
        updated = await self.store.get_competition(competition_id, refresh=True)

        if not reserved:
            remaining = updated.seats_remaining if updated is not None else None
            logger.info(
                f"[CAPACITY] Reservation refused competition={competition_id} "
                f"requested={count} remaining={remaining}"
            )
            raise CapacityExceededError(competition_id, requested=count, remaining=remaining)

        logger.info(
            f"[CAPACITY] Reserved {count} seat(s) competition={competition_id} "
            f"remaining={updated.seats_remaining}/{updated.total_seats}"
        )
        return updated

    async def release_seats(self, competition: Competition, count: int = 1) -> Competition:
        if count < 1:
            raise ValueError(f"Seat count must be at least 1, got {count}")

        competition_id = competition.id
        released = await self.store.increment_seats_clamped(competition_id, count)
        if not released:
            logger.warning(f"[CAPACITY] Release on missing competition={competition_id}")
            return competition

        updated = await self.store.get_competition(competition_id, refresh=True)
        logger.info(
            f"[CAPACITY] Released {count} seat(s) competition={competition_id} "
            f"remaining={updated.seats_remaining}/{updated.total_seats}"
        )
        return updated

    async def resize(self, competition: Competition, total_seats: int) -> Competition:
        """
        Change total_seats, moving seats_remaining by the same delta so that
        seats already taken stay taken.
        """
        if total_seats < 1:
            raise ValueError(f"total_seats must be at least 1, got {total_seats}")

        competition_id = competition.id
        taken = competition.total_seats - competition.seats_remaining
        resized = await self.store.resize_capacity(competition_id, total_seats)
        updated = await self.store.get_competition(competition_id, refresh=True)

        if not resized:
            taken = updated.total_seats - updated.seats_remaining if updated is not None else taken
            logger.info(
                f"[CAPACITY] Resize refused competition={competition_id} "
                f"total_seats={total_seats} taken={taken}"
            )
            raise BadRequestError(
                f"total_seats cannot be lower than the {taken} seat(s) already taken",
                code=ErrorCode.CAPACITY_EXCEEDED,
                details={"total_seats": total_seats, "seats_taken": taken}
            )

        logger.info(
            f"[CAPACITY] Resized competition={competition_id} "
            f"remaining={updated.seats_remaining}/{updated.total_seats}"
        )
        return updated
