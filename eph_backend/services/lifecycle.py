"""
Competition lifecycle classification.

Pure functions of the competition schedule and a supplied "now". Nothing
here reads the system clock; callers pass Clock.now().

    now < start            -> upcoming
    start <= now < end     -> ongoing
    now >= end             -> completed
"""
import math
from datetime import datetime
from enum import Enum
from typing import Optional

from eph_backend.orm.competition import Competition, CompetitionStatus


class LifecycleStatus(str, Enum):
    UPCOMING = "upcoming"
    ONGOING = "ongoing"
    COMPLETED = "completed"


SECONDS_PER_DAY = 24 * 60 * 60


def classify(start: datetime, end: datetime, now: datetime) -> LifecycleStatus:
    """
    Map (start, end, now) to exactly one lifecycle status.

    start < end is the caller's precondition. With start == end the
    completed branch is checked first, so the competition reads as
    completed from that instant on.
    """
    if now >= end:
        return LifecycleStatus.COMPLETED
    if now >= start:
        return LifecycleStatus.ONGOING
    return LifecycleStatus.UPCOMING


def classify_competition(competition: Competition, now: datetime) -> LifecycleStatus:
    return classify(competition.start_date, competition.end_date, now)


def registration_cutoff(competition: Competition) -> datetime:
    """The registration deadline if set, otherwise the start date."""
    return competition.registration_deadline or competition.start_date


def is_registration_open(competition: Competition, now: datetime) -> bool:
    return now < registration_cutoff(competition) and competition.seats_remaining > 0


def days_remaining(competition: Competition, now: datetime) -> int:
    """Whole days until end_date, rounded up. Negative once the competition is over."""
    seconds = (competition.end_date - now).total_seconds()
    return math.ceil(seconds / SECONDS_PER_DAY)


def derive_status(competition: Competition, now: datetime) -> CompetitionStatus:
    """
    Recompute the stored status label from the dates.

    cancelled is sticky; ongoing and completed follow the clock; before the
    start the draft/published label set by an admin is kept.
    """
    current: Optional[CompetitionStatus] = competition.status or CompetitionStatus.DRAFT
    if current == CompetitionStatus.CANCELLED:
        return current

    lifecycle = classify_competition(competition, now)
    if lifecycle == LifecycleStatus.COMPLETED:
        return CompetitionStatus.COMPLETED
    if lifecycle == LifecycleStatus.ONGOING:
        return CompetitionStatus.ONGOING
    if current in (CompetitionStatus.ONGOING, CompetitionStatus.COMPLETED):
        # Dates were moved back into the future.
        return CompetitionStatus.PUBLISHED
    return current


def refresh_status(competition: Competition, now: datetime) -> Competition:
    competition.status = derive_status(competition, now)
    return competition
