"""
eph_backend/tests/conftest.py
Shared fixtures.

Each test gets its own SQLite file so concurrent sessions use real,
separate connections (needed by the seat race tests).
"""
from datetime import datetime, timedelta

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from eph_backend.core.clock import FixedClock, get_clock
from eph_backend.core.rate_limit import limiter
from eph_backend.database import build_engine, build_session_factory, get_db
from eph_backend.orm.base import Base
from eph_backend.orm.competition import Competition, CompetitionStatus
from eph_backend.orm.submission import Submission
from eph_backend.orm.user import User, UserRole
from eph_backend.rbac import create_access_token
from eph_backend.services.email_service import get_email_service
from eph_backend.services.notifications import drain_notifications

# Fixed "T" for every test
NOW = datetime(2025, 3, 1, 12, 0, 0)


class RecordingNotifier:
    """Stands in for EmailService; records sends, optionally fails them."""

    def __init__(self):
        self.sent = []
        self.fail = False

    async def _record(self, kind, to_email, name, competition_title):
        if self.fail:
            raise ConnectionError("SMTP unreachable")
        self.sent.append((kind, to_email, competition_title))
        return True

    async def send_competition_registration_email(self, to_email, name, competition_title):
        return await self._record("registered", to_email, name, competition_title)

    async def send_registration_cancelled_email(self, to_email, name, competition_title):
        return await self._record("cancelled", to_email, name, competition_title)


# ================= DATABASE =================

@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await drain_notifications()
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def notifier():
    return RecordingNotifier()


# ================= FACTORIES =================

@pytest.fixture
def make_user(db):
    async def _make_user(email, role=UserRole.student, name=None, is_active=True):
        user = User(
            email=email,
            name=name or email.split("@")[0].title(),
            role=role,
            college="Test College",
            is_active=is_active,
        )
        db.add(user)
        await db.commit()
        return user
    return _make_user


@pytest.fixture
def make_competition(db):
    async def _make_competition(
        total_seats=2,
        seats_remaining=None,
        start_date=NOW + timedelta(days=1),
        end_date=NOW + timedelta(days=2),
        max_team_size=4,
        **extra
    ):
        values = dict(
            title="Campus Hackathon",
            start_date=start_date,
            end_date=end_date,
            max_team_size=max_team_size,
            total_seats=total_seats,
            seats_remaining=total_seats if seats_remaining is None else seats_remaining,
            status=CompetitionStatus.PUBLISHED,
        )
        values.update(extra)
        competition = Competition(**values)
        db.add(competition)
        await db.commit()
        return competition
    return _make_competition


@pytest.fixture
def make_submission(db):
    async def _make_submission(competition, leader):
        submission = Submission(competition_id=competition.id, leader_id=leader.id, title="Final build")
        db.add(submission)
        await db.commit()
        return submission
    return _make_submission


@pytest.fixture
def auth_headers():
    def _auth_headers(user):
        token = create_access_token({"sub": user.email})
        return {"Authorization": f"Bearer {token}"}
    return _auth_headers


# ================= HTTP CLIENT =================

@pytest_asyncio.fixture
async def client(session_factory, clock, notifier):
    from eph_backend.main import app

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_email_service] = lambda: notifier
    limiter.enabled = False

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
    limiter.enabled = True
