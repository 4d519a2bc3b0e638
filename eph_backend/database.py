"""
eph_backend/database.py
Database configuration: async engine, session factory and request dependency
"""
import logging
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine, AsyncSession, async_sessionmaker
from dotenv import load_dotenv

from eph_backend.orm.base import Base
import eph_backend.orm  # ensures all models are registered

load_dotenv()

from eph_backend.config import settings

logger = logging.getLogger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(database_url: str, **overrides) -> AsyncEngine:
    """
    Create an async engine with pool settings suited to the backend.
    SQLite has different pool needs than PostgreSQL.
    """
    if "sqlite" in database_url.lower():
        options = {
            "echo": False,
            "future": True,
            "connect_args": {
                "timeout": 30.0,   # SQLite busy timeout in seconds
            },
        }
        if ":memory:" not in database_url:
            options.update({
                "pool_pre_ping": True,
                "pool_size": 10,
                "max_overflow": 20,
                "pool_timeout": 30,
            })
    else:
        options = {
            "echo": False,
            "future": True,
            "pool_pre_ping": True,
            "pool_size": 20,
            "max_overflow": 30,
            "pool_timeout": 30,
            "pool_recycle": 3600,
        }
    options.update(overrides)
    engine = create_async_engine(database_url, **options)

    if engine.dialect.name == "sqlite":
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

    return engine


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


engine = build_engine(settings.DATABASE_URL)
AsyncSessionLocal = build_session_factory(engine)


async def get_db():
    """Dependency for getting async database session"""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


async def init_db():
    """Create all tables that do not exist yet."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("✓ Database tables ensured")


async def close_db():
    await engine.dispose()
    logger.info("Database engine disposed")
