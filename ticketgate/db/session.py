"""
Async engine and session factory.

PostgreSQL (asyncpg) gets a sized connection pool. SQLite (aiosqlite, used for
local development and tests) gets a busy timeout and BEGIN IMMEDIATE
transactions, so every transaction takes the database write lock up front and
concurrent reservations queue instead of failing with "database is locked".
"""

from typing import AsyncGenerator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from ticketgate.core.config import get_settings

settings = get_settings()


def make_engine(database_url: str, **kwargs) -> AsyncEngine:
    kw = dict(pool_pre_ping=True, **kwargs)

    if database_url.startswith("sqlite"):
        kw.setdefault("connect_args", {"timeout": 30})
        engine = create_async_engine(database_url, **kw)

        @event.listens_for(engine.sync_engine, "connect")
        def _sqlite_connect(dbapi_connection, _):
            # Let the "begin" hook below emit BEGIN instead of the driver
            dbapi_connection.isolation_level = None
            cur = dbapi_connection.cursor()
            cur.execute("PRAGMA busy_timeout=30000;")
            cur.execute("PRAGMA foreign_keys=ON;")
            cur.close()

        @event.listens_for(engine.sync_engine, "begin")
        def _sqlite_begin(conn):
            conn.exec_driver_sql("BEGIN IMMEDIATE")

        return engine

    kw.update(
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_recycle=settings.DB_POOL_RECYCLE,
    )
    return create_async_engine(database_url, **kw)


def make_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


engine = make_engine(settings.DATABASE_URL, echo=settings.DEBUG)
SessionLocal = make_sessionmaker(engine)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session. Commits on success, rolls back on error."""
    async with SessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
