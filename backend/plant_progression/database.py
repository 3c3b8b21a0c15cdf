"""
Plant Progression Backend — Database Session Management
========================================================

What:  Async SQLAlchemy engine, session factory, and FastAPI dependency.
Why:   Centralizes all database connection logic in one place.
How:   Database wraps one async engine built from Settings. The app factory
       stores it on app.state; get_db_session hands each request its own
       session that commits on success and rolls back on error.
When:  Database is built once per app; sessions are created per request.

Connection Pooling Strategy (PostgreSQL):
    pool_size / max_overflow come from Settings. SQLite (tests) uses the
    dialect's default pool, which rejects those arguments.
    pool_pre_ping validates connections before use (catches stale ones).

Atomicity:
    Every store operation touches exactly one plant row. Progress entries
    live inside that row, so an append/edit/delete of an entry is a single
    row update; no cross-row transaction is ever needed. On SQLite every
    transaction starts with BEGIN IMMEDIATE so those updates serialize.
"""

import logging
from typing import AsyncGenerator

from fastapi import Request
from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from plant_progression.config import Settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class for all ORM models; shares one metadata object."""
    pass


def _serialize_sqlite_transactions(engine: AsyncEngine) -> None:
    """
    Make every SQLite transaction take the write lock up front.

    SQLite ignores SELECT ... FOR UPDATE, and the driver only opens a
    transaction at the first write, so two requests could both read a
    plant's progress list and the later write would drop the earlier
    entry. BEGIN IMMEDIATE makes the read-modify-write sequences in
    PlantStore run one at a time, like the row lock does on PostgreSQL.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):
        # Let SQLAlchemy emit BEGIN itself
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


class Database:
    """
    Owns the engine and session factory for one application instance.

    Why a class (not module globals): the engine depends on the injected
    Settings, and tests build several apps against different SQLite files.
    """

    def __init__(self, settings: Settings):
        engine_kwargs = {
            # Echo SQL only when debugging; it is very noisy otherwise
            "echo": settings.log_level == "DEBUG",
        }
        if not settings.is_sqlite:
            engine_kwargs.update(
                pool_size=settings.db_pool_size,
                max_overflow=settings.db_max_overflow,
                pool_pre_ping=settings.db_pool_pre_ping,
                pool_recycle=3600,
            )
        else:
            # Writers queue on the database lock instead of failing fast
            engine_kwargs["connect_args"] = {"timeout": 30}

        self.engine: AsyncEngine = create_async_engine(settings.database_url, **engine_kwargs)

        if settings.is_sqlite:
            _serialize_sqlite_transactions(self.engine)

        # expire_on_commit=False: handlers read attributes after commit
        # without triggering a lazy reload outside the session
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    def session(self) -> AsyncSession:
        return self.session_factory()

    async def ping(self) -> None:
        """Runs SELECT 1; raises whatever the driver raises when unreachable."""
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def create_all(self) -> None:
        """
        Create any missing tables.

        Schema migrations are out of scope; create_all is idempotent and
        only adds tables that do not exist yet.
        """
        # Importing the models registers their tables on Base.metadata
        from plant_progression.models import plant, user  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables ensured")

    async def dispose(self) -> None:
        """Closes all pooled connections (called on shutdown)."""
        await self.engine.dispose()


async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Opens a session from the app's Database
        2. Yields it to the route handler
        3. On success: commits
        4. On error: rolls back and re-raises for the global handlers
        5. Always: closes the session (returns connection to pool)
    """
    database: Database = request.app.state.database
    async with database.session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
