# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Master database pool.

The master database holds the tenant registry. One MasterDatabase is
opened at startup and shared by the request handlers (sessions) and the
health service (ping). Tenant databases on the same server are handled by
TenantDatabaseManager instead.

Example:
    await init_master_database(settings)

    async with get_master_session() as session:
        tenants = (await session.execute(select(Tenant))).scalars().all()
"""

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, AsyncIterator, Callable

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

if TYPE_CHECKING:
    from g4a_portal.core.config.settings import Settings

logger = logging.getLogger(__name__)

# Pooled connections older than this are replaced
POOL_RECYCLE_SECONDS = 1800


class DatabaseError(Exception):
    """Raised when the master database cannot be opened or used.

    Attributes:
        operation: What was being done, e.g. "open" or "session".
    """

    def __init__(self, operation: str, reason: object = None) -> None:
        message = f"Master database {operation} failed"
        if reason is not None:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.operation = operation


class MasterDatabaseNotInitializedError(DatabaseError):
    """Raised when the master database is used before init_master_database()."""

    def __init__(self) -> None:
        super().__init__("access", "not initialized")


class MasterDatabase:
    """Engine and session factory of the tenant registry database."""

    def __init__(
        self,
        settings: "Settings",
        engine_factory: Callable[..., AsyncEngine] = create_async_engine,
    ) -> None:
        """Create the pool. No connection is opened until first use.

        Args:
            settings: Application settings with the master_db section.
            engine_factory: Factory used to build the async engine.
        """
        config = settings.master_db
        self.database = config.database
        self.engine = engine_factory(
            config.url,
            pool_size=config.pool_size,
            max_overflow=config.max_overflow,
            pool_pre_ping=True,
            pool_recycle=POOL_RECYCLE_SECONDS,
            echo=config.echo,
        )
        self._sessions = async_sessionmaker(
            self.engine,
            expire_on_commit=False,
            autoflush=False,
        )

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Open a session committed on exit and rolled back on error.

        Raises:
            DatabaseError: If a statement or the commit fails.
        """
        async with self._sessions() as session:
            try:
                yield session
                await session.commit()
            except BaseException as e:
                await session.rollback()
                if isinstance(e, SQLAlchemyError):
                    raise DatabaseError("session", e) from e
                raise

    async def ping(self) -> bool:
        """Run ``SELECT 1``. Returns False when the server does not answer."""
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError) as e:
            logger.warning("Master database %s unreachable: %s", self.database, e)
            return False
        return True

    async def dispose(self) -> None:
        """Close every pooled connection."""
        await self.engine.dispose()


_master: MasterDatabase | None = None


async def init_master_database(
    settings: "Settings",
    engine_factory: Callable[..., AsyncEngine] = create_async_engine,
) -> MasterDatabase:
    """Open the process-wide master database pool.

    Raises:
        DatabaseError: If the engine cannot be created, e.g. a bad URL.
    """
    global _master

    try:
        master = MasterDatabase(settings, engine_factory)
    except (SQLAlchemyError, ValueError) as e:
        raise DatabaseError("open", e) from e

    if _master is not None:
        await _master.dispose()
    _master = master
    logger.info("Master database pool opened: %s", master.database)
    return master


async def close_master_database() -> None:
    """Dispose the master database pool, if open."""
    global _master

    if _master is None:
        return
    master, _master = _master, None
    await master.dispose()
    logger.info("Master database pool closed: %s", master.database)


def get_master_database() -> MasterDatabase:
    """Get the open master database.

    Raises:
        MasterDatabaseNotInitializedError: Before init_master_database().
    """
    if _master is None:
        raise MasterDatabaseNotInitializedError()
    return _master


@asynccontextmanager
async def get_master_session() -> AsyncIterator[AsyncSession]:
    """Session on the master database. See MasterDatabase.session()."""
    async with get_master_database().session() as session:
        yield session


async def check_master_database_connection() -> bool:
    """Whether the master database is open and answers ``SELECT 1``."""
    if _master is None:
        return False
    return await _master.ping()
