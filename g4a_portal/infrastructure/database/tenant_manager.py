# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Tenant database management.

Each tenant owns an isolated PostgreSQL database on the master server.
This module creates and drops those databases and keeps a registry of
per-tenant connection pools, lazily created and cached by database name.

Example:
    from g4a_portal.infrastructure.database import TenantDatabaseManager

    manager = TenantDatabaseManager(settings)

    # Provision a database for a new tenant
    name = manager.generate_database_name("Acme School", tenant_id)
    await manager.create_tenant_database(name)

    # Get async session for a tenant database
    async with manager.get_session(name) as session:
        result = await session.execute(select(User))
        users = result.scalars().all()

    # Cleanup on shutdown
    await manager.close_all()
"""

import logging
import re
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, AsyncIterator, Callable

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncConnection,
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

if TYPE_CHECKING:
    from g4a_portal.core.config.settings import Settings

logger = logging.getLogger(__name__)

_NAME_MAX_LENGTH = 20
_NAME_CLEAN_PATTERN = re.compile(r"[^a-z0-9]")
_ID_FRAGMENT_LENGTH = 8


class TenantDatabaseError(Exception):
    """Raised when creating or dropping a tenant database fails.

    Attributes:
        database_name: The tenant database involved.
        reason: The reason for the failure.
    """

    def __init__(self, database_name: str, reason: str) -> None:
        """Initialize the error.

        Args:
            database_name: The tenant database involved.
            reason: The reason for the failure.
        """
        super().__init__(f"Tenant database {database_name}: {reason}")
        self.database_name = database_name
        self.reason = reason


def generate_database_name(tenant_name: str, tenant_id: str, prefix: str = "g4a_tenant_") -> str:
    """Derive the physical database name for a tenant.

    The tenant name is lowercased, every character outside ``[a-z0-9]`` is
    replaced with an underscore and the result is cut to 20 characters.
    The first 8 characters of the tenant id keep names unique.

    Args:
        tenant_name: Display name of the tenant.
        tenant_id: Tenant identifier.
        prefix: Database name prefix.

    Returns:
        Database name such as ``g4a_tenant_acme_school_1a2b3c4d``.

    Example:
        >>> generate_database_name("Acme School", "1a2b3c4d-0000")
        'g4a_tenant_acme_school_1a2b3c4d'
    """
    clean_name = _NAME_CLEAN_PATTERN.sub("_", tenant_name.lower())[:_NAME_MAX_LENGTH]
    return f"{prefix}{clean_name}_{tenant_id[:_ID_FRAGMENT_LENGTH]}"


def quote_identifier(name: str) -> str:
    """Quote a PostgreSQL identifier, doubling embedded quotes."""
    return '"' + name.replace('"', '""') + '"'


class TenantDatabaseManager:
    """Manages tenant databases and their connection pools.

    Each tenant database gets its own async engine and session maker,
    created on first access and cached for subsequent requests.

    Attributes:
        settings: Application settings containing database configuration.
    """

    def __init__(
        self,
        settings: "Settings",
        engine_factory: Callable[..., AsyncEngine] = create_async_engine,
    ) -> None:
        """Initialize the tenant database manager.

        Args:
            settings: Application settings containing database configuration.
            engine_factory: Factory used to build async engines.
        """
        self._settings = settings
        self._engine_factory = engine_factory
        self._engines: dict[str, AsyncEngine] = {}
        self._sessionmakers: dict[str, async_sessionmaker[AsyncSession]] = {}

    def generate_database_name(self, tenant_name: str, tenant_id: str) -> str:
        """Derive a database name using the configured prefix."""
        return generate_database_name(
            tenant_name, tenant_id, prefix=self._settings.tenant_db.name_prefix
        )

    def get_connection_url(self, database_name: str) -> str:
        """Get the async connection URL for a tenant database.

        Args:
            database_name: Tenant database name.

        Returns:
            PostgreSQL async connection URL (asyncpg driver).
        """
        return self._settings.master_db.url_for(database_name)

    @asynccontextmanager
    async def _admin_connection(self) -> AsyncIterator[AsyncConnection]:
        """Open an autocommit connection to the maintenance database.

        CREATE DATABASE and DROP DATABASE cannot run inside a transaction.
        """
        engine = self._engine_factory(
            self._settings.master_db.url_for(self._settings.tenant_db.maintenance_database),
            isolation_level="AUTOCOMMIT",
            poolclass=NullPool,
        )
        try:
            async with engine.connect() as conn:
                yield conn
        finally:
            await engine.dispose()

    async def database_exists(self, database_name: str) -> bool:
        """Check whether a database exists on the master server.

        Args:
            database_name: Database name to look up.

        Returns:
            True if pg_database has a row for the name.
        """
        async with self._admin_connection() as conn:
            result = await conn.execute(
                text("SELECT 1 FROM pg_database WHERE datname = :name"),
                {"name": database_name},
            )
            return result.scalar() is not None

    async def create_tenant_database(self, database_name: str) -> bool:
        """Create a tenant database and grant the application user access.

        An existing database is left untouched.

        Args:
            database_name: Database name to create.

        Returns:
            True if the database was created, False if it already existed.

        Raises:
            TenantDatabaseError: If the database cannot be created.
        """
        owner = self._settings.master_db.user
        try:
            async with self._admin_connection() as conn:
                result = await conn.execute(
                    text("SELECT 1 FROM pg_database WHERE datname = :name"),
                    {"name": database_name},
                )
                if result.scalar() is not None:
                    logger.warning("Database %s already exists, skipping creation", database_name)
                    return False

                await conn.execute(text(f"CREATE DATABASE {quote_identifier(database_name)}"))
                await conn.execute(
                    text(
                        f"GRANT ALL PRIVILEGES ON DATABASE {quote_identifier(database_name)} "
                        f"TO {quote_identifier(owner)}"
                    )
                )
        except (SQLAlchemyError, OSError) as e:
            raise TenantDatabaseError(database_name, f"creation failed: {e}") from e

        logger.info("Created tenant database: %s", database_name)
        return True

    async def drop_tenant_database(self, database_name: str) -> None:
        """Drop a tenant database after terminating its other connections.

        Cached pools for the database are closed first.

        Args:
            database_name: Database name to drop.

        Raises:
            TenantDatabaseError: If the database cannot be dropped.
        """
        await self.close_tenant_database(database_name)
        try:
            async with self._admin_connection() as conn:
                await conn.execute(
                    text(
                        "SELECT pg_terminate_backend(pid) FROM pg_stat_activity "
                        "WHERE datname = :name AND pid <> pg_backend_pid()"
                    ),
                    {"name": database_name},
                )
                await conn.execute(text(f"DROP DATABASE IF EXISTS {quote_identifier(database_name)}"))
        except (SQLAlchemyError, OSError) as e:
            raise TenantDatabaseError(database_name, f"drop failed: {e}") from e

        logger.info("Dropped tenant database: %s", database_name)

    def _get_or_create_engine(self, database_name: str) -> AsyncEngine:
        if database_name not in self._engines:
            self._engines[database_name] = self._engine_factory(
                self.get_connection_url(database_name),
                pool_size=self._settings.tenant_db.pool_size,
                max_overflow=self._settings.tenant_db.max_overflow,
                pool_pre_ping=True,
                pool_recycle=1800,
                echo=self._settings.master_db.echo,
            )
            logger.debug("Opened connection pool for tenant database: %s", database_name)
        return self._engines[database_name]

    def _get_or_create_sessionmaker(self, database_name: str) -> async_sessionmaker[AsyncSession]:
        if database_name not in self._sessionmakers:
            engine = self._get_or_create_engine(database_name)
            self._sessionmakers[database_name] = async_sessionmaker(
                bind=engine,
                class_=AsyncSession,
                expire_on_commit=False,
                autoflush=False,
            )
        return self._sessionmakers[database_name]

    def get_engine(self, database_name: str) -> AsyncEngine:
        """Get the cached async engine for a tenant database.

        Args:
            database_name: Tenant database name.

        Returns:
            AsyncEngine for the tenant database.
        """
        return self._get_or_create_engine(database_name)

    @asynccontextmanager
    async def get_session(self, database_name: str) -> AsyncIterator[AsyncSession]:
        """Get an async session for a tenant database.

        The session is committed on success and rolled back on exception.

        Args:
            database_name: Tenant database name.

        Yields:
            AsyncSession for database operations.
        """
        sessionmaker = self._get_or_create_sessionmaker(database_name)

        async with sessionmaker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def check_connection(self, database_name: str) -> bool:
        """Check if a tenant database is reachable.

        Args:
            database_name: Tenant database name.

        Returns:
            True if the database is reachable, False otherwise.
        """
        try:
            engine = self._get_or_create_engine(database_name)
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except (SQLAlchemyError, OSError):
            return False

    async def close_tenant_database(self, database_name: str) -> None:
        """Dispose the cached pool for a tenant database, if any.

        Args:
            database_name: Tenant database name.
        """
        self._sessionmakers.pop(database_name, None)
        engine = self._engines.pop(database_name, None)
        if engine is not None:
            await engine.dispose()
            logger.info("Closed connection pool for tenant database: %s", database_name)

    async def close_all(self) -> None:
        """Close all tenant database connection pools."""
        for database_name in list(self._engines.keys()):
            await self.close_tenant_database(database_name)

    def active_tenant_databases(self) -> int:
        """Number of tenant databases with an open connection pool."""
        return len(self._engines)
