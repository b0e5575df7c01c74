# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Stage services used by the provisioning listeners.

- TenantMigrationService: checks and applies tenant schema migrations
- TenantSeederService: fills a migrated tenant database with baseline data

Both work from a ProvisioningContext and never touch the master database.
"""

import logging
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from sqlalchemy.exc import SQLAlchemyError

from g4a_portal.domains.provisioning.context import ProvisioningContext
from g4a_portal.infrastructure.database.migrations.runner import (
    check_migrations_pending,
    get_migration_status,
    run_tenant_migrations,
)
from g4a_portal.infrastructure.database.seeds.tenant import seed_tenant_database

if TYPE_CHECKING:
    from g4a_portal.core.config.settings import Settings
    from g4a_portal.infrastructure.database.tenant_manager import TenantDatabaseManager

logger = logging.getLogger(__name__)


class TenantMigrationService:
    """Runs tenant schema migrations against a tenant database."""

    def __init__(
        self,
        manager: "TenantDatabaseManager",
        run_migrations: Callable[[str], Awaitable[list[str]]] = run_tenant_migrations,
        check_pending: Callable[[str], Awaitable[bool]] = check_migrations_pending,
    ) -> None:
        """Initialize the migration service.

        Args:
            manager: Tenant database manager used to build connection URLs.
            run_migrations: Applies pending migrations for a URL.
            check_pending: Reports whether a URL has pending migrations.
        """
        self._manager = manager
        self._run_migrations = run_migrations
        self._check_pending = check_pending

    async def needs_migration(self, context: ProvisioningContext) -> bool:
        """Check whether the tenant database has pending migrations.

        A failing check is logged and reported as "no migration needed".

        Args:
            context: Tenant being provisioned.

        Returns:
            True if migrations are pending.
        """
        url = self._manager.get_connection_url(context.database_name)
        try:
            return await self._check_pending(url)
        except (SQLAlchemyError, OSError) as e:
            logger.error(
                "Migration check failed for tenant %s (%s): %s",
                context.tenant_name,
                context.database_name,
                e,
            )
            return False

    async def run_migrations(self, context: ProvisioningContext) -> list[str]:
        """Apply pending migrations to the tenant database.

        Args:
            context: Tenant being provisioned.

        Returns:
            Applied revision IDs.
        """
        logger.info(
            "Running migrations for tenant %s (%s)", context.tenant_name, context.database_name
        )
        applied = await self._run_migrations(self._manager.get_connection_url(context.database_name))
        logger.info("Applied %d migrations for tenant %s", len(applied), context.tenant_name)
        return applied

    async def get_status(self, context: ProvisioningContext) -> dict[str, Any]:
        """Get the migration status of the tenant database."""
        return await get_migration_status(self._manager.get_connection_url(context.database_name))


class TenantSeederService:
    """Seeds baseline data into a migrated tenant database."""

    def __init__(self, manager: "TenantDatabaseManager", settings: "Settings") -> None:
        """Initialize the seeder service.

        Args:
            manager: Tenant database manager providing sessions.
            settings: Application settings with the default admin account.
        """
        self._manager = manager
        self._settings = settings

    async def run_seeders(self, context: ProvisioningContext) -> dict[str, int]:
        """Run every tenant seeder in one transaction.

        The tenant connection pool is closed afterwards.

        Args:
            context: Tenant being provisioned.

        Returns:
            Rows created per seeder, keyed by seeder name.
        """
        logger.info(
            "Running seeders for tenant %s (%s)", context.tenant_name, context.database_name
        )
        provisioning = self._settings.provisioning
        try:
            async with self._manager.get_session(context.database_name) as session:
                created = await seed_tenant_database(
                    session,
                    context.tenant_id,
                    admin_email=provisioning.default_admin_email,
                    admin_password=provisioning.default_admin_password.get_secret_value(),
                )
        finally:
            await self._manager.close_tenant_database(context.database_name)

        logger.info("Seeders completed for tenant %s", context.tenant_name)
        return created
