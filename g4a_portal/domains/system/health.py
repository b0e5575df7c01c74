# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Health and readiness reporting.

Health means the process is not shutting down and the master database
answers ``SELECT 1``. Readiness additionally requires that shutdown has
not started.
"""

import logging
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from g4a_portal.infrastructure.database.connection import check_master_database_connection

if TYPE_CHECKING:
    from g4a_portal.infrastructure.database.tenant_manager import TenantDatabaseManager

logger = logging.getLogger(__name__)


class HealthCheckService:
    """Reports process health, readiness and shutdown state."""

    def __init__(
        self,
        manager: "TenantDatabaseManager | None" = None,
        master_check: Callable[[], Awaitable[bool]] = check_master_database_connection,
    ) -> None:
        """Initialize the health service.

        Args:
            manager: Tenant database manager, used to count open tenant pools.
            master_check: Returns True when the master database answers.
        """
        self._manager = manager
        self._master_check = master_check
        self._shutting_down = False

    @property
    def is_shutting_down(self) -> bool:
        """Whether shutdown has started."""
        return self._shutting_down

    def set_shutting_down(self) -> None:
        """Mark the application as shutting down. Cannot be undone."""
        self._shutting_down = True
        logger.info("Application marked as shutting down")

    async def is_healthy(self) -> bool:
        """Check process health.

        Returns:
            False when shutting down or when the master database check
            fails, True otherwise.
        """
        if self._shutting_down:
            return False

        healthy = await self._master_check()
        if not healthy:
            logger.warning("Health check failed: master database unavailable")
        return healthy

    async def is_ready(self) -> bool:
        """Check whether the process should receive traffic."""
        return await self.is_healthy() and not self._shutting_down

    async def get_health_status(self) -> dict[str, Any]:
        """Get detailed health status.

        Returns:
            Dict with healthy, ready, shutting_down and database details.
        """
        healthy = await self.is_healthy()
        shutting_down = self._shutting_down
        tenants = self._manager.active_tenant_databases() if self._manager else 0

        return {
            "healthy": healthy,
            "ready": healthy and not shutting_down,
            "shutting_down": shutting_down,
            "databases": {
                "master": healthy,
                "tenants": tenants,
            },
        }
