# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""FastAPI dependency injection definitions.

This module owns the process-wide services and exposes them to endpoints:
- Master database sessions
- Tenant database manager
- Event bus and the subscribed provisioning listeners
- Health and graceful shutdown services
- Tenant service instances

Example:
    @router.get("/tenants")
    async def list_tenants(
        tenant_service: TenantService = Depends(get_tenant_service),
    ):
        ...
"""

import logging
from typing import AsyncGenerator

from fastapi import Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from g4a_portal.core.config import Settings, get_settings
from g4a_portal.domains.provisioning import (
    ProvisioningListeners,
    TenantSetupCompletionListener,
    register_provisioning_listeners,
)
from g4a_portal.domains.system import GracefulShutdownService, HealthCheckService
from g4a_portal.domains.tenant import TenantService
from g4a_portal.infrastructure.database.connection import (
    close_master_database,
    get_master_session,
    init_master_database,
)
from g4a_portal.infrastructure.database.migrations.runner import run_central_migrations
from g4a_portal.infrastructure.database.tenant_manager import TenantDatabaseManager
from g4a_portal.infrastructure.events import EventBus, get_event_bus, reset_event_bus

logger = logging.getLogger(__name__)

# Process-wide singletons, set by build_services()
_tenant_db_manager: TenantDatabaseManager | None = None
_listeners: ProvisioningListeners | None = None
_health_service: HealthCheckService | None = None
_shutdown_service: GracefulShutdownService | None = None


def build_services(settings: Settings | None = None) -> GracefulShutdownService:
    """Create the tenant database manager, listeners, health and shutdown services.

    No connection is opened here, so health endpoints work and report
    "unhealthy" even when the master database is unavailable.

    Args:
        settings: Application settings. Defaults to get_settings().

    Returns:
        The graceful shutdown service.
    """
    global _tenant_db_manager, _listeners, _health_service, _shutdown_service
    settings = settings or get_settings()

    _tenant_db_manager = TenantDatabaseManager(settings)
    bus = get_event_bus()
    _health_service = HealthCheckService(_tenant_db_manager)
    _shutdown_service = GracefulShutdownService(_health_service, _tenant_db_manager, bus)
    _shutdown_service.register_shutdown_handler(close_master_database)

    _listeners = register_provisioning_listeners(bus, _tenant_db_manager, settings)
    logger.info("Provisioning listeners registered: %s", bus.get_stats()["subscriptions"])
    return _shutdown_service


async def open_databases(settings: Settings | None = None) -> None:
    """Open the master database and apply pending central migrations.

    Args:
        settings: Application settings. Defaults to get_settings().
    """
    settings = settings or get_settings()
    await init_master_database(settings)

    if settings.master_db.auto_migrate:
        applied = await run_central_migrations(settings.master_db.url)
        logger.info("Central migrations applied: %d", len(applied))


async def close_services() -> None:
    """Run the graceful shutdown and release every singleton."""
    global _tenant_db_manager, _listeners, _health_service, _shutdown_service

    try:
        if _shutdown_service is not None:
            await _shutdown_service.graceful_shutdown()
    finally:
        if _listeners is not None:
            _listeners.unregister()
        reset_event_bus()
        _tenant_db_manager = None
        _listeners = None
        _health_service = None
        _shutdown_service = None


async def get_master_db() -> AsyncGenerator[AsyncSession, None]:
    """Get master database session.

    Dependency for endpoints that need the tenant registry.

    Yields:
        AsyncSession for master database.
    """
    async with get_master_session() as session:
        yield session


def _unavailable(name: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=f"{name} not initialized",
    )


def get_tenant_db_manager() -> TenantDatabaseManager:
    """Get the tenant database manager.

    Raises:
        HTTPException: If services are not initialized.
    """
    if _tenant_db_manager is None:
        raise _unavailable("Tenant database manager")
    return _tenant_db_manager


def get_health_service() -> HealthCheckService:
    """Get the health check service.

    Raises:
        HTTPException: If services are not initialized.
    """
    if _health_service is None:
        raise _unavailable("Health service")
    return _health_service


def get_shutdown_service() -> GracefulShutdownService:
    """Get the graceful shutdown service.

    Raises:
        HTTPException: If services are not initialized.
    """
    if _shutdown_service is None:
        raise _unavailable("Shutdown service")
    return _shutdown_service


def get_setup_tracker() -> TenantSetupCompletionListener:
    """Get the setup completion tracker.

    Raises:
        HTTPException: If the provisioning listeners are not registered.
    """
    if _listeners is None:
        raise _unavailable("Provisioning listeners")
    return _listeners.completion


async def get_tenant_service(
    db: AsyncSession = Depends(get_master_db),
    bus: EventBus = Depends(get_event_bus),
    manager: TenantDatabaseManager = Depends(get_tenant_db_manager),
) -> TenantService:
    """Get TenantService instance."""
    return TenantService(db, bus, manager)
