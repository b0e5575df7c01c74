# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Wiring of the provisioning listeners onto the event bus."""

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from g4a_portal.domains.provisioning.listeners import (
    TenantDatabaseListener,
    TenantMigrationListener,
    TenantSeederListener,
    TenantSetupCompletionListener,
)
from g4a_portal.domains.provisioning.services import TenantMigrationService, TenantSeederService
from g4a_portal.infrastructure.events.bus import EventBus, EventHandler
from g4a_portal.infrastructure.events.types import TenantEventType

if TYPE_CHECKING:
    from g4a_portal.core.config.settings import Settings
    from g4a_portal.infrastructure.database.tenant_manager import TenantDatabaseManager

logger = logging.getLogger(__name__)


@dataclass
class ProvisioningListeners:
    """The subscribed provisioning listeners."""

    bus: EventBus
    database: TenantDatabaseListener
    migrations: TenantMigrationListener
    seeders: TenantSeederListener
    completion: TenantSetupCompletionListener
    subscriptions: list[tuple[TenantEventType, EventHandler]] = field(default_factory=list)

    def unregister(self) -> None:
        """Detach every listener from the bus."""
        for event_type, handler in self.subscriptions:
            self.bus.unsubscribe(event_type, handler)
        self.subscriptions.clear()


def register_provisioning_listeners(
    bus: EventBus,
    manager: "TenantDatabaseManager",
    settings: "Settings",
    migration_service: TenantMigrationService | None = None,
    seeder_service: TenantSeederService | None = None,
) -> ProvisioningListeners:
    """Build the provisioning listeners and subscribe them to the bus.

    The completion tracker subscribes to TenantCreatedEvent before the
    database listener, so the start time is recorded before stage work
    begins.

    Args:
        bus: Event bus to subscribe to.
        manager: Tenant database manager.
        settings: Application settings.
        migration_service: Optional migration service override.
        seeder_service: Optional seeder service override.

    Returns:
        ProvisioningListeners bundle.
    """
    completion = TenantSetupCompletionListener(
        bus, history_size=settings.provisioning.tracker_history_size
    )
    listeners = ProvisioningListeners(
        bus=bus,
        database=TenantDatabaseListener(bus, manager),
        migrations=TenantMigrationListener(
            bus, migration_service or TenantMigrationService(manager)
        ),
        seeders=TenantSeederListener(bus, seeder_service or TenantSeederService(manager, settings)),
        completion=completion,
    )

    listeners.subscriptions.extend(
        [
            (TenantEventType.TENANT_CREATED, completion.handle_tenant_created),
            (TenantEventType.TENANT_CREATED, listeners.database.handle_tenant_created),
            (TenantEventType.DATABASE_CREATED, listeners.migrations.handle_database_created),
            (TenantEventType.MIGRATIONS_COMPLETED, listeners.seeders.handle_migrations_completed),
            (TenantEventType.SEEDERS_COMPLETED, completion.handle_seeders_completed),
            (TenantEventType.SETUP_FAILED, completion.handle_setup_failed),
        ]
    )
    for event_type, handler in listeners.subscriptions:
        bus.subscribe(event_type, handler)

    logger.info("Registered %d provisioning handlers", len(listeners.subscriptions))
    return listeners
