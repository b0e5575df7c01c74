# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Tenant provisioning workflow.

Tenant creation starts a chain of events handled by the stage listeners:
database creation, migrations, seeding and completion tracking.
"""

from g4a_portal.domains.provisioning.context import ProvisioningContext
from g4a_portal.domains.provisioning.events import (
    TenantCreatedEvent,
    TenantDatabaseCreatedEvent,
    TenantDeletedEvent,
    TenantEvent,
    TenantMigrationsCompletedEvent,
    TenantPermanentlyDeletedEvent,
    TenantSeedersCompletedEvent,
    TenantSetupCompletedEvent,
    TenantSetupFailedEvent,
    generate_event_id,
)
from g4a_portal.domains.provisioning.listeners import (
    SetupOutcome,
    SetupState,
    TenantDatabaseListener,
    TenantMigrationListener,
    TenantSeederListener,
    TenantSetupCompletionListener,
)
from g4a_portal.domains.provisioning.services import TenantMigrationService, TenantSeederService
from g4a_portal.domains.provisioning.registry import (
    ProvisioningListeners,
    register_provisioning_listeners,
)

__all__ = [
    "ProvisioningContext",
    # Events
    "TenantEvent",
    "TenantCreatedEvent",
    "TenantDatabaseCreatedEvent",
    "TenantMigrationsCompletedEvent",
    "TenantSeedersCompletedEvent",
    "TenantSetupCompletedEvent",
    "TenantSetupFailedEvent",
    "TenantDeletedEvent",
    "TenantPermanentlyDeletedEvent",
    "generate_event_id",
    # Listeners
    "TenantDatabaseListener",
    "TenantMigrationListener",
    "TenantSeederListener",
    "TenantSetupCompletionListener",
    "SetupState",
    "SetupOutcome",
    # Services
    "TenantMigrationService",
    "TenantSeederService",
    # Wiring
    "ProvisioningListeners",
    "register_provisioning_listeners",
]
