# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Centralized event type definitions for tenant lifecycle events.

The set of event kinds is closed. Each member's value is the wire name
carried by the event, and the bus routes on the member itself rather than
on the event class.

Adding a new event:
1. Add a member to TenantEventType
2. Register its event id prefix in EventRegistry
3. Add the event dataclass in g4a_portal.domains.provisioning.events
"""

from enum import Enum


class TenantEventType(str, Enum):
    """All tenant lifecycle event kinds."""

    TENANT_CREATED = "TenantCreatedEvent"
    DATABASE_CREATED = "TenantDatabaseCreatedEvent"
    MIGRATIONS_COMPLETED = "TenantMigrationsCompletedEvent"
    SEEDERS_COMPLETED = "TenantSeedersCompletedEvent"
    SETUP_COMPLETED = "TenantSetupCompletedEvent"
    SETUP_FAILED = "TenantSetupFailedEvent"
    TENANT_DELETED = "TenantDeletedEvent"
    TENANT_PERMANENTLY_DELETED = "TenantPermanentlyDeletedEvent"

    def __str__(self) -> str:
        return self.value


class SetupStage(str, Enum):
    """Provisioning stage reported by TenantSetupFailedEvent."""

    DATABASE_CREATION = "database_creation"
    MIGRATIONS = "migrations"
    SEEDING = "seeding"

    def __str__(self) -> str:
        return self.value


class EventRegistry:
    """Registry for event metadata."""

    # Prefix of the generated event id per event kind
    _id_prefix_map: dict[TenantEventType, str] = {
        TenantEventType.TENANT_CREATED: "tenant_created",
        TenantEventType.DATABASE_CREATED: "tenant_db_created",
        TenantEventType.MIGRATIONS_COMPLETED: "tenant_migrations_completed",
        TenantEventType.SEEDERS_COMPLETED: "tenant_seeders_completed",
        TenantEventType.SETUP_COMPLETED: "tenant_setup_completed",
        TenantEventType.SETUP_FAILED: "tenant_setup_failed",
        TenantEventType.TENANT_DELETED: "tenant_deleted",
        TenantEventType.TENANT_PERMANENTLY_DELETED: "tenant_permanently_deleted",
    }

    _terminal_events: frozenset[TenantEventType] = frozenset(
        {
            TenantEventType.SETUP_COMPLETED,
            TenantEventType.SETUP_FAILED,
        }
    )

    @classmethod
    def coerce(cls, event_type: "TenantEventType | str") -> TenantEventType:
        """Resolve a wire name or member to a TenantEventType.

        Args:
            event_type: Enum member or its wire name.

        Returns:
            The matching TenantEventType.

        Raises:
            ValueError: If the name is not a known event kind.
        """
        if isinstance(event_type, TenantEventType):
            return event_type
        try:
            return TenantEventType(event_type)
        except ValueError:
            raise ValueError(f"Unknown tenant event type: {event_type!r}") from None

    @classmethod
    def get_id_prefix(cls, event_type: TenantEventType) -> str:
        """Get the event id prefix for an event kind."""
        return cls._id_prefix_map[event_type]

    @classmethod
    def is_terminal(cls, event_type: TenantEventType) -> bool:
        """Check if the event ends a provisioning chain."""
        return event_type in cls._terminal_events
