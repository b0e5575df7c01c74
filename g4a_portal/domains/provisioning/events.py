# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Tenant lifecycle events.

Every event is a frozen dataclass carrying the common envelope
(event_id, timestamp, tenant_id, tenant_name) and an ``event_type``
class attribute that the event bus routes on.

Event ids look like ``tenant_created_1736150400000_k3j9x0a1b``: a kind
prefix, the epoch milliseconds and nine random base-36 characters. They
are unique enough for log correlation, not cryptographically.

Example:
    >>> context = ProvisioningContext("t1", "Acme School", "g4a_tenant_acme_school_t1")
    >>> event = TenantDatabaseCreatedEvent.for_context(context)
    >>> event.event_type
    <TenantEventType.DATABASE_CREATED: 'TenantDatabaseCreatedEvent'>
"""

import random
import string
from dataclasses import dataclass, field, fields
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Self

from g4a_portal.domains.provisioning.context import ProvisioningContext
from g4a_portal.infrastructure.events.types import EventRegistry, SetupStage, TenantEventType
from g4a_portal.utils.datetime import epoch_millis, utc_now

_ID_ALPHABET = string.ascii_lowercase + string.digits
_ID_RANDOM_LENGTH = 9


def generate_event_id(event_type: TenantEventType) -> str:
    """Build a time-seeded random event id for an event kind."""
    suffix = "".join(random.choices(_ID_ALPHABET, k=_ID_RANDOM_LENGTH))
    return f"{EventRegistry.get_id_prefix(event_type)}_{epoch_millis()}_{suffix}"


@dataclass(frozen=True, kw_only=True)
class TenantEvent:
    """Common envelope of all tenant lifecycle events.

    Attributes:
        tenant_id: Tenant identifier.
        tenant_name: Tenant display name.
        database_name: Physical database name of the tenant.
        event_id: Generated when not supplied.
        timestamp: UTC creation time.
    """

    event_type: ClassVar[TenantEventType]

    tenant_id: str
    tenant_name: str
    database_name: str
    event_id: str = ""
    timestamp: datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        if not self.event_id:
            object.__setattr__(self, "event_id", generate_event_id(self.event_type))

    @classmethod
    def for_context(cls, context: ProvisioningContext, **payload: Any) -> Self:
        """Build an event for a provisioning context.

        Args:
            context: The tenant being provisioned.
            **payload: Event specific fields.
        """
        return cls(
            tenant_id=context.tenant_id,
            tenant_name=context.tenant_name,
            database_name=context.database_name,
            **payload,
        )

    @property
    def context(self) -> ProvisioningContext:
        """The provisioning context this event refers to."""
        return ProvisioningContext(
            tenant_id=self.tenant_id,
            tenant_name=self.tenant_name,
            database_name=self.database_name,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON friendly dictionary."""
        data: dict[str, Any] = {"event_type": self.event_type.value}
        for f in fields(self):
            if not f.metadata.get("serialize", True):
                continue
            value = getattr(self, f.name)
            if isinstance(value, datetime):
                value = value.isoformat()
            elif isinstance(value, Enum):
                value = value.value
            data[f.name] = value
        return data


@dataclass(frozen=True, kw_only=True)
class TenantCreatedEvent(TenantEvent):
    """A tenant record was persisted; starts the provisioning chain.

    Attributes:
        tenant: The persisted tenant record. Not part of the serialized form.
    """

    event_type: ClassVar[TenantEventType] = TenantEventType.TENANT_CREATED

    tenant: Any = field(default=None, repr=False, compare=False, metadata={"serialize": False})


@dataclass(frozen=True, kw_only=True)
class TenantDatabaseCreatedEvent(TenantEvent):
    """The tenant database exists."""

    event_type: ClassVar[TenantEventType] = TenantEventType.DATABASE_CREATED


@dataclass(frozen=True, kw_only=True)
class TenantMigrationsCompletedEvent(TenantEvent):
    """Tenant migrations ran.

    Attributes:
        migrations_count: Number of migrations applied.
    """

    event_type: ClassVar[TenantEventType] = TenantEventType.MIGRATIONS_COMPLETED

    migrations_count: int = 0


@dataclass(frozen=True, kw_only=True)
class TenantSeedersCompletedEvent(TenantEvent):
    """Tenant seeders ran.

    Attributes:
        seeders_count: Number of seeders run.
    """

    event_type: ClassVar[TenantEventType] = TenantEventType.SEEDERS_COMPLETED

    seeders_count: int = 0


@dataclass(frozen=True, kw_only=True)
class TenantSetupCompletedEvent(TenantEvent):
    """Provisioning finished.

    Attributes:
        setup_duration: Milliseconds from tenant creation to completion.
    """

    event_type: ClassVar[TenantEventType] = TenantEventType.SETUP_COMPLETED

    setup_duration: int = 0


@dataclass(frozen=True, kw_only=True)
class TenantSetupFailedEvent(TenantEvent):
    """A provisioning stage failed; the chain stops for this tenant.

    Attributes:
        error: Error message of the failure.
        stage: The stage that failed.
    """

    event_type: ClassVar[TenantEventType] = TenantEventType.SETUP_FAILED

    error: str
    stage: SetupStage


@dataclass(frozen=True, kw_only=True)
class TenantDeletedEvent(TenantEvent):
    """The tenant was deactivated (soft delete)."""

    event_type: ClassVar[TenantEventType] = TenantEventType.TENANT_DELETED


@dataclass(frozen=True, kw_only=True)
class TenantPermanentlyDeletedEvent(TenantEvent):
    """The tenant record and its database were removed."""

    event_type: ClassVar[TenantEventType] = TenantEventType.TENANT_PERMANENTLY_DELETED
