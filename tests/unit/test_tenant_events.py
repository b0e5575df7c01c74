# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for tenant lifecycle events and event kinds."""

import dataclasses
import re
from datetime import datetime, timezone

import pytest

from g4a_portal.domains.provisioning import (
    ProvisioningContext,
    TenantCreatedEvent,
    TenantDatabaseCreatedEvent,
    TenantDeletedEvent,
    TenantMigrationsCompletedEvent,
    TenantPermanentlyDeletedEvent,
    TenantSeedersCompletedEvent,
    TenantSetupCompletedEvent,
    TenantSetupFailedEvent,
    generate_event_id,
)
from g4a_portal.infrastructure.events import EventRegistry, SetupStage, TenantEventType

EVENT_ID_PATTERN = r"^{prefix}_\d{{13}}_[a-z0-9]{{9}}$"


@pytest.mark.unit
class TestEventKinds:
    """Tests for TenantEventType and EventRegistry."""

    def test_wire_names(self) -> None:
        assert {kind.value for kind in TenantEventType} == {
            "TenantCreatedEvent",
            "TenantDatabaseCreatedEvent",
            "TenantMigrationsCompletedEvent",
            "TenantSeedersCompletedEvent",
            "TenantSetupCompletedEvent",
            "TenantSetupFailedEvent",
            "TenantDeletedEvent",
            "TenantPermanentlyDeletedEvent",
        }

    def test_every_kind_has_an_id_prefix(self) -> None:
        for kind in TenantEventType:
            assert EventRegistry.get_id_prefix(kind)

    def test_coerce(self) -> None:
        assert EventRegistry.coerce("TenantSetupFailedEvent") is TenantEventType.SETUP_FAILED
        assert EventRegistry.coerce(TenantEventType.SETUP_FAILED) is TenantEventType.SETUP_FAILED

        with pytest.raises(ValueError, match="Unknown tenant event type"):
            EventRegistry.coerce("NotAnEvent")

    def test_terminal_kinds(self) -> None:
        assert EventRegistry.is_terminal(TenantEventType.SETUP_COMPLETED)
        assert EventRegistry.is_terminal(TenantEventType.SETUP_FAILED)
        assert not EventRegistry.is_terminal(TenantEventType.SEEDERS_COMPLETED)

    def test_setup_stage_values(self) -> None:
        assert [stage.value for stage in SetupStage] == [
            "database_creation",
            "migrations",
            "seeding",
        ]


@pytest.mark.unit
class TestEventIds:
    """Tests for generated event ids."""

    @pytest.mark.parametrize(
        ("event_type", "prefix"),
        [
            (TenantEventType.TENANT_CREATED, "tenant_created"),
            (TenantEventType.DATABASE_CREATED, "tenant_db_created"),
            (TenantEventType.MIGRATIONS_COMPLETED, "tenant_migrations_completed"),
            (TenantEventType.SEEDERS_COMPLETED, "tenant_seeders_completed"),
            (TenantEventType.SETUP_COMPLETED, "tenant_setup_completed"),
            (TenantEventType.SETUP_FAILED, "tenant_setup_failed"),
        ],
    )
    def test_id_format(self, event_type: TenantEventType, prefix: str) -> None:
        event_id = generate_event_id(event_type)

        assert re.match(EVENT_ID_PATTERN.format(prefix=prefix), event_id)

    def test_ids_are_distinct(self) -> None:
        ids = {generate_event_id(TenantEventType.TENANT_CREATED) for _ in range(200)}

        assert len(ids) == 200

    def test_event_gets_id_when_omitted(self, provisioning_context: ProvisioningContext) -> None:
        event = TenantDatabaseCreatedEvent.for_context(provisioning_context)

        assert event.event_id.startswith("tenant_db_created_")

    def test_explicit_id_is_kept(self) -> None:
        event = TenantDeletedEvent(
            tenant_id="t1",
            tenant_name="Acme School",
            database_name="db",
            event_id="fixed",
        )

        assert event.event_id == "fixed"


@pytest.mark.unit
class TestEventEnvelope:
    """Tests for the common event envelope."""

    def test_for_context_copies_identity(self, provisioning_context: ProvisioningContext) -> None:
        event = TenantMigrationsCompletedEvent.for_context(provisioning_context, migrations_count=2)

        assert event.tenant_id == "t1"
        assert event.tenant_name == "Acme School"
        assert event.database_name == "g4a_tenant_acme_school_t1"
        assert event.migrations_count == 2
        assert event.context == provisioning_context

    def test_timestamp_is_utc(self, provisioning_context: ProvisioningContext) -> None:
        event = TenantSeedersCompletedEvent.for_context(provisioning_context)

        assert isinstance(event.timestamp, datetime)
        assert event.timestamp.tzinfo == timezone.utc

    def test_events_are_immutable(self, provisioning_context: ProvisioningContext) -> None:
        event = TenantSetupCompletedEvent.for_context(provisioning_context, setup_duration=10)

        with pytest.raises(dataclasses.FrozenInstanceError):
            event.setup_duration = 20  # type: ignore[misc]

    def test_event_type_discriminants(self, provisioning_context: ProvisioningContext) -> None:
        assert TenantCreatedEvent.event_type is TenantEventType.TENANT_CREATED
        assert TenantPermanentlyDeletedEvent.event_type is TenantEventType.TENANT_PERMANENTLY_DELETED
        assert (
            TenantSetupFailedEvent.for_context(
                provisioning_context, error="x", stage=SetupStage.SEEDING
            ).event_type
            is TenantEventType.SETUP_FAILED
        )

    def test_payload_defaults(self, provisioning_context: ProvisioningContext) -> None:
        assert TenantMigrationsCompletedEvent.for_context(provisioning_context).migrations_count == 0
        assert TenantSeedersCompletedEvent.for_context(provisioning_context).seeders_count == 0
        assert TenantSetupCompletedEvent.for_context(provisioning_context).setup_duration == 0

    def test_setup_failed_requires_error_and_stage(
        self, provisioning_context: ProvisioningContext
    ) -> None:
        with pytest.raises(TypeError):
            TenantSetupFailedEvent.for_context(provisioning_context)


@pytest.mark.unit
class TestSerialization:
    """Tests for to_dict()."""

    def test_setup_failed_to_dict(self, provisioning_context: ProvisioningContext) -> None:
        event = TenantSetupFailedEvent.for_context(
            provisioning_context, error="disk full", stage=SetupStage.MIGRATIONS
        )

        data = event.to_dict()

        assert data["event_type"] == "TenantSetupFailedEvent"
        assert data["tenant_id"] == "t1"
        assert data["error"] == "disk full"
        assert data["stage"] == "migrations"
        assert data["event_id"] == event.event_id
        assert data["timestamp"] == event.timestamp.isoformat()

    def test_created_event_omits_tenant_record(
        self, provisioning_context: ProvisioningContext
    ) -> None:
        record = object()
        event = TenantCreatedEvent.for_context(provisioning_context, tenant=record)

        assert event.tenant is record
        assert "tenant" not in event.to_dict()
