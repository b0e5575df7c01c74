# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Provisioning stage listeners and the setup completion tracker.

The chain for one tenant:

    TenantCreatedEvent
        -> TenantDatabaseListener        -> TenantDatabaseCreatedEvent
        -> TenantMigrationListener       -> TenantMigrationsCompletedEvent
        -> TenantSeederListener          -> TenantSeedersCompletedEvent
        -> TenantSetupCompletionListener -> TenantSetupCompletedEvent

A stage whose own work fails publishes TenantSetupFailedEvent with its
stage label and re-raises. The next event is published outside that
error handling, so a failure further down the chain reaches the caller
unchanged and is reported once, by the stage that actually failed.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Callable

from g4a_portal.domains.provisioning.context import ProvisioningContext
from g4a_portal.domains.provisioning.events import (
    TenantCreatedEvent,
    TenantDatabaseCreatedEvent,
    TenantMigrationsCompletedEvent,
    TenantSeedersCompletedEvent,
    TenantSetupCompletedEvent,
    TenantSetupFailedEvent,
)
from g4a_portal.infrastructure.events.bus import EventBus
from g4a_portal.infrastructure.events.types import SetupStage
from g4a_portal.utils.datetime import elapsed_millis, monotonic_millis, utc_now

if TYPE_CHECKING:
    from g4a_portal.domains.provisioning.services import (
        TenantMigrationService,
        TenantSeederService,
    )
    from g4a_portal.infrastructure.database.tenant_manager import TenantDatabaseManager

logger = logging.getLogger(__name__)


async def publish_setup_failed(
    bus: EventBus,
    context: ProvisioningContext,
    stage: SetupStage,
    error: BaseException,
) -> None:
    """Publish TenantSetupFailedEvent for a stage failure.

    A failure while publishing is logged so the caller can still raise the
    original stage error.
    """
    event = TenantSetupFailedEvent.for_context(context, error=str(error), stage=stage)
    try:
        await bus.publish(event)
    except Exception as publish_error:
        logger.error(
            "Failed to publish setup failure for tenant %s (stage %s): %s",
            context.tenant_id,
            stage,
            publish_error,
        )


class TenantDatabaseListener:
    """Creates the tenant database when a tenant is created."""

    stage = SetupStage.DATABASE_CREATION

    def __init__(self, bus: EventBus, manager: "TenantDatabaseManager") -> None:
        self._bus = bus
        self._manager = manager

    async def handle_tenant_created(self, event: TenantCreatedEvent) -> None:
        """Create the database and publish TenantDatabaseCreatedEvent.

        Raises:
            Exception: Whatever database creation raised, after the
                failure has been published.
        """
        context = event.context
        logger.info(
            "Creating database %s for tenant %s", context.database_name, context.tenant_name
        )

        try:
            await self._manager.create_tenant_database(context.database_name)
        except Exception as e:
            logger.error("Database creation failed for tenant %s: %s", context.tenant_name, e)
            await publish_setup_failed(self._bus, context, self.stage, e)
            raise

        await self._bus.publish(TenantDatabaseCreatedEvent.for_context(context))


class TenantMigrationListener:
    """Runs tenant migrations once the database exists."""

    stage = SetupStage.MIGRATIONS

    def __init__(self, bus: EventBus, migrations: "TenantMigrationService") -> None:
        self._bus = bus
        self._migrations = migrations

    async def handle_database_created(self, event: TenantDatabaseCreatedEvent) -> None:
        """Apply pending migrations and publish TenantMigrationsCompletedEvent."""
        context = event.context

        try:
            applied: list[str] = []
            if await self._migrations.needs_migration(context):
                applied = await self._migrations.run_migrations(context)
            else:
                logger.info("Tenant database %s is up to date", context.database_name)
        except Exception as e:
            logger.error("Migrations failed for tenant %s: %s", context.tenant_name, e)
            await publish_setup_failed(self._bus, context, self.stage, e)
            raise

        await self._bus.publish(
            TenantMigrationsCompletedEvent.for_context(context, migrations_count=len(applied))
        )


class TenantSeederListener:
    """Seeds baseline data once migrations completed."""

    stage = SetupStage.SEEDING

    def __init__(self, bus: EventBus, seeders: "TenantSeederService") -> None:
        self._bus = bus
        self._seeders = seeders

    async def handle_migrations_completed(self, event: TenantMigrationsCompletedEvent) -> None:
        """Run the seeders and publish TenantSeedersCompletedEvent."""
        context = event.context

        try:
            created = await self._seeders.run_seeders(context)
        except Exception as e:
            logger.error("Seeding failed for tenant %s: %s", context.tenant_name, e)
            await publish_setup_failed(self._bus, context, self.stage, e)
            raise

        await self._bus.publish(
            TenantSeedersCompletedEvent.for_context(context, seeders_count=len(created))
        )


class SetupState(str, Enum):
    """Provisioning state of a tenant as seen by the completion tracker."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class SetupOutcome:
    """Terminal result of a tenant setup."""

    tenant_id: str
    state: SetupState
    duration_ms: int | None = None
    stage: SetupStage | None = None
    error: str | None = None
    finished_at: datetime = field(default_factory=utc_now)


class TenantSetupCompletionListener:
    """Tracks setup start times and announces completion.

    Start times live in a process-local map keyed by tenant id. An entry is
    added on TenantCreatedEvent and removed on completion or failure. A chain
    that never terminates keeps its entry until the process restarts.

    Recently finished setups are remembered, up to ``history_size`` tenants,
    so their terminal state can be queried.
    """

    def __init__(
        self,
        bus: EventBus,
        history_size: int = 1000,
        clock: Callable[[], float] = monotonic_millis,
    ) -> None:
        """Initialize the tracker.

        Args:
            bus: Event bus used to publish completion and failure events.
            history_size: Number of finished setups remembered.
            clock: Monotonic millisecond clock.
        """
        self._bus = bus
        self._history_size = history_size
        self._clock = clock
        self._start_times: dict[str, float] = {}
        self._outcomes: OrderedDict[str, SetupOutcome] = OrderedDict()

    async def handle_tenant_created(self, event: TenantCreatedEvent) -> None:
        """Record the setup start time."""
        if event.tenant_id in self._start_times:
            logger.warning(
                "Setup already in progress for tenant %s, keeping the first start time",
                event.tenant_id,
            )
            return

        self._start_times[event.tenant_id] = self._clock()
        self._outcomes.pop(event.tenant_id, None)
        logger.info("Setup started for tenant %s (%s)", event.tenant_name, event.tenant_id)

    async def handle_seeders_completed(self, event: TenantSeedersCompletedEvent) -> None:
        """Publish TenantSetupCompletedEvent with the elapsed duration.

        A failure while publishing is reported as a seeding failure and is
        not re-raised.
        """
        context = event.context
        start = self._start_times.pop(context.tenant_id, None)
        if start is None:
            logger.warning("No setup start time recorded for tenant %s", context.tenant_id)
        duration = elapsed_millis(start, self._clock())

        self._record(SetupOutcome(context.tenant_id, SetupState.COMPLETED, duration_ms=duration))
        try:
            await self._bus.publish(
                TenantSetupCompletedEvent.for_context(context, setup_duration=duration)
            )
        except Exception as e:
            logger.error("Setup completion failed for tenant %s: %s", context.tenant_id, e)
            self._record(
                SetupOutcome(
                    context.tenant_id, SetupState.FAILED, stage=SetupStage.SEEDING, error=str(e)
                )
            )
            await publish_setup_failed(self._bus, context, SetupStage.SEEDING, e)
            return

        logger.info("Setup completed for tenant %s in %d ms", context.tenant_name, duration)

    async def handle_setup_failed(self, event: TenantSetupFailedEvent) -> None:
        """Drop the start time of a failed setup."""
        self._start_times.pop(event.tenant_id, None)
        self._record(
            SetupOutcome(event.tenant_id, SetupState.FAILED, stage=event.stage, error=event.error)
        )
        logger.warning(
            "Setup failed for tenant %s at stage %s: %s",
            event.tenant_id,
            event.stage,
            event.error,
        )

    def _record(self, outcome: SetupOutcome) -> None:
        self._outcomes.pop(outcome.tenant_id, None)
        self._outcomes[outcome.tenant_id] = outcome
        while len(self._outcomes) > self._history_size:
            self._outcomes.popitem(last=False)

    def get_state(self, tenant_id: str) -> SetupState:
        """Get the setup state of a tenant."""
        if tenant_id in self._start_times:
            return SetupState.IN_PROGRESS
        outcome = self._outcomes.get(tenant_id)
        return outcome.state if outcome else SetupState.NOT_STARTED

    def get_outcome(self, tenant_id: str) -> SetupOutcome | None:
        """Get the terminal outcome of a recently finished setup."""
        return self._outcomes.get(tenant_id)

    def has_start_time(self, tenant_id: str) -> bool:
        """Check whether a start time is recorded for a tenant."""
        return tenant_id in self._start_times

    def in_progress(self) -> list[str]:
        """Tenant ids with a setup in progress."""
        return list(self._start_times)
