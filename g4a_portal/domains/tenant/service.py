# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Tenant registry management service.

This module manages tenant records in the master database:
- Tenant creation, which starts the provisioning chain
- Lookups by id, subdomain and domain (active tenants only)
- Updates
- Soft and permanent deletion

Database creation, migrations and seeding are not done here. They run in
the provisioning listeners triggered by TenantCreatedEvent.

Example:
    >>> tenant_service = TenantService(db, event_bus, tenant_db_manager)
    >>> tenant = await tenant_service.create_tenant(name="Acme School", subdomain="acme")
"""

import logging
from dataclasses import dataclass
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from g4a_portal.domains.provisioning.context import ProvisioningContext
from g4a_portal.domains.provisioning.events import (
    TenantCreatedEvent,
    TenantDeletedEvent,
    TenantPermanentlyDeletedEvent,
)
from g4a_portal.infrastructure.database.models.tenant import Tenant
from g4a_portal.infrastructure.database.tenant_manager import TenantDatabaseManager
from g4a_portal.infrastructure.events.bus import EventBus

logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS = ("name", "subdomain", "domain", "description", "settings", "modules")


class TenantNotFoundError(Exception):
    """Raised when tenant is not found."""

    pass


class TenantAlreadyExistsError(Exception):
    """Raised when tenant name, subdomain or domain is already taken."""

    pass


@dataclass(frozen=True)
class TenantContext:
    """A resolved tenant and the database it lives in."""

    tenant: Tenant
    database_name: str


def provisioning_context(tenant: Tenant) -> ProvisioningContext:
    """Build the provisioning context of a tenant record."""
    return ProvisioningContext(
        tenant_id=str(tenant.id),
        tenant_name=tenant.name,
        database_name=tenant.database_name,
    )


class TenantService:
    """Tenant registry service.

    Attributes:
        _db: Master database session.
        _bus: Event bus receiving tenant lifecycle events.
        _manager: Tenant database manager.
    """

    def __init__(
        self,
        db: AsyncSession,
        bus: EventBus,
        manager: TenantDatabaseManager,
    ) -> None:
        """Initialize the tenant service.

        Args:
            db: Master database async session.
            bus: Event bus for lifecycle events.
            manager: Tenant database manager.
        """
        self._db = db
        self._bus = bus
        self._manager = manager

    async def create_tenant(
        self,
        name: str,
        subdomain: str,
        domain: str | None = None,
        database_name: str | None = None,
        description: str | None = None,
        settings: dict[str, Any] | None = None,
        modules: list[str] | None = None,
        is_active: bool = True,
    ) -> Tenant:
        """Create a tenant record and start provisioning.

        The record is committed first. TenantCreatedEvent is then published
        in the background, so the caller does not wait for provisioning and
        provisioning failures never reach the caller.

        Args:
            name: Unique display name.
            subdomain: Unique subdomain.
            domain: Optional unique custom domain.
            database_name: Explicit database name. Derived when omitted.
            description: Optional description.
            settings: Optional tenant settings.
            modules: Optional enabled modules.
            is_active: Initial active flag.

        Returns:
            The persisted Tenant.

        Raises:
            TenantAlreadyExistsError: If name, subdomain or domain is taken.
        """
        name = name.strip()
        subdomain = subdomain.strip().lower()
        logger.info("Creating tenant: %s", name)

        await self._ensure_unique(name=name, subdomain=subdomain, domain=domain)

        tenant_id = str(uuid4())
        tenant = Tenant(
            id=tenant_id,
            name=name,
            subdomain=subdomain,
            domain=domain,
            database_name=database_name or self._manager.generate_database_name(name, tenant_id),
            description=description,
            settings=settings or {},
            modules=modules or [],
            is_active=is_active,
        )

        self._db.add(tenant)
        try:
            await self._db.commit()
        except IntegrityError as e:
            await self._db.rollback()
            raise TenantAlreadyExistsError(f"Tenant '{name}' conflicts with an existing tenant") from e
        except Exception:
            await self._db.rollback()
            raise

        logger.info("Tenant record created: %s (%s)", tenant.name, tenant.id)

        context = provisioning_context(tenant)
        self._bus.publish_detached(
            TenantCreatedEvent.for_context(context, tenant=tenant)
        )
        logger.info("Tenant created event published: %s", tenant.name)

        return tenant

    async def get_tenant(self, tenant_id: str | UUID, include_inactive: bool = False) -> Tenant | None:
        """Get tenant by ID.

        Args:
            tenant_id: Tenant identifier.
            include_inactive: Also return soft deleted tenants.

        Returns:
            Tenant if found, None otherwise.
        """
        stmt = select(Tenant).where(Tenant.id == str(tenant_id))
        if not include_inactive:
            stmt = stmt.where(Tenant.is_active.is_(True))
        result = await self._db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_subdomain(self, subdomain: str) -> Tenant | None:
        """Get an active tenant by subdomain."""
        stmt = select(Tenant).where(
            Tenant.subdomain == subdomain.lower(),
            Tenant.is_active.is_(True),
        )
        result = await self._db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_domain(self, domain: str) -> Tenant | None:
        """Get an active tenant by custom domain."""
        stmt = select(Tenant).where(Tenant.domain == domain, Tenant.is_active.is_(True))
        result = await self._db.execute(stmt)
        return result.scalar_one_or_none()

    async def list_tenants(self) -> list[Tenant]:
        """List active tenants, newest first."""
        stmt = (
            select(Tenant)
            .where(Tenant.is_active.is_(True))
            .order_by(Tenant.created_at.desc())
        )
        result = await self._db.execute(stmt)
        return list(result.scalars().all())

    async def get_tenant_context(self, tenant_id: str | UUID) -> TenantContext:
        """Resolve an active tenant and its database.

        Raises:
            TenantNotFoundError: If tenant not found.
        """
        tenant = await self._require(tenant_id)
        return TenantContext(tenant=tenant, database_name=tenant.database_name)

    async def update_tenant(self, tenant_id: str | UUID, **changes: Any) -> Tenant:
        """Update tenant details.

        Args:
            tenant_id: Tenant identifier.
            **changes: Fields to update. None values are ignored.
                Deactivation goes through delete_tenant(), not is_active.

        Returns:
            Updated Tenant.

        Raises:
            TenantNotFoundError: If tenant not found.
            TenantAlreadyExistsError: If a new name, subdomain or domain is taken.
            ValueError: If the database name or an unknown field is changed.
        """
        tenant = await self._require(tenant_id)

        database_name = changes.pop("database_name", None)
        if database_name is not None and database_name != tenant.database_name:
            raise ValueError("database_name cannot be changed once a tenant is created")

        unknown = set(changes) - set(_UPDATABLE_FIELDS)
        if unknown:
            raise ValueError(f"Unknown tenant fields: {', '.join(sorted(unknown))}")

        changes = {key: value for key, value in changes.items() if value is not None}
        if "subdomain" in changes:
            changes["subdomain"] = changes["subdomain"].strip().lower()
        await self._ensure_unique(
            name=changes.get("name"),
            subdomain=changes.get("subdomain"),
            domain=changes.get("domain"),
            exclude_id=str(tenant.id),
        )

        for key, value in changes.items():
            setattr(tenant, key, value)

        await self._db.commit()
        await self._db.refresh(tenant)

        logger.info("Updated tenant: %s", tenant.name)
        return tenant

    async def delete_tenant(self, tenant_id: str | UUID) -> None:
        """Soft delete a tenant and publish TenantDeletedEvent.

        The tenant database is kept.

        Raises:
            TenantNotFoundError: If tenant not found.
        """
        tenant = await self._require(tenant_id)

        tenant.is_active = False
        await self._db.commit()
        logger.info("Tenant record soft deleted: %s", tenant.name)

        await self._bus.publish(TenantDeletedEvent.for_context(provisioning_context(tenant)))
        logger.info("Tenant deleted event published: %s", tenant.name)

    async def permanently_delete_tenant(self, tenant_id: str | UUID) -> None:
        """Drop the tenant database, delete the record, publish the event.

        Soft deleted tenants can be permanently deleted too. This cannot be
        undone.

        Raises:
            TenantNotFoundError: If tenant not found.
            TenantDatabaseError: If the database cannot be dropped.
        """
        tenant = await self.get_tenant(tenant_id, include_inactive=True)
        if tenant is None:
            raise TenantNotFoundError(f"Tenant not found: {tenant_id}")

        context = provisioning_context(tenant)
        logger.warning("Permanently deleting tenant: %s (%s)", tenant.name, tenant.id)

        await self._manager.drop_tenant_database(tenant.database_name)
        logger.info("Tenant database dropped: %s", tenant.database_name)

        await self._db.delete(tenant)
        await self._db.commit()
        logger.info("Tenant record permanently deleted: %s", context.tenant_name)

        await self._bus.publish(TenantPermanentlyDeletedEvent.for_context(context))

    async def _require(self, tenant_id: str | UUID) -> Tenant:
        tenant = await self.get_tenant(tenant_id)
        if tenant is None:
            raise TenantNotFoundError(f"Tenant not found: {tenant_id}")
        return tenant

    async def _ensure_unique(
        self,
        name: str | None = None,
        subdomain: str | None = None,
        domain: str | None = None,
        exclude_id: str | None = None,
    ) -> None:
        """Raise TenantAlreadyExistsError if any given value is taken."""
        conditions = []
        if name:
            conditions.append(Tenant.name == name)
        if subdomain:
            conditions.append(Tenant.subdomain == subdomain)
        if domain:
            conditions.append(Tenant.domain == domain)
        if not conditions:
            return

        stmt = select(Tenant).where(or_(*conditions))
        if exclude_id:
            stmt = stmt.where(Tenant.id != exclude_id)
        result = await self._db.execute(stmt.limit(1))
        existing = result.scalar_one_or_none()
        if existing is None:
            return

        if name and existing.name == name:
            raise TenantAlreadyExistsError(f"Tenant with name '{name}' already exists")
        if subdomain and existing.subdomain == subdomain:
            raise TenantAlreadyExistsError(f"Tenant with subdomain '{subdomain}' already exists")
        raise TenantAlreadyExistsError(f"Tenant with domain '{domain}' already exists")
