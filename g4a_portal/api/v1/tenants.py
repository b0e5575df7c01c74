# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Tenant management endpoints.

This module provides endpoints for the tenant lifecycle:
- POST / - Create tenant and start provisioning
- GET / - List active tenants
- GET /{id} - Get tenant
- PUT /{id} - Update tenant
- DELETE /{id} - Soft delete tenant
- DELETE /{id}/permanent - Drop tenant database and record
- GET /{id}/provisioning - Provisioning state
"""

import logging
from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field

from g4a_portal.api.dependencies import get_setup_tracker, get_tenant_service
from g4a_portal.domains.provisioning import SetupState, TenantSetupCompletionListener
from g4a_portal.domains.tenant import (
    TenantAlreadyExistsError,
    TenantNotFoundError,
    TenantService,
)
from g4a_portal.infrastructure.database.tenant_manager import TenantDatabaseError

logger = logging.getLogger(__name__)

router = APIRouter()


class CreateTenantRequest(BaseModel):
    """Request to create a new tenant."""

    name: str = Field(..., min_length=1, max_length=255, description="Display name")
    subdomain: str = Field(
        ...,
        min_length=2,
        max_length=63,
        pattern=r"^[a-zA-Z0-9][a-zA-Z0-9-]*$",
        description="Unique subdomain",
    )
    domain: str | None = Field(None, max_length=255, description="Custom domain")
    database_name: str | None = Field(
        None,
        max_length=63,
        pattern=r"^[a-z_][a-z0-9_]*$",
        description="Database name, derived from the name when omitted",
    )
    description: str | None = Field(None, description="Description")
    settings: dict[str, Any] | None = Field(None, description="Tenant settings")
    modules: list[str] | None = Field(None, description="Enabled modules")


class UpdateTenantRequest(BaseModel):
    """Request to update tenant details."""

    name: str | None = Field(None, min_length=1, max_length=255, description="Display name")
    subdomain: str | None = Field(
        None,
        min_length=2,
        max_length=63,
        pattern=r"^[a-zA-Z0-9][a-zA-Z0-9-]*$",
        description="Unique subdomain",
    )
    domain: str | None = Field(None, max_length=255, description="Custom domain")
    database_name: str | None = Field(None, description="Must match the current database name")
    description: str | None = Field(None, description="Description")
    settings: dict[str, Any] | None = Field(None, description="Tenant settings")
    modules: list[str] | None = Field(None, description="Enabled modules")


class TenantResponse(BaseModel):
    """Tenant details response."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(..., description="Tenant ID")
    name: str = Field(..., description="Display name")
    subdomain: str = Field(..., description="Subdomain")
    domain: str | None = Field(None, description="Custom domain")
    database_name: str = Field(..., description="Tenant database name")
    description: str | None = Field(None, description="Description")
    is_active: bool = Field(..., description="Active flag")
    settings: dict[str, Any] | None = Field(None, description="Tenant settings")
    modules: list[str] | None = Field(None, description="Enabled modules")
    created_at: datetime | None = Field(None, description="Creation timestamp")
    updated_at: datetime | None = Field(None, description="Last update timestamp")


class TenantListResponse(BaseModel):
    """Tenant list response."""

    items: list[TenantResponse] = Field(..., description="Tenant list")
    total: int = Field(..., description="Total count")


class ProvisioningStatusResponse(BaseModel):
    """Provisioning state of a tenant."""

    tenant_id: str = Field(..., description="Tenant ID")
    state: SetupState = Field(..., description="Setup state")
    duration_ms: int | None = Field(None, description="Setup duration when completed")
    stage: str | None = Field(None, description="Failed stage")
    error: str | None = Field(None, description="Failure message")
    finished_at: datetime | None = Field(None, description="When setup finished")


def _not_found(e: TenantNotFoundError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.post(
    "",
    response_model=TenantResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create tenant",
    description="Create a tenant record. Database provisioning runs in the background.",
)
async def create_tenant(
    data: CreateTenantRequest,
    tenant_service: TenantService = Depends(get_tenant_service),
) -> TenantResponse:
    """Create a new tenant.

    The response is returned once the record is committed. Database
    creation, migrations and seeding follow in the background; poll
    GET /{id}/provisioning for their outcome.

    Raises:
        HTTPException: 409 if name, subdomain or domain is taken.
    """
    try:
        tenant = await tenant_service.create_tenant(**data.model_dump())
    except TenantAlreadyExistsError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    return TenantResponse.model_validate(tenant)


@router.get("", response_model=TenantListResponse, summary="List tenants")
async def list_tenants(
    tenant_service: TenantService = Depends(get_tenant_service),
) -> TenantListResponse:
    """List active tenants, newest first."""
    tenants = await tenant_service.list_tenants()
    return TenantListResponse(
        items=[TenantResponse.model_validate(t) for t in tenants],
        total=len(tenants),
    )


@router.get("/{tenant_id}", response_model=TenantResponse, summary="Get tenant")
async def get_tenant(
    tenant_id: str,
    tenant_service: TenantService = Depends(get_tenant_service),
) -> TenantResponse:
    """Get an active tenant by ID."""
    tenant = await tenant_service.get_tenant(tenant_id)
    if tenant is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Tenant not found: {tenant_id}",
        )
    return TenantResponse.model_validate(tenant)


@router.put("/{tenant_id}", response_model=TenantResponse, summary="Update tenant")
async def update_tenant(
    tenant_id: str,
    data: UpdateTenantRequest,
    tenant_service: TenantService = Depends(get_tenant_service),
) -> TenantResponse:
    """Update tenant details.

    Raises:
        HTTPException: 404 if not found, 409 on a uniqueness conflict,
            400 when the database name would change.
    """
    try:
        tenant = await tenant_service.update_tenant(
            tenant_id, **data.model_dump(exclude_unset=True)
        )
    except TenantNotFoundError as e:
        raise _not_found(e)
    except TenantAlreadyExistsError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return TenantResponse.model_validate(tenant)


@router.delete(
    "/{tenant_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete tenant",
    description="Deactivate a tenant. Its database is kept.",
)
async def delete_tenant(
    tenant_id: str,
    tenant_service: TenantService = Depends(get_tenant_service),
) -> None:
    """Soft delete a tenant."""
    try:
        await tenant_service.delete_tenant(tenant_id)
    except TenantNotFoundError as e:
        raise _not_found(e)


@router.delete(
    "/{tenant_id}/permanent",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Permanently delete tenant",
    description="Drop the tenant database and delete the tenant record.",
)
async def permanently_delete_tenant(
    tenant_id: str,
    tenant_service: TenantService = Depends(get_tenant_service),
) -> None:
    """Permanently delete a tenant and its database."""
    try:
        await tenant_service.permanently_delete_tenant(tenant_id)
    except TenantNotFoundError as e:
        raise _not_found(e)
    except TenantDatabaseError as e:
        logger.error("Permanent delete failed for tenant %s: %s", tenant_id, e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to drop tenant database: {e.database_name}",
        )


@router.get(
    "/{tenant_id}/provisioning",
    response_model=ProvisioningStatusResponse,
    summary="Provisioning status",
)
async def get_provisioning_status(
    tenant_id: str,
    tracker: TenantSetupCompletionListener = Depends(get_setup_tracker),
) -> ProvisioningStatusResponse:
    """Get the setup state of a tenant as seen by this process.

    The state is process-local and not persisted. After a restart every
    tenant reports not_started until it is provisioned again.
    """
    outcome = tracker.get_outcome(tenant_id)
    state = tracker.get_state(tenant_id)
    if outcome is None or state is SetupState.IN_PROGRESS:
        return ProvisioningStatusResponse(tenant_id=tenant_id, state=state)

    return ProvisioningStatusResponse(
        tenant_id=tenant_id,
        state=state,
        duration_ms=outcome.duration_ms,
        stage=outcome.stage.value if outcome.stage else None,
        error=outcome.error,
        finished_at=outcome.finished_at,
    )
