# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Provisioning context shared by every stage after tenant creation."""

from dataclasses import dataclass


@dataclass(frozen=True)
class ProvisioningContext:
    """The fields a provisioning stage needs to work on a tenant.

    Attributes:
        tenant_id: Tenant identifier.
        tenant_name: Tenant display name.
        database_name: Physical database name of the tenant.
        version: Context schema version.
    """

    tenant_id: str
    tenant_name: str
    database_name: str
    version: int = 1
