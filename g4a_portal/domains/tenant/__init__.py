# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Tenant registry domain."""

from g4a_portal.domains.tenant.service import (
    TenantAlreadyExistsError,
    TenantContext,
    TenantNotFoundError,
    TenantService,
    provisioning_context,
)

__all__ = [
    "TenantService",
    "TenantContext",
    "TenantNotFoundError",
    "TenantAlreadyExistsError",
    "provisioning_context",
]
