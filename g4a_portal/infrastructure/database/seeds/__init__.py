# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database seed package.

- Tenant seeds: Permissions, roles, default school, default administrator
"""

from g4a_portal.infrastructure.database.seeds.tenant import (
    TENANT_SEEDERS,
    role_permission_names,
    seed_tenant_database,
)

__all__ = ["TENANT_SEEDERS", "role_permission_names", "seed_tenant_database"]
