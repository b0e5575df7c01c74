# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""SQLAlchemy models.

- Base / Tenant: master database (tenant registry)
- TenantBase / Permission / Role / School / User: tenant databases
"""

from g4a_portal.infrastructure.database.models.auth import (
    Permission,
    Role,
    School,
    User,
    role_permissions,
    user_roles,
)
from g4a_portal.infrastructure.database.models.base import Base, TenantBase
from g4a_portal.infrastructure.database.models.tenant import Tenant

__all__ = [
    "Base",
    "TenantBase",
    "Tenant",
    "Permission",
    "Role",
    "School",
    "User",
    "role_permissions",
    "user_roles",
]
