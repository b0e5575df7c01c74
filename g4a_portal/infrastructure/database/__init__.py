# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database infrastructure for PostgreSQL connections.

This package provides SQLAlchemy async database connections for:
- Master database: Tenant registry
- Tenant databases: Per-tenant isolated data on the same server

Example:
    from g4a_portal.infrastructure.database import (
        get_master_session,
        TenantDatabaseManager,
    )

    async with get_master_session() as session:
        result = await session.execute(select(Tenant))

    manager = TenantDatabaseManager(settings)
    async with manager.get_session("g4a_tenant_acme_1a2b3c4d") as session:
        result = await session.execute(select(User))
"""

from g4a_portal.infrastructure.database.connection import (
    DatabaseError,
    MasterDatabase,
    MasterDatabaseNotInitializedError,
    check_master_database_connection,
    close_master_database,
    get_master_database,
    get_master_session,
    init_master_database,
)
from g4a_portal.infrastructure.database.tenant_manager import (
    TenantDatabaseError,
    TenantDatabaseManager,
    generate_database_name,
)

__all__ = [
    # Master database
    "DatabaseError",
    "MasterDatabase",
    "MasterDatabaseNotInitializedError",
    "check_master_database_connection",
    "close_master_database",
    "get_master_database",
    "get_master_session",
    "init_master_database",
    # Tenant databases
    "TenantDatabaseError",
    "TenantDatabaseManager",
    "generate_database_name",
]
