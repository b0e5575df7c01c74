# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Tenant database seed data.

This module provides the baseline data every tenant database starts with:
- Permissions
- Roles (Super Admin, School Admin, Teacher, Student) with permission subsets
- Default school
- Default administrator account

Every seeder is create-if-missing, so seeding an already seeded database
changes nothing.
"""

import logging
from typing import Any, Awaitable, Callable

from passlib.context import CryptContext
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from g4a_portal.infrastructure.database.models.auth import Permission, Role, School, User

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

SUPER_ADMIN_ROLE = "Super Admin"
DEFAULT_SCHOOL_CODE = "MAIN"

_CRUD_RESOURCES = {
    "users": "users",
    "schools": "schools",
    "roles": "roles",
    "students": "students",
    "academics": "academic records",
    "financials": "financial records",
    "communications": "communications",
}

PERMISSIONS: list[dict[str, str]] = [
    {
        "name": f"{resource}.{action}",
        "description": f"{action.capitalize()} {label}",
        "resource": resource,
        "action": action,
    }
    for resource, label in _CRUD_RESOURCES.items()
    for action in ("create", "read", "update", "delete")
] + [
    {"name": "system.admin", "description": "System administration", "resource": "system", "action": "admin"},
    {"name": "system.settings", "description": "System settings management", "resource": "system", "action": "settings"},
    {"name": "system.reports", "description": "Generate system reports", "resource": "system", "action": "reports"},
]

ROLES: list[dict[str, str]] = [
    {"name": SUPER_ADMIN_ROLE, "description": "Full system access with all permissions"},
    {"name": "School Admin", "description": "School administration with limited system access"},
    {"name": "Teacher", "description": "Teacher with access to student and academic management"},
    {"name": "Student", "description": "Student with limited read access"},
]


def role_permission_names(role_name: str, permission_names: list[str]) -> list[str]:
    """Select the permissions granted to a seeded role.

    Args:
        role_name: One of the seeded role names.
        permission_names: All available permission names.

    Returns:
        Permission names for the role, in input order.

    Raises:
        ValueError: If the role is not a seeded role.
    """
    if role_name == SUPER_ADMIN_ROLE:
        return list(permission_names)
    if role_name == "School Admin":
        return [n for n in permission_names if not n.startswith(("system.", "roles."))]
    if role_name == "Teacher":
        return [n for n in permission_names if n.startswith(("students.", "academics.", "communications."))]
    if role_name == "Student":
        return [n for n in permission_names if n in ("students.read", "academics.read")]
    raise ValueError(f"Unknown seeded role: {role_name}")


async def seed_permissions(session: AsyncSession, tenant_id: str, **_: Any) -> int:
    """Seed default permissions.

    Args:
        session: Tenant database session.
        tenant_id: Tenant identifier.

    Returns:
        Number of permissions created.
    """
    result = await session.execute(select(Permission.name))
    existing = set(result.scalars().all())

    created = 0
    for data in PERMISSIONS:
        if data["name"] in existing:
            continue
        session.add(Permission(**data))
        created += 1

    await session.flush()
    logger.info("Seeded %d permissions", created)
    return created


async def seed_roles(session: AsyncSession, tenant_id: str, **_: Any) -> int:
    """Seed default roles with their permission subsets.

    Permissions are assigned only to roles created by this call.

    Args:
        session: Tenant database session.
        tenant_id: Tenant identifier.

    Returns:
        Number of roles created.
    """
    result = await session.execute(select(Permission))
    permissions = {p.name: p for p in result.scalars().all()}

    result = await session.execute(select(Role.name).where(Role.tenant_id == tenant_id))
    existing = set(result.scalars().all())

    created = 0
    for data in ROLES:
        if data["name"] in existing:
            continue
        names = role_permission_names(data["name"], list(permissions))
        role = Role(
            name=data["name"],
            description=data["description"],
            tenant_id=tenant_id,
            permissions=[permissions[n] for n in names],
        )
        session.add(role)
        created += 1
        logger.info("Created role %s with %d permissions", data["name"], len(names))

    await session.flush()
    return created


async def seed_default_school(session: AsyncSession, tenant_id: str, **_: Any) -> int:
    """Seed the default school.

    Args:
        session: Tenant database session.
        tenant_id: Tenant identifier.

    Returns:
        1 if the school was created, 0 if it already existed.
    """
    result = await session.execute(
        select(School.id).where(School.code == DEFAULT_SCHOOL_CODE, School.tenant_id == tenant_id)
    )
    if result.scalar_one_or_none() is not None:
        return 0

    session.add(School(name="Main School", code=DEFAULT_SCHOOL_CODE, tenant_id=tenant_id))
    await session.flush()
    logger.info("Created default school")
    return 1


async def seed_admin_user(
    session: AsyncSession,
    tenant_id: str,
    admin_email: str = "admin@example.com",
    admin_password: str = "admin123",
    **_: Any,
) -> int:
    """Seed the default administrator linked to the Super Admin role.

    Args:
        session: Tenant database session.
        tenant_id: Tenant identifier.
        admin_email: Administrator email.
        admin_password: Administrator password, stored as a bcrypt hash.

    Returns:
        1 if the user was created, 0 otherwise.
    """
    result = await session.execute(
        select(Role).where(Role.name == SUPER_ADMIN_ROLE, Role.tenant_id == tenant_id)
    )
    super_admin = result.scalar_one_or_none()
    if super_admin is None:
        logger.warning("%s role not found, skipping admin user creation", SUPER_ADMIN_ROLE)
        return 0

    result = await session.execute(
        select(User.id).where(User.email == admin_email, User.tenant_id == tenant_id)
    )
    if result.scalar_one_or_none() is not None:
        return 0

    session.add(
        User(
            email=admin_email,
            password_hash=pwd_context.hash(admin_password),
            first_name="System",
            last_name="Administrator",
            user_type="admin",
            status="active",
            tenant_id=tenant_id,
            roles=[super_admin],
        )
    )
    await session.flush()
    logger.info("Created default admin user: %s", admin_email)
    return 1


Seeder = Callable[..., Awaitable[int]]

# Seeders in execution order
TENANT_SEEDERS: list[tuple[str, Seeder]] = [
    ("permissions", seed_permissions),
    ("roles", seed_roles),
    ("default_school", seed_default_school),
    ("admin_user", seed_admin_user),
]


async def seed_tenant_database(
    session: AsyncSession,
    tenant_id: str,
    admin_email: str = "admin@example.com",
    admin_password: str = "admin123",
) -> dict[str, int]:
    """Seed a tenant database with its baseline data.

    The caller owns the transaction.

    Args:
        session: Tenant database session.
        tenant_id: Tenant identifier.
        admin_email: Default administrator email.
        admin_password: Default administrator password.

    Returns:
        Rows created per seeder, keyed by seeder name.
    """
    logger.info("Seeding tenant database for tenant %s", tenant_id)

    created: dict[str, int] = {}
    for name, seeder in TENANT_SEEDERS:
        created[name] = await seeder(
            session,
            tenant_id,
            admin_email=admin_email,
            admin_password=admin_password,
        )

    logger.info("Tenant database seeding complete: %s", created)
    return created
