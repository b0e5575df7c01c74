# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for tenant seed data."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from g4a_portal.infrastructure.database.models.auth import Role
from g4a_portal.infrastructure.database.seeds import tenant as tenant_seeds
from g4a_portal.infrastructure.database.seeds.tenant import (
    DEFAULT_SCHOOL_CODE,
    PERMISSIONS,
    ROLES,
    SUPER_ADMIN_ROLE,
    pwd_context,
    role_permission_names,
    seed_admin_user,
    seed_default_school,
    seed_permissions,
    seed_tenant_database,
)

ALL_PERMISSIONS = [p["name"] for p in PERMISSIONS]


@pytest.fixture
def mock_session():
    """Create mock tenant session."""
    session = AsyncMock()
    session.add = MagicMock()
    session.flush = AsyncMock()
    session.execute = AsyncMock()
    return session


def create_mock_scalars_result(values):
    """Create a mock result with scalars().all()."""
    result = MagicMock()
    result.scalars.return_value.all.return_value = values
    return result


def create_mock_result(value):
    """Create a mock result with scalar_one_or_none."""
    result = MagicMock()
    result.scalar_one_or_none.return_value = value
    return result


@pytest.mark.unit
class TestSeedData:
    """Tests for the static seed definitions."""

    def test_permission_names_unique(self) -> None:
        assert len(ALL_PERMISSIONS) == len(set(ALL_PERMISSIONS)) == 31

    def test_crud_permissions(self) -> None:
        for resource in ("users", "schools", "roles", "students"):
            for action in ("create", "read", "update", "delete"):
                assert f"{resource}.{action}" in ALL_PERMISSIONS

    def test_roles(self) -> None:
        assert [r["name"] for r in ROLES] == [SUPER_ADMIN_ROLE, "School Admin", "Teacher", "Student"]


@pytest.mark.unit
class TestRolePermissions:
    """Tests for role_permission_names."""

    def test_super_admin_gets_everything(self) -> None:
        assert role_permission_names(SUPER_ADMIN_ROLE, ALL_PERMISSIONS) == ALL_PERMISSIONS

    def test_school_admin(self) -> None:
        names = role_permission_names("School Admin", ALL_PERMISSIONS)

        assert "users.create" in names
        assert not any(n.startswith(("system.", "roles.")) for n in names)

    def test_teacher(self) -> None:
        names = role_permission_names("Teacher", ALL_PERMISSIONS)

        assert {n.split(".")[0] for n in names} == {"students", "academics", "communications"}

    def test_student(self) -> None:
        assert role_permission_names("Student", ALL_PERMISSIONS) == ["students.read", "academics.read"]

    def test_unknown_role(self) -> None:
        with pytest.raises(ValueError):
            role_permission_names("Janitor", ALL_PERMISSIONS)


@pytest.mark.unit
class TestSeeders:
    """Tests for the individual seeders."""

    @pytest.mark.asyncio
    async def test_seed_permissions_skips_existing(self, mock_session) -> None:
        mock_session.execute.return_value = create_mock_scalars_result(["users.create"])

        created = await seed_permissions(mock_session, "t1")

        assert created == len(PERMISSIONS) - 1
        assert mock_session.add.call_count == len(PERMISSIONS) - 1
        mock_session.flush.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_seed_default_school_once(self, mock_session) -> None:
        mock_session.execute.return_value = create_mock_result(None)

        assert await seed_default_school(mock_session, "t1") == 1
        school = mock_session.add.call_args.args[0]
        assert school.code == DEFAULT_SCHOOL_CODE
        assert school.tenant_id == "t1"

        mock_session.execute.return_value = create_mock_result("existing-id")
        assert await seed_default_school(mock_session, "t1") == 0

    @pytest.mark.asyncio
    async def test_seed_admin_user_hashes_password(self, mock_session) -> None:
        super_admin = Role(name=SUPER_ADMIN_ROLE, tenant_id="t1")
        mock_session.execute.side_effect = [
            create_mock_result(super_admin),
            create_mock_result(None),
        ]

        with patch.object(pwd_context, "hash", return_value="hashed") as hash_password:
            created = await seed_admin_user(
                mock_session, "t1", admin_email="root@acme.test", admin_password="pw"
            )

        assert created == 1
        hash_password.assert_called_once_with("pw")
        user = mock_session.add.call_args.args[0]
        assert user.email == "root@acme.test"
        assert user.password_hash == "hashed"
        assert user.tenant_id == "t1"

    @pytest.mark.asyncio
    async def test_seed_admin_user_without_role(self, mock_session) -> None:
        mock_session.execute.return_value = create_mock_result(None)

        assert await seed_admin_user(mock_session, "t1") == 0
        mock_session.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_seed_tenant_database_runs_seeders_in_order(self, mock_session) -> None:
        calls = []

        def make_seeder(name, count):
            async def seeder(session, tenant_id, **kwargs):
                calls.append((name, tenant_id, kwargs["admin_email"]))
                return count
            return seeder

        seeders = [("first", make_seeder("first", 3)), ("second", make_seeder("second", 0))]

        with patch.object(tenant_seeds, "TENANT_SEEDERS", seeders):
            created = await seed_tenant_database(mock_session, "t1", admin_email="a@b.test")

        assert created == {"first": 3, "second": 0}
        assert calls == [("first", "t1", "a@b.test"), ("second", "t1", "a@b.test")]
