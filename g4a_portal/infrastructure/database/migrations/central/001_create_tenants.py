# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Create the tenant registry.

Revision ID: 001_create_tenants
Revises: None
Create Date: 2025-01-06
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001_create_tenants"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = ("central",)
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the tenants table."""
    op.create_table(
        "tenants",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(255), unique=True, nullable=False),
        sa.Column("subdomain", sa.String(100), unique=True, nullable=False),
        sa.Column("domain", sa.String(255), unique=True, nullable=True),
        sa.Column("database_name", sa.String(100), unique=True, nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("settings", sa.JSON, nullable=True),
        sa.Column("modules", sa.JSON, nullable=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    )
    op.create_index("ix_tenants_is_active", "tenants", ["is_active"])


def downgrade() -> None:
    """Drop the tenants table."""
    op.drop_index("ix_tenants_is_active", table_name="tenants")
    op.drop_table("tenants")
