# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Tenant registry model (master database)."""

from typing import Any

from sqlalchemy import JSON, Boolean, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from g4a_portal.infrastructure.database.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class Tenant(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A school tenant and the name of its isolated database.

    Attributes:
        name: Unique display name.
        subdomain: Unique subdomain used for request routing.
        domain: Optional custom domain.
        database_name: Physical database name, derived once at creation.
        is_active: False once soft deleted.
        settings: Free-form tenant settings.
        modules: Enabled feature modules.
        description: Optional description.
    """

    __tablename__ = "tenants"

    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    subdomain: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    domain: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True)
    database_name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    settings: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    modules: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<Tenant {self.name} ({self.id}) db={self.database_name}>"
