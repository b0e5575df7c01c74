# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Declarative bases for master and tenant database models.

Master and tenant tables live in different databases, so each side has
its own metadata.
"""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import DateTime, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from g4a_portal.utils.datetime import utc_now


def new_uuid() -> str:
    """Generate a string UUID primary key."""
    return str(uuid4())


class Base(DeclarativeBase):
    """Base class for master database models."""


class TenantBase(DeclarativeBase):
    """Base class for tenant database models."""


class UUIDPrimaryKeyMixin:
    """String UUID primary key generated client side."""

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)


class TimestampMixin:
    """created_at / updated_at columns maintained by SQLAlchemy."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now
    )
