# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""API version 1 routes."""

from fastapi import APIRouter

from g4a_portal.api.v1 import tenants

router = APIRouter(prefix="/api/v1")

router.include_router(tenants.router, prefix="/tenants", tags=["Tenants"])

__all__ = ["router"]
