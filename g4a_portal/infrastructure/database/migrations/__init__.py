# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database migrations package.

Migrations are Alembic-style modules applied programmatically by
``runner``:
- central: Master database tables (tenant registry)
- tenant: Per-tenant baseline tables (permissions, roles, schools, users)
"""
