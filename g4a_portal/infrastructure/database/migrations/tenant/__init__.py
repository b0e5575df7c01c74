# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Tenant database migrations.

Contains migrations for the per-tenant baseline:
- Access control (permissions, roles, role_permissions)
- School structure and accounts (schools, users, user_roles)
"""
