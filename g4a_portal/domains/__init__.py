# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Domain services layer for the G4A School Portal.

Domains:
    provisioning: Tenant provisioning workflow (event listeners and stage services).
    tenant: Tenant registry management.
    system: Health reporting and graceful shutdown.
"""
