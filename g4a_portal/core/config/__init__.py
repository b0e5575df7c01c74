# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Configuration package for the G4A School Portal.

Settings are loaded from environment variables (and an optional .env file)
through pydantic-settings.

Example:
    >>> from g4a_portal.core.config import get_settings
    >>> settings = get_settings()
    >>> settings.tenant_db.name_prefix
    'g4a_tenant_'
"""

from g4a_portal.core.config.settings import (
    APISettings,
    CORSSettings,
    MasterDatabaseSettings,
    ProvisioningSettings,
    Settings,
    ShutdownSettings,
    TenantDatabaseSettings,
    clear_settings_cache,
    get_settings,
)

__all__ = [
    # Settings
    "Settings",
    "get_settings",
    "clear_settings_cache",
    # Subsettings
    "MasterDatabaseSettings",
    "TenantDatabaseSettings",
    "ProvisioningSettings",
    "CORSSettings",
    "APISettings",
    "ShutdownSettings",
]
