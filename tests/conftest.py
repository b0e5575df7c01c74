# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

This module provides fixtures used across all test types:
- Unit tests
- Integration tests (require PostgreSQL)
"""

from collections.abc import Generator
from typing import Any

import pytest

from g4a_portal.core.config import Settings, clear_settings_cache
from g4a_portal.domains.provisioning import ProvisioningContext
from g4a_portal.infrastructure.events import EventBus, reset_event_bus


# =============================================================================
# Environment Fixtures
# =============================================================================


@pytest.fixture(scope="session")
def test_environment() -> dict[str, str]:
    """Provide test environment variables.

    Returns:
        Dictionary of environment variables for testing.
    """
    return {
        "ENVIRONMENT": "test",
        "DEBUG": "true",
        "LOG_LEVEL": "DEBUG",
        "MASTER_DB_USER": "g4a",
        "MASTER_DB_PASSWORD": "g4a_password",
        "MASTER_DB_HOST": "localhost",
        "MASTER_DB_PORT": "5432",
        "MASTER_DB_DATABASE": "g4a_master_test",
        "PROVISIONING_DEFAULT_ADMIN_EMAIL": "admin@test.example.com",
    }


@pytest.fixture
def test_settings(test_environment: dict[str, str], monkeypatch: pytest.MonkeyPatch) -> Generator[Settings, None, None]:
    """Settings built from the test environment."""
    for key, value in test_environment.items():
        monkeypatch.setenv(key, value)
    clear_settings_cache()
    yield Settings()
    clear_settings_cache()


# =============================================================================
# Event Fixtures
# =============================================================================


@pytest.fixture
def event_bus() -> Generator[EventBus, None, None]:
    """Fresh event bus, isolated from the process singleton."""
    bus = EventBus()
    yield bus
    bus.clear()
    reset_event_bus()


@pytest.fixture
def provisioning_context() -> ProvisioningContext:
    """Context of the tenant used throughout the provisioning tests."""
    return ProvisioningContext(
        tenant_id="t1",
        tenant_name="Acme School",
        database_name="g4a_tenant_acme_school_t1",
    )


@pytest.fixture
def sample_tenant_data() -> dict[str, Any]:
    """Provide sample tenant data for testing.

    Returns:
        Dictionary with sample tenant fields.
    """
    return {
        "name": "Acme School",
        "subdomain": "acme",
        "domain": None,
        "description": "Test tenant",
        "settings": {"timezone": "UTC"},
        "modules": ["academics"],
    }


# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test (requires PostgreSQL)"
    )
