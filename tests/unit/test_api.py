# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the HTTP API.

The application lifespan is not run. Services are replaced through
dependency overrides.
"""

import asyncio
from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient

from g4a_portal.api import create_app
from g4a_portal.api.dependencies import get_health_service, get_setup_tracker, get_tenant_service
from g4a_portal.api.middleware import TimeoutMiddleware, register_exception_handlers
from g4a_portal.domains.provisioning import SetupOutcome, SetupState, TenantSetupCompletionListener
from g4a_portal.domains.system import HealthCheckService
from g4a_portal.domains.tenant import TenantAlreadyExistsError, TenantNotFoundError, TenantService
from g4a_portal.infrastructure.database.tenant_manager import TenantDatabaseError
from g4a_portal.infrastructure.events.types import SetupStage

TENANT_ID = "5f0c2d8e-1111-4222-8333-944455556666"


def make_tenant(**overrides):
    """Create a tenant-like object."""
    data = {
        "id": TENANT_ID,
        "name": "Acme School",
        "subdomain": "acme",
        "domain": None,
        "database_name": "g4a_tenant_acme_school_5f0c2d8e",
        "description": "Test tenant",
        "is_active": True,
        "settings": {},
        "modules": [],
        "created_at": datetime(2025, 1, 1, tzinfo=timezone.utc),
        "updated_at": datetime(2025, 1, 1, tzinfo=timezone.utc),
    }
    data.update(overrides)
    return SimpleNamespace(**data)


@pytest.fixture
def app(test_settings) -> FastAPI:
    """Application without its lifespan running."""
    return create_app()


@pytest.fixture
def tenant_service():
    """Mock tenant service."""
    return AsyncMock(spec=TenantService)


@pytest.fixture
def health_service():
    """Mock health service."""
    return AsyncMock(spec=HealthCheckService)


@pytest.fixture
def client(app, tenant_service, health_service) -> TestClient:
    """Test client with mocked services."""
    app.dependency_overrides[get_tenant_service] = lambda: tenant_service
    app.dependency_overrides[get_health_service] = lambda: health_service
    return TestClient(app)


@pytest.mark.unit
class TestHealthEndpoints:
    """Tests for the health endpoints."""

    def test_healthy(self, client, health_service) -> None:
        health_service.is_healthy.return_value = True

        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["message"] == "Application is running normally"
        assert "timestamp" in body

    def test_unhealthy_still_answers_200(self, client, health_service) -> None:
        health_service.is_healthy.return_value = False

        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "unhealthy"
        assert response.json()["message"] == "Application is not healthy"

    def test_ready(self, client, health_service) -> None:
        health_service.is_ready.return_value = True

        response = client.get("/health/ready")

        assert response.json()["status"] == "ready"
        assert response.json()["message"] == "Application is ready to accept requests"

    def test_not_ready(self, client, health_service) -> None:
        health_service.is_ready.return_value = False

        response = client.get("/health/ready")

        assert response.status_code == 200
        assert response.json()["status"] == "not ready"

    def test_detailed(self, client, health_service) -> None:
        health_service.get_health_status.return_value = {
            "healthy": True,
            "ready": False,
            "shutting_down": True,
            "databases": {"master": True, "tenants": 3},
        }

        body = client.get("/health/detailed").json()

        assert body["healthy"] is True
        assert body["ready"] is False
        assert body["shutting_down"] is True
        assert body["databases"] == {"master": True, "tenants": 3}

    def test_services_not_initialized(self, app) -> None:
        response = TestClient(app).get("/health")

        assert response.status_code == 503
        body = response.json()
        assert body["success"] is False
        assert body["error"]["code"] == "SERVICE_UNAVAILABLE"
        assert body["error"]["message"] == "Health service not initialized"
        assert body["path"] == "/health"


@pytest.mark.unit
class TestTenantEndpoints:
    """Tests for the tenant endpoints."""

    def test_create(self, client, tenant_service, sample_tenant_data) -> None:
        tenant_service.create_tenant.return_value = make_tenant()

        response = client.post("/api/v1/tenants", json=sample_tenant_data)

        assert response.status_code == 201
        assert response.json()["id"] == TENANT_ID
        assert response.json()["database_name"] == "g4a_tenant_acme_school_5f0c2d8e"
        kwargs = tenant_service.create_tenant.call_args.kwargs
        assert kwargs["name"] == "Acme School"
        assert kwargs["subdomain"] == "acme"
        assert kwargs["database_name"] is None

    def test_create_conflict(self, client, tenant_service, sample_tenant_data) -> None:
        tenant_service.create_tenant.side_effect = TenantAlreadyExistsError(
            "Tenant with subdomain 'acme' already exists"
        )

        response = client.post("/api/v1/tenants", json=sample_tenant_data)

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "CONFLICT"
        assert "acme" in response.json()["error"]["message"]

    def test_create_invalid_subdomain(self, client, tenant_service) -> None:
        response = client.post("/api/v1/tenants", json={"name": "Acme", "subdomain": "-acme"})

        assert response.status_code == 422
        body = response.json()
        assert body["success"] is False
        assert any("subdomain" in err["loc"] for err in body["error"]["details"])
        tenant_service.create_tenant.assert_not_called()

    def test_list(self, client, tenant_service) -> None:
        tenant_service.list_tenants.return_value = [
            make_tenant(),
            make_tenant(id="other", name="Other", subdomain="other", database_name="g4a_tenant_other"),
        ]

        body = client.get("/api/v1/tenants").json()

        assert body["total"] == 2
        assert [t["subdomain"] for t in body["items"]] == ["acme", "other"]

    def test_get(self, client, tenant_service) -> None:
        tenant_service.get_tenant.return_value = make_tenant()

        response = client.get(f"/api/v1/tenants/{TENANT_ID}")

        assert response.status_code == 200
        tenant_service.get_tenant.assert_awaited_once_with(TENANT_ID)

    def test_get_not_found(self, client, tenant_service) -> None:
        tenant_service.get_tenant.return_value = None

        response = client.get("/api/v1/tenants/missing")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"
        assert response.json()["path"] == "/api/v1/tenants/missing"

    def test_update_passes_only_set_fields(self, client, tenant_service) -> None:
        tenant_service.update_tenant.return_value = make_tenant(name="Acme Academy")

        response = client.put(f"/api/v1/tenants/{TENANT_ID}", json={"name": "Acme Academy"})

        assert response.status_code == 200
        assert response.json()["name"] == "Acme Academy"
        tenant_service.update_tenant.assert_awaited_once_with(TENANT_ID, name="Acme Academy")

    def test_update_ignores_is_active(self, client, tenant_service) -> None:
        tenant_service.update_tenant.return_value = make_tenant()

        response = client.put(f"/api/v1/tenants/{TENANT_ID}", json={"is_active": False})

        assert response.status_code == 200
        assert response.json()["is_active"] is True
        tenant_service.update_tenant.assert_awaited_once_with(TENANT_ID)

    @pytest.mark.parametrize(
        ("error", "status_code"),
        [
            (TenantNotFoundError("Tenant not found"), 404),
            (TenantAlreadyExistsError("taken"), 409),
            (ValueError("database_name cannot be changed once a tenant is created"), 400),
        ],
    )
    def test_update_errors(self, client, tenant_service, error, status_code) -> None:
        tenant_service.update_tenant.side_effect = error

        response = client.put(f"/api/v1/tenants/{TENANT_ID}", json={"database_name": "other"})

        assert response.status_code == status_code
        assert response.json()["error"]["message"] == str(error)

    def test_delete(self, client, tenant_service) -> None:
        response = client.delete(f"/api/v1/tenants/{TENANT_ID}")

        assert response.status_code == 204
        tenant_service.delete_tenant.assert_awaited_once_with(TENANT_ID)

    def test_delete_not_found(self, client, tenant_service) -> None:
        tenant_service.delete_tenant.side_effect = TenantNotFoundError("Tenant not found: x")

        assert client.delete("/api/v1/tenants/x").status_code == 404

    def test_permanent_delete(self, client, tenant_service) -> None:
        response = client.delete(f"/api/v1/tenants/{TENANT_ID}/permanent")

        assert response.status_code == 204
        tenant_service.permanently_delete_tenant.assert_awaited_once_with(TENANT_ID)

    def test_permanent_delete_database_error(self, client, tenant_service) -> None:
        tenant_service.permanently_delete_tenant.side_effect = TenantDatabaseError(
            "g4a_tenant_acme", "permission denied"
        )

        response = client.delete(f"/api/v1/tenants/{TENANT_ID}/permanent")

        assert response.status_code == 500
        assert response.json()["error"]["message"] == (
            "Failed to drop tenant database: g4a_tenant_acme"
        )


@pytest.mark.unit
class TestProvisioningStatusEndpoint:
    """Tests for GET /api/v1/tenants/{id}/provisioning."""

    @pytest.fixture
    def tracker(self, app):
        tracker = MagicMock(spec=TenantSetupCompletionListener)
        app.dependency_overrides[get_setup_tracker] = lambda: tracker
        return tracker

    def test_failed(self, client, tracker) -> None:
        tracker.get_state.return_value = SetupState.FAILED
        tracker.get_outcome.return_value = SetupOutcome(
            TENANT_ID, SetupState.FAILED, stage=SetupStage.MIGRATIONS, error="disk full"
        )

        body = client.get(f"/api/v1/tenants/{TENANT_ID}/provisioning").json()

        assert body["state"] == "failed"
        assert body["stage"] == "migrations"
        assert body["error"] == "disk full"
        assert body["finished_at"] is not None

    def test_completed(self, client, tracker) -> None:
        tracker.get_state.return_value = SetupState.COMPLETED
        tracker.get_outcome.return_value = SetupOutcome(
            TENANT_ID, SetupState.COMPLETED, duration_ms=1200
        )

        body = client.get(f"/api/v1/tenants/{TENANT_ID}/provisioning").json()

        assert body["state"] == "completed"
        assert body["duration_ms"] == 1200
        assert body["stage"] is None

    def test_in_progress_hides_previous_outcome(self, client, tracker) -> None:
        tracker.get_state.return_value = SetupState.IN_PROGRESS
        tracker.get_outcome.return_value = SetupOutcome(
            TENANT_ID, SetupState.FAILED, stage=SetupStage.SEEDING, error="old"
        )

        body = client.get(f"/api/v1/tenants/{TENANT_ID}/provisioning").json()

        assert body["state"] == "in_progress"
        assert body["error"] is None

    def test_not_started(self, client, tracker) -> None:
        tracker.get_state.return_value = SetupState.NOT_STARTED
        tracker.get_outcome.return_value = None

        body = client.get("/api/v1/tenants/unknown/provisioning").json()

        assert body == {
            "tenant_id": "unknown",
            "state": "not_started",
            "duration_ms": None,
            "stage": None,
            "error": None,
            "finished_at": None,
        }

    def test_tracker_not_initialized(self, client) -> None:
        response = client.get(f"/api/v1/tenants/{TENANT_ID}/provisioning")

        assert response.status_code == 503


@pytest.fixture
def middleware_app() -> FastAPI:
    """Small application with the error handlers and a short timeout."""
    app = FastAPI()
    register_exception_handlers(app)
    app.add_middleware(TimeoutMiddleware, timeout=0.05)

    @app.get("/fast")
    async def fast():
        return {"ok": True}

    @app.get("/slow")
    async def slow():
        await asyncio.sleep(0.5)
        return {"ok": True}

    @app.get("/boom")
    async def boom():
        raise RuntimeError("secret connection string")

    @app.get("/teapot")
    async def teapot():
        raise HTTPException(status_code=418, detail="short and stout")

    return app


@pytest.mark.unit
class TestMiddleware:
    """Tests for the timeout middleware and the error envelope."""

    def test_fast_request(self, middleware_app) -> None:
        response = TestClient(middleware_app).get("/fast")

        assert response.status_code == 200
        assert response.json() == {"ok": True}

    def test_timeout(self, middleware_app) -> None:
        response = TestClient(middleware_app).get("/slow")

        assert response.status_code == 408
        body = response.json()
        assert body["success"] is False
        assert body["error"] == {"code": "REQUEST_TIMEOUT", "message": "Request timeout"}
        assert body["path"] == "/slow"

    def test_unhandled_error_hides_details(self, middleware_app) -> None:
        response = TestClient(middleware_app, raise_server_exceptions=False).get("/boom")

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == {"code": "INTERNAL_SERVER_ERROR", "message": "Internal server error"}
        assert "secret" not in response.text

    def test_http_exception_keeps_status(self, middleware_app) -> None:
        response = TestClient(middleware_app).get("/teapot")

        assert response.status_code == 418
        assert response.json()["error"]["message"] == "short and stout"

    def test_unknown_route(self, middleware_app) -> None:
        response = TestClient(middleware_app).get("/missing")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"
