# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Health check endpoints.

These endpoints always answer 200. Load balancers read the ``status``
field, so an unhealthy instance keeps reporting why it is unhealthy
while it drains.
"""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from g4a_portal.api.dependencies import get_health_service
from g4a_portal.domains.system import HealthCheckService
from g4a_portal.utils.datetime import utc_now

logger = logging.getLogger(__name__)

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(description="healthy or unhealthy")
    timestamp: datetime = Field(description="Current server timestamp")
    message: str = Field(description="Human readable status")


class ReadinessResponse(BaseModel):
    """Readiness check response model."""
    status: str = Field(description="ready or not ready")
    timestamp: datetime = Field(description="Current server timestamp")
    message: str = Field(description="Human readable status")


class DatabasesHealth(BaseModel):
    """Database connectivity."""
    master: bool = Field(description="Whether the master database answers")
    tenants: int = Field(description="Open tenant database pools")


class DetailedHealthResponse(BaseModel):
    """Detailed health response model."""
    healthy: bool = Field(description="Overall health")
    ready: bool = Field(description="Whether traffic should be routed here")
    shutting_down: bool = Field(description="Whether shutdown has started")
    databases: DatabasesHealth
    timestamp: datetime = Field(description="Current server timestamp")


@router.get("/health", response_model=HealthResponse)
async def health_check(
    health: HealthCheckService = Depends(get_health_service),
) -> HealthResponse:
    """Basic health check endpoint.

    Returns:
        HealthResponse with healthy or unhealthy status.
    """
    healthy = await health.is_healthy()
    return HealthResponse(
        status="healthy" if healthy else "unhealthy",
        timestamp=utc_now(),
        message="Application is running normally" if healthy else "Application is not healthy",
    )


@router.get("/health/ready", response_model=ReadinessResponse)
async def readiness_check(
    health: HealthCheckService = Depends(get_health_service),
) -> ReadinessResponse:
    """Readiness check endpoint.

    Returns:
        ReadinessResponse with ready or not ready status.
    """
    ready = await health.is_ready()
    return ReadinessResponse(
        status="ready" if ready else "not ready",
        timestamp=utc_now(),
        message=(
            "Application is ready to accept requests"
            if ready
            else "Application is not ready to accept requests"
        ),
    )


@router.get("/health/detailed", response_model=DetailedHealthResponse)
async def detailed_health_check(
    health: HealthCheckService = Depends(get_health_service),
) -> DetailedHealthResponse:
    """Detailed health including database connectivity."""
    status = await health.get_health_status()
    return DetailedHealthResponse(**status, timestamp=utc_now())
