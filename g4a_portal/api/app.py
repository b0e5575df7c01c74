# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""FastAPI Application Factory.

This module provides the main application factory for the G4A School
Portal API.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from g4a_portal import __version__
from g4a_portal.api import dependencies
from g4a_portal.api.middleware import TimeoutMiddleware, register_exception_handlers
from g4a_portal.api.routes import health
from g4a_portal.api.v1 import router as v1_router
from g4a_portal.core.config import get_settings
from g4a_portal.utils.logging import setup_logging

logger = logging.getLogger(__name__)

# Uvicorn handles these itself and runs the lifespan shutdown
SERVER_MANAGED_SIGNALS = frozenset({"SIGTERM", "SIGINT"})


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Handles startup and shutdown events for the application.
    Initializes and cleans up:
    - Logging
    - Master database and central migrations
    - Event bus and provisioning listeners
    - Shutdown signal handlers

    Args:
        app: The FastAPI application instance.

    Yields:
        None during application runtime.
    """
    settings = get_settings()
    setup_logging(settings)
    logger.info(
        "Starting G4A School Portal API",
        extra={"environment": settings.environment, "debug": settings.debug},
    )

    # =========================================================================
    # Startup
    # =========================================================================

    shutdown_service = dependencies.build_services(settings)

    try:
        await dependencies.open_databases(settings)
        logger.info("Database connections initialized")
    except Exception as e:
        logger.warning("Failed to initialize database connections: %s", str(e))

    loop = asyncio.get_running_loop()
    signals = [s for s in settings.shutdown.signals_list if s not in SERVER_MANAGED_SIGNALS]
    try:
        shutdown_service.install_signal_handlers(loop, signals)
    except (NotImplementedError, RuntimeError) as e:
        logger.warning("Failed to install signal handlers: %s", str(e))

    yield

    # =========================================================================
    # Shutdown
    # =========================================================================

    try:
        shutdown_service.remove_signal_handlers(loop)
    except (NotImplementedError, RuntimeError) as e:
        logger.warning("Failed to remove signal handlers: %s", str(e))

    try:
        await dependencies.close_services()
        logger.info("Services closed")
    except Exception as e:
        logger.warning("Error during graceful shutdown: %s", str(e))

    logger.info("Shutting down G4A School Portal API")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    This factory function creates a new FastAPI instance with all
    middleware, routes, and configurations applied.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title="G4A School Portal API",
        description="Multi-tenant school management backend",
        version=__version__,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
        redirect_slashes=False,
    )

    # =========================================================================
    # Exception handlers
    # =========================================================================
    register_exception_handlers(app)

    # =========================================================================
    # Middleware (order matters - last added is first executed)
    # =========================================================================
    app.add_middleware(TimeoutMiddleware, timeout=settings.api.request_timeout)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors.origins_list,
        allow_credentials=settings.cors.allow_credentials,
        allow_methods=settings.cors.allow_methods,
        allow_headers=settings.cors.allow_headers,
    )

    # =========================================================================
    # Routes
    # =========================================================================
    app.include_router(health.router, tags=["Health"])
    app.include_router(v1_router)

    return app
