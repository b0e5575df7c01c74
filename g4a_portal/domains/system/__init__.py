# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""System domain: health reporting and graceful shutdown."""

from g4a_portal.domains.system.health import HealthCheckService
from g4a_portal.domains.system.shutdown import GracefulShutdownService, ShutdownHandler

__all__ = [
    "HealthCheckService",
    "GracefulShutdownService",
    "ShutdownHandler",
]
