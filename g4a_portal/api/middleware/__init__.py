# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""API middleware components.

This package provides request processing for the API:
- TimeoutMiddleware: Answers slow requests with 408.
- register_exception_handlers: Uniform JSON error envelope.

Exports:
    TimeoutMiddleware: Request timeout middleware.
    register_exception_handlers: Installs the error envelope handlers.
    error_response: Builds an error envelope response.
"""

from g4a_portal.api.middleware.errors import error_response, register_exception_handlers
from g4a_portal.api.middleware.timeout import TimeoutMiddleware

__all__ = [
    "TimeoutMiddleware",
    "error_response",
    "register_exception_handlers",
]
