# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Request timeout middleware.

A request that takes longer than the configured number of seconds is
answered with 408 and the standard error envelope. Work started detached
from the request, such as tenant provisioning, is not affected.
"""

import asyncio
import logging
from typing import Callable

from fastapi import Request, Response, status
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from g4a_portal.api.middleware.errors import error_response
from g4a_portal.utils.logging import bind_context, clear_context

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0


class TimeoutMiddleware(BaseHTTPMiddleware):
    """Middleware enforcing a per-request timeout.

    Attributes:
        _timeout: Seconds before a request is answered with 408.

    Example:
        >>> app.add_middleware(TimeoutMiddleware, timeout=30.0)
    """

    def __init__(self, app: ASGIApp, timeout: float = DEFAULT_TIMEOUT_SECONDS) -> None:
        """Initialize the timeout middleware.

        Args:
            app: ASGI application.
            timeout: Seconds before a request times out.
        """
        super().__init__(app)
        self._timeout = timeout

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Response],
    ) -> Response:
        """Process the request within the timeout.

        Args:
            request: Incoming HTTP request.
            call_next: Next middleware/handler.

        Returns:
            HTTP response, or a 408 envelope on timeout.
        """
        bind_context(method=request.method, path=request.url.path)
        try:
            return await asyncio.wait_for(call_next(request), timeout=self._timeout)
        except asyncio.TimeoutError:
            logger.warning(
                "Request timed out after %.1fs: %s %s",
                self._timeout,
                request.method,
                request.url.path,
            )
            return error_response(request, status.HTTP_408_REQUEST_TIMEOUT, "Request timeout")
        finally:
            clear_context()
