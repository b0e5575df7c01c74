# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Exception handlers producing a uniform JSON error envelope.

Every error response has the shape::

    {
        "success": false,
        "error": {"code": "NOT_FOUND", "message": "..."},
        "timestamp": "2025-01-01T00:00:00+00:00",
        "path": "/api/v1/tenants/..."
    }
"""

import logging
from http import HTTPStatus
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from g4a_portal.utils.datetime import format_iso, utc_now

logger = logging.getLogger(__name__)


def error_code(status_code: int) -> str:
    """Derive an error code from an HTTP status, e.g. 404 -> NOT_FOUND."""
    try:
        phrase = HTTPStatus(status_code).phrase
    except ValueError:
        return "ERROR"
    return phrase.upper().replace(" ", "_").replace("-", "_")


def error_response(
    request: Request,
    status_code: int,
    message: str,
    details: Any = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Build an error envelope response.

    Args:
        request: Request that failed.
        status_code: HTTP status code.
        message: Human readable message.
        details: Optional extra error details.
        headers: Optional response headers.

    Returns:
        JSONResponse with the error envelope.
    """
    error: dict[str, Any] = {"code": error_code(status_code), "message": message}
    if details is not None:
        error["details"] = details

    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "error": error,
            "timestamp": format_iso(utc_now()),
            "path": request.url.path,
        },
        headers=headers,
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Wrap HTTPException in the envelope, keeping its status code."""
    return error_response(
        request,
        exc.status_code,
        str(exc.detail),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report request validation errors with 422."""
    return error_response(
        request,
        422,
        "Request validation failed",
        details=[
            {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
            for err in exc.errors()
        ],
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Report any other error with 500 without leaking its details."""
    logger.error(
        "Unhandled error on %s %s: %s",
        request.method,
        request.url.path,
        exc,
        exc_info=exc,
    )
    return error_response(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Internal server error",
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the error envelope handlers on an application."""
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
