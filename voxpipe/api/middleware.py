"""API middleware: CORS, request logging, and error handling.

Starlette runs middleware last-added-first.  ``main.py`` adds
ErrorHandlingMiddleware before RequestLoggingMiddleware, so the logger
wraps the error handler and records the final status code.
"""

from __future__ import annotations

import time

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from voxpipe.api.schemas import ErrorResponse
from voxpipe.utils.errors import (
    ExtractionError,
    IntegrationNotConfiguredError,
    VoxpipeError,
)
from voxpipe.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

# Checked in order; first isinstance match wins.
_STATUS_BY_ERROR: tuple[tuple[type[VoxpipeError], int], ...] = (
    (ExtractionError, 422),
    (IntegrationNotConfiguredError, 400),
)


def configure_cors(app: FastAPI, *, allowed_origins: list[str] | None = None) -> None:
    """Add CORS middleware; all origins unless *allowed_origins* is given."""
    origins = allowed_origins or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every HTTP request with method, path, status code, and duration."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        start = time.perf_counter()
        response: Response | None = None

        try:
            response = await call_next(request)
            return response
        finally:
            duration_ms = round((time.perf_counter() - start) * 1000, 2)
            _logger.info(
                "http_request",
                method=request.method,
                path=str(request.url.path),
                status=response.status_code if response else 500,
                duration_ms=duration_ms,
            )


def status_for_error(exc: VoxpipeError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 500


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Convert ``VoxpipeError`` subclasses into JSON :class:`ErrorResponse` bodies.

    Details are logged server-side; the client sees only the error class
    name and message.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        try:
            return await call_next(request)
        except VoxpipeError as exc:
            status_code = status_for_error(exc)
            _logger.error(
                "application_error",
                error_type=type(exc).__name__,
                message=exc.message,
                provider=exc.provider_name,
                path=str(request.url.path),
                status=status_code,
            )
            body = ErrorResponse(error=type(exc).__name__, detail=exc.message)
            return JSONResponse(status_code=status_code, content=body.model_dump())
