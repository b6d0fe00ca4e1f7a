"""API middleware: CORS, request logging, and error handling.

Starlette middleware is a stack: the last one added runs first.  In
``main.create_app``::

    app.add_middleware(ErrorHandlingMiddleware)    # inner
    app.add_middleware(RequestLoggingMiddleware)   # outermost

so the request log always sees the final status code, including errors the
inner middleware turned into JSON bodies.
"""

from __future__ import annotations

import time
import uuid

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from src.api.schemas import ErrorResponse
from src.utils.errors import (
    ConfigurationError,
    DocumentNotFoundError,
    InvalidRequestError,
    SupportDeskError,
)
from src.utils.logging import bind_request_context, clear_request_context, get_logger

_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------


def configure_cors(app: FastAPI, *, allowed_origins: list[str] | None = None) -> None:
    """Add CORS middleware.  Defaults to ``["*"]`` for development."""
    origins = allowed_origins or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


# ---------------------------------------------------------------------------
# Request Logging
# ---------------------------------------------------------------------------


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every HTTP request with method, path, status code, and duration.

    A request id is bound to the structlog context for the duration of the
    request so every event logged while serving it can be correlated.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        start = time.perf_counter()
        response: Response | None = None
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex[:12]
        bind_request_context(request_id=request_id)

        try:
            response = await call_next(request)
            response.headers["x-request-id"] = request_id
            return response
        finally:
            duration_ms = round((time.perf_counter() - start) * 1000, 2)
            status_code = response.status_code if response else 500
            _logger.info(
                "http_request",
                method=request.method,
                path=str(request.url.path),
                status=status_code,
                duration_ms=duration_ms,
            )
            clear_request_context()


# ---------------------------------------------------------------------------
# Error Handling
# ---------------------------------------------------------------------------


def status_code_for(exc: SupportDeskError) -> int:
    """HTTP status for an application error.

    Unknown ids are 404, malformed input is 400, local misconfiguration is
    500, and everything else is an upstream failure (502).
    """
    if isinstance(exc, DocumentNotFoundError):
        return 404
    if isinstance(exc, InvalidRequestError):
        return 400
    if isinstance(exc, ConfigurationError):
        return 500
    return 502


def error_code_for(exc: SupportDeskError) -> str:
    if isinstance(exc, DocumentNotFoundError):
        return "not_found"
    if isinstance(exc, InvalidRequestError):
        return "invalid_request"
    if isinstance(exc, ConfigurationError):
        return "configuration_error"
    return "upstream_error"


def error_response(exc: SupportDeskError) -> JSONResponse:
    body = ErrorResponse(error=error_code_for(exc), detail=exc.message)
    return JSONResponse(status_code=status_code_for(exc), content=body.model_dump())


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Turn ``SupportDeskError`` subclasses into structured JSON errors.

    Stack traces stay in the server log; the client only sees an error
    code and the exception message.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        try:
            return await call_next(request)
        except SupportDeskError as exc:
            _logger.error(
                "application_error",
                error_type=type(exc).__name__,
                message=exc.message,
                provider=exc.provider_name,
                path=str(request.url.path),
            )
            return error_response(exc)
