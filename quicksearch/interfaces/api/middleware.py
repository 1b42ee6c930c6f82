"""
API Middleware - Request/response processing.

Provides:
- Request ID tracking
- Response latency measurement, tagged with the acting user
- Structured JSON errors built from the error taxonomy
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Awaitable, Callable
from typing import Any

from fastapi import Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from quicksearch.config.errors import ErrorCode, QuickSearchError

logger = logging.getLogger(__name__)

_STATUS_BY_CODE = {
    # 400 Bad Request
    ErrorCode.INVALID_ARGUMENT: 400,
    ErrorCode.VALIDATION_ERROR: 400,
    # 401 Unauthorized
    ErrorCode.SECURITY_UNAUTHORIZED: 401,
    # 404 Not Found
    ErrorCode.NOT_FOUND: 404,
    # 503 Service Unavailable
    ErrorCode.SOURCE_UNAVAILABLE: 503,
    ErrorCode.STORAGE_CONNECTION_FAILED: 503,
}


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "unknown")


def _error_response(
    request: Request,
    status_code: int,
    error: dict[str, Any],
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": error, "request_id": _request_id(request)},
    )


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Attach request ID for tracing across logs and responses."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        request.state.request_id = request_id

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


class LatencyMiddleware(BaseHTTPMiddleware):
    """Log one line per request with status, latency and actor."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000

        response.headers["X-Response-Time-Ms"] = f"{elapsed_ms:.2f}"
        logger.info(
            "%s %s status=%d latency_ms=%.2f actor=%s request_id=%s",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            request.headers.get("X-Actor-Id", "-"),
            _request_id(request),
        )
        return response


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Convert QuickSearchError exceptions to structured JSON responses."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        try:
            return await call_next(request)
        except QuickSearchError as e:
            status_code = error_code_to_status(e.code)
            log = logger.error if status_code >= 500 else logger.warning
            log(
                "%s: %s request_id=%s details=%s",
                e.code.value,
                e.message,
                _request_id(request),
                e.details,
            )
            return _error_response(request, status_code, e.to_dict())
        except Exception as e:
            logger.exception("Unhandled error: %s request_id=%s", e, _request_id(request))
            return _error_response(
                request,
                500,
                {
                    "code": ErrorCode.INTERNAL_ERROR.value,
                    "message": "Internal server error",
                    "details": {},
                },
            )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report malformed request bodies as INVALID_ARGUMENT."""
    errors = [
        {"loc": [str(part) for part in error.get("loc", ())], "msg": error.get("msg", "")}
        for error in exc.errors()
    ]
    logger.warning("Invalid request body: %s request_id=%s", errors, _request_id(request))
    return _error_response(
        request,
        400,
        {
            "code": ErrorCode.INVALID_ARGUMENT.value,
            "message": "Invalid request",
            "details": {"errors": errors},
        },
    )


def error_code_to_status(code: ErrorCode) -> int:
    """Map error codes to HTTP status codes; anything unmapped is a 500."""
    return _STATUS_BY_CODE.get(code, 500)
