"""
Middleware - Request processing for the management API.

Provides:
- Request logging
- Error handling
"""

import time

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

__all__ = ["ErrorMiddleware", "LoggingMiddleware"]

logger = structlog.get_logger(__name__)


class LoggingMiddleware(BaseHTTPMiddleware):
    """Logs method, path, status code, and duration.

    The frequently polled endpoints are logged at debug level only.
    """

    QUIET_PATHS = {"/status", "/help"}

    async def dispatch(self, request: Request, call_next) -> Response:
        start = time.monotonic()

        response = await call_next(request)

        duration_ms = round((time.monotonic() - start) * 1000, 2)
        log = logger.debug if request.url.path in self.QUIET_PATHS else logger.info
        log(
            "request",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            duration_ms=duration_ms,
        )

        return response


class ErrorMiddleware(BaseHTTPMiddleware):
    """Catches unhandled exceptions and returns JSON errors.

    Keeps stack traces out of responses; they go to the log instead.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        try:
            return await call_next(request)
        except Exception as e:
            logger.exception(
                "unhandled_error",
                method=request.method,
                path=request.url.path,
                error=str(e),
            )
            return JSONResponse(
                status_code=500,
                content={
                    "error": "internal_server_error",
                    "message": "An unexpected error occurred",
                },
            )
