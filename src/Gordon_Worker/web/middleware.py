"""Exception handlers and request logging middleware.

Maps domain exceptions from ``Gordon_Worker.utils.exceptions`` to HTTP
status codes and logs every request with its duration.
"""

import logging
import time

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from Gordon_Worker.utils.exceptions import DatabaseUnavailableError, SettingsNotFoundError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Domain exception -> HTTP status handlers
# ---------------------------------------------------------------------------


async def _settings_not_found_handler(request: Request, exc: SettingsNotFoundError) -> JSONResponse:
    """Map SettingsNotFoundError to HTTP 404."""
    logger.warning("Settings not found: %s", exc)
    return JSONResponse(status_code=404, content={"detail": str(exc)})


async def _database_unavailable_handler(
    request: Request, exc: DatabaseUnavailableError
) -> JSONResponse:
    """Map DatabaseUnavailableError to HTTP 503."""
    logger.error("Database unavailable: %s", exc)
    return JSONResponse(status_code=503, content={"detail": str(exc)})


def register_exception_handlers(app: FastAPI) -> None:
    """Register all domain exception handlers on the FastAPI application."""
    app.add_exception_handler(SettingsNotFoundError, _settings_not_found_handler)  # type: ignore[arg-type]
    app.add_exception_handler(DatabaseUnavailableError, _database_unavailable_handler)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Request logging middleware
# ---------------------------------------------------------------------------


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every request with method, path, status code, and duration.

    Health probes are logged at DEBUG so pollers do not flood the log.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        start_time = time.monotonic()
        response = await call_next(request)
        duration_ms = (time.monotonic() - start_time) * 1000

        level = logging.DEBUG if request.url.path == "/api/health" else logging.INFO
        logger.log(
            level,
            "%s %s -> %d (%.1fms)",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
        )
        return response
