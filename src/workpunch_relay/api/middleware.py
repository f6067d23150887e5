"""Request context middleware and error handlers.

Every request gets a correlation id (taken from ``X-Request-ID`` or
generated) that is echoed in the response and used in log lines. Sync
failures are converted into ``{"error": "<kind>", "message": "..."}``
bodies with the status code their class declares; anything unexpected
becomes a 500 ``InternalError`` and the process keeps serving.
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from workpunch_relay.db.time import utcnow
from workpunch_relay.schemas.common import ErrorResponse
from workpunch_relay.services.errors import SyncError

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


@dataclass
class ServerState:
    """Process-wide request counters. Diagnostics only."""

    start_time: datetime = field(default_factory=utcnow)
    request_count: int = 0
    last_request: datetime | None = None

    def record_request(self) -> None:
        self.request_count += 1
        self.last_request = utcnow()

    def snapshot(self) -> dict[str, object]:
        return {
            "startTime": self.start_time.isoformat(),
            "requestCount": self.request_count,
            "lastRequest": self.last_request.isoformat() if self.last_request else None,
        }


server_state = ServerState()


def get_request_id(request: Request) -> str:
    """Return the correlation id assigned to ``request``."""
    return getattr(request.state, "request_id", "-")


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Assign a correlation id, count the request and log its outcome."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:12]
        request.state.request_id = request_id
        server_state.record_request()

        start = time.monotonic()
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        logger.info(
            "[%s] %s %s -> %d (%.1f ms)",
            request_id,
            request.method,
            request.url.path,
            response.status_code,
            (time.monotonic() - start) * 1000,
        )
        return response


async def _handle_sync_error(request: Request, exc: SyncError) -> JSONResponse:
    """Return the status and error kind declared by the taxonomy class."""
    body = ErrorResponse(error=exc.kind, message=exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content=body.model_dump(),
        headers={REQUEST_ID_HEADER: get_request_id(request)},
    )


async def _handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    """Log and convert any unhandled exception into a 500."""
    logger.error(
        "[%s] Unhandled error on %s %s",
        get_request_id(request),
        request.method,
        request.url.path,
        exc_info=exc,
    )
    body = ErrorResponse(error="InternalError", message="Internal server error")
    return JSONResponse(
        status_code=500,
        content=body.model_dump(),
        headers={REQUEST_ID_HEADER: get_request_id(request)},
    )


def register_error_handlers(app: FastAPI) -> None:
    """Register the exception handlers on ``app``."""
    app.add_exception_handler(SyncError, _handle_sync_error)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _handle_unexpected_error)
