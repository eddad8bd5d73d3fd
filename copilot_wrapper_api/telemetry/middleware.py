"""
Telemetry Middleware for FastAPI

Tracks every HTTP request with timing and status, and tags the request with
a correlation ID returned in the ``X-Request-ID`` header.
"""

import time
from collections.abc import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from .context import clear_request_context, generate_correlation_id, set_request_context
from .events import TelemetryEvents
from .tracker import track_event, track_exception


class TelemetryMiddleware(BaseHTTPMiddleware):
    """Request telemetry: received/completed/failed events and correlation IDs."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process the request and track telemetry."""
        start_time = time.time()
        request_id = request.headers.get("X-Request-ID") or generate_correlation_id()

        set_request_context(
            request_id=request_id,
            session_id=request.headers.get("X-Session-ID"),
        )
        request.state.request_id = request_id

        properties = {"endpoint": request.url.path, "method": request.method}

        try:
            track_event(TelemetryEvents.REQUEST_RECEIVED, properties)

            response = await call_next(request)

            track_event(
                TelemetryEvents.REQUEST_COMPLETED,
                {
                    **properties,
                    "status_code": response.status_code,
                    "duration_ms": (time.time() - start_time) * 1000,
                },
            )
            response.headers["X-Request-ID"] = request_id
            return response

        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            track_exception(e, {**properties, "duration_ms": duration_ms})
            track_event(
                TelemetryEvents.REQUEST_FAILED,
                {**properties, "duration_ms": duration_ms, "error_type": type(e).__name__},
            )
            raise

        finally:
            clear_request_context()
