"""
Request Context and Correlation IDs

Request-scoped context kept in a contextvar so every telemetry event
recorded while handling a request carries its request and session IDs.
"""

import uuid
from contextvars import ContextVar
from typing import Any

_request_context: ContextVar[dict[str, Any]] = ContextVar("request_context", default={})


def generate_correlation_id() -> str:
    """Generate a unique correlation ID for request tracing."""
    return str(uuid.uuid4())


def set_request_context(request_id: str, session_id: str | None = None, **kwargs: Any) -> None:
    """Set the request context for the current async context."""
    _request_context.set({"request_id": request_id, "session_id": session_id, **kwargs})


def update_request_context(**kwargs: Any) -> None:
    """Add properties (for example the resolved session ID) to the current context."""
    _request_context.set({**_request_context.get(), **kwargs})


def get_request_context() -> dict[str, Any]:
    """Get the current request context."""
    return _request_context.get()


def clear_request_context() -> None:
    """Clear the request context for the current async context."""
    _request_context.set({})
