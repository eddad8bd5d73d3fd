"""Core bridging between HTTP requests and Copilot sessions."""

from .copilot_service import (
    CopilotService,
    PromptResult,
    get_copilot_service,
    init_copilot_service,
    shutdown_copilot_service,
)
from .errors import CopilotServiceError, SessionCreationFailed, UpstreamError, UpstreamUnavailable
from .session_registry import SessionRegistry

__all__ = [
    "CopilotService",
    "PromptResult",
    "SessionRegistry",
    "get_copilot_service",
    "init_copilot_service",
    "shutdown_copilot_service",
    "CopilotServiceError",
    "SessionCreationFailed",
    "UpstreamError",
    "UpstreamUnavailable",
]
