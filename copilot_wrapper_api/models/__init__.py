"""Data models for the Copilot wrapper service."""

from .requests import ChatRequest, SessionCreateRequest
from .responses import (
    ChatResponse,
    HealthResponse,
    SessionCreatedResponse,
    SessionListResponse,
    VersionResponse,
)
from .session import Session, SessionInfo

__all__ = [
    # Request models
    "ChatRequest",
    "SessionCreateRequest",
    # Response models
    "ChatResponse",
    "SessionCreatedResponse",
    "SessionListResponse",
    "HealthResponse",
    "VersionResponse",
    # Session models
    "Session",
    "SessionInfo",
]
