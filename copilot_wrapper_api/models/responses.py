"""Response models for API endpoints."""

from pydantic import BaseModel

from .session import SessionInfo


class ChatResponse(BaseModel):
    """Response for a synchronous prompt."""

    response: str
    session_id: str | None = None


class SessionCreatedResponse(BaseModel):
    """Response for session creation."""

    session_id: str
    model: str


class SessionListResponse(BaseModel):
    """Response for listing sessions."""

    sessions: list[SessionInfo]
    total: int


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    timestamp: str
    version: str
    assistant_ready: bool


class VersionResponse(BaseModel):
    """Version information response."""

    service_version: str
    default_model: str
