"""Session management API endpoints."""

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from ..core import (
    CopilotService,
    SessionCreationFailed,
    UpstreamUnavailable,
    get_copilot_service,
)
from ..models import SessionCreatedResponse, SessionCreateRequest, SessionListResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/sessions", tags=["sessions"])


@router.post("", response_model=SessionCreatedResponse, status_code=201)
async def create_session(
    request: SessionCreateRequest,
    service: CopilotService = Depends(get_copilot_service),
) -> SessionCreatedResponse:
    """Open a new conversation with the assistant.

    The returned session_id can be passed to ``/api/chat`` to continue the
    conversation with its history.
    """
    model = request.model or service.settings.default_model
    try:
        session_id = await service.create_new_session(model)
    except (UpstreamUnavailable, SessionCreationFailed) as e:
        logger.error(f"Failed to create session: {e}")
        raise HTTPException(status_code=503, detail=str(e))
    return SessionCreatedResponse(session_id=session_id, model=model)


@router.get("", response_model=SessionListResponse)
async def list_sessions(
    service: CopilotService = Depends(get_copilot_service),
) -> SessionListResponse:
    """List open sessions."""
    sessions = service.list_sessions()
    return SessionListResponse(sessions=sessions, total=len(sessions))


@router.delete("/{session_id}")
async def delete_session(
    session_id: str,
    service: CopilotService = Depends(get_copilot_service),
) -> dict[str, Any]:
    """Destroy a session and forget it."""
    deleted = await service.delete_session(session_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Session not found")
    return {"message": "Session deleted successfully", "session_id": session_id}
