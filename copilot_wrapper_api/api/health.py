"""Health check and version endpoints."""

import logging
from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Depends

from .. import __version__
from ..config import settings
from ..core import CopilotService, get_copilot_service
from ..models import HealthResponse, VersionResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(service: CopilotService = Depends(get_copilot_service)) -> HealthResponse:
    """Health check endpoint.

    The service reports ``ok`` even when the Copilot client is not started yet,
    since it is started again on the next request.
    """
    return HealthResponse(
        status="ok",
        timestamp=datetime.now(UTC).isoformat(),
        version=__version__,
        assistant_ready=service.is_ready,
    )


@router.get("/version", response_model=VersionResponse)
async def get_version() -> VersionResponse:
    """Get version information."""
    return VersionResponse(service_version=__version__, default_model=settings.default_model)


@router.get("/")
async def root() -> dict[str, Any]:
    """Root endpoint with service information."""
    return {
        "service": "Copilot Wrapper API",
        "version": __version__,
        "description": "HTTP relay for the GitHub Copilot assistant",
        "docs": "/docs",
        "health": "/health",
    }
