"""Main FastAPI application for the Copilot wrapper service."""

import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from .api import chat_router, health_router, sessions_router
from .config import settings
from .core import init_copilot_service, shutdown_copilot_service
from .telemetry import (
    TelemetryEvents,
    TelemetryMiddleware,
    flush_telemetry,
    initialize_telemetry,
    track_event,
)

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

logger = logging.getLogger(__name__)

# StaticFiles checks the directory when the app is built
settings.outputs_dir.mkdir(parents=True, exist_ok=True)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Lifespan context manager for startup and shutdown."""
    # Startup
    logger.info("Starting Copilot wrapper service...")
    logger.info(f"Service version: {app.version}")
    logger.info(f"Host: {settings.service_host}:{settings.service_port}")

    initialize_telemetry()
    logger.info("Telemetry initialized")

    logger.info(f"Output directory: {settings.outputs_dir}")
    logger.info(f"Skills directory: {settings.skills_dir}")

    # A failed start is retried on the first request
    service = await init_copilot_service()
    track_event(TelemetryEvents.APP_STARTED, {"assistant_ready": service.is_ready})

    logger.info("Copilot wrapper service started successfully")

    yield

    # Shutdown
    logger.info("Shutting down Copilot wrapper service...")
    await shutdown_copilot_service()

    track_event(TelemetryEvents.APP_STOPPED)
    flush_telemetry()
    logger.info("Telemetry flushed")
    logger.info("Copilot wrapper service stopped")


app = FastAPI(
    title="Copilot Wrapper API",
    description="""
HTTP relay for the GitHub Copilot assistant.

Prompts are forwarded to Copilot sessions and the answers are returned either
as a single response or as Server-Sent Events. Files the assistant writes to
the output directory during a turn are announced with a download link.

## API Endpoints

### Chat
- `POST /api/chat` - Send a prompt and wait for the answer
- `POST /api/chat/stream` - Send a prompt and stream the answer (SSE)

Prompts starting with `/` are passed to the Copilot CLI.

### Session Management
- `GET /api/sessions` - List sessions
- `POST /api/sessions` - Create session
- `DELETE /api/sessions/{id}` - Delete session

### Downloads
- `GET /outputs/{filename}` - Files produced by the assistant

### Health
- `GET /health` - Health check
- `GET /version` - Version information
""",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

# Telemetry middleware (first, to capture all requests)
app.add_middleware(TelemetryMiddleware)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_allowed_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(health_router)
app.include_router(chat_router)
app.include_router(sessions_router)

app.mount(
    settings.download_route,
    StaticFiles(directory=settings.outputs_dir),
    name="outputs",
)


def main() -> None:
    """Main entry point for running the service."""
    import uvicorn

    uvicorn.run(
        "copilot_wrapper_api.main:app",
        host=settings.service_host,
        port=settings.service_port,
        workers=settings.service_workers,
        log_level=settings.log_level,
        reload=False,
    )


if __name__ == "__main__":
    main()
