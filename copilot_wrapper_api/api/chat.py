"""Chat endpoints: synchronous and Server-Sent Events."""

import asyncio
import json
import logging
from collections.abc import AsyncIterator
from contextlib import aclosing
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse

from ..core import (
    CopilotService,
    SessionCreationFailed,
    UpstreamError,
    UpstreamUnavailable,
    get_copilot_service,
)
from ..core.cli_runner import is_cli_command, run_cli_command
from ..models import ChatRequest, ChatResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/chat", tags=["chat"])

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",  # Disable nginx buffering
}


def _sse(payload: dict[str, Any]) -> str:
    return f"data: {json.dumps(payload)}\n\n"


@router.post("", response_model=ChatResponse)
async def chat(
    request: ChatRequest,
    service: CopilotService = Depends(get_copilot_service),
) -> ChatResponse:
    """Send a prompt and wait for the complete response."""
    if is_cli_command(request.prompt):
        output = await run_cli_command(request.prompt, service.settings)
        return ChatResponse(response=output, session_id=request.session_id)

    try:
        result = await service.send_prompt(
            request.prompt,
            model=request.model,
            session_id=request.session_id,
        )
    except (UpstreamUnavailable, SessionCreationFailed) as e:
        raise HTTPException(status_code=503, detail=str(e))
    except UpstreamError as e:
        logger.error(f"Error in chat: {e}")
        raise HTTPException(status_code=502, detail=str(e))

    return ChatResponse(response=result.full_response, session_id=result.session_id)


async def _relay_events(
    service: CopilotService, request: ChatRequest, keepalive: float
) -> AsyncIterator[str]:
    """Run a prompt in the background and frame its callbacks as SSE.

    The prompt runs in its own task so that keepalive comments can be sent
    while waiting for the next chunk without cancelling the turn.
    """
    queue: asyncio.Queue[tuple[str, Any]] = asyncio.Queue()

    task = asyncio.create_task(
        service.send_prompt_streaming(
            request.prompt,
            request.model,
            on_chunk=lambda chunk: queue.put_nowait(("chunk", chunk)),
            on_complete=lambda session_id: queue.put_nowait(("done", session_id)),
            on_error=lambda error: queue.put_nowait(("error", error)),
            session_id=request.session_id,
        )
    )

    try:
        while True:
            try:
                kind, payload = await asyncio.wait_for(queue.get(), timeout=keepalive)
            except TimeoutError:
                if task.done() and queue.empty():
                    error = task.exception() if not task.cancelled() else None
                    yield _sse({"error": str(error or "Stream ended unexpectedly")})
                    return
                yield ": keepalive\n\n"
                continue

            if kind == "chunk":
                yield _sse({"chunk": payload})
            elif kind == "done":
                yield _sse({"done": True, "session_id": payload})
                return
            else:
                yield _sse({"error": str(payload)})
                return
    finally:
        if not task.done():
            logger.info("Client disconnected, abandoning turn")
            task.cancel()


@router.post("/stream")
async def chat_stream(
    request: ChatRequest,
    service: CopilotService = Depends(get_copilot_service),
) -> StreamingResponse:
    """Send a prompt and stream the response using Server-Sent Events (SSE)."""

    async def event_generator() -> AsyncIterator[str]:
        yield ": connected\n\n"
        yield _sse({"processing": True})

        if is_cli_command(request.prompt):
            output = await run_cli_command(request.prompt, service.settings)
            yield _sse({"chunk": output})
            yield _sse({"done": True, "session_id": request.session_id})
            return

        keepalive = service.settings.sse_keepalive_seconds
        async with aclosing(_relay_events(service, request, keepalive)) as events:
            async for event in events:
                yield event

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )
