"""Copilot service: sessions and turns behind a small async API."""

import asyncio
import logging
import time
from collections.abc import AsyncIterator, Callable
from contextlib import aclosing
from dataclasses import dataclass, field
from typing import Any

from ..config import Settings, settings as default_settings
from ..models import SessionInfo
from ..telemetry import (
    TelemetryEvents,
    track_event,
    track_exception,
    track_metric,
    update_request_context,
)
from .assistant_client import CopilotClientAdapter, maybe_await
from .completion import CompletionReason
from .errors import CopilotServiceError, SessionCreationFailed, UpstreamError, UpstreamUnavailable
from .session_registry import SessionRegistry
from .turn import Turn

logger = logging.getLogger(__name__)


@dataclass
class PromptResult:
    """Aggregated output of a synchronous prompt."""

    session_id: str
    full_response: str
    chunks: list[str] = field(default_factory=list)


class CopilotService:
    """Bridges HTTP requests to Copilot sessions.

    The client is started lazily: a failed start is reported as
    ``UpstreamUnavailable`` and retried on the next call. Turns on the same
    session run one at a time.
    """

    def __init__(self, client: Any | None = None, settings: Settings | None = None):
        """Initialize the service.

        Args:
            client: Assistant client (defaults to the Copilot SDK adapter)
            settings: Settings to use (defaults to the global settings)
        """
        self.settings = settings or default_settings
        self.client = client or CopilotClientAdapter(
            log_level=self.settings.copilot_log_level,
            github_token=self.settings.github_token,
        )
        self.registry = SessionRegistry(
            self.client,
            skill_directories=self.settings.get_skill_directories(),
            max_sessions=self.settings.max_sessions,
        )
        self._ready = False
        self._start_lock = asyncio.Lock()
        self._turn_locks: dict[str, asyncio.Lock] = {}

    @property
    def is_ready(self) -> bool:
        return self._ready

    async def initialize(self) -> None:
        """Start the Copilot client if it is not running yet.

        Raises:
            UpstreamUnavailable: If the client cannot be started
        """
        if self._ready:
            return

        async with self._start_lock:
            if self._ready:
                return

            logger.info("Initializing Copilot client...")
            try:
                await self.client.start()
            except Exception as e:
                logger.warning(f"Copilot client unavailable, will retry on next request: {e}")
                track_event(TelemetryEvents.UPSTREAM_UNAVAILABLE, {"error_message": str(e)})
                if isinstance(e, UpstreamUnavailable):
                    raise
                raise UpstreamUnavailable(f"Could not start Copilot client: {e}") from e

            try:
                await self.client.ping()
                logger.info("Copilot CLI server is responsive")
            except Exception as e:
                logger.warning(f"Ping test failed, but continuing: {e}")

            self._ready = True
            track_event(TelemetryEvents.UPSTREAM_STARTED)
            logger.info("Copilot client initialized successfully")

    async def stop(self) -> None:
        """Destroy every session and stop the client."""
        await self.registry.close_all()
        self._turn_locks.clear()
        if not self._ready:
            return

        logger.info("Stopping Copilot client...")
        try:
            await self.client.stop()
            track_event(TelemetryEvents.UPSTREAM_STOPPED)
        except Exception as e:
            logger.error(f"Error stopping Copilot client: {e}")
        self._ready = False

    # Sessions

    async def create_new_session(self, model: str | None = None) -> str:
        """Open a new session and return its ID."""
        await self.initialize()
        model = model or self.settings.default_model
        try:
            session_id = await self.registry.create_session(model)
        except SessionCreationFailed as e:
            track_event(
                TelemetryEvents.SESSION_CREATION_FAILED, {"model": model, "error_message": str(e)}
            )
            raise
        track_event(TelemetryEvents.SESSION_CREATED, {"session_id": session_id, "model": model})
        return session_id

    async def get_or_create_session(self, session_id: str | None, model: str | None = None) -> str:
        """Return ``session_id`` if it is open, otherwise open a new session."""
        if session_id and session_id in self.registry:
            return await self.registry.get_or_create(
                session_id, model or self.settings.default_model
            )
        return await self.create_new_session(model)

    async def delete_session(self, session_id: str) -> bool:
        """Delete a session. Returns False if it did not exist."""
        deleted = await self.registry.delete(session_id)
        if deleted:
            self._turn_locks.pop(session_id, None)
            track_event(TelemetryEvents.SESSION_DELETED, {"session_id": session_id})
        return deleted

    def list_sessions(self) -> list[SessionInfo]:
        """List open sessions."""
        return self.registry.list_sessions()

    # Turns

    async def open_turn(
        self,
        prompt: str,
        model: str | None = None,
        session_id: str | None = None,
        streaming: bool = True,
    ) -> Turn:
        """Resolve the session for a prompt and prepare its turn.

        Raises:
            UpstreamUnavailable: If the client cannot be started
            SessionCreationFailed: If a new session cannot be opened
        """
        await self.initialize()
        model = model or self.settings.default_model

        if session_id and session_id in self.registry:
            session_id = await self.registry.get_or_create(session_id, model)
            session = self.registry.get(session_id)
        else:
            try:
                session_id = await self.registry.create_session(model, streaming=streaming)
            except SessionCreationFailed as e:
                track_event(
                    TelemetryEvents.SESSION_CREATION_FAILED,
                    {"model": model, "error_message": str(e)},
                )
                raise
            track_event(TelemetryEvents.SESSION_CREATED, {"session_id": session_id, "model": model})
            session = self.registry.get(session_id)
            session.record_turn()

        update_request_context(session_id=session_id)
        return Turn(session_id, prompt, session.handle, self.settings, streaming=streaming)

    async def run_turn(self, turn: Turn) -> AsyncIterator[str]:
        """Yield a turn's chunks while holding its session's turn lock.

        Raises:
            UpstreamError: If the turn ended in error
        """
        lock = self._turn_locks.setdefault(turn.session_id, asyncio.Lock())
        async with lock:
            started = time.monotonic()
            properties = {"session_id": turn.session_id, "streaming": turn.streaming}
            track_event(
                TelemetryEvents.TURN_STARTED, {**properties, "prompt_length": len(turn.prompt)}
            )

            try:
                async with aclosing(turn.run()) as chunks:
                    async for chunk in chunks:
                        yield chunk
            except CopilotServiceError as e:
                track_event(TelemetryEvents.TURN_FAILED, {**properties, "error_message": str(e)})
                raise
            except Exception as e:
                logger.error(
                    f"Unexpected error in turn on session {turn.session_id}: {e}", exc_info=True
                )
                track_exception(e, properties)
                raise UpstreamError(str(e) or type(e).__name__) from e

            duration_ms = (time.monotonic() - started) * 1000
            timed_out = turn.detector.reason is CompletionReason.TIMEOUT
            track_event(
                TelemetryEvents.TURN_TIMED_OUT if timed_out else TelemetryEvents.TURN_COMPLETED,
                {
                    **properties,
                    "duration_ms": duration_ms,
                    "response_length": len(turn.full_response),
                    "artifacts": len(turn.watcher.notified),
                },
            )
            track_metric("turn_duration_ms", duration_ms, properties)
            for filename in sorted(turn.watcher.notified):
                track_event(
                    TelemetryEvents.ARTIFACT_ANNOUNCED, {**properties, "filename": filename}
                )

    async def stream_prompt(
        self,
        prompt: str,
        model: str | None = None,
        session_id: str | None = None,
    ) -> AsyncIterator[str]:
        """Send a prompt and yield the response incrementally."""
        turn = await self.open_turn(prompt, model, session_id, streaming=True)
        async with aclosing(self.run_turn(turn)) as chunks:
            async for chunk in chunks:
                yield chunk

    async def send_prompt(
        self,
        prompt: str,
        model: str | None = None,
        streaming: bool = False,
        session_id: str | None = None,
    ) -> PromptResult:
        """Send a prompt and wait for the complete, echo-stripped response.

        Raises:
            UpstreamError: With the assistant's error message
        """
        turn = await self.open_turn(prompt, model, session_id, streaming=streaming)
        chunks = [chunk async for chunk in self.run_turn(turn)]
        logger.info(f"Turn on session {turn.session_id} resolved with {len(chunks)} chunks")
        return PromptResult(
            session_id=turn.session_id,
            full_response="".join(chunks),
            chunks=chunks,
        )

    async def send_prompt_streaming(
        self,
        prompt: str,
        model: str | None,
        on_chunk: Callable[[str], Any],
        on_complete: Callable[[str], Any],
        on_error: Callable[[Exception], Any],
        session_id: str | None = None,
    ) -> str | None:
        """Send a prompt and report the response through callbacks.

        ``on_chunk`` is called for every chunk in order, then exactly one of
        ``on_complete(session_id)`` or ``on_error(error)``. Callbacks may be
        plain functions or coroutines.

        Returns:
            The session ID, or None if no session could be opened
        """
        try:
            turn = await self.open_turn(prompt, model, session_id, streaming=True)
        except CopilotServiceError as e:
            logger.error(f"Error in send_prompt_streaming: {e}")
            await maybe_await(on_error(e))
            return None

        delivery_error: Exception | None = None
        try:
            async with aclosing(self.run_turn(turn)) as chunks:
                async for chunk in chunks:
                    try:
                        await maybe_await(on_chunk(chunk))
                    except Exception as e:
                        logger.error(f"Error delivering chunk, stopping stream: {e}")
                        delivery_error = e
                        break
        except CopilotServiceError as e:
            await maybe_await(on_error(e))
            return turn.session_id

        if delivery_error is not None:
            await maybe_await(on_error(delivery_error))
            return turn.session_id

        logger.info(f"Stream completed for session: {turn.session_id}")
        await maybe_await(on_complete(turn.session_id))
        return turn.session_id


_service: CopilotService | None = None


async def init_copilot_service() -> CopilotService:
    """Create the global service and try to start the client.

    A failed start is logged; the client is started again on first use.
    """
    global _service
    if _service is None:
        _service = CopilotService()
    try:
        await _service.initialize()
    except UpstreamUnavailable as e:
        logger.error(f"Failed to initialize Copilot client: {e}")
        logger.error("The service will attempt to initialize on first request")
    return _service


async def get_copilot_service() -> CopilotService:
    """Get the service instance (dependency injection)."""
    global _service
    if _service is None:
        _service = CopilotService()
    return _service


async def shutdown_copilot_service() -> None:
    """Stop the global service if it was created."""
    global _service
    if _service is not None:
        await _service.stop()
        _service = None
