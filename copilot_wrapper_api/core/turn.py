"""One prompt/response exchange bridged from SDK callbacks to an async iterator."""

import asyncio
import logging
from collections.abc import AsyncIterator
from typing import Any

from ..config import Settings
from .artifact_watcher import ArtifactNotice, ArtifactWatcher
from .assistant_client import maybe_await
from .completion import CompletionDetector, CompletionReason, TurnState
from .echo_filter import PromptEchoFilter
from .errors import UpstreamError
from .events import ClassifiedEvent, EventKind, classify

logger = logging.getLogger(__name__)

# Items on the per-turn channel
_EVENT = "event"
_ARTIFACT = "artifact"
_TIMEOUT = "timeout"
_SEND_FAILED = "send_failed"


class Turn:
    """Runs one prompt on a session handle and yields the visible output.

    SDK callbacks, artifact notices and the safety timer all post onto a
    single ordered queue; ``run`` consumes it until the completion detector
    reaches a terminal state. Deltas are yielded in the order they arrive.
    """

    def __init__(
        self,
        session_id: str,
        prompt: str,
        handle: Any,
        settings: Settings,
        streaming: bool = True,
    ):
        self.session_id = session_id
        self.prompt = prompt
        self.handle = handle
        self.settings = settings
        self.streaming = streaming

        self.echo_filter = PromptEchoFilter(prompt)
        self.detector = CompletionDetector(
            settings.turn_timeout_seconds, on_timeout=self._on_timeout
        )
        self.watcher = ArtifactWatcher(
            settings.outputs_dir,
            self._on_artifact,
            download_route=settings.download_route,
            settle_delay=settings.artifact_settle_seconds,
            poll_interval=settings.artifact_poll_interval,
        )

        self.deltas_received = False
        self.reasoning_received = False
        self.full_message_seen = False
        # Events delivered before the prompt went out belong to an earlier turn
        self.prompt_sent = False
        self.output: list[str] = []

        self._queue: asyncio.Queue[tuple[str, Any]] = asyncio.Queue()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._unsubscribe: Any = None
        self._send_task: asyncio.Task | None = None
        self._closed = False

    @property
    def state(self) -> TurnState:
        return self.detector.state

    @property
    def full_response(self) -> str:
        return "".join(self.output)

    # Producers

    def _on_event(self, event: Any) -> None:
        """SDK callback; may be invoked off the event loop thread."""
        if self._closed or self._loop is None:
            return
        if not self.prompt_sent:
            logger.debug(f"Dropping event from an earlier turn on session {self.session_id}")
            return
        try:
            self._loop.call_soon_threadsafe(self._queue.put_nowait, (_EVENT, event))
        except RuntimeError as e:
            logger.debug(f"Dropping event for closed loop: {e}")

    def _on_artifact(self, notice: ArtifactNotice) -> None:
        self._queue.put_nowait((_ARTIFACT, notice))

    def _on_timeout(self) -> None:
        self._queue.put_nowait((_TIMEOUT, None))

    async def _send(self) -> None:
        self.prompt_sent = True
        try:
            await maybe_await(self.handle.send({"prompt": self.prompt}))
            logger.debug(f"Prompt sent on session {self.session_id}")
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Error sending prompt on session {self.session_id}: {e}")
            self._queue.put_nowait((_SEND_FAILED, e))

    # Consumer

    async def run(self) -> AsyncIterator[str]:
        """Send the prompt and yield output chunks until the turn ends.

        Raises:
            UpstreamError: If the assistant reported an error
        """
        self._loop = asyncio.get_running_loop()
        try:
            self._unsubscribe = self.handle.on(self._on_event)
            await self.watcher.start()
            self.detector.arm()
            self._send_task = asyncio.create_task(self._send())

            while not self.detector.is_terminal:
                kind, payload = await self._queue.get()
                try:
                    chunks = self._dispatch(kind, payload)
                except Exception as e:
                    logger.error(f"Error handling assistant event: {e}", exc_info=True)
                    self.detector.fail(UpstreamError(f"Error handling assistant event: {e}"))
                    chunks = []
                for chunk in chunks:
                    self.output.append(chunk)
                    yield chunk

            if self.detector.state is TurnState.ERRORED:
                raise self.detector.error or UpstreamError("Session error")

            for chunk in await self._finish():
                self.output.append(chunk)
                yield chunk
        finally:
            await self._cleanup()

    def _dispatch(self, kind: str, payload: Any) -> list[str]:
        if kind == _EVENT:
            return self._handle_event(classify(payload))
        if kind == _ARTIFACT:
            # Text still withheld as a possible echo goes out before the notice
            chunks = []
            tail = "" if self.echo_filter.resolved else self.echo_filter.flush()
            if tail:
                chunks.append(tail)
            chunks.append(payload.to_markdown())
            return chunks
        if kind == _TIMEOUT:
            logger.warning(
                f"Turn on session {self.session_id} timed out after "
                f"{self.detector.timeout}s without completion, completing request"
            )
            self.detector.complete(CompletionReason.TIMEOUT)
            return []
        if kind == _SEND_FAILED:
            self.detector.fail(UpstreamError(str(payload) or type(payload).__name__))
            return []
        return []

    def _handle_event(self, event: ClassifiedEvent) -> list[str]:
        if event.kind is EventKind.DELTA:
            if not event.text:
                return []
            if event.reasoning:
                if not self.settings.forward_reasoning_deltas:
                    return []
                self.reasoning_received = True
                return [event.text]
            self.deltas_received = True
            text = self.echo_filter.feed(event.text)
            return [text] if text else []

        if event.kind is EventKind.FULL_MESSAGE:
            if event.reasoning:
                return self._forward_reasoning(event)
            return self._forward_whole(event, answer=True)

        if event.kind is EventKind.TOOL_ACTIVITY:
            logger.info(f"Tool activity on session {self.session_id}: {event.text}")
            return []

        if event.kind is EventKind.COMPLETION:
            logger.info(f"Session {self.session_id} idle, turn complete")
            self.detector.complete(CompletionReason.EVENT)
            return []

        if event.kind is EventKind.ERROR:
            logger.error(f"Session {self.session_id} error: {event.text}")
            self.detector.fail(UpstreamError(event.text or "Session error"))
            return []

        if event.text:
            logger.debug(f"Forwarding text of unrecognized event {event.event_type}")
            return self._forward_whole(event, answer=False)
        logger.debug(f"Ignoring event {event.event_type}")
        return []

    def _forward_whole(self, event: ClassifiedEvent, answer: bool) -> list[str]:
        """Forward a complete message unless deltas already carried it.

        The echo is stripped from the first assistant message only; text of
        unrecognized events is passed on as is.
        """
        if self.deltas_received or not event.text:
            return []
        text = event.text
        if answer and not self.full_message_seen:
            self.full_message_seen = True
            text = self.echo_filter.strip_full(text)
        return [text] if text else []

    def _forward_reasoning(self, event: ClassifiedEvent) -> list[str]:
        """Forward a complete reasoning block unless it was hidden or already streamed."""
        if not self.settings.forward_reasoning_deltas or self.reasoning_received:
            return []
        self.reasoning_received = True
        return [event.text] if event.text else []

    async def _finish(self) -> list[str]:
        """Chunks emitted between the completion signal and the terminal callback."""
        chunks = []
        tail = "" if self.echo_filter.resolved else self.echo_filter.flush()
        if tail:
            chunks.append(tail)

        await self.watcher.stop()
        while not self._queue.empty():
            kind, payload = self._queue.get_nowait()
            if kind == _ARTIFACT:
                chunks.append(payload.to_markdown())

        if (
            self.detector.reason is CompletionReason.EVENT
            and self.settings.completion_settle_seconds > 0
        ):
            await asyncio.sleep(self.settings.completion_settle_seconds)

        chunks.extend(notice.to_markdown() for notice in self.watcher.poll())
        return chunks

    async def _cleanup(self) -> None:
        self._closed = True
        self.detector.cancel()

        if callable(self._unsubscribe):
            try:
                self._unsubscribe()
            except Exception as e:
                logger.warning(f"Could not unsubscribe from session {self.session_id}: {e}")
        self._unsubscribe = None

        send_task = self._send_task
        if send_task is not None and not send_task.done():
            send_task.cancel()
        await self.watcher.stop()
        if send_task is not None:
            await asyncio.gather(send_task, return_exceptions=True)
