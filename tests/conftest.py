"""Pytest configuration and fixtures."""

import asyncio
import os
import tempfile

# Set test environment variables BEFORE importing anything that loads settings
# so the app never talks to Application Insights and never writes next to the code
os.environ["TELEMETRY_ENABLED"] = "false"
os.environ["OUTPUTS_DIR"] = tempfile.mkdtemp(prefix="copilot-wrapper-outputs-")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from copilot_wrapper_api.config import Settings
from copilot_wrapper_api.core import CopilotService


def delta(text: str) -> dict:
    """Streaming delta in the current SDK shape."""
    return {"type": "assistant.message_delta", "data": {"deltaContent": text}}


def message(text: str) -> dict:
    """Complete assistant message."""
    return {"type": "assistant.message", "data": {"content": text}}


def idle() -> dict:
    return {"type": "session.idle", "data": {}}


def session_error(text: str) -> dict:
    return {"type": "session.error", "data": {"message": text}}


class FakeSessionHandle:
    """In-memory assistant session.

    ``script`` is either a list of events or a callable taking the prompt and
    returning one. Events are emitted from ``send`` after ``delay`` seconds.
    """

    def __init__(self, script=None, delay: float = 0.0):
        self.script = script
        self.delay = delay
        self.listeners = []
        self.sent = []
        self.send_error: Exception | None = None
        self.destroyed = False
        self.on_send = None
        # Events still in flight from an earlier exchange, delivered on subscribe
        self.backlog: list = []

    def on(self, callback):
        self.listeners.append(callback)
        for event in self.backlog:
            callback(event)

        def unsubscribe():
            self.listeners.remove(callback)

        return unsubscribe

    def emit(self, event) -> None:
        for listener in list(self.listeners):
            listener(event)

    async def send(self, payload: dict) -> None:
        self.sent.append(payload)
        if self.send_error is not None:
            raise self.send_error
        if self.on_send is not None:
            self.on_send(payload["prompt"])
        if self.delay:
            await asyncio.sleep(self.delay)
        events = self.script(payload["prompt"]) if callable(self.script) else self.script
        for event in events or []:
            self.emit(event)

    async def destroy(self) -> None:
        self.destroyed = True


class FakeCopilotClient:
    """In-memory replacement for the SDK client adapter."""

    def __init__(self, script=None, delay: float = 0.0):
        self.script = script
        self.delay = delay
        self.started = False
        self.stopped = False
        self.start_calls = 0
        self.start_error: Exception | None = None
        self.create_error: Exception | None = None
        self.create_delay = 0.0
        self.create_calls: list[dict] = []
        self.handles: list[FakeSessionHandle] = []

    async def start(self) -> None:
        self.start_calls += 1
        if self.start_error is not None:
            raise self.start_error
        self.started = True

    async def ping(self) -> dict:
        return {"message": "pong"}

    async def create_session(self, model, streaming, skill_directories):
        self.create_calls.append(
            {"model": model, "streaming": streaming, "skill_directories": skill_directories}
        )
        if self.create_delay:
            await asyncio.sleep(self.create_delay)
        if self.create_error is not None:
            raise self.create_error
        handle = FakeSessionHandle(self.script, delay=self.delay)
        self.handles.append(handle)
        return handle

    async def stop(self) -> None:
        self.stopped = True


def echo_reply(prompt: str) -> list[dict]:
    """Script answering every prompt with a fixed sentence."""
    return [delta("Answer to: "), delta(prompt), idle()]


@pytest.fixture
def anyio_backend():
    """Use asyncio backend for async tests."""
    return "asyncio"


@pytest.fixture
def outputs_dir(tmp_path):
    path = tmp_path / "outputs"
    path.mkdir()
    return path


@pytest.fixture
def test_settings(tmp_path, outputs_dir):
    """Settings with short timers and a private outputs directory."""
    return Settings(
        outputs_dir=outputs_dir,
        skills_dir=tmp_path / "skills",
        turn_timeout_seconds=2.0,
        completion_settle_seconds=0.0,
        artifact_settle_seconds=0.01,
        artifact_poll_interval=0.01,
        sse_keepalive_seconds=5.0,
        cli_command="cat",
        cli_timeout_seconds=5.0,
    )


@pytest.fixture
def fake_client():
    return FakeCopilotClient(script=echo_reply)


@pytest.fixture
def service(fake_client, test_settings):
    """Service wired to the in-memory client."""
    return CopilotService(client=fake_client, settings=test_settings)


@pytest_asyncio.fixture(scope="function")
async def client(service):
    """Create test client with the service dependency overridden."""
    from fastapi import FastAPI

    from copilot_wrapper_api.api import chat_router, health_router, sessions_router
    from copilot_wrapper_api.core import get_copilot_service

    test_app = FastAPI(title="Test App")
    test_app.include_router(health_router)
    test_app.include_router(chat_router)
    test_app.include_router(sessions_router)

    test_app.dependency_overrides[get_copilot_service] = lambda: service

    try:
        async with AsyncClient(
            transport=ASGITransport(app=test_app),
            base_url="http://test",
            timeout=10.0,
        ) as test_client:
            yield test_client
    finally:
        test_app.dependency_overrides.clear()
        await service.stop()
