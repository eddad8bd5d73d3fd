"""Tests for the HTTP endpoints."""

import json

import pytest
from conftest import delta, session_error

from copilot_wrapper_api import __version__


def sse_events(body: str) -> list:
    """Split an SSE body into comments (str) and data payloads (dict)."""
    events = []
    for block in body.split("\n\n"):
        if not block:
            continue
        if block.startswith(":"):
            events.append(block[1:].strip())
        elif block.startswith("data: "):
            events.append(json.loads(block[len("data: ") :]))
    return events


@pytest.mark.asyncio
class TestHealth:
    """Test health and version endpoints."""

    async def test_health_before_start(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["version"] == __version__
        assert data["assistant_ready"] is False
        assert "timestamp" in data

    async def test_health_after_first_prompt(self, client):
        await client.post("/api/chat", json={"prompt": "hi"})
        response = await client.get("/health")
        assert response.json()["assistant_ready"] is True

    async def test_version(self, client):
        response = await client.get("/version")
        assert response.status_code == 200
        data = response.json()
        assert data["service_version"] == __version__
        assert data["default_model"]


@pytest.mark.asyncio
class TestChat:
    """Test the synchronous chat endpoint."""

    async def test_chat(self, client, service):
        response = await client.post("/api/chat", json={"prompt": "Hello"})
        assert response.status_code == 200
        data = response.json()
        assert data["response"] == "Answer to: Hello"
        assert data["session_id"] in service.registry

    async def test_chat_continues_session(self, client, fake_client):
        first = (await client.post("/api/chat", json={"prompt": "one"})).json()
        second = await client.post(
            "/api/chat", json={"prompt": "two", "session_id": first["session_id"]}
        )
        assert second.json()["session_id"] == first["session_id"]
        assert len(fake_client.handles) == 1

    @pytest.mark.parametrize("body", [{}, {"prompt": ""}, {"prompt": "   "}])
    async def test_invalid_prompt(self, client, body):
        response = await client.post("/api/chat", json=body)
        assert response.status_code == 422

    async def test_upstream_error_is_bad_gateway(self, client, fake_client):
        fake_client.script = [delta("x"), session_error("model overloaded")]
        response = await client.post("/api/chat", json={"prompt": "hi"})
        assert response.status_code == 502
        assert "model overloaded" in response.json()["detail"]

    async def test_unavailable_is_503(self, client, fake_client):
        fake_client.start_error = RuntimeError("copilot not installed")
        response = await client.post("/api/chat", json={"prompt": "hi"})
        assert response.status_code == 503

    async def test_session_creation_failure_is_503(self, client, fake_client):
        fake_client.create_error = ValueError("unknown model")
        response = await client.post("/api/chat", json={"prompt": "hi", "model": "nope"})
        assert response.status_code == 503
        assert "unknown model" in response.json()["detail"]

    async def test_slash_command_goes_to_cli(self, client, fake_client):
        response = await client.post("/api/chat", json={"prompt": "/help"})
        assert response.status_code == 200
        assert response.json()["response"].strip() == "/help"
        assert fake_client.handles == []


@pytest.mark.asyncio
class TestChatStream:
    """Test the SSE endpoint."""

    async def test_stream(self, client):
        response = await client.post("/api/chat/stream", json={"prompt": "Hello"})
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        assert response.headers["cache-control"] == "no-cache"

        events = sse_events(response.text)
        assert events[0] == "connected"
        assert events[1] == {"processing": True}
        assert events[2:4] == [{"chunk": "Answer to: "}, {"chunk": "Hello"}]
        assert events[4]["done"] is True
        assert events[4]["session_id"]
        assert len(events) == 5

    async def test_stream_error(self, client, fake_client):
        fake_client.script = [delta("partial"), session_error("boom")]
        response = await client.post("/api/chat/stream", json={"prompt": "hi"})

        events = sse_events(response.text)
        assert {"chunk": "partial"} in events
        assert events[-1] == {"error": "boom"}
        assert not any(isinstance(e, dict) and e.get("done") for e in events)

    async def test_stream_unavailable(self, client, fake_client):
        fake_client.start_error = RuntimeError("copilot not installed")
        response = await client.post("/api/chat/stream", json={"prompt": "hi"})

        events = sse_events(response.text)
        assert "copilot not installed" in events[-1]["error"]

    async def test_keepalive_while_waiting(self, client, fake_client, test_settings):
        test_settings.sse_keepalive_seconds = 0.01
        fake_client.delay = 0.1
        response = await client.post("/api/chat/stream", json={"prompt": "slow"})

        events = sse_events(response.text)
        assert "keepalive" in events
        assert events[-1]["done"] is True

    async def test_stream_slash_command(self, client):
        response = await client.post(
            "/api/chat/stream", json={"prompt": "/agents", "session_id": "abc"}
        )
        events = sse_events(response.text)
        assert events[2]["chunk"].strip() == "/agents"
        assert events[3] == {"done": True, "session_id": "abc"}


@pytest.mark.asyncio
class TestSessionsAPI:
    """Test session management endpoints."""

    async def test_create_session(self, client, test_settings):
        response = await client.post("/api/sessions", json={})
        assert response.status_code == 201
        data = response.json()
        assert data["session_id"]
        assert data["model"] == test_settings.default_model

    async def test_create_with_model(self, client, fake_client):
        response = await client.post("/api/sessions", json={"model": "o3"})
        assert response.json()["model"] == "o3"
        assert fake_client.create_calls[0]["model"] == "o3"

    async def test_create_failure(self, client, fake_client):
        fake_client.create_error = RuntimeError("boom")
        response = await client.post("/api/sessions", json={})
        assert response.status_code == 503

    async def test_list_sessions(self, client):
        created = (await client.post("/api/sessions", json={})).json()
        await client.post("/api/chat", json={"prompt": "hi", "session_id": created["session_id"]})

        response = await client.get("/api/sessions")
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["sessions"][0]["id"] == created["session_id"]
        assert data["sessions"][0]["message_count"] == 1

    async def test_delete_session(self, client, fake_client):
        created = (await client.post("/api/sessions", json={})).json()

        response = await client.delete(f"/api/sessions/{created['session_id']}")
        assert response.status_code == 200
        assert fake_client.handles[0].destroyed

        response = await client.delete(f"/api/sessions/{created['session_id']}")
        assert response.status_code == 404

    async def test_delete_unknown(self, client):
        response = await client.delete("/api/sessions/nonexistent")
        assert response.status_code == 404
