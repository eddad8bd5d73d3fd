"""Tests for telemetry tracking, request context and middleware."""

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from copilot_wrapper_api.telemetry import (
    TelemetryMiddleware,
    clear_dev_logs,
    clear_request_context,
    export_dev_logs,
    get_dev_logs,
    get_request_context,
    set_request_context,
    track_event,
    track_exception,
    track_metric,
    update_request_context,
)


@pytest.fixture(autouse=True)
def clean_logs():
    clear_dev_logs()
    clear_request_context()
    yield
    clear_dev_logs()
    clear_request_context()


class TestTracking:
    """Test events recorded by the dev logger."""

    def test_event_carries_context(self):
        set_request_context(request_id="req-1", session_id="sess-1")
        track_event("turn_started", {"prompt_length": 5})

        [event] = get_dev_logs()
        assert event["event_name"] == "turn_started"
        assert event["properties"]["request_id"] == "req-1"
        assert event["properties"]["session_id"] == "sess-1"
        assert event["properties"]["prompt_length"] == 5
        assert event["properties"]["app_id"] == "copilot-wrapper-api"

    def test_update_context(self):
        set_request_context(request_id="req-2")
        update_request_context(session_id="sess-2")
        assert get_request_context() == {"request_id": "req-2", "session_id": "sess-2"}

    def test_long_properties_truncated(self):
        track_event("big", {"error_message": "x" * 5000})
        value = get_dev_logs()[0]["properties"]["error_message"]
        assert len(value) == 1003
        assert value.endswith("...")

    def test_metric_and_exception(self):
        track_metric("turn_duration_ms", 12.5, {"session_id": "s"})
        track_exception(ValueError("bad"), {"endpoint": "/api/chat"})

        metric, exception = get_dev_logs()
        assert metric["properties"]["metric_value"] == 12.5
        assert exception["properties"]["error_type"] == "ValueError"
        assert exception["properties"]["endpoint"] == "/api/chat"

    def test_export(self):
        track_event("one")
        track_event("two")
        assert len(export_dev_logs().splitlines()) == 2


@pytest.mark.asyncio
class TestMiddleware:
    """Test request telemetry."""

    async def test_request_id_header_and_events(self):
        app = FastAPI()
        app.add_middleware(TelemetryMiddleware)

        @app.get("/ping")
        async def ping():
            return {"pong": True}

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.get("/ping", headers={"X-Request-ID": "fixed-id"})

        assert response.headers["X-Request-ID"] == "fixed-id"
        names = [e["event_name"] for e in get_dev_logs()]
        assert names == ["request_received", "request_completed"]
        completed = get_dev_logs()[1]["properties"]
        assert completed["status_code"] == 200
        assert completed["endpoint"] == "/ping"

    async def test_generated_request_id(self):
        app = FastAPI()
        app.add_middleware(TelemetryMiddleware)

        @app.get("/ping")
        async def ping():
            return {}

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.get("/ping")

        assert len(response.headers["X-Request-ID"]) == 36
