"""Tests for classification of raw assistant events."""

from enum import Enum
from types import SimpleNamespace

import pytest

from copilot_wrapper_api.core.events import (
    ClassifiedEvent,
    EventKind,
    classify,
    extract_error_message,
    normalize_type,
)


class TestNormalizeType:
    """Test type name normalization."""

    @pytest.mark.parametrize(
        "raw",
        ["assistant.message_delta", "Assistant.Message-Delta", "assistant_message_delta"],
    )
    def test_separators_and_case_unified(self, raw):
        assert normalize_type(raw) == "assistant.message.delta"


class TestDeltaEvents:
    """Test streaming delta classification."""

    def test_current_sdk_shape(self):
        event = {"type": "assistant.message_delta", "data": {"deltaContent": "Hel"}}
        result = classify(event)
        assert result == ClassifiedEvent(EventKind.DELTA, "Hel", "assistant.message_delta")

    def test_alternate_discriminator_and_content_keys(self):
        event = {"kind": "content_delta", "payload": {"delta": "lo"}}
        result = classify(event)
        assert result.kind is EventKind.DELTA
        assert result.text == "lo"

    def test_content_on_envelope(self):
        result = classify({"eventType": "message_delta", "text": "abc"})
        assert result.kind is EventKind.DELTA
        assert result.text == "abc"

    def test_attribute_object_with_enum_type(self):
        class SessionEventType(Enum):
            ASSISTANT_MESSAGE_DELTA = "assistant.message_delta"

        event = SimpleNamespace(
            type=SessionEventType.ASSISTANT_MESSAGE_DELTA,
            data=SimpleNamespace(delta_content="hi"),
        )
        result = classify(event)
        assert result.kind is EventKind.DELTA
        assert result.text == "hi"

    def test_reasoning_delta_is_flagged(self):
        result = classify({"type": "assistant.reasoning_delta", "data": {"deltaContent": "hmm"}})
        assert result.kind is EventKind.DELTA
        assert result.reasoning is True
        assert result.text == "hmm"

    def test_delta_without_content_has_empty_text(self):
        result = classify({"type": "assistant.message_delta", "data": {}})
        assert result.kind is EventKind.DELTA
        assert result.text == ""


class TestOtherKinds:
    """Test the remaining event families."""

    def test_full_message(self):
        result = classify({"type": "assistant.message", "data": {"content": "Done."}})
        assert result.kind is EventKind.FULL_MESSAGE
        assert result.text == "Done."

    @pytest.mark.parametrize("event_type", ["session.idle", "idle", "session_done", "completed"])
    def test_completion_aliases(self, event_type):
        result = classify({"type": event_type})
        assert result.kind is EventKind.COMPLETION
        assert result.text is None

    def test_tool_activity_names_the_tool(self):
        result = classify(
            {"type": "tool.execution_start", "data": {"toolName": "write_file"}}
        )
        assert result.kind is EventKind.TOOL_ACTIVITY
        assert result.text == "tool.execution_start: write_file"

    def test_error_message(self):
        result = classify({"type": "session.error", "data": {"message": "rate limited"}})
        assert result.kind is EventKind.ERROR
        assert result.text == "rate limited"

    def test_error_without_message_has_default(self):
        result = classify({"type": "error"})
        assert result.kind is EventKind.ERROR
        assert result.text == "Session error"

    def test_nested_error_message(self):
        event = {"type": "session.error", "data": {"error": {"message": "quota exceeded"}}}
        assert extract_error_message(event) == "quota exceeded"


class TestUnrecognizedEvents:
    """Test events outside the known families."""

    def test_unknown_type_keeps_text(self):
        result = classify({"type": "assistant.something_new", "data": {"content": "text"}})
        assert result.kind is EventKind.UNRECOGNIZED
        assert result.text == "text"
        assert result.event_type == "assistant.something_new"

    def test_user_message_is_silent(self):
        result = classify({"type": "user.message", "data": {"content": "my prompt"}})
        assert result.kind is EventKind.UNRECOGNIZED
        assert result.text is None

    def test_missing_type(self):
        result = classify({"data": {"content": "orphan"}})
        assert result.kind is EventKind.UNRECOGNIZED
        assert result.event_type is None
        assert result.text == "orphan"

    def test_none_event(self):
        result = classify(None)
        assert result.kind is EventKind.UNRECOGNIZED
        assert result.text is None

    def test_first_known_discriminator_wins(self):
        event = {"type": "custom", "event": "session.idle"}
        assert classify(event).kind is EventKind.COMPLETION


class TestReasoningEvents:
    """Test complete reasoning blocks."""

    def test_full_reasoning_is_flagged(self):
        result = classify({"type": "assistant.reasoning", "data": {"content": "step one"}})
        assert result.kind is EventKind.FULL_MESSAGE
        assert result.reasoning is True
        assert result.text == "step one"

    def test_answer_message_is_not_reasoning(self):
        assert classify({"type": "assistant.message", "data": {"content": "x"}}).reasoning is False
