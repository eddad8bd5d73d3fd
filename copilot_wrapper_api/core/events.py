"""Classification of raw assistant events.

The SDK's event vocabulary has changed between releases: the discriminator
and the content have lived under several key names, events arrive as plain
mappings or as attribute objects, and type names use dots, underscores or
dashes. Everything version-specific about the wire format is kept here so
the rest of the bridge only deals with :class:`ClassifiedEvent`.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class EventKind(str, Enum):
    """Semantic kinds a raw event is mapped onto."""

    DELTA = "delta"
    FULL_MESSAGE = "full_message"
    TOOL_ACTIVITY = "tool_activity"
    COMPLETION = "completion"
    ERROR = "error"
    UNRECOGNIZED = "unrecognized"


@dataclass(frozen=True)
class ClassifiedEvent:
    """A raw event reduced to its meaning for the bridge."""

    kind: EventKind
    text: str | None = None
    event_type: str | None = None
    reasoning: bool = False


# Tried in order on the envelope
TYPE_KEYS = ("type", "kind", "event", "eventType", "event_type", "name")

# Tried in order, first on the payload container and then on the envelope
CONTENT_KEYS = ("deltaContent", "delta_content", "delta", "content", "text", "message")

PAYLOAD_KEYS = ("data", "payload")

ERROR_MESSAGE_KEYS = ("message", "error", "errorMessage", "error_message", "detail")

TOOL_NAME_KEYS = ("toolName", "tool_name", "name", "tool")


def normalize_type(value: str) -> str:
    """Lower-case a type name and unify its separators to dots."""
    return re.sub(r"[._\-:/]+", ".", value.strip().lower())


def _family(*names: str) -> frozenset[str]:
    return frozenset(normalize_type(name) for name in names)


DELTA_TYPES = _family(
    "assistant.message_delta",
    "message_delta",
    "content_delta",
    "assistant.delta",
    "text_delta",
)
REASONING_DELTA_TYPES = _family("assistant.reasoning_delta", "reasoning_delta")
REASONING_MESSAGE_TYPES = _family("assistant.reasoning", "reasoning")
FULL_MESSAGE_TYPES = _family(
    "assistant.message",
    "message",
    "assistant.full_message",
    "full_message",
)
COMPLETION_TYPES = _family(
    "session.idle",
    "idle",
    "session.done",
    "done",
    "session.complete",
    "complete",
    "completed",
    "completion",
)
TOOL_TYPES = _family(
    "tool.output",
    "tool.result",
    "tool_output",
    "tool_result",
    "tool.execution_start",
    "tool.execution_complete",
    "tool.execution_partial_result",
)
ERROR_TYPES = _family("session.error", "error", "assistant.error")

# Bookkeeping events whose text must never reach the client (user.message
# carries the prompt itself).
SILENT_TYPES = _family(
    "user.message",
    "session.start",
    "session.resume",
    "session.info",
    "session.usage_info",
    "session.model_change",
    "assistant.turn_start",
    "assistant.turn_end",
    "assistant.intent",
    "assistant.usage",
    "pending_messages.modified",
)


def get_field(obj: Any, key: str) -> Any:
    """Read ``key`` from a mapping or an attribute object."""
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(key)
    return getattr(obj, key, None)


def _as_str(value: Any) -> str | None:
    """Coerce enum members and strings to ``str``; anything else is None."""
    if isinstance(value, Enum):
        value = value.value
    if isinstance(value, str):
        return value
    return None


def extract_type(event: Any) -> list[str]:
    """All discriminator values present on the event, in alias order."""
    values = []
    for key in TYPE_KEYS:
        value = _as_str(get_field(event, key))
        if value:
            values.append(value)
    return values


def _containers(event: Any) -> list[Any]:
    containers = []
    for key in PAYLOAD_KEYS:
        payload = get_field(event, key)
        if payload is not None:
            containers.append(payload)
    containers.append(event)
    return containers


def extract_text(event: Any, keys: tuple[str, ...] = CONTENT_KEYS) -> str | None:
    """First non-empty string found under one of ``keys``."""
    for container in _containers(event):
        if isinstance(container, str):
            if container:
                return container
            continue
        for key in keys:
            value = get_field(container, key)
            if isinstance(value, str) and value:
                return value
    return None


def extract_error_message(event: Any) -> str:
    """Error message of an error event, looking one level into nested errors."""
    for container in _containers(event):
        if isinstance(container, str) and container:
            return container
        for key in ERROR_MESSAGE_KEYS:
            value = get_field(container, key)
            if isinstance(value, str) and value:
                return value
            nested = extract_text(value, ERROR_MESSAGE_KEYS) if value is not None else None
            if nested:
                return nested
    return "Session error"


def _describe_tool(event: Any, event_type: str) -> str:
    name = None
    for container in _containers(event):
        for key in TOOL_NAME_KEYS:
            name = _as_str(get_field(container, key))
            if name and normalize_type(name) != normalize_type(event_type):
                return f"{event_type}: {name}"
    return event_type


def classify(event: Any) -> ClassifiedEvent:
    """Map a raw event onto exactly one :class:`EventKind`.

    Each discriminator alias is tried in order; the first value belonging
    to a known family decides the kind. Events matching no family are
    ``UNRECOGNIZED`` and keep any text they carry.
    """
    types = extract_type(event)

    for raw_type in types:
        normalized = normalize_type(raw_type)

        if normalized in DELTA_TYPES:
            return ClassifiedEvent(EventKind.DELTA, extract_text(event) or "", raw_type)
        if normalized in REASONING_DELTA_TYPES:
            return ClassifiedEvent(
                EventKind.DELTA, extract_text(event) or "", raw_type, reasoning=True
            )
        if normalized in REASONING_MESSAGE_TYPES:
            return ClassifiedEvent(
                EventKind.FULL_MESSAGE, extract_text(event) or "", raw_type, reasoning=True
            )
        if normalized in FULL_MESSAGE_TYPES:
            return ClassifiedEvent(EventKind.FULL_MESSAGE, extract_text(event) or "", raw_type)
        if normalized in COMPLETION_TYPES:
            return ClassifiedEvent(EventKind.COMPLETION, None, raw_type)
        if normalized in TOOL_TYPES:
            return ClassifiedEvent(
                EventKind.TOOL_ACTIVITY, _describe_tool(event, raw_type), raw_type
            )
        if normalized in ERROR_TYPES:
            return ClassifiedEvent(EventKind.ERROR, extract_error_message(event), raw_type)
        if normalized in SILENT_TYPES:
            return ClassifiedEvent(EventKind.UNRECOGNIZED, None, raw_type)

    event_type = types[0] if types else None
    logger.debug(f"Unrecognized event type: {event_type}")
    return ClassifiedEvent(EventKind.UNRECOGNIZED, extract_text(event), event_type)
