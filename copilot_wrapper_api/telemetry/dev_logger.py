"""
Development Logger

Keeps the most recent telemetry events in memory so they can be inspected
locally without an Application Insights resource.
"""

import json
import logging
from collections import deque
from datetime import UTC, datetime
from typing import Any

from .config import get_telemetry_config

logger = logging.getLogger(__name__)

_event_buffer: deque[dict[str, Any]] = deque(maxlen=get_telemetry_config().dev_logger_max_events)


def log_dev_event(event_name: str, properties: dict[str, Any]) -> None:
    """Record a telemetry event in the in-memory buffer."""
    if not get_telemetry_config().enable_dev_logger:
        return

    _event_buffer.append(
        {
            "timestamp": datetime.now(UTC).isoformat(),
            "event_name": event_name,
            "properties": properties,
        }
    )
    logger.debug(f"[Telemetry] {event_name}: {json.dumps(properties, default=str)}")


def get_dev_logs() -> list[dict[str, Any]]:
    """Get all buffered events, oldest first."""
    return list(_event_buffer)


def export_dev_logs() -> str:
    """Export buffered events as JSON Lines."""
    return "\n".join(json.dumps(event, default=str) for event in _event_buffer)


def clear_dev_logs() -> None:
    """Clear all buffered events."""
    _event_buffer.clear()
