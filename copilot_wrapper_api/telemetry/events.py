"""
Telemetry Event Names

Event names follow {entity}_{action}.
"""


class TelemetryEvents:
    """Centralized telemetry event names."""

    # Request lifecycle
    REQUEST_RECEIVED = "request_received"
    REQUEST_COMPLETED = "request_completed"
    REQUEST_FAILED = "request_failed"

    # Assistant client
    UPSTREAM_STARTED = "upstream_started"
    UPSTREAM_UNAVAILABLE = "upstream_unavailable"
    UPSTREAM_STOPPED = "upstream_stopped"

    # Session lifecycle
    SESSION_CREATED = "session_created"
    SESSION_CREATION_FAILED = "session_creation_failed"
    SESSION_DELETED = "session_deleted"

    # Turns
    TURN_STARTED = "turn_started"
    TURN_COMPLETED = "turn_completed"
    TURN_TIMED_OUT = "turn_timed_out"
    TURN_FAILED = "turn_failed"
    ARTIFACT_ANNOUNCED = "artifact_announced"

    # CLI passthrough
    CLI_COMMAND_EXECUTED = "cli_command_executed"
    CLI_COMMAND_FAILED = "cli_command_failed"

    # Application lifecycle
    APP_STARTED = "app_started"
    APP_STOPPED = "app_stopped"
