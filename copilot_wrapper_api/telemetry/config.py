"""
Telemetry Configuration

Connection, identity and dev-logger settings for telemetry.
"""


from pydantic_settings import BaseSettings


class TelemetryConfig(BaseSettings):
    """Telemetry configuration loaded from environment variables."""

    # Connection
    app_insights_connection_string: str | None = None
    enabled: bool = True

    # Application identity, attached to every event
    app_id: str = "copilot-wrapper-api"
    environment: str = "development"

    # Privacy: prompt and chunk text is never tracked, only sizes
    max_property_length: int = 1_000

    # Development
    enable_dev_logger: bool = True
    dev_logger_max_events: int = 1_000

    model_config = {
        "env_prefix": "TELEMETRY_",
        "env_file": ".env",
        "extra": "ignore",
    }


# Global instance (lazy loaded)
_config: TelemetryConfig | None = None


def get_telemetry_config() -> TelemetryConfig:
    """Get the global telemetry configuration instance."""
    global _config
    if _config is None:
        _config = TelemetryConfig()
    return _config
