"""Application configuration using pydantic-settings."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_PROJECT_ROOT = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Service settings
    service_host: str = Field(default="0.0.0.0", description="Host to bind the service")
    service_port: int = Field(default=3000, description="Port to bind the service")
    service_workers: int = Field(
        default=1,
        description="Number of worker processes (sessions live in memory, keep at 1)",
    )
    log_level: str = Field(default="info", description="Logging level")

    # CORS
    allowed_origins: str = Field(
        default="*",
        description="Allowed CORS origins (comma-separated)",
    )

    def get_allowed_origins(self) -> list[str]:
        """Get allowed origins as a list."""
        if isinstance(self.allowed_origins, str):
            return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]
        return self.allowed_origins

    # Assistant
    default_model: str = Field(default="gpt-4.1", description="Model used when none is given")
    copilot_log_level: str = Field(default="debug", description="Log level for the Copilot client")
    github_token: str | None = Field(default=None, description="GitHub token for the Copilot CLI")
    skills_dir: Path = Field(
        default=_PROJECT_ROOT / "skills",
        description="Directory of skills handed to every assistant session",
    )

    # Produced files
    outputs_dir: Path = Field(
        default=_PROJECT_ROOT / "outputs",
        description="Shared directory the assistant writes downloadable files into",
    )
    download_route: str = Field(
        default="/outputs", description="URL prefix the outputs directory is served under"
    )
    artifact_settle_seconds: float = Field(
        default=0.5, description="Delay before a newly seen file is confirmed non-empty"
    )
    artifact_poll_interval: float = Field(
        default=0.25, description="Interval between output directory listings during a turn"
    )

    # Turns
    turn_timeout_seconds: float = Field(
        default=300.0,
        description="Safety timeout after which a silent turn is treated as complete",
    )
    completion_settle_seconds: float = Field(
        default=1.0,
        description="Delay between the completion event and the final output directory poll",
    )
    forward_reasoning_deltas: bool = Field(
        default=True, description="Forward reasoning deltas to the client as chunks"
    )
    max_sessions: int | None = Field(
        default=None,
        description="Maximum number of open sessions (unset means unbounded)",
    )

    # Streaming
    sse_keepalive_seconds: float = Field(
        default=15.0, description="Interval between SSE keepalive comments"
    )

    # CLI passthrough
    cli_command: str = Field(default="copilot", description="Copilot CLI executable")
    cli_timeout_seconds: float = Field(default=30.0, description="Timeout for CLI commands")

    def get_skill_directories(self) -> list[str]:
        """Get skill directories handed to new sessions."""
        return [str(self.skills_dir)]

    def get_cli_env(self) -> dict[str, str]:
        """Get extra environment variables for the Copilot CLI."""
        env = {}
        if self.github_token:
            env["GITHUB_TOKEN"] = self.github_token
            env["GH_TOKEN"] = self.github_token
        return env


# Global settings instance
settings = Settings()
