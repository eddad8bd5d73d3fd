"""Request models for API endpoints."""

from pydantic import BaseModel, Field, field_validator


class ChatRequest(BaseModel):
    """Request to send a prompt to the assistant."""

    prompt: str = Field(..., description="Prompt text", min_length=1)
    model: str | None = Field(
        default=None,
        description="Model to use (defaults to the configured model)",
        examples=["gpt-4.1"],
    )
    session_id: str | None = Field(
        default=None,
        description="Existing session to continue (a new one is opened if unknown)",
    )

    @field_validator("prompt")
    @classmethod
    def validate_prompt(cls, v: str) -> str:
        """Reject prompts made only of whitespace."""
        if not v.strip():
            raise ValueError("prompt must not be blank")
        return v


class SessionCreateRequest(BaseModel):
    """Request to open a new session."""

    model: str | None = Field(
        default=None,
        description="Model to use (defaults to the configured model)",
        examples=["gpt-4.1"],
    )
