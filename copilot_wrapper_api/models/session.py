"""Session data models."""

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field


class Session(BaseModel):
    """A conversation held open against the assistant.

    The upstream handle is owned by this session and released when the
    session is deleted.
    """

    model_config = {"arbitrary_types_allowed": True}

    session_id: str
    model: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    message_count: int = 0
    handle: Any = Field(default=None, exclude=True, repr=False)

    def record_turn(self) -> int:
        """Count one more prompt sent on this session."""
        self.message_count += 1
        return self.message_count


class SessionInfo(BaseModel):
    """Public snapshot of a session."""

    id: str
    model: str
    created_at: datetime
    message_count: int = 0
