"""In-memory registry of open assistant sessions."""

import logging
import uuid
from typing import Any

from ..models import Session, SessionInfo
from .assistant_client import maybe_await
from .errors import SessionCreationFailed, UpstreamUnavailable

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Owns every open session and its upstream handle.

    The map is only touched from the event loop and never across an await,
    so it needs no lock. Creations in flight count against the cap. Sessions
    live until deleted or until ``close_all``.
    """

    def __init__(
        self,
        client: Any,
        skill_directories: list[str] | None = None,
        max_sessions: int | None = None,
    ):
        """Initialize the registry.

        Args:
            client: Started assistant client used to open handles
            skill_directories: Skill directories handed to each new session
            max_sessions: Optional cap on open sessions (None means unbounded)
        """
        self.client = client
        self.skill_directories = skill_directories or []
        self.max_sessions = max_sessions
        self._sessions: dict[str, Session] = {}
        self._pending = 0

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    def get(self, session_id: str) -> Session | None:
        """Get a session by ID."""
        return self._sessions.get(session_id)

    async def create_session(self, model: str, streaming: bool = True) -> str:
        """Open a new upstream session and register it.

        Args:
            model: Model identifier for the new session
            streaming: Whether the upstream session emits deltas

        Returns:
            The new session identifier

        Raises:
            UpstreamUnavailable: If the client is not running
            SessionCreationFailed: If the handle cannot be created or the cap is reached
        """
        open_or_pending = len(self._sessions) + self._pending
        if self.max_sessions is not None and open_or_pending >= self.max_sessions:
            raise SessionCreationFailed(
                f"Session limit reached ({self.max_sessions} open sessions)"
            )

        session_id = str(uuid.uuid4())
        logger.info(f"Creating session {session_id} with model: {model}")

        # Reserve the slot before awaiting so concurrent creations respect the cap
        self._pending += 1
        try:
            handle = await self.client.create_session(
                model=model,
                streaming=streaming,
                skill_directories=self.skill_directories,
            )
        except UpstreamUnavailable:
            raise
        except Exception as e:
            logger.error(f"Failed to create session with model {model}: {e}")
            raise SessionCreationFailed(f"Failed to create session: {e}") from e
        finally:
            self._pending -= 1

        self._sessions[session_id] = Session(session_id=session_id, model=model, handle=handle)
        logger.info(f"Session {session_id} created")
        return session_id

    async def get_or_create(self, session_id: str | None, model: str) -> str:
        """Return a known session ID, or open a new session.

        A known session has its message count incremented and keeps its
        handle; an unknown or missing ID always opens exactly one new session.
        """
        if session_id:
            session = self._sessions.get(session_id)
            if session is not None:
                session.record_turn()
                logger.info(f"Using existing session: {session_id}")
                return session_id
            logger.info(f"Unknown session {session_id}, creating a new one")

        return await self.create_session(model)

    async def delete(self, session_id: str) -> bool:
        """Remove a session and release its handle.

        Returns:
            True if the session existed
        """
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False

        logger.info(f"Deleting session: {session_id}")
        await self._release(session)
        return True

    def list_sessions(self) -> list[SessionInfo]:
        """Snapshot of the open sessions in creation order."""
        return [
            SessionInfo(
                id=s.session_id,
                model=s.model,
                created_at=s.created_at,
                message_count=s.message_count,
            )
            for s in self._sessions.values()
        ]

    async def close_all(self) -> None:
        """Release every session (used on shutdown)."""
        sessions = list(self._sessions.values())
        self._sessions.clear()
        for session in sessions:
            await self._release(session)

    async def _release(self, session: Session) -> None:
        destroy = getattr(session.handle, "destroy", None)
        if destroy is None:
            return
        try:
            await maybe_await(destroy())
        except Exception as e:
            logger.warning(f"Could not destroy session {session.session_id}: {e}")
