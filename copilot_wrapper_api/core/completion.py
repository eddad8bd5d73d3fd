"""Terminal-state tracking for a single turn."""

import asyncio
import logging
from collections.abc import Callable
from enum import Enum

logger = logging.getLogger(__name__)


class TurnState(str, Enum):
    """Turn state enumeration."""

    ACTIVE = "active"
    COMPLETED = "completed"
    ERRORED = "errored"


class CompletionReason(str, Enum):
    """Why a turn reached COMPLETED."""

    EVENT = "event"
    TIMEOUT = "timeout"


class CompletionDetector:
    """Set-once terminal cell for a turn, plus its safety timer.

    The first of ``complete`` / ``fail`` wins; every later call returns
    False and changes nothing. The safety timer completes the turn when the
    assistant never reports that it went idle.
    """

    def __init__(self, timeout: float, on_timeout: Callable[[], None] | None = None):
        """Initialize the detector.

        Args:
            timeout: Seconds before a silent turn is treated as complete
            on_timeout: Called from the event loop when the timer fires.
                Defaults to completing the turn directly.
        """
        self.timeout = timeout
        self.on_timeout = on_timeout
        self.state = TurnState.ACTIVE
        self.reason: CompletionReason | None = None
        self.error: BaseException | None = None
        self._timer: asyncio.TimerHandle | None = None

    @property
    def is_terminal(self) -> bool:
        return self.state is not TurnState.ACTIVE

    def arm(self) -> None:
        """Start the safety timer on the running loop."""
        if self._timer is not None or self.is_terminal:
            return
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.timeout, self._fire)

    def _fire(self) -> None:
        self._timer = None
        if self.is_terminal:
            return
        if self.on_timeout is not None:
            self.on_timeout()
        else:
            self.complete(CompletionReason.TIMEOUT)

    def complete(self, reason: CompletionReason = CompletionReason.EVENT) -> bool:
        """Move to COMPLETED. Returns False if the turn already ended."""
        if self.is_terminal:
            logger.debug(f"Ignoring completion ({reason.value}), turn already {self.state.value}")
            return False
        self.state = TurnState.COMPLETED
        self.reason = reason
        self.cancel()
        return True

    def fail(self, error: BaseException) -> bool:
        """Move to ERRORED. Returns False if the turn already ended."""
        if self.is_terminal:
            logger.debug(f"Ignoring error, turn already {self.state.value}: {error}")
            return False
        self.state = TurnState.ERRORED
        self.error = error
        self.cancel()
        return True

    def cancel(self) -> None:
        """Cancel the safety timer."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
