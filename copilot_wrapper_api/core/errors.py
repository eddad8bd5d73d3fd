"""Errors raised by the Copilot bridge."""


class CopilotServiceError(RuntimeError):
    """Base class for bridge errors."""

    pass


class UpstreamUnavailable(CopilotServiceError):
    """Raised when the Copilot client cannot be started or reached.

    Not fatal: the client is started again on the next call.
    """

    pass


class SessionCreationFailed(CopilotServiceError):
    """Raised when a new assistant session cannot be opened."""

    pass


class UpstreamError(CopilotServiceError):
    """Raised when the assistant reports an error during a turn."""

    pass
