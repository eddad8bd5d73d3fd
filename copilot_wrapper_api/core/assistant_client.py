"""Adapter around the GitHub Copilot SDK client.

The rest of the bridge only relies on this small surface:

- ``start()`` / ``stop()`` / ``ping()`` on the client
- ``create_session(model, streaming, skill_directories)`` returning a handle
- ``handle.on(callback)`` returning an unsubscribe callable (or None)
- ``handle.send({"prompt": ...})`` and ``handle.destroy()``

Anything implementing it (tests use in-memory fakes) can be handed to
:class:`~copilot_wrapper_api.core.copilot_service.CopilotService`.
"""

import inspect
import logging
from typing import Any

from .errors import UpstreamUnavailable

logger = logging.getLogger(__name__)


async def maybe_await(value: Any) -> Any:
    """Await ``value`` if the SDK handed back an awaitable."""
    if inspect.isawaitable(value):
        return await value
    return value


class CopilotClientAdapter:
    """Starts and talks to the Copilot CLI server through the SDK."""

    def __init__(self, log_level: str = "debug", github_token: str | None = None):
        self.log_level = log_level
        self.github_token = github_token
        self._client: Any | None = None

    def _import_client_class(self) -> Any:
        """Import the SDK client class from the installed package."""
        try:
            from copilot import CopilotClient  # type: ignore[import-not-found]
        except ImportError as e:
            logger.error(f"Failed to import the Copilot SDK: {e}")
            raise UpstreamUnavailable(
                "Could not import the GitHub Copilot SDK. "
                "Install it with 'pip install copilot-wrapper-api[copilot]'."
            ) from e
        return CopilotClient

    async def start(self) -> None:
        """Create the SDK client and start the CLI server process."""
        if self._client is not None:
            return

        client_class = self._import_client_class()
        options: dict[str, Any] = {
            "log_level": self.log_level,
            "auto_start": True,
            "auto_restart": True,
        }
        if self.github_token:
            options["github_token"] = self.github_token

        client = client_class(options)
        await maybe_await(client.start())
        self._client = client
        logger.info("Copilot client started")

    async def ping(self) -> Any:
        """Check the CLI server answers."""
        if self._client is None:
            raise UpstreamUnavailable("Copilot client is not started")
        return await maybe_await(self._client.ping())

    async def create_session(
        self, model: str, streaming: bool, skill_directories: list[str]
    ) -> Any:
        """Open a new assistant session."""
        if self._client is None:
            raise UpstreamUnavailable("Copilot client is not started")
        return await maybe_await(
            self._client.create_session(
                {
                    "model": model,
                    "streaming": streaming,
                    "skill_directories": skill_directories,
                }
            )
        )

    async def stop(self) -> None:
        """Stop the CLI server process."""
        if self._client is None:
            return
        client, self._client = self._client, None
        await maybe_await(client.stop())
        logger.info("Copilot client stopped")
