"""Passthrough of slash commands (``/help``, ``/agents`` ...) to the Copilot CLI."""

import asyncio
import logging
import os

from ..config import Settings
from ..telemetry import TelemetryEvents, track_event

logger = logging.getLogger(__name__)

CLI_HINT = (
    "Note: The Copilot CLI is running in SDK mode. Some interactive commands may not work.\n\n"
    'Try asking as a question instead, like: "What agents are available?"'
)


def is_cli_command(prompt: str) -> bool:
    """Prompts starting with ``/`` are CLI commands rather than chat."""
    return prompt.strip().startswith("/")


async def run_cli_command(command: str, settings: Settings) -> str:
    """Pipe ``command`` into the Copilot CLI and return its output.

    Failures are reported in the returned text rather than raised, so the
    caller can show them like any other answer.
    """
    logger.info(f"Executing CLI command: {command.strip()[:100]}")
    env = {**os.environ, **settings.get_cli_env()}

    try:
        process = await asyncio.create_subprocess_exec(
            settings.cli_command,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=env,
        )
    except OSError as e:
        logger.error(f"Could not start {settings.cli_command}: {e}")
        track_event(TelemetryEvents.CLI_COMMAND_FAILED, {"error_message": str(e)})
        return f"Error executing command: {e}\n\n{CLI_HINT}"

    try:
        stdout, stderr = await asyncio.wait_for(
            process.communicate(f"{command.strip()}\n".encode()),
            timeout=settings.cli_timeout_seconds,
        )
    except TimeoutError:
        process.kill()
        await process.wait()
        logger.error(f"CLI command timed out after {settings.cli_timeout_seconds}s")
        track_event(TelemetryEvents.CLI_COMMAND_FAILED, {"error_message": "timeout"})
        return (
            f"Error executing command: timed out after {settings.cli_timeout_seconds:g}s"
            f"\n\n{CLI_HINT}"
        )

    output = stdout.decode(errors="replace") or stderr.decode(errors="replace")
    if process.returncode and not stdout:
        logger.warning(f"CLI command exited with {process.returncode}")
        track_event(TelemetryEvents.CLI_COMMAND_FAILED, {"exit_code": process.returncode})
        return f"Error executing command: {output.strip() or process.returncode}\n\n{CLI_HINT}"

    logger.info(f"CLI output: {output[:200]}")
    track_event(TelemetryEvents.CLI_COMMAND_EXECUTED, {"output_length": len(output)})
    return output or "Command executed successfully"
