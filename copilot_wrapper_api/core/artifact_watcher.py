"""Detection of files the assistant writes to the shared outputs directory."""

import asyncio
import logging
import os
import stat
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import quote

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ArtifactNotice:
    """A file produced during a turn."""

    filename: str
    size: int
    download_path: str

    def to_markdown(self) -> str:
        """Chunk announcing the file to the user."""
        return (
            "\n\n---\n\n"
            "✅ **Your file is ready!**\n\n"
            f"📥 **[Click here to download: {self.filename}]({self.download_path})** "
            f"({format_size(self.size)})\n\n"
            '💡 *Right-click and "Save As" to save the file, or click to view in your browser.*'
            "\n\n---\n"
        )


def format_size(size: int) -> str:
    """Human readable byte count."""
    value = float(size)
    for unit in ("bytes", "KB", "MB"):
        if value < 1024 or unit == "MB":
            return f"{int(value)} {unit}" if unit == "bytes" else f"{value:.1f} {unit}"
        value /= 1024
    return f"{size} bytes"


def build_download_path(route: str, filename: str) -> str:
    """URL path under which ``filename`` is served."""
    return f"{route.rstrip('/')}/{quote(filename, safe='')}"


class ArtifactWatcher:
    """Announces each file that appears in ``output_dir`` during one turn.

    Files present when the watcher starts are never announced, and each
    new filename is announced at most once. A background task watches the
    directory for new names and confirms each one after a settle delay;
    ``poll`` does a last immediate pass when the turn completes.
    """

    def __init__(
        self,
        output_dir: Path,
        on_artifact: Callable[[ArtifactNotice], None],
        download_route: str = "/outputs",
        settle_delay: float = 0.5,
        poll_interval: float = 0.25,
    ):
        self.output_dir = Path(output_dir)
        self.on_artifact = on_artifact
        self.download_route = download_route
        self.settle_delay = settle_delay
        self.poll_interval = poll_interval

        self.preexisting: set[str] = set()
        self.notified: set[str] = set()
        self._pending: set[str] = set()
        self._tasks: set[asyncio.Task] = set()
        self._watch_task: asyncio.Task | None = None
        self._stopped = False

    def _list_names(self) -> set[str]:
        try:
            return set(os.listdir(self.output_dir))
        except OSError as e:
            logger.debug(f"Could not read outputs dir {self.output_dir}: {e}")
            return set()

    def snapshot(self) -> None:
        """Record the files that exist before the turn."""
        self.preexisting = self._list_names()

    async def start(self) -> None:
        """Snapshot the directory and begin watching it."""
        self.snapshot()
        self._watch_task = asyncio.create_task(self._watch())

    def _candidates(self, names: set[str]) -> set[str]:
        return names - self.preexisting - self.notified

    def _confirm(self, filename: str) -> ArtifactNotice | None:
        """Mark ``filename`` notified if it is a new non-empty regular file."""
        if filename in self.notified:
            return None
        try:
            stats = (self.output_dir / filename).stat()
        except OSError as e:
            logger.debug(f"File not ready yet: {filename}: {e}")
            return None
        if not stat.S_ISREG(stats.st_mode) or stats.st_size <= 0:
            return None

        self.notified.add(filename)
        logger.info(f"New file detected: {filename} ({stats.st_size} bytes)")
        return ArtifactNotice(
            filename=filename,
            size=stats.st_size,
            download_path=build_download_path(self.download_route, filename),
        )

    async def _watch(self) -> None:
        while not self._stopped:
            await asyncio.sleep(self.poll_interval)
            names = await asyncio.to_thread(self._list_names)
            for filename in self._candidates(names) - self._pending:
                self._pending.add(filename)
                task = asyncio.create_task(self._settle(filename))
                self._tasks.add(task)
                task.add_done_callback(self._tasks.discard)

    async def _settle(self, filename: str) -> None:
        try:
            await asyncio.sleep(self.settle_delay)
            notice = self._confirm(filename)
            if notice is not None:
                self.on_artifact(notice)
        finally:
            self._pending.discard(filename)

    def poll(self) -> list[ArtifactNotice]:
        """Check the directory once, without waiting for files to settle."""
        notices = []
        for filename in sorted(self._candidates(self._list_names())):
            notice = self._confirm(filename)
            if notice is not None:
                notices.append(notice)
        return notices

    async def stop(self) -> None:
        """Stop watching and drop pending confirmations."""
        self._stopped = True
        tasks = list(self._tasks)
        if self._watch_task is not None:
            tasks.append(self._watch_task)
            self._watch_task = None
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
        self._pending.clear()
