"""
spectap Spec Watcher

Polls the spec file's modification time on the event loop and triggers
an async reload callback when it changes. Polling works on every
filesystem, including bind mounts where inotify events never arrive.
"""

import asyncio
import logging
from pathlib import Path
from typing import Awaitable, Callable, Optional, Tuple

logger = logging.getLogger("spectap.mock.watcher")


class SpecWatcher:
    """
    Watches one file and calls ``callback`` after it changes.

    Rapid successive writes (editor save patterns) are debounced into a
    single reload.
    """

    def __init__(
        self,
        path: str,
        callback: Optional[Callable[[], Awaitable[None]]] = None,
        poll_interval: float = 1.0,
        debounce: float = 0.2
    ):
        """
        Args:
            path: File to watch
            callback: Async function called with no arguments on change
            poll_interval: How often to check for changes (seconds)
            debounce: Quiet period after a change before reloading (seconds)
        """
        self.path = Path(path)
        self.callback = callback
        self.poll_interval = poll_interval
        self.debounce = debounce
        self._running = False
        self._task: Optional[asyncio.Task] = None
        self._last_signature: Optional[Tuple[float, int]] = None

    @property
    def running(self) -> bool:
        return self._running

    async def start(self):
        """Start watching for file changes."""
        if self._running:
            logger.warning("Spec watcher already running")
            return

        self._last_signature = self._signature()
        self._running = True
        self._task = asyncio.create_task(self._watch_loop())
        logger.info("Watching %s for changes", self.path)

    async def stop(self):
        """Stop watching for file changes."""
        if not self._running:
            return

        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Spec watcher stopped")

    def _signature(self) -> Optional[Tuple[float, int]]:
        try:
            stat = self.path.stat()
            return stat.st_mtime, stat.st_size
        except OSError:
            return None

    def check(self) -> bool:
        """Record the current mtime and size; True if either changed since the last check."""
        current = self._signature()
        if current is None or current == self._last_signature:
            return False
        self._last_signature = current
        return True

    async def _watch_loop(self):
        while self._running:
            await asyncio.sleep(self.poll_interval)
            if not self.check():
                continue

            # Wait for the writer to finish, absorbing follow-up writes
            await asyncio.sleep(self.debounce)
            self.check()

            logger.debug("Detected change in %s", self.path)
            if self.callback is None:
                continue
            try:
                await self.callback()
            except Exception as e:
                logger.error("Reload callback failed: %s", e)
