"""Background wait for workout days that replicate in after a session.

Platform replication can take longer than a sign-in session is willing to
wait. When a session ends without finding local workout days, a watcher
keeps polling at a slower cadence and fires the data-refreshed signal once
if they arrive.
"""

import asyncio
import logging
from typing import Optional

from ...database.local_store import LocalWorkoutStore
from .clock import Clock
from .poller import ConvergencePoller, PollResult
from .signals import DataRefreshBroadcaster

logger = logging.getLogger(__name__)


class BackgroundConvergenceWatcher:
    """Owned, cancellable background polling job."""

    def __init__(
        self,
        local_store: LocalWorkoutStore,
        clock: Clock,
        broadcaster: DataRefreshBroadcaster,
        interval: float,
        max_attempts: int,
    ):
        """Initialize watcher.

        Args:
            local_store: Store to poll
            clock: Clock used between reads
            broadcaster: Receives the data-refreshed signal on success
            interval: Seconds slept before each read
            max_attempts: Maximum number of reads
        """
        self.broadcaster = broadcaster
        self.poller = ConvergencePoller(
            local_store,
            clock,
            interval=interval,
            max_attempts=max_attempts,
            max_consecutive_errors=None,
            sleep_first=True,
        )
        self.result: Optional[PollResult] = None
        self._task: Optional[asyncio.Task] = None
        self._cancelled = False

    def start(self) -> asyncio.Task:
        """Start polling on the running event loop."""
        if self._task is not None:
            raise RuntimeError("Watcher already started")
        logger.info(
            "Starting background watcher (%d attempts every %.1fs)",
            self.poller.max_attempts,
            self.poller.interval,
        )
        self._task = asyncio.get_running_loop().create_task(self._run())
        return self._task

    async def _run(self) -> Optional[PollResult]:
        result = await self.poller.poll(should_stop=lambda: self._cancelled)
        self.result = result
        if result.cancelled:
            logger.debug("Background watcher cancelled")
        elif result.found:
            logger.info(
                "Background watcher found %d day records after %d attempts",
                len(result.records),
                result.attempts,
            )
            self.broadcaster.emit("background")
        else:
            logger.info(
                "Background watcher gave up after %d attempts (%d read errors)",
                result.attempts,
                result.errors,
            )
        return result

    def cancel(self) -> None:
        """Stop polling; no signal is emitted afterwards."""
        self._cancelled = True
        if self._task is not None and not self._task.done():
            self._task.cancel()

    @property
    def cancelled(self) -> bool:
        """True once the watcher was cancelled."""
        return self._cancelled

    @property
    def running(self) -> bool:
        """True while the polling task is alive."""
        return self._task is not None and not self._task.done()

    async def wait(self) -> Optional[PollResult]:
        """Wait for the watcher to finish.

        Returns:
            The poll result, or None if the watcher was cancelled mid-read
        """
        if self._task is None:
            return None
        try:
            return await self._task
        except asyncio.CancelledError:
            if self._task.cancelled():
                return None
            raise


class WatcherRegistry:
    """Process-wide holder for the one active background watcher."""

    def __init__(self) -> None:
        """Initialize empty registry."""
        self._watcher: Optional[BackgroundConvergenceWatcher] = None

    @property
    def active(self) -> Optional[BackgroundConvergenceWatcher]:
        """The running watcher, if any."""
        if self._watcher is not None and self._watcher.running:
            return self._watcher
        return None

    def start(self, watcher: BackgroundConvergenceWatcher) -> bool:
        """Start a watcher unless one is already running.

        Returns:
            True if the watcher was started
        """
        if self.active is not None:
            logger.info("Background watcher already running, not starting another")
            return False
        self._watcher = watcher
        watcher.start()
        return True

    def cancel(self) -> bool:
        """Cancel the registered watcher.

        Returns:
            True if a running watcher was cancelled
        """
        watcher = self._watcher
        self._watcher = None
        if watcher is None:
            return False
        was_running = watcher.running
        watcher.cancel()
        if was_running:
            logger.info("Background watcher cancelled")
        return was_running


watcher_registry = WatcherRegistry()
