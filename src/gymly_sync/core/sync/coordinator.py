"""Sign-in and sign-out lifecycle around the sync orchestrator."""

import asyncio
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from .orchestrator import SyncOrchestrator
from .session import SyncSession
from .watcher import WatcherRegistry

if TYPE_CHECKING:
    from ..preferences.sync import PreferenceSync

logger = logging.getLogger(__name__)


class SignOutRequest:
    """Flag file that lets another process ask a running sign-in to sign out.

    ``gymly-sync sign-out`` runs in its own process and cannot reach the
    watcher registry of a ``sign-in --wait`` that is still running. It
    raises this flag instead; the waiting process sees it and signs out.
    """

    def __init__(self, path: Path):
        """Initialize sign-out request.

        Args:
            path: Flag file location
        """
        self.path = Path(path)

    def request(self) -> None:
        """Raise the flag."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.touch()
        logger.debug("Sign-out requested via %s", self.path)

    def reset(self) -> None:
        """Lower the flag."""
        self.path.unlink(missing_ok=True)

    @property
    def is_requested(self) -> bool:
        """True while the flag is raised."""
        return self.path.exists()


class SignInCoordinator:
    """Owns the current session and the background work that follows it.

    The watcher is started by a successful sign-in session (through the
    orchestrator) and only ever cancelled here, on sign-out. Dismissing a
    session does not touch it. While signed in, the replicated preference
    store is watched for changes made on another device.
    """

    def __init__(
        self,
        orchestrator: SyncOrchestrator,
        preference_sync: "PreferenceSync",
        registry: Optional[WatcherRegistry] = None,
        sign_out_request: Optional[SignOutRequest] = None,
    ):
        """Initialize coordinator.

        Args:
            orchestrator: Sync orchestrator
            preference_sync: Preference sync to attach to external changes
            registry: Watcher registry (defaults to the orchestrator's)
            sign_out_request: Flag another process raises to sign us out
        """
        self.orchestrator = orchestrator
        self.preference_sync = preference_sync
        self.registry = registry or orchestrator.registry
        self.sign_out_request = sign_out_request
        self.current_session: Optional[SyncSession] = None
        self.account_id: Optional[str] = None
        self._preference_watch: Optional[asyncio.Task] = None

    async def sign_in(
        self, account_id: str, session: Optional[SyncSession] = None
    ) -> SyncSession:
        """Sign in and run a sync session.

        Args:
            account_id: Account to sign in
            session: Optional pre-built session

        Returns:
            The finished session
        """
        if self.current_session is not None and not self.current_session.is_finished:
            logger.info("Cancelling unfinished session before signing in again")
            self.current_session.cancel()

        if self.sign_out_request is not None:
            self.sign_out_request.reset()

        session = session or SyncSession()
        self.current_session = session
        self.account_id = account_id
        self.preference_sync.attach()
        self._start_preference_watch()
        return await self.orchestrator.run(account_id, session)

    async def wait_for_background(self) -> bool:
        """Wait for the background watcher, unless sign-out is requested first.

        Returns:
            True if a sign-out request ended the wait (and we signed out)
        """
        interval = self.orchestrator.settings.sign_out_check_interval
        while self.registry.active is not None:
            if self.sign_out_request is not None and self.sign_out_request.is_requested:
                logger.info("Sign-out requested by another process")
                await self.sign_out()
                self.sign_out_request.reset()
                return True
            await self.orchestrator.clock.sleep(interval)
        return False

    def stop_watching(self) -> None:
        """Stop following external preference changes."""
        task = self._preference_watch
        self._preference_watch = None
        self.preference_sync.detach()
        if task is not None and not task.done():
            task.cancel()

    async def sign_out(self, clear_preferences: bool = False) -> None:
        """Stop the current session and the background watcher.

        Args:
            clear_preferences: Also reset local and replicated preferences
        """
        if self.current_session is not None and not self.current_session.is_finished:
            self.current_session.cancel()
        self.registry.cancel()
        self.stop_watching()

        if clear_preferences:
            try:
                await self.preference_sync.clear()
            except Exception as e:
                logger.warning("Could not clear replicated preferences: %s", e)

        logger.info("Signed out account %s", self.account_id)
        self.account_id = None
        self.current_session = None

    def _start_preference_watch(self) -> None:
        if self._preference_watch is not None and not self._preference_watch.done():
            return
        interval = self.orchestrator.settings.preference_watch_interval
        self._preference_watch = asyncio.get_running_loop().create_task(
            self.preference_sync.watch(interval)
        )
