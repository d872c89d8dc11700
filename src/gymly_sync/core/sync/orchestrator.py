"""Sign-in sync orchestrator.

Drives one sync session through its stages:

1. CheckingAvailability: check the remote document database
2. SyncingPreferences: budgeted pull of the replicated preference set
3. SyncingFitnessProfile: budgeted pull of the remote profile record
4. AwaitingLocalConvergence: poll the local store for replicated workout days
5. FallbackRemoteFetch: fetch remote snapshots and merge them (conditional)
6. Complete: hold briefly, then signal that data was refreshed

Stages 2 and 3 are skipped when the remote is unavailable. No stage raises
to the caller; every failure degrades to the next stage.
"""

import asyncio
import logging
from typing import TYPE_CHECKING, Optional

from ...config import SyncSettings
from ...database.local_store import LocalWorkoutStore
from .clock import Clock
from .merge import MergeReconciler
from .poller import ConvergencePoller, PollResult
from .progress_tracker import SyncStage
from .session import (
    DATABASE_UNAVAILABLE_MESSAGE,
    SYNC_ISSUES_MESSAGE,
    SyncOutcome,
    SyncSession,
)
from .signals import DataRefreshBroadcaster
from .watcher import BackgroundConvergenceWatcher, WatcherRegistry, watcher_registry

if TYPE_CHECKING:
    from ..preferences.sync import PreferenceSync
    from ..remote.profile import ProfileSync
    from ..remote.store import RemoteRecordStore

logger = logging.getLogger(__name__)

# Stage entry progress
CHECKING_PROGRESS = 0.05
PREFERENCES_PROGRESS = 0.15
PROFILE_PROGRESS = 0.25
FALLBACK_PROGRESS = 0.90


class SyncOrchestrator:
    """Runs sync sessions and hands off to the background watcher."""

    def __init__(
        self,
        local_store: LocalWorkoutStore,
        remote_store: "RemoteRecordStore",
        preference_sync: "PreferenceSync",
        profile_sync: "ProfileSync",
        broadcaster: DataRefreshBroadcaster,
        clock: Optional[Clock] = None,
        settings: Optional[SyncSettings] = None,
        reconciler: Optional[MergeReconciler] = None,
        registry: Optional[WatcherRegistry] = None,
    ):
        """Initialize sync orchestrator.

        Args:
            local_store: Local workout store
            remote_store: Remote document database
            preference_sync: Replicated preference pull/push
            profile_sync: Remote profile pull
            broadcaster: Receives the data-refreshed signal
            clock: Clock for sleeps and budgets
            settings: Timing constants
            reconciler: Merge used by the fallback stage
            registry: Where the background watcher is registered
        """
        self.local_store = local_store
        self.remote_store = remote_store
        self.preference_sync = preference_sync
        self.profile_sync = profile_sync
        self.broadcaster = broadcaster
        self.clock = clock or Clock()
        self.settings = settings or SyncSettings()
        self.reconciler = reconciler or MergeReconciler()
        self.registry = registry or watcher_registry
        self.watcher: Optional[BackgroundConvergenceWatcher] = None

    async def run(
        self, account_id: str, session: Optional[SyncSession] = None
    ) -> SyncSession:
        """Run one sync session to completion.

        Args:
            account_id: Account being signed in
            session: Pre-built session (lets callers attach progress
                callbacks or cancel it from outside)

        Returns:
            The finished session
        """
        session = session or SyncSession()
        session.account_id = account_id
        logger.info("Starting sync session %s for account %s", session.session_id, account_id)

        outcome = await self._run_stages(account_id, session)

        if outcome == SyncOutcome.CANCELLED:
            session.finish(outcome)
            logger.info(
                "Sync session %s finished: outcome=%s", session.session_id, outcome.value
            )
            return session

        await self._complete(session, outcome)

        if outcome != SyncOutcome.FOUND:
            self._start_watcher()
        return session

    async def _run_stages(self, account_id: str, session: SyncSession) -> SyncOutcome:
        session.advance(SyncStage.CHECKING_AVAILABILITY, CHECKING_PROGRESS)
        session.remote_available = await self._check_availability()
        if session.cancelled:
            return SyncOutcome.CANCELLED

        if session.remote_available:
            session.advance(SyncStage.SYNCING_PREFERENCES, PREFERENCES_PROGRESS)
            await self._sync_preferences()
            if session.cancelled:
                return SyncOutcome.CANCELLED

            session.advance(SyncStage.SYNCING_FITNESS_PROFILE, PROFILE_PROGRESS)
            await self._sync_profile(account_id)
            if session.cancelled:
                return SyncOutcome.CANCELLED
        else:
            logger.info("Remote store unavailable, continuing with local data only")

        poll = await self._await_local_convergence(session)
        if poll.cancelled or session.cancelled:
            return SyncOutcome.CANCELLED
        if poll.found:
            return SyncOutcome.FOUND

        outcome = SyncOutcome.NOT_FOUND
        if poll.aborted:
            session.set_advisory(DATABASE_UNAVAILABLE_MESSAGE)
            outcome = SyncOutcome.DEGRADED

        if not session.remote_available:
            return outcome

        return await self._fallback_remote_fetch(account_id, session, outcome)

    async def _check_availability(self) -> bool:
        try:
            return await self.remote_store.is_available()
        except Exception as e:
            logger.warning(
                "Availability check failed, treating remote as unavailable: %s", e
            )
            return False

    async def _sync_preferences(self) -> None:
        try:
            await self.preference_sync.fetch(self.settings.preference_timeout)
        except Exception as e:
            logger.warning("Preference sync failed, using local values: %s", e)

    async def _sync_profile(self, account_id: str) -> None:
        try:
            await self.profile_sync.fetch(account_id, self.settings.profile_timeout)
        except Exception as e:
            logger.warning("Profile sync failed, using local profile: %s", e)

    async def _await_local_convergence(self, session: SyncSession) -> PollResult:
        settings = self.settings
        session.advance(SyncStage.AWAITING_LOCAL_CONVERGENCE, settings.poll_progress_start)
        poller = ConvergencePoller(
            self.local_store,
            self.clock,
            interval=settings.poll_interval,
            max_attempts=settings.poll_max_attempts,
            max_consecutive_errors=settings.max_consecutive_errors,
        )
        span = settings.poll_progress_end - settings.poll_progress_start

        def on_attempt(attempt: int) -> None:
            session.poll_attempts = attempt + 1
            session.report_progress(
                settings.poll_progress_start
                + attempt / settings.poll_max_attempts * span
            )

        return await poller.poll(should_stop=lambda: session.cancelled, on_attempt=on_attempt)

    async def _fallback_remote_fetch(
        self, account_id: str, session: SyncSession, outcome: SyncOutcome
    ) -> SyncOutcome:
        session.advance(SyncStage.FALLBACK_REMOTE_FETCH, FALLBACK_PROGRESS)
        try:
            splits = await self.remote_store.fetch_split_snapshots(account_id)
            snapshots = await self.remote_store.fetch_day_snapshots(account_id)
            session.merge_result = await asyncio.to_thread(
                self.reconciler.merge, snapshots, self.local_store, splits
            )
            records = await self.local_store.query_day_records()
        except Exception as e:
            logger.error("Fallback remote fetch failed: %s", e)
            session.set_advisory(SYNC_ISSUES_MESSAGE)
            return SyncOutcome.DEGRADED

        if session.cancelled:
            return SyncOutcome.CANCELLED
        if records:
            session.set_advisory(None)
            return SyncOutcome.FOUND
        return outcome

    async def _complete(self, session: SyncSession, outcome: SyncOutcome) -> None:
        session.advance(SyncStage.COMPLETE, 1.0)
        await self.clock.sleep(self.settings.complete_hold)
        session.finish(outcome)

        if outcome == SyncOutcome.NOT_FOUND:
            logger.info(
                "Sync session %s finished: outcome=not_found (no workout data yet)",
                session.session_id,
            )
        elif outcome == SyncOutcome.DEGRADED:
            logger.warning(
                "Sync session %s finished: outcome=degraded (%s)",
                session.session_id,
                session.last_error,
            )
        else:
            logger.info(
                "Sync session %s finished: outcome=%s", session.session_id, outcome.value
            )

        self.broadcaster.emit("session")
        session.refresh_emitted = True

    def _start_watcher(self) -> None:
        watcher = BackgroundConvergenceWatcher(
            self.local_store,
            self.clock,
            self.broadcaster,
            interval=self.settings.background_interval,
            max_attempts=self.settings.background_max_attempts,
        )
        if self.registry.start(watcher):
            self.watcher = watcher
