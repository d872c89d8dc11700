"""Pull and push of fitness preferences between local config and replica."""

import logging
from typing import Any, Callable, Dict, Optional

from ...models import PREFERENCE_KEYS, FitnessPreferences
from ..sync.clock import Clock, run_with_budget
from .local import LocalPreferenceConfig
from .store import ReplicatedPreferenceStore

logger = logging.getLogger(__name__)


class PreferenceSync:
    """Keeps the local preference config in step with the replicated store.

    Local config is authoritative: the replica only overwrites it when the
    replica holds a completed profile.
    """

    def __init__(
        self,
        store: ReplicatedPreferenceStore,
        local_config: LocalPreferenceConfig,
        clock: Clock,
    ):
        """Initialize preference sync.

        Args:
            store: Replicated key-value store
            local_config: Local preference config
            clock: Clock used for the fetch budget
        """
        self.store = store
        self.local_config = local_config
        self.clock = clock
        self._unsubscribe: Optional[Callable[[], None]] = None

    async def fetch(self, timeout: float) -> FitnessPreferences:
        """Pull preferences from the replica within a time budget.

        On timeout the replica read keeps going in the background and its
        result is dropped; local values stay in effect.

        Returns:
            The preferences in effect after the pull
        """
        budget = await run_with_budget(
            self.store.fetch(), timeout, self.clock, label="preference fetch"
        )
        if budget.timed_out:
            return self.local_config.load()
        if budget.error is not None:
            logger.warning("Preference fetch failed, using local values: %s", budget.error)
            return self.local_config.load()
        return self.apply(budget.value or {})

    def apply(self, values: Dict[str, Any]) -> FitnessPreferences:
        """Apply replicated values to local config if they form a completed profile."""
        remote = FitnessPreferences.from_kv(values)
        if not remote.has_completed_profile:
            logger.debug("Replica has no completed fitness profile, keeping local values")
            return self.local_config.load()

        self.local_config.save(remote)
        logger.info(
            "Applied replicated preferences (goal=%s, days=%d)",
            remote.fitness_goal or "-",
            remote.training_days_per_week,
        )
        return remote

    async def push(self, preferences: Optional[FitnessPreferences] = None) -> None:
        """Save preferences locally and write them behind to the replica."""
        if preferences is None:
            preferences = self.local_config.load()
        else:
            self.local_config.save(preferences)
        await self.store.push(preferences.to_kv())
        logger.info("Pushed fitness preferences to replicated store")

    async def clear(self) -> None:
        """Reset local preferences and remove them from the replica."""
        self.local_config.reset()
        await self.store.clear(PREFERENCE_KEYS)
        logger.info("Cleared fitness preferences")

    def handle_external_change(self, values: Dict[str, Any]) -> None:
        """Pull-and-apply triggered by a change on another device."""
        self.apply(values)

    async def watch(self, interval: float) -> None:
        """Follow external changes on the replica for as long as attached."""
        await self.store.watch(
            self.clock, interval, should_stop=lambda: self._unsubscribe is None
        )

    def attach(self) -> None:
        """Start reacting to external changes (idempotent)."""
        if self._unsubscribe is None:
            self._unsubscribe = self.store.on_external_change(self.handle_external_change)

    def detach(self) -> None:
        """Stop reacting to external changes."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
