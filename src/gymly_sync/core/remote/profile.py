"""Profile sync between the remote private partition and the local store."""

import asyncio
import logging
from typing import Optional

from ...database.service import DatabaseService
from ...models import RemoteProfileRecord
from ..sync.clock import Clock, run_with_budget
from .store import RemoteRecordStore

logger = logging.getLogger(__name__)


class ProfileSync:
    """Pulls the account profile, creating it remotely on first sync."""

    def __init__(
        self, remote_store: RemoteRecordStore, db_service: DatabaseService, clock: Clock
    ):
        """Initialize profile sync.

        Args:
            remote_store: Remote record store
            db_service: Database service holding the local profile
            clock: Clock used for the fetch budget
        """
        self.remote_store = remote_store
        self.db_service = db_service
        self.clock = clock

    async def fetch(self, account_id: str, timeout: float) -> Optional[RemoteProfileRecord]:
        """Pull the remote profile within a time budget.

        A remote profile is copied into the local store. If the account has
        no remote profile yet but a local one exists, the local one is saved
        remotely within whatever is left of the budget; a save still running
        when it runs out finishes on its own. On timeout or error the local
        profile is kept as is.

        Returns:
            The profile now in effect, or None if there is none
        """
        started = self.clock.monotonic()
        budget = await run_with_budget(
            self.remote_store.fetch_profile(account_id),
            timeout,
            self.clock,
            label="profile fetch",
        )
        if budget.timed_out:
            return await self._local(account_id)
        if budget.error is not None:
            logger.warning("Profile fetch failed, keeping local profile: %s", budget.error)
            return await self._local(account_id)

        remote = budget.value
        if remote is not None:
            await asyncio.to_thread(
                self.db_service.upsert_profile, remote.model_dump()
            )
            logger.info("Applied remote profile for account %s", account_id)
            return remote

        local = await self._local(account_id)
        if local is None:
            logger.debug("No profile for account %s on either side", account_id)
            return None

        remaining = max(0.0, timeout - (self.clock.monotonic() - started))
        save = await run_with_budget(
            self.remote_store.save_profile(local),
            remaining,
            self.clock,
            label="profile creation",
        )
        if save.error is not None:
            logger.warning("Could not create remote profile: %s", save.error)
        elif save.completed:
            logger.info("Created remote profile for account %s", account_id)
        return local

    async def _local(self, account_id: str) -> Optional[RemoteProfileRecord]:
        profile = await asyncio.to_thread(self.db_service.get_profile, account_id)
        if profile is None:
            return None
        return RemoteProfileRecord(
            account_id=profile.account_id,
            username=profile.username,
            email=profile.email,
            weight_kg=profile.weight_kg,
            height_cm=profile.height_cm,
            updated_at=profile.updated_at,
        )
