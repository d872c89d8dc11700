"""Bounded polling of the local store for replicated workout days.

Both the session's convergence stage and the background watcher wait for
platform replication the same way: read, and if nothing is there yet, sleep
and read again. They differ only in cadence, attempt count, error tolerance
and whether the first read happens before or after the first sleep.
"""

import logging
from dataclasses import dataclass
from dataclasses import field as dataclass_field
from typing import Callable, List, Optional

from ...database.local_store import DayRecord, LocalStoreReadError, LocalWorkoutStore
from .clock import Clock

logger = logging.getLogger(__name__)


@dataclass
class PollResult:
    """Outcome of one polling run.

    Attributes:
        found: True if a read returned at least one day record
        records: Records from the successful read
        attempts: Number of reads issued
        errors: Total read errors seen
        aborted: True if polling stopped on consecutive read errors
        cancelled: True if polling stopped because it was asked to
    """

    found: bool = False
    records: List[DayRecord] = dataclass_field(default_factory=list)
    attempts: int = 0
    errors: int = 0
    aborted: bool = False
    cancelled: bool = False
    last_error: Optional[str] = None


class ConvergencePoller:
    """Reads the local store until day records appear or attempts run out."""

    def __init__(
        self,
        local_store: LocalWorkoutStore,
        clock: Clock,
        interval: float,
        max_attempts: int,
        max_consecutive_errors: Optional[int] = None,
        sleep_first: bool = False,
    ):
        """Initialize poller.

        Args:
            local_store: Store to read
            clock: Clock used for sleeping between reads
            interval: Seconds between reads
            max_attempts: Maximum number of reads
            max_consecutive_errors: Abort after this many read errors in a row
                (None tolerates every error)
            sleep_first: Sleep before every read instead of between reads
        """
        self.local_store = local_store
        self.clock = clock
        self.interval = interval
        self.max_attempts = max_attempts
        self.max_consecutive_errors = max_consecutive_errors
        self.sleep_first = sleep_first

    async def poll(
        self,
        should_stop: Optional[Callable[[], bool]] = None,
        on_attempt: Optional[Callable[[int], None]] = None,
    ) -> PollResult:
        """Poll until records are found, attempts run out, or polling aborts.

        Args:
            should_stop: Checked before every read and every sleep
            on_attempt: Called with the 0-based attempt index before each read

        Returns:
            PollResult describing how polling ended
        """
        result = PollResult()
        consecutive_errors = 0

        for attempt in range(self.max_attempts):
            if self.sleep_first:
                if self._stopped(should_stop, result):
                    return result
                await self.clock.sleep(self.interval)

            if self._stopped(should_stop, result):
                return result

            if on_attempt is not None:
                on_attempt(attempt)

            result.attempts += 1
            try:
                records = await self.local_store.query_day_records()
            except LocalStoreReadError as e:
                result.errors += 1
                result.last_error = str(e)
                consecutive_errors += 1
                logger.warning(
                    "Local read failed (attempt %d/%d, %d in a row): %s",
                    attempt + 1,
                    self.max_attempts,
                    consecutive_errors,
                    e,
                )
                if (
                    self.max_consecutive_errors is not None
                    and consecutive_errors >= self.max_consecutive_errors
                ):
                    result.aborted = True
                    logger.error(
                        "Stopping local polling after %d consecutive read errors",
                        consecutive_errors,
                    )
                    return result
            else:
                consecutive_errors = 0
                if records:
                    result.found = True
                    result.records = records
                    logger.info(
                        "Found %d local day records after %d attempts",
                        len(records),
                        result.attempts,
                    )
                    return result
                logger.debug("No local day records yet (attempt %d)", attempt + 1)

            is_last = attempt == self.max_attempts - 1
            if not self.sleep_first and not is_last:
                if self._stopped(should_stop, result):
                    return result
                await self.clock.sleep(self.interval)

        logger.debug("Local polling exhausted after %d attempts", result.attempts)
        return result

    @staticmethod
    def _stopped(
        should_stop: Optional[Callable[[], bool]], result: PollResult
    ) -> bool:
        if should_stop is not None and should_stop():
            result.cancelled = True
            return True
        return False
