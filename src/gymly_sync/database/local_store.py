"""Async access to the local workout store.

The local store is written by the platform's own replication as well as by
merge passes, so the sync components only ever read it through
``query_day_records`` and write it through a single merge transaction.
SQLAlchemy calls block, so they run on a worker thread and their results are
handed back to the event loop before any caller mutates session state.
"""

import asyncio
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .service import DatabaseService

logger = logging.getLogger(__name__)


class LocalStoreReadError(Exception):
    """Raised when the local store cannot be read."""


@dataclass(frozen=True)
class DayRecord:
    """Detached view of a local day row."""

    id: str
    date: str
    name: str
    day_of_split: int
    split_id: str | None
    exercise_count: int


class LocalWorkoutStore:
    """Local transactional store used by the orchestrator and the watcher."""

    def __init__(self, db_service: DatabaseService):
        """Initialize local store.

        Args:
            db_service: Database service instance
        """
        self.db_service = db_service

    async def query_day_records(self) -> List[DayRecord]:
        """Read all workout-day records.

        Returns:
            Day records currently visible in the local store

        Raises:
            LocalStoreReadError: If the database read fails
        """
        try:
            return await asyncio.to_thread(self._read_day_records)
        except SQLAlchemyError as e:
            raise LocalStoreReadError(f"Local store read failed: {e}") from e

    def _read_day_records(self) -> List[DayRecord]:
        days = self.db_service.get_all_days()
        return [
            DayRecord(
                id=day.id,
                date=day.date,
                name=day.name,
                day_of_split=day.day_of_split,
                split_id=day.split_id,
                exercise_count=len(day.exercises),
            )
            for day in days
        ]

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """Open the single transaction used by a merge pass."""
        with self.db_service.transaction() as session:
            yield session
