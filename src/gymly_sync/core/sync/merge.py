"""Merge remote workout snapshots into the local store.

A merge pass only ever adds records. Days are identified by their split and
natural key (date, name); a day that already exists locally is left
untouched, even if its remote copy differs, so the local copy always wins.
Days pointing at a split that cannot be resolved are skipped and counted as
orphaned.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...database.local_store import LocalWorkoutStore
from ...database.models import Day, Exercise, ExerciseSet, Split
from ...models import SplitSnapshot, WorkoutDaySnapshot

logger = logging.getLogger(__name__)


class MergeError(Exception):
    """Raised when a merge pass fails and is rolled back."""


@dataclass
class MergeResult:
    """Result of one merge pass."""

    inserted: int = 0
    already_present: int = 0
    orphaned: int = 0
    conflicts: int = 0
    splits_inserted: int = 0
    splits_present: int = 0

    @property
    def processed(self) -> int:
        """Number of day snapshots looked at."""
        return self.inserted + self.already_present + self.orphaned

    def get_summary(self) -> Dict[str, int]:
        """Get summary statistics."""
        return {
            "inserted": self.inserted,
            "already_present": self.already_present,
            "orphaned": self.orphaned,
            "conflicts": self.conflicts,
            "splits_inserted": self.splits_inserted,
            "splits_present": self.splits_present,
        }


class MergeReconciler:
    """Inserts remote snapshots that are missing locally."""

    def merge(
        self,
        snapshots: Iterable[WorkoutDaySnapshot],
        into: LocalWorkoutStore,
        splits: Iterable[SplitSnapshot] = (),
    ) -> MergeResult:
        """Merge snapshots into the local store in a single transaction.

        Splits are merged first so that days can point at splits inserted in
        the same pass. Days nested in a split snapshot are merged with the
        top-level snapshots.

        Args:
            snapshots: Remote day snapshots
            into: Local store to write to
            splits: Remote split snapshots

        Returns:
            MergeResult with counts

        Raises:
            MergeError: If the transaction fails (nothing is written)
        """
        result = MergeResult()
        split_list = list(splits)
        day_snapshots: List[WorkoutDaySnapshot] = []
        for split in split_list:
            for day in split.days:
                if day.split_id is None:
                    day = day.model_copy(update={"split_id": split.split_id})
                day_snapshots.append(day)
        day_snapshots.extend(snapshots)

        logger.info(
            "Merging %d splits and %d day snapshots", len(split_list), len(day_snapshots)
        )

        try:
            with into.transaction() as session:
                split_ids = self._merge_splits(session, into, split_list, result)
                for snapshot in day_snapshots:
                    self._merge_day(session, into, snapshot, split_ids, result)
        except SQLAlchemyError as e:
            raise MergeError(f"Merge rolled back: {e}") from e

        logger.info("Merge finished: %s", result.get_summary())
        return result

    def _merge_splits(
        self,
        session: Session,
        into: LocalWorkoutStore,
        splits: List[SplitSnapshot],
        result: MergeResult,
    ) -> Dict[str, str]:
        """Insert missing splits, returning remote split id -> local split id."""
        split_ids: Dict[str, str] = {}
        for snapshot in splits:
            existing = into.db_service.find_split(
                session, split_id=snapshot.split_id, name=snapshot.name
            )
            if existing is not None:
                result.splits_present += 1
                split_ids[snapshot.split_id] = existing.id
                continue

            split = Split(
                id=snapshot.split_id,
                name=snapshot.name,
                is_active=snapshot.is_active,
                start_date=snapshot.start_date,
            )
            session.add(split)
            session.flush()
            split_ids[snapshot.split_id] = split.id
            result.splits_inserted += 1
            logger.debug("Inserted split %s (%s)", split.name, split.id)
        return split_ids

    def _merge_day(
        self,
        session: Session,
        into: LocalWorkoutStore,
        snapshot: WorkoutDaySnapshot,
        split_ids: Dict[str, str],
        result: MergeResult,
    ) -> None:
        local_split_id: Optional[str] = None
        if snapshot.split_id:
            local_split_id = split_ids.get(snapshot.split_id)
            if local_split_id is None:
                split = into.db_service.find_split(session, split_id=snapshot.split_id)
                local_split_id = split.id if split is not None else None
            if local_split_id is None:
                result.orphaned += 1
                logger.debug(
                    "Skipping orphaned day %s: split %s not found",
                    snapshot.record_id,
                    snapshot.split_id,
                )
                return

        date, name = snapshot.natural_key
        existing = into.db_service.find_day(session, date, name, local_split_id)
        if existing is not None:
            result.already_present += 1
            if self._differs(existing, snapshot):
                result.conflicts += 1
                logger.debug("Keeping local copy of %s %s over remote", date, name)
            return

        session.add(self._build_day(snapshot, local_split_id))
        # Flush so later snapshots with the same key see this one
        session.flush()
        result.inserted += 1

    @staticmethod
    def _differs(day: Day, snapshot: WorkoutDaySnapshot) -> bool:
        local_names = [exercise.name for exercise in day.exercises]
        return (
            local_names != snapshot.exercise_names
            or day.day_of_split != snapshot.day_of_split
        )

    @staticmethod
    def _build_day(snapshot: WorkoutDaySnapshot, split_id: Optional[str]) -> Day:
        date, name = snapshot.natural_key
        day = Day(
            split_id=split_id,
            name=name,
            date=date,
            day_of_split=snapshot.day_of_split,
            remote_record_id=snapshot.record_id,
        )
        for exercise_snapshot in snapshot.exercises:
            exercise = Exercise(
                name=exercise_snapshot.name,
                exercise_order=exercise_snapshot.exercise_order,
                rep_goal=exercise_snapshot.rep_goal,
                muscle_group=exercise_snapshot.muscle_group,
                completed_at=exercise_snapshot.completed_at,
            )
            if exercise_snapshot.created_at is not None:
                exercise.created_at = exercise_snapshot.created_at
            for index, set_snapshot in enumerate(exercise_snapshot.sets):
                exercise_set = ExerciseSet(
                    set_order=index,
                    weight=set_snapshot.weight,
                    reps=set_snapshot.reps,
                    failure=set_snapshot.failure,
                    warm_up=set_snapshot.warm_up,
                    rest_pause=set_snapshot.rest_pause,
                    drop_set=set_snapshot.drop_set,
                    body_weight=set_snapshot.body_weight,
                    time=set_snapshot.time,
                    note=set_snapshot.note,
                )
                if set_snapshot.created_at is not None:
                    exercise_set.created_at = set_snapshot.created_at
                exercise.sets.append(exercise_set)
            day.exercises.append(exercise)
        return day
