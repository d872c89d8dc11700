"""Shared fixtures and test doubles."""

import asyncio
import heapq
import itertools
import logging
from collections import Counter
from typing import Any, Callable, Dict, Iterable, List, Optional

import pytest

from gymly_sync.config import SyncSettings
from gymly_sync.core.preferences import (
    LocalPreferenceConfig,
    PreferenceSync,
    ReplicatedPreferenceStore,
)
from gymly_sync.core.remote import RemoteRecordStore
from gymly_sync.core.sync import (
    Clock,
    DataRefreshBroadcaster,
    SyncOrchestrator,
    WatcherRegistry,
)
from gymly_sync.database import DatabaseService, DayRecord, LocalWorkoutStore
from gymly_sync.database.models import Day, Exercise, ExerciseSet, Split
from gymly_sync.models import (
    ExerciseSnapshot,
    RemoteProfileRecord,
    SetSnapshot,
    SplitSnapshot,
    WorkoutDaySnapshot,
)


class ManualClock(Clock):
    """Virtual-time clock.

    Sleeps never block on wall time; ``run``/``run_until`` drive the event
    loop and jump virtual time to the earliest pending sleeper whenever
    nothing else can make progress.
    """

    def __init__(self) -> None:
        self.now = 0.0
        self.sleep_calls: List[float] = []
        self._sleepers: List[Any] = []
        self._seq = itertools.count()

    def monotonic(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleep_calls.append(seconds)
        future = asyncio.get_running_loop().create_future()
        heapq.heappush(self._sleepers, (self.now + seconds, next(self._seq), future))
        await future

    @property
    def pending(self) -> int:
        return sum(1 for _, _, future in self._sleepers if not future.done())

    def _advance(self) -> bool:
        while self._sleepers and self._sleepers[0][2].done():
            heapq.heappop(self._sleepers)
        if not self._sleepers:
            return False
        self.now = max(self.now, self._sleepers[0][0])
        while self._sleepers and self._sleepers[0][0] <= self.now:
            _, _, future = heapq.heappop(self._sleepers)
            if not future.done():
                future.set_result(None)
        return True

    async def _settle(self) -> None:
        for _ in range(25):
            await asyncio.sleep(0)

    async def run_until(self, predicate: Callable[[], bool], limit: int = 100_000) -> None:
        for _ in range(limit):
            if predicate():
                return
            await self._settle()
            if predicate():
                return
            if not self._advance():
                # Worker-thread reads are in flight; give them real time
                await asyncio.sleep(0.001)
        raise AssertionError("virtual clock did not reach the expected state")

    async def run(self, awaitable: Any) -> Any:
        task = asyncio.ensure_future(awaitable)
        await self.run_until(task.done)
        return task.result()


class ScriptedLocalStore(LocalWorkoutStore):
    """Local store whose reads follow a script.

    Each script item is either a list of records or an exception to raise.
    Once the script is used up, reads go to the real database if one was
    given, otherwise they return ``default``.
    """

    def __init__(
        self,
        script: Optional[Iterable[Any]] = None,
        db_service: Optional[DatabaseService] = None,
        default: Optional[List[DayRecord]] = None,
        error: Optional[Exception] = None,
    ) -> None:
        super().__init__(db_service)
        self.script = list(script or [])
        self.default = default or []
        self.error = error
        self.calls = 0
        self.events: List[Any] = []

    async def query_day_records(self) -> List[DayRecord]:
        self.calls += 1
        call = self.calls
        self.events.append(("start", call))
        await asyncio.sleep(0)
        try:
            if self.error is not None:
                raise self.error
            if self.script:
                item = self.script.pop(0)
                if isinstance(item, Exception):
                    raise item
                return list(item)
            if self.db_service is None:
                return list(self.default)
            return await super().query_day_records()
        finally:
            self.events.append(("end", call))


class FakeRemoteStore(RemoteRecordStore):
    """In-memory remote store that counts every call."""

    def __init__(
        self,
        available: bool = True,
        profile: Optional[RemoteProfileRecord] = None,
        days: Optional[List[WorkoutDaySnapshot]] = None,
        splits: Optional[List[SplitSnapshot]] = None,
        shared: Optional[Dict[str, SplitSnapshot]] = None,
        fetch_error: Optional[Exception] = None,
        availability_error: Optional[Exception] = None,
    ) -> None:
        self.available = available
        self.profile = profile
        self.days = list(days or [])
        self.splits = list(splits or [])
        self.shared = dict(shared or {})
        self.fetch_error = fetch_error
        self.availability_error = availability_error
        self.saved_profiles: List[RemoteProfileRecord] = []
        self.calls: Counter = Counter()

    @property
    def data_calls(self) -> int:
        """Calls other than the availability check."""
        return sum(count for name, count in self.calls.items() if name != "is_available")

    async def is_available(self) -> bool:
        self.calls["is_available"] += 1
        if self.availability_error is not None:
            raise self.availability_error
        return self.available

    async def fetch_profile(self, account_id: str) -> Optional[RemoteProfileRecord]:
        self.calls["fetch_profile"] += 1
        return self.profile

    async def save_profile(self, record: RemoteProfileRecord) -> None:
        self.calls["save_profile"] += 1
        self.saved_profiles.append(record)
        self.profile = record

    async def fetch_day_snapshots(self, account_id: str) -> List[WorkoutDaySnapshot]:
        self.calls["fetch_day_snapshots"] += 1
        if self.fetch_error is not None:
            raise self.fetch_error
        return list(self.days)

    async def fetch_split_snapshots(self, account_id: str) -> List[SplitSnapshot]:
        self.calls["fetch_split_snapshots"] += 1
        if self.fetch_error is not None:
            raise self.fetch_error
        return list(self.splits)

    async def fetch_shared_split(self, share_id: str) -> Optional[SplitSnapshot]:
        self.calls["fetch_shared_split"] += 1
        return self.shared.get(share_id)


class FakePreferenceStore(ReplicatedPreferenceStore):
    """In-memory replicated store with an optional virtual-time delay."""

    def __init__(
        self,
        values: Optional[Dict[str, Any]] = None,
        delay: float = 0.0,
        clock: Optional[Clock] = None,
        error: Optional[Exception] = None,
    ) -> None:
        super().__init__()
        self.values = dict(values or {})
        self.delay = delay
        self.clock = clock
        self.error = error
        self.fetch_calls = 0
        self.completed_fetches = 0

    async def fetch(self) -> Dict[str, Any]:
        self.fetch_calls += 1
        if self.delay and self.clock is not None:
            await self.clock.sleep(self.delay)
        if self.error is not None:
            raise self.error
        self.completed_fetches += 1
        return dict(self.values)

    async def push(self, values: Dict[str, Any]) -> None:
        self.values.update(values)

    async def clear(self, keys: Iterable[str]) -> None:
        for key in keys:
            self.values.pop(key, None)

    def simulate_external_change(self, values: Dict[str, Any]) -> None:
        self.values.update(values)
        self._notify_external_change(dict(self.values))


class FakeProfileSync:
    """Profile sync stand-in that only records calls."""

    def __init__(self) -> None:
        self.calls: List[Any] = []

    async def fetch(self, account_id: str, timeout: float) -> None:
        self.calls.append((account_id, timeout))
        return None


def make_day(
    name: str = "Push",
    date: str = "17 October 2025",
    record_id: Optional[str] = None,
    split_id: Optional[str] = None,
    exercises: Optional[List[str]] = None,
    day_of_split: int = 1,
) -> WorkoutDaySnapshot:
    """Build a remote day snapshot with one set per exercise."""
    names = exercises if exercises is not None else ["Bench Press", "Overhead Press"]
    return WorkoutDaySnapshot(
        record_id=record_id or f"rec-{date}-{name}",
        date=date,
        day_name=name,
        day_of_split=day_of_split,
        split_id=split_id,
        exercises=[
            ExerciseSnapshot(
                name=exercise_name,
                exercise_order=order,
                rep_goal="8-12",
                muscle_group="Chest",
                sets=[SetSnapshot(weight=60.0, reps=10)],
            )
            for order, exercise_name in enumerate(names)
        ],
    )


def seed_split(db_service: DatabaseService, split_data: Dict[str, Any]) -> Split:
    """Store a split directly, bypassing the merge."""
    with db_service.transaction() as session:
        split = Split(**split_data)
        session.add(split)
        session.flush()
        return split


def seed_day(
    db_service: DatabaseService,
    day_data: Dict[str, Any],
    exercises: Optional[List[Dict[str, Any]]] = None,
) -> Day:
    """Store a day with optional exercises (each may carry a ``sets`` list)."""
    with db_service.transaction() as session:
        day = Day(**day_data)
        for position, exercise_data in enumerate(exercises or []):
            exercise_data = dict(exercise_data)
            sets = exercise_data.pop("sets", [])
            exercise_data.setdefault("exercise_order", position)
            exercise = Exercise(**exercise_data)
            exercise.sets = [
                ExerciseSet(set_order=index, **set_data)
                for index, set_data in enumerate(sets)
            ]
            day.exercises.append(exercise)
        session.add(day)
        session.flush()
        return day


def day_record(name: str = "Push", date: str = "17 October 2025") -> DayRecord:
    """Build a local day record."""
    return DayRecord(
        id=f"day-{name}",
        date=date,
        name=name,
        day_of_split=1,
        split_id=None,
        exercise_count=2,
    )


@pytest.fixture(autouse=True)
def restore_root_logger():
    """Undo logging setup done by CLI and logging tests."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def manual_clock():
    """Virtual-time clock."""
    return ManualClock()


@pytest.fixture
def temp_db(tmp_path):
    """Create a temporary database for testing."""
    db_service = DatabaseService(tmp_path / "test.db")
    yield db_service
    db_service.close()


@pytest.fixture
def local_config(tmp_path):
    """Local preference config in a temporary file."""
    return LocalPreferenceConfig(tmp_path / "preferences.json")


@pytest.fixture
def broadcaster():
    """Data-refreshed broadcaster."""
    return DataRefreshBroadcaster()


@pytest.fixture
def registry():
    """Fresh watcher registry, so tests don't share the process-wide one."""
    return WatcherRegistry()


@pytest.fixture
def make_orchestrator(manual_clock, local_config, broadcaster, registry):
    """Factory wiring an orchestrator from test doubles."""

    def _make(
        local_store: LocalWorkoutStore,
        remote_store: Optional[FakeRemoteStore] = None,
        preference_store: Optional[FakePreferenceStore] = None,
        settings: Optional[SyncSettings] = None,
    ) -> SyncOrchestrator:
        remote_store = remote_store or FakeRemoteStore(available=False)
        preference_store = preference_store or FakePreferenceStore()
        return SyncOrchestrator(
            local_store=local_store,
            remote_store=remote_store,
            preference_sync=PreferenceSync(preference_store, local_config, manual_clock),
            profile_sync=FakeProfileSync(),
            broadcaster=broadcaster,
            clock=manual_clock,
            settings=settings or SyncSettings(),
            registry=registry,
        )

    return _make
