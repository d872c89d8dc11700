"""Tests for the sign-in sync orchestrator."""

import asyncio

import pytest
from conftest import (
    FakePreferenceStore,
    FakeRemoteStore,
    ScriptedLocalStore,
    day_record,
    make_day,
    seed_day,
)

from gymly_sync.core.remote import RemoteStoreError
from gymly_sync.core.sync import SyncOutcome, SyncSession, SyncStage
from gymly_sync.core.sync.session import (
    DATABASE_UNAVAILABLE_MESSAGE,
    SYNC_ISSUES_MESSAGE,
)
from gymly_sync.database import LocalStoreReadError
from gymly_sync.models import DEFAULT_TRAINING_DAYS


def read_error():
    return LocalStoreReadError("database is locked")


def stages_seen(session):
    """Distinct stages in publish order."""
    seen = []
    for update in session.tracker.history:
        if not seen or seen[-1] != update.stage:
            seen.append(update.stage)
    return seen


async def stop_watcher(registry):
    registry.cancel()
    await asyncio.sleep(0)


class TestStageMachine:
    """Stage order and progress reporting."""

    @pytest.mark.asyncio
    async def test_full_path_visits_stages_in_order(self, make_orchestrator, manual_clock):
        """Test that an available remote walks through every stage once."""
        store = ScriptedLocalStore(script=[[day_record()]])
        orchestrator = make_orchestrator(store, remote_store=FakeRemoteStore())

        session = await manual_clock.run(orchestrator.run("acct-1"))

        assert stages_seen(session) == [
            SyncStage.CHECKING_AVAILABILITY,
            SyncStage.SYNCING_PREFERENCES,
            SyncStage.SYNCING_FITNESS_PROFILE,
            SyncStage.AWAITING_LOCAL_CONVERGENCE,
            SyncStage.COMPLETE,
        ]
        assert session.stage == SyncStage.COMPLETE
        assert session.outcome == SyncOutcome.FOUND

    @pytest.mark.asyncio
    async def test_stage_entry_progress(self, make_orchestrator, manual_clock):
        """Test the progress reported when each stage is entered."""
        store = ScriptedLocalStore(script=[[day_record()]])
        orchestrator = make_orchestrator(store, remote_store=FakeRemoteStore())

        session = await manual_clock.run(orchestrator.run("acct-1"))

        first_progress = {}
        for update in session.tracker.history:
            first_progress.setdefault(update.stage, update.progress)
        assert first_progress[SyncStage.CHECKING_AVAILABILITY] == pytest.approx(0.05)
        assert first_progress[SyncStage.SYNCING_PREFERENCES] == pytest.approx(0.15)
        assert first_progress[SyncStage.SYNCING_FITNESS_PROFILE] == pytest.approx(0.25)
        assert first_progress[SyncStage.AWAITING_LOCAL_CONVERGENCE] == pytest.approx(0.35)
        assert first_progress[SyncStage.COMPLETE] == 1.0

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "script,available",
        [
            ([[day_record()]], True),
            ([[]] * 6 + [[day_record()]], False),
            ([read_error()] * 3, False),
            ([], False),
        ],
    )
    async def test_progress_is_monotonic_and_ends_at_one(
        self, make_orchestrator, manual_clock, registry, script, available
    ):
        """Test progress never decreases and finishes at exactly 1.0."""
        store = ScriptedLocalStore(script=script)
        orchestrator = make_orchestrator(
            store, remote_store=FakeRemoteStore(available=available, days=[])
        )

        session = await manual_clock.run(orchestrator.run("acct-1"))
        await stop_watcher(registry)

        values = [update.progress for update in session.tracker.history]
        assert values == sorted(values)
        assert values[-1] == 1.0
        assert session.progress == 1.0

    @pytest.mark.asyncio
    async def test_poll_progress_is_linear_in_attempts(
        self, make_orchestrator, manual_clock, registry
    ):
        """Test attempt i reports 0.35 + i/40 * 0.5."""
        store = ScriptedLocalStore()
        orchestrator = make_orchestrator(store)

        session = await manual_clock.run(orchestrator.run("acct-1"))
        await stop_watcher(registry)

        poll_values = [
            update.progress
            for update in session.tracker.history
            if update.stage == SyncStage.AWAITING_LOCAL_CONVERGENCE
        ]
        # Stage entry plus one report per attempt
        assert len(poll_values) == 41
        assert poll_values[1] == pytest.approx(0.35)
        assert poll_values[-1] == pytest.approx(0.35 + 39 / 40 * 0.5)
        assert max(poll_values) < 0.85

    @pytest.mark.asyncio
    async def test_progress_callback_failure_does_not_break_session(
        self, make_orchestrator, manual_clock
    ):
        """Test a failing stage callback is ignored."""
        store = ScriptedLocalStore(script=[[day_record()]])
        orchestrator = make_orchestrator(store)
        session = SyncSession()

        def broken(update):
            raise RuntimeError("screen went away")

        session.tracker.add_callback(broken)
        session = await manual_clock.run(orchestrator.run("acct-1", session))

        assert session.outcome == SyncOutcome.FOUND


class TestRemoteUnavailable:
    """Behaviour when the remote document database is unavailable."""

    @pytest.mark.asyncio
    async def test_no_remote_calls_when_unavailable(
        self, make_orchestrator, manual_clock, registry
    ):
        """Test only the availability check touches the remote store."""
        remote = FakeRemoteStore(available=False, days=[make_day()])
        preferences = FakePreferenceStore()
        store = ScriptedLocalStore()
        orchestrator = make_orchestrator(
            store, remote_store=remote, preference_store=preferences
        )

        session = await manual_clock.run(orchestrator.run("acct-1"))
        await stop_watcher(registry)

        assert remote.calls["is_available"] == 1
        assert remote.data_calls == 0
        assert preferences.fetch_calls == 0
        assert orchestrator.profile_sync.calls == []
        assert session.remote_available is False

    @pytest.mark.asyncio
    async def test_unavailable_skips_remote_stages(
        self, make_orchestrator, manual_clock
    ):
        """Test preference and profile stages are skipped, not failed."""
        store = ScriptedLocalStore(script=[[day_record()]])
        orchestrator = make_orchestrator(store)

        session = await manual_clock.run(orchestrator.run("acct-1"))

        assert stages_seen(session) == [
            SyncStage.CHECKING_AVAILABILITY,
            SyncStage.AWAITING_LOCAL_CONVERGENCE,
            SyncStage.COMPLETE,
        ]
        assert session.outcome == SyncOutcome.FOUND
        assert session.last_error is None

    @pytest.mark.asyncio
    async def test_availability_error_treated_as_unavailable(
        self, make_orchestrator, manual_clock
    ):
        """Test a raising availability check degrades to local-only."""
        remote = FakeRemoteStore(availability_error=RemoteStoreError("no network"))
        store = ScriptedLocalStore(script=[[day_record()]])
        orchestrator = make_orchestrator(store, remote_store=remote)

        session = await manual_clock.run(orchestrator.run("acct-1"))

        assert session.remote_available is False
        assert remote.data_calls == 0
        assert session.outcome == SyncOutcome.FOUND


class TestPreferenceBudget:
    """Budgeted preference pull."""

    @pytest.mark.asyncio
    async def test_slow_preference_fetch_proceeds_at_budget(
        self, make_orchestrator, manual_clock, local_config
    ):
        """Test a 5s preference fetch with a 2s budget moves on at t=2s."""
        preferences = FakePreferenceStore(
            values={
                "hasCompletedFitnessProfile": True,
                "fitnessGoal": "strength",
                "trainingDaysPerWeek": 5,
            },
            delay=5.0,
            clock=manual_clock,
        )
        store = ScriptedLocalStore(script=[[day_record()]])
        orchestrator = make_orchestrator(
            store, remote_store=FakeRemoteStore(), preference_store=preferences
        )
        entered_at = {}
        session = SyncSession()
        session.tracker.add_callback(
            lambda update: entered_at.setdefault(update.stage, manual_clock.now)
        )

        session = await manual_clock.run(orchestrator.run("acct-1", session))

        assert entered_at[SyncStage.SYNCING_PREFERENCES] == pytest.approx(0.0)
        assert entered_at[SyncStage.SYNCING_FITNESS_PROFILE] == pytest.approx(2.0)
        assert session.outcome == SyncOutcome.FOUND

        # Defaults stayed in effect
        current = local_config.load()
        assert current.fitness_goal == ""
        assert current.training_days_per_week == DEFAULT_TRAINING_DAYS

        # The fetch still finishes later, and its result is discarded
        assert preferences.completed_fetches == 0
        await manual_clock.run_until(lambda: preferences.completed_fetches == 1)
        assert manual_clock.now == pytest.approx(5.0)
        assert local_config.load().fitness_goal == ""

    @pytest.mark.asyncio
    async def test_fast_preference_fetch_is_applied(
        self, make_orchestrator, manual_clock, local_config
    ):
        """Test a completed profile inside the budget is applied locally."""
        preferences = FakePreferenceStore(
            values={
                "hasCompletedFitnessProfile": True,
                "fitnessGoal": "hypertrophy",
                "equipmentAccess": "full_gym",
                "experienceLevel": "intermediate",
                "trainingDaysPerWeek": 3,
            }
        )
        store = ScriptedLocalStore(script=[[day_record()]])
        orchestrator = make_orchestrator(
            store, remote_store=FakeRemoteStore(), preference_store=preferences
        )

        await manual_clock.run(orchestrator.run("acct-1"))

        current = local_config.load()
        assert current.has_completed_profile is True
        assert current.fitness_goal == "hypertrophy"
        assert current.training_days_per_week == 3

    @pytest.mark.asyncio
    async def test_profile_stage_receives_budget(self, make_orchestrator, manual_clock):
        """Test the profile pull is made with the account and its budget."""
        store = ScriptedLocalStore(script=[[day_record()]])
        orchestrator = make_orchestrator(store, remote_store=FakeRemoteStore())

        await manual_clock.run(orchestrator.run("acct-1"))

        assert orchestrator.profile_sync.calls == [
            ("acct-1", orchestrator.settings.profile_timeout)
        ]


class TestLocalConvergence:
    """Polling the local store."""

    @pytest.mark.asyncio
    async def test_found_on_seventh_attempt(
        self, make_orchestrator, manual_clock, broadcaster, registry
    ):
        """Test records on attempt 7 complete the session as found."""
        store = ScriptedLocalStore(script=[[]] * 6 + [[day_record()]])
        remote = FakeRemoteStore()
        orchestrator = make_orchestrator(store, remote_store=remote)

        session = await manual_clock.run(orchestrator.run("acct-1"))

        assert store.calls == 7
        assert session.poll_attempts == 7
        assert session.outcome == SyncOutcome.FOUND
        assert session.progress == 1.0
        assert SyncStage.FALLBACK_REMOTE_FETCH not in stages_seen(session)
        assert remote.calls["fetch_day_snapshots"] == 0
        assert broadcaster.emitted == 1
        assert session.refresh_emitted is True
        assert orchestrator.watcher is None
        assert registry.active is None

        # Progress jumps straight from the 7th attempt to completion
        last_two = [update.progress for update in session.tracker.history[-2:]]
        assert last_two == [pytest.approx(0.35 + 6 / 40 * 0.5), 1.0]

    @pytest.mark.asyncio
    async def test_ceiling_is_forty_attempts(
        self, make_orchestrator, manual_clock, registry
    ):
        """Test polling stops at exactly the 40th read."""
        store = ScriptedLocalStore()
        orchestrator = make_orchestrator(store)

        session = await manual_clock.run(orchestrator.run("acct-1"))

        assert store.calls == 40
        assert session.poll_attempts == 40
        # 39 gaps between reads plus the completion hold
        assert manual_clock.sleep_calls.count(0.5) == 40
        assert manual_clock.now == pytest.approx(39 * 0.5 + 0.5)
        await stop_watcher(registry)

    @pytest.mark.asyncio
    async def test_three_consecutive_errors_abort_early(
        self, make_orchestrator, manual_clock, broadcaster, registry
    ):
        """Test a store that always fails is read exactly 3 times."""
        store = ScriptedLocalStore(error=read_error())
        orchestrator = make_orchestrator(store)

        session = await manual_clock.run(orchestrator.run("acct-1"))

        assert store.calls == 3
        assert session.outcome == SyncOutcome.DEGRADED
        assert session.last_error == DATABASE_UNAVAILABLE_MESSAGE
        assert session.stage == SyncStage.COMPLETE
        assert session.progress == 1.0
        assert broadcaster.emitted == 1
        await stop_watcher(registry)

    @pytest.mark.asyncio
    async def test_error_counter_resets_after_successful_read(
        self, make_orchestrator, manual_clock
    ):
        """Test only consecutive errors count toward the abort."""
        store = ScriptedLocalStore(
            script=[read_error(), read_error(), [], read_error(), read_error(), [day_record()]]
        )
        orchestrator = make_orchestrator(store)

        session = await manual_clock.run(orchestrator.run("acct-1"))

        assert store.calls == 6
        assert session.outcome == SyncOutcome.FOUND
        assert session.last_error is None


class TestFallbackRemoteFetch:
    """Fetch-and-merge after polling finds nothing."""

    @pytest.mark.asyncio
    async def test_fallback_merges_missing_days(
        self, make_orchestrator, manual_clock, temp_db, broadcaster, registry
    ):
        """Test 3 remote days with 1 already local inserts exactly 2."""
        seed_day(
            temp_db,
            {"name": "Push", "date": "17 October 2025", "day_of_split": 1},
            exercises=[
                {"name": "Bench Press", "sets": [{"weight": 60.0, "reps": 10}]},
                {"name": "Overhead Press", "sets": [{"weight": 40.0, "reps": 8}]},
            ],
        )
        remote = FakeRemoteStore(
            days=[
                make_day("Push", "17 October 2025"),
                make_day("Pull", "18 October 2025", exercises=["Row", "Curl"]),
                make_day("Legs", "19 October 2025", exercises=["Squat"]),
            ]
        )
        store = ScriptedLocalStore(script=[[]] * 40, db_service=temp_db)
        orchestrator = make_orchestrator(store, remote_store=remote)

        session = await manual_clock.run(orchestrator.run("acct-1"))

        assert store.calls == 41
        assert session.merge_result.inserted == 2
        assert session.merge_result.already_present == 1
        assert session.outcome == SyncOutcome.FOUND
        assert temp_db.count_days() == 3
        assert SyncStage.FALLBACK_REMOTE_FETCH in stages_seen(session)
        assert broadcaster.emitted == 1
        assert orchestrator.watcher is None
        assert registry.active is None

    @pytest.mark.asyncio
    async def test_fallback_progress(self, make_orchestrator, manual_clock, temp_db):
        """Test the fallback stage reports 0.90."""
        remote = FakeRemoteStore(days=[make_day()])
        store = ScriptedLocalStore(script=[[]] * 40, db_service=temp_db)
        orchestrator = make_orchestrator(store, remote_store=remote)

        session = await manual_clock.run(orchestrator.run("acct-1"))

        fallback = [
            update.progress
            for update in session.tracker.history
            if update.stage == SyncStage.FALLBACK_REMOTE_FETCH
        ]
        assert fallback == [pytest.approx(0.90)]

    @pytest.mark.asyncio
    async def test_empty_remote_is_not_found(
        self, make_orchestrator, manual_clock, temp_db, registry
    ):
        """Test a new user with no remote data ends as not found."""
        remote = FakeRemoteStore(days=[])
        store = ScriptedLocalStore(script=[[]] * 40, db_service=temp_db)
        orchestrator = make_orchestrator(store, remote_store=remote)

        session = await manual_clock.run(orchestrator.run("acct-1"))

        assert session.outcome == SyncOutcome.NOT_FOUND
        assert session.last_error is None
        assert session.merge_result.inserted == 0
        assert orchestrator.watcher is not None
        await stop_watcher(registry)

    @pytest.mark.asyncio
    async def test_fallback_failure_degrades_with_advisory(
        self, make_orchestrator, manual_clock, registry
    ):
        """Test a failing remote fetch sets the issues advisory."""
        remote = FakeRemoteStore(fetch_error=RemoteStoreError("HTTP 500"))
        store = ScriptedLocalStore()
        orchestrator = make_orchestrator(store, remote_store=remote)

        session = await manual_clock.run(orchestrator.run("acct-1"))

        assert session.outcome == SyncOutcome.DEGRADED
        assert session.last_error == SYNC_ISSUES_MESSAGE
        assert session.stage == SyncStage.COMPLETE
        assert session.progress == 1.0
        await stop_watcher(registry)

    @pytest.mark.asyncio
    async def test_aborted_poll_still_tries_fallback(
        self, make_orchestrator, manual_clock, temp_db
    ):
        """Test an aborted poll can still be rescued by the fallback."""
        remote = FakeRemoteStore(days=[make_day()])
        store = ScriptedLocalStore(script=[read_error()] * 3, db_service=temp_db)
        orchestrator = make_orchestrator(store, remote_store=remote)

        session = await manual_clock.run(orchestrator.run("acct-1"))

        assert store.calls == 4
        assert session.outcome == SyncOutcome.FOUND
        assert session.last_error is None

    @pytest.mark.asyncio
    async def test_aborted_poll_with_empty_remote_stays_degraded(
        self, make_orchestrator, manual_clock, temp_db, registry
    ):
        """Test the database advisory survives an empty fallback."""
        remote = FakeRemoteStore(days=[])
        store = ScriptedLocalStore(script=[read_error()] * 3, db_service=temp_db)
        orchestrator = make_orchestrator(store, remote_store=remote)

        session = await manual_clock.run(orchestrator.run("acct-1"))

        assert session.outcome == SyncOutcome.DEGRADED
        assert session.last_error == DATABASE_UNAVAILABLE_MESSAGE
        await stop_watcher(registry)


class TestHandoff:
    """Handoff to the background watcher."""

    @pytest.mark.asyncio
    async def test_unavailable_and_empty_hands_off_to_watcher(
        self, make_orchestrator, manual_clock, broadcaster, registry
    ):
        """Test not-found sessions start a watcher that ends silently."""
        store = ScriptedLocalStore()
        orchestrator = make_orchestrator(store)

        session = await manual_clock.run(orchestrator.run("acct-1"))

        assert session.outcome == SyncOutcome.NOT_FOUND
        assert orchestrator.watcher is not None
        assert registry.active is orchestrator.watcher

        result = await manual_clock.run(orchestrator.watcher.wait())

        assert result.found is False
        assert result.attempts == 60
        assert store.calls == 100
        assert broadcaster.emitted == 1  # the session's own signal only
        assert session.last_error is None
        assert registry.active is None

    @pytest.mark.asyncio
    async def test_watcher_never_overlaps_session_poll(
        self, make_orchestrator, manual_clock, registry
    ):
        """Test the first watcher read starts after the last session read ends."""
        store = ScriptedLocalStore()
        orchestrator = make_orchestrator(store)

        await manual_clock.run(orchestrator.run("acct-1"))
        await manual_clock.run_until(lambda: store.calls >= 41)

        assert store.events.index(("end", 40)) < store.events.index(("start", 41))
        await stop_watcher(registry)

    @pytest.mark.asyncio
    async def test_second_session_does_not_start_second_watcher(
        self, make_orchestrator, manual_clock, registry
    ):
        """Test double start is prevented while a watcher runs."""
        first = make_orchestrator(ScriptedLocalStore())
        second = make_orchestrator(ScriptedLocalStore())

        await manual_clock.run(first.run("acct-1"))
        await manual_clock.run(second.run("acct-1"))

        assert first.watcher is not None
        assert second.watcher is None
        assert registry.active is first.watcher
        await stop_watcher(registry)


class TestCancellation:
    """Cooperative cancellation."""

    @pytest.mark.asyncio
    async def test_cancel_stops_poll_at_next_boundary(
        self, make_orchestrator, manual_clock, broadcaster, registry
    ):
        """Test a cancelled session stops polling without completing."""
        store = ScriptedLocalStore()
        orchestrator = make_orchestrator(store)
        session = SyncSession()

        def cancel_on_fifth(update):
            if (
                update.stage == SyncStage.AWAITING_LOCAL_CONVERGENCE
                and session.poll_attempts == 5
            ):
                session.cancel()

        session.tracker.add_callback(cancel_on_fifth)
        session = await manual_clock.run(orchestrator.run("acct-1", session))

        assert store.calls == 5
        assert session.outcome == SyncOutcome.CANCELLED
        assert SyncStage.COMPLETE not in stages_seen(session)
        assert broadcaster.emitted == 0
        assert orchestrator.watcher is None
        assert registry.active is None

    @pytest.mark.asyncio
    async def test_cancel_before_start(self, make_orchestrator, manual_clock):
        """Test a session cancelled up front never reads the local store."""
        store = ScriptedLocalStore()
        orchestrator = make_orchestrator(store, remote_store=FakeRemoteStore())
        session = SyncSession()
        session.cancel()

        session = await manual_clock.run(orchestrator.run("acct-1", session))

        assert session.outcome == SyncOutcome.CANCELLED
        assert store.calls == 0
