"""Sign-in, sign-out and merge commands."""

import asyncio
import logging
import sys
from typing import Optional

import click
from rich.console import Console

from ...config import Config
from ...core.sync import (
    ConsoleProgressReporter,
    DataRefreshBroadcaster,
    MergeReconciler,
    MergeResult,
    SignOutRequest,
    SyncSession,
)
from ...database import DatabaseService, LocalWorkoutStore
from ...utils.logging_config import bind_account, set_log_level
from ..display import (
    create_session_progress,
    display_merge_result,
    display_session_result,
    progress_callback,
)
from .init import (
    InitializationError,
    init_coordinator,
    init_db,
    init_preference_sync,
    init_remote_store,
)

console = Console()
logger = logging.getLogger(__name__)


def _resolve_account(config: Config, account: Optional[str]) -> str:
    account_id = account or config.account_id
    if not account_id:
        raise click.UsageError(
            "No account given. Pass --account or set GYMLY_SYNC_ACCOUNT_ID."
        )
    return account_id


async def _sign_in(
    config: Config, account_id: str, wait: bool, plain: bool
) -> SyncSession:
    broadcaster = DataRefreshBroadcaster()
    broadcaster.subscribe(
        lambda source: console.print(f"[green]🔄 Workout data refreshed ({source})[/green]")
    )
    bind_account(account_id)
    coordinator = init_coordinator(config, broadcaster)

    session = SyncSession()
    if plain:
        session.tracker.add_callback(ConsoleProgressReporter(verbose=False))
        await coordinator.sign_in(account_id, session)
    else:
        with create_session_progress() as progress:
            task_id = progress.add_task("Signing in", total=100)
            session.tracker.add_callback(progress_callback(progress, task_id))
            await coordinator.sign_in(account_id, session)

    display_session_result(session)

    watcher = coordinator.orchestrator.watcher
    if watcher is None or not watcher.running:
        coordinator.stop_watching()
        return session

    if not wait:
        await coordinator.sign_out()
        return session

    console.print("[cyan]Waiting in the background for workouts to arrive...[/cyan]")
    console.print("[dim]Run 'gymly-sync sign-out' to stop.[/dim]")
    if await coordinator.wait_for_background():
        console.print("[yellow]Signed out, background sync stopped[/yellow]")
        return session

    result = await watcher.wait()
    if result is not None and not result.found:
        console.print("[dim]No workouts arrived.[/dim]")
    coordinator.stop_watching()
    return session


@click.command("sign-in")
@click.option("--account", "-a", help="Account ID (defaults to GYMLY_SYNC_ACCOUNT_ID)")
@click.option(
    "--wait/--no-wait",
    default=True,
    help="Keep running for the background watcher when nothing was found",
)
@click.option(
    "--plain/--no-plain",
    default=None,
    help="Print stage changes as plain lines (default when output is not a terminal)",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]),
    help="Log level for gymly_sync loggers during this session",
)
def sign_in_command(
    account: Optional[str],
    wait: bool,
    plain: Optional[bool],
    log_level: Optional[str],
) -> None:
    """Sign in and sync workout data.

    Checks the cloud account, pulls fitness preferences and the profile,
    then waits for workouts to replicate to this device. If they do not
    arrive in time, they are fetched from the cloud and merged. While
    waiting, fitness preferences changed on another device are applied
    here too.

    Examples:
        # Sign in with the configured account
        gymly-sync sign-in

        # Sign in and exit as soon as the session ends
        gymly-sync sign-in --account 1234 --no-wait
    """
    if log_level:
        set_log_level(log_level)

    config = Config()
    account_id = _resolve_account(config, account)
    if plain is None:
        plain = not console.is_terminal

    try:
        asyncio.run(_sign_in(config, account_id, wait, plain))
    except InitializationError as e:
        console.print(f"[red]❌ {e}[/red]")
        sys.exit(1)


@click.command("sign-out")
@click.option(
    "--clear-preferences",
    is_flag=True,
    help="Also reset local and replicated fitness preferences",
)
def sign_out_command(clear_preferences: bool) -> None:
    """Sign out, stopping a running 'sign-in --wait'.

    The running sign-in notices the request within a second, cancels its
    background watcher and exits.
    """
    config = Config()
    SignOutRequest(config.sign_out_request_path).request()

    if clear_preferences:
        try:
            asyncio.run(init_preference_sync(config).clear())
        except Exception as e:
            logger.exception("Clearing preferences failed")
            console.print(f"[red]❌ Could not clear preferences: {e}[/red]")
            sys.exit(1)

    console.print("[green]✅ Signed out[/green]")
    if clear_preferences:
        console.print("[dim]Fitness preferences cleared[/dim]")


@click.command("merge")
@click.option("--account", "-a", help="Account ID (defaults to GYMLY_SYNC_ACCOUNT_ID)")
def merge_command(account: Optional[str]) -> None:
    """Fetch workouts from the cloud and merge missing ones locally."""
    config = Config()
    account_id = _resolve_account(config, account)

    async def _merge(db_service: DatabaseService) -> MergeResult:
        bind_account(account_id)
        remote_store = init_remote_store(config)
        splits = await remote_store.fetch_split_snapshots(account_id)
        snapshots = await remote_store.fetch_day_snapshots(account_id)
        return await asyncio.to_thread(
            MergeReconciler().merge, snapshots, LocalWorkoutStore(db_service), splits
        )

    try:
        db_service = init_db(config)
        result = asyncio.run(_merge(db_service))
    except Exception as e:
        logger.exception("Merge failed")
        console.print(f"[red]❌ Merge failed: {e}[/red]")
        sys.exit(1)

    display_merge_result(result)
    console.print(f"[dim]{db_service.count_days()} workout days stored locally[/dim]")


@click.command("import-shared")
@click.argument("share_id")
def import_shared_command(share_id: str) -> None:
    """Import a split that someone shared by ID."""
    config = Config()

    async def _import() -> Optional[MergeResult]:
        db_service = init_db(config)
        remote_store = init_remote_store(config)
        split = await remote_store.fetch_shared_split(share_id)
        if split is None:
            return None
        if db_service.get_split_by_id(split.split_id) is not None:
            console.print(
                f"[yellow]Split '{split.name}' is already stored, "
                "adding missing days only[/yellow]"
            )
        return await asyncio.to_thread(
            MergeReconciler().merge, [], LocalWorkoutStore(db_service), [split]
        )

    try:
        result = asyncio.run(_import())
    except Exception as e:
        logger.exception("Import failed")
        console.print(f"[red]❌ Import failed: {e}[/red]")
        sys.exit(1)

    if result is None:
        console.print(f"[yellow]No shared split with ID {share_id}[/yellow]")
        sys.exit(1)

    display_merge_result(result)
