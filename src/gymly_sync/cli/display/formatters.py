"""Display formatters and UI helpers for CLI."""

import logging
from typing import Any, Dict, List

from rich.console import Console
from rich.progress import BarColumn, Progress, TaskID, TextColumn
from rich.table import Table

from ...core.sync import MergeResult, ProgressUpdate, SyncOutcome, SyncSession
from ...database.models import Day, Exercise
from ...models import FitnessPreferences

console = Console()
logger = logging.getLogger(__name__)

_OUTCOME_STYLES = {
    SyncOutcome.FOUND: "[bold green]✅ Workout data found[/bold green]",
    SyncOutcome.NOT_FOUND: "[bold cyan]ℹ️  No workout data yet[/bold cyan]",
    SyncOutcome.DEGRADED: "[bold yellow]⚠️  Sync completed with issues[/bold yellow]",
    SyncOutcome.CANCELLED: "[bold red]✖ Sync cancelled[/bold red]",
}


def create_session_progress() -> Progress:
    """Create a progress bar for a sync session."""
    return Progress(
        TextColumn("[bold cyan]{task.description}"),
        BarColumn(),
        TextColumn("{task.percentage:>5.1f}%"),
        console=console,
        transient=True,
    )


def progress_callback(progress: Progress, task_id: TaskID) -> Any:
    """Build a session progress callback that drives a rich progress bar."""

    def _update(update: ProgressUpdate) -> None:
        progress.update(
            task_id, completed=update.percentage, description=update.stage.label
        )

    return _update


def display_session_result(session: SyncSession) -> None:
    """Display the result of a sync session.

    Args:
        session: Finished sync session
    """
    outcome = session.outcome or SyncOutcome.CANCELLED
    console.print(f"\n{_OUTCOME_STYLES[outcome]}\n")

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Metric", style="cyan", width=30)
    table.add_column("Value", style="green", justify="right")

    summary = session.get_summary()
    table.add_row("Account", str(summary["account_id"]))
    table.add_row("Remote Available", "yes" if session.remote_available else "no")
    table.add_row("Poll Attempts", str(session.poll_attempts))
    table.add_row("Progress", f"{session.progress * 100:.0f}%")
    if "duration" in summary:
        table.add_row("Duration", f"{summary['duration']:.1f}s")
    if session.merge_result is not None:
        table.add_row("Days Merged", str(session.merge_result.inserted))
    if session.last_error:
        table.add_row("Advisory", f"[yellow]{session.last_error}[/yellow]")

    console.print(table)
    console.print()


def display_merge_result(result: MergeResult) -> None:
    """Display merge statistics.

    Args:
        result: Merge result
    """
    console.print("\n[bold green]📊 Merge Summary[/bold green]")
    console.print("=" * 60)

    table = Table(show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green", justify="right")

    table.add_row("Splits Inserted", str(result.splits_inserted))
    table.add_row("Splits Already Present", str(result.splits_present))
    table.add_row("Days Inserted", str(result.inserted))
    table.add_row("Days Already Present", str(result.already_present))
    if result.conflicts:
        table.add_row("Kept Local (conflicts)", f"[yellow]{result.conflicts}[/yellow]")
    if result.orphaned:
        table.add_row("Orphaned (skipped)", f"[yellow]{result.orphaned}[/yellow]")

    console.print(table)
    console.print()


def display_statistics(stats: Dict[str, Any], db_path: str) -> None:
    """Display local database statistics."""
    table = Table(title="Local Workout Store", show_header=True)
    table.add_column("Table", style="cyan")
    table.add_column("Rows", style="green", justify="right")
    for name, count in stats.items():
        table.add_row(name.capitalize(), str(count))

    console.print(table)
    console.print(f"[dim]Database: {db_path}[/dim]")


def display_preferences(preferences: FitnessPreferences, title: str) -> None:
    """Display a fitness preference set."""
    table = Table(title=title, show_header=False)
    table.add_column("Preference", style="cyan")
    table.add_column("Value", style="green")

    table.add_row(
        "Profile Completed", "yes" if preferences.has_completed_profile else "no"
    )
    table.add_row("Fitness Goal", preferences.fitness_goal or "-")
    table.add_row("Equipment Access", preferences.equipment_access or "-")
    table.add_row("Experience Level", preferences.experience_level or "-")
    table.add_row("Training Days / Week", str(preferences.training_days_per_week))

    console.print(table)


def display_day(day: Day, exercises: List[Exercise]) -> None:
    """Display a stored workout day with its exercises and sets."""
    title = f"{day.name} ({day.date})" if day.date else f"{day.name} (template)"
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("#", style="dim", justify="right")
    table.add_column("Exercise", style="cyan")
    table.add_column("Rep Goal", style="green")
    table.add_column("Sets", style="green")

    for exercise in exercises:
        sets = ", ".join(f"{s.weight:g}x{s.reps}" for s in exercise.sets)
        table.add_row(
            str(exercise.exercise_order + 1),
            exercise.name,
            exercise.rep_goal or "-",
            sets or "-",
        )

    console.print(table)
