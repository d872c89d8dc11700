"""Fitness preference commands."""

import asyncio
import logging
import sys
from typing import Optional

import click
from rich.console import Console

from ...config import Config
from ...core.preferences import PreferenceStoreError
from ..display import display_preferences
from .init import init_preference_sync

console = Console()
logger = logging.getLogger(__name__)


@click.group("prefs")
def prefs() -> None:
    """Fitness preference commands."""
    pass


@prefs.command(name="show")
def prefs_show() -> None:
    """Show the local fitness preferences."""
    preference_sync = init_preference_sync(Config())
    display_preferences(preference_sync.local_config.load(), "Fitness Preferences")


@prefs.command(name="set")
@click.option("--goal", help="Fitness goal")
@click.option("--equipment", help="Equipment access")
@click.option("--experience", help="Experience level")
@click.option("--days", type=int, help="Training days per week")
@click.option(
    "--push/--no-push", default=True, help="Also write to the replicated store"
)
def prefs_set(
    goal: Optional[str],
    equipment: Optional[str],
    experience: Optional[str],
    days: Optional[int],
    push: bool,
) -> None:
    """Update local fitness preferences and mark the profile complete."""
    preference_sync = init_preference_sync(Config())
    current = preference_sync.local_config.load()

    updates = {"has_completed_profile": True}
    if goal is not None:
        updates["fitness_goal"] = goal
    if equipment is not None:
        updates["equipment_access"] = equipment
    if experience is not None:
        updates["experience_level"] = experience
    if days is not None:
        updates["training_days_per_week"] = days
    preferences = current.model_validate({**current.model_dump(), **updates})

    try:
        if push:
            asyncio.run(preference_sync.push(preferences))
        else:
            preference_sync.local_config.save(preferences)
    except PreferenceStoreError as e:
        console.print(f"[red]❌ {e}[/red]")
        sys.exit(1)

    display_preferences(preferences, "Fitness Preferences (updated)")


@prefs.command(name="pull")
@click.option("--timeout", type=float, help="Seconds to wait for the replicated store")
def prefs_pull(timeout: Optional[float]) -> None:
    """Pull preferences from the replicated store."""
    config = Config()
    preference_sync = init_preference_sync(config)
    preferences = asyncio.run(
        preference_sync.fetch(timeout if timeout is not None else config.preference_timeout)
    )
    display_preferences(preferences, "Fitness Preferences")


@prefs.command(name="push")
def prefs_push() -> None:
    """Push local preferences to the replicated store."""
    preference_sync = init_preference_sync(Config())
    try:
        asyncio.run(preference_sync.push())
    except PreferenceStoreError as e:
        console.print(f"[red]❌ {e}[/red]")
        sys.exit(1)
    console.print("[green]✅ Preferences pushed[/green]")


@prefs.command(name="clear")
@click.confirmation_option(prompt="Reset fitness preferences on every device?")
def prefs_clear() -> None:
    """Reset local and replicated preferences."""
    preference_sync = init_preference_sync(Config())
    try:
        asyncio.run(preference_sync.clear())
    except PreferenceStoreError as e:
        console.print(f"[red]❌ {e}[/red]")
        sys.exit(1)
    console.print("[green]✅ Preferences cleared[/green]")
