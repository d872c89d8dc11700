"""Local database commands."""

import logging
import sys
from typing import Optional

import click
from rich.console import Console

from ...config import Config
from ..display import display_day, display_statistics
from .init import InitializationError, init_db

console = Console()
logger = logging.getLogger(__name__)


@click.group("db")
def db() -> None:
    """Local workout store commands."""
    pass


@db.command(name="init")
def db_init() -> None:
    """Create the local database and apply migrations."""
    config = Config()
    try:
        db_service = init_db(config)
        db_service.run_migrations()
    except InitializationError as e:
        console.print(f"[red]❌ {e}[/red]")
        sys.exit(1)

    console.print(f"[green]✅ Database ready at {db_service.db_path}[/green]")


@db.command(name="stats")
def db_stats() -> None:
    """Show row counts of the local workout store."""
    config = Config()
    try:
        db_service = init_db(config)
    except InitializationError as e:
        console.print(f"[red]❌ {e}[/red]")
        sys.exit(1)

    display_statistics(db_service.get_statistics(), str(db_service.db_path))


@db.command(name="day")
@click.argument("name")
@click.option(
    "--date", "-d", default="", help="Logged date (omit for a split template day)"
)
@click.option("--split", "-s", "split_id", help="Split ID the day belongs to")
def db_day(name: str, date: str, split_id: Optional[str]) -> None:
    """Show a stored workout day with its exercises and sets.

    Examples:
        gymly-sync db day Push --date "17 October 2025"

        gymly-sync db day Legs --split 3f2a...
    """
    config = Config()
    try:
        db_service = init_db(config)
    except InitializationError as e:
        console.print(f"[red]❌ {e}[/red]")
        sys.exit(1)

    day = db_service.get_day_by_natural_key(date, name, split_id=split_id)
    if day is None:
        console.print(f"[yellow]No stored day '{name}' {date}[/yellow]")
        sys.exit(1)

    display_day(day, db_service.get_day_exercises(day.id))
