"""Command-line interface for the Gymly sync application.

This is the main entry point that delegates to command modules.
"""

from pathlib import Path
from typing import Any, Optional

import click

from ..config import Config
from ..utils.logging_config import configure_third_party_loggers, setup_logging
from .commands import (
    db,
    import_shared_command,
    merge_command,
    prefs,
    sign_in_command,
    sign_out_command,
)


@click.group()
@click.option(
    "--log-level",
    default=None,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]),
    help="Set logging level (defaults to GYMLY_SYNC_LOG_LEVEL or INFO)",
)
@click.option("--log-file", type=click.Path(), help="Log to file")
@click.pass_context
def cli(ctx: Any, log_level: Optional[str], log_file: Optional[str]) -> None:
    """Gymly Sync Tool.

    Keeps workout splits, days and fitness preferences in step between this
    device and the cloud.
    """
    config = Config()
    setup_logging(
        log_level=log_level or config.log_level,
        log_file=Path(log_file) if log_file else config.log_file,
    )
    configure_third_party_loggers()
    ctx.ensure_object(dict)


# Register command groups and commands
cli.add_command(sign_in_command)
cli.add_command(sign_out_command)
cli.add_command(merge_command)
cli.add_command(import_shared_command)
cli.add_command(db)
cli.add_command(prefs)


if __name__ == "__main__":
    cli()
