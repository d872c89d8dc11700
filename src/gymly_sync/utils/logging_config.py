"""Logging configuration for the Gymly sync application.

Every line carries the account being synced so that output of concurrent
sync tasks can be told apart. The account comes from a context variable,
which asyncio tasks and ``asyncio.to_thread`` workers inherit from the code
that started them.
"""

import logging
import logging.handlers
import sys
from contextvars import ContextVar
from pathlib import Path
from typing import Any, Optional

APP_LOGGER = "gymly_sync"

# Raised to WARNING at startup and whenever the app switches to DEBUG
NOISY_LOGGERS = (
    "sqlalchemy",
    "sqlalchemy.engine",
    "sqlalchemy.pool",
    "sqlalchemy.orm",
    "alembic",
    "urllib3",
    "requests",
    "asyncio",
)

_LEVEL_COLORS = {
    "DEBUG": "\033[36m",
    "INFO": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[35m",
}
_RESET = "\033[0m"

_current_account: ContextVar[Optional[str]] = ContextVar(
    "gymly_sync_account", default=None
)


def bind_account(account_id: Optional[str]) -> None:
    """Tag log lines from the current context with an account ID."""
    _current_account.set(account_id)


class SyncLogFormatter(logging.Formatter):
    """Formatter adding ``location`` and ``account`` fields to each record.

    Args:
        fmt: Format string, may use %(location)s and %(account)s
        datefmt: Date format
        color: Colour the level name with ANSI codes (console only)
    """

    def __init__(
        self, fmt: str, datefmt: Optional[str] = None, color: bool = False
    ) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.color = color

    def format(self, record: Any) -> str:
        """Format a record, restoring its level name afterwards."""
        record.location = f"{record.filename}:{record.lineno}"
        record.account = _current_account.get() or "-"

        levelname = record.levelname
        if self.color:
            color = _LEVEL_COLORS.get(levelname, _RESET)
            record.levelname = f"{color}{levelname:<8}{_RESET}"
        else:
            record.levelname = f"{levelname:<8}"
        try:
            return super().format(record)
        finally:
            record.levelname = levelname


def _console_handler(level: int) -> logging.Handler:
    # stdout belongs to the rich progress bar and result tables
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(
        SyncLogFormatter(
            "%(asctime)s [%(account)s] %(location)-28s %(levelname)s %(message)s",
            datefmt="%H:%M:%S",
            color=handler.stream.isatty(),
        )
    )
    return handler


def _file_handler(
    log_file: Path, level: int, max_file_size: int, backup_count: int
) -> logging.Handler:
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.handlers.RotatingFileHandler(
        log_file, maxBytes=max_file_size, backupCount=backup_count
    )
    handler.setLevel(level)
    handler.setFormatter(
        SyncLogFormatter(
            "%(asctime)s %(levelname)s account=%(account)s "
            "%(name)s (%(location)s) %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    return handler


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[Path] = None,
    console_output: bool = True,
    max_file_size: int = 5 * 1024 * 1024,
    backup_count: int = 3,
) -> None:
    """Set up application logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path to a rotating log file
        console_output: Whether to log to stderr
        max_file_size: Size in bytes at which the log file rotates
        backup_count: Number of rotated log files to keep
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()

    if console_output:
        root_logger.addHandler(_console_handler(numeric_level))
    if log_file:
        root_logger.addHandler(
            _file_handler(log_file, numeric_level, max_file_size, backup_count)
        )

    logger = logging.getLogger(__name__)
    logger.debug("Logging initialized - Level: %s", log_level)
    if log_file:
        logger.info("Log file: %s", log_file)


def set_log_level(level: str) -> None:
    """Change the log level of gymly_sync loggers, leaving libraries alone.

    Args:
        level: New log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    for handler in root_logger.handlers:
        handler.setLevel(numeric_level)

    logging.getLogger(APP_LOGGER).setLevel(numeric_level)
    for name in list(logging.root.manager.loggerDict):
        if name.startswith(f"{APP_LOGGER}."):
            logging.getLogger(name).setLevel(numeric_level)

    if numeric_level == logging.DEBUG:
        configure_third_party_loggers()

    logging.getLogger(__name__).debug("Log level changed to: %s", level)


def configure_third_party_loggers() -> None:
    """Keep library loggers at WARNING and above."""
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
