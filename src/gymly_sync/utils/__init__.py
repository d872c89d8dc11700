"""Shared utilities."""

from .logging_config import (
    bind_account,
    configure_third_party_loggers,
    set_log_level,
    setup_logging,
)

__all__ = [
    "bind_account",
    "configure_third_party_loggers",
    "set_log_level",
    "setup_logging",
]
