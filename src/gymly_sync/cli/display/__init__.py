"""CLI display and formatting utilities."""

from .formatters import (
    create_session_progress,
    display_day,
    display_merge_result,
    display_preferences,
    display_session_result,
    display_statistics,
    progress_callback,
)

__all__ = [
    "create_session_progress",
    "display_day",
    "display_merge_result",
    "display_preferences",
    "display_session_result",
    "display_statistics",
    "progress_callback",
]
