"""CLI command modules."""

from .database import db
from .init import InitializationError, init_coordinator, init_db
from .preferences import prefs
from .sync import (
    import_shared_command,
    merge_command,
    sign_in_command,
    sign_out_command,
)

__all__ = [
    "InitializationError",
    "db",
    "import_shared_command",
    "init_coordinator",
    "init_db",
    "merge_command",
    "prefs",
    "sign_in_command",
    "sign_out_command",
]
