"""Database package for the local workout store.

Only the storage layer lives here (models, service, async store facade).
Sync logic lives in core/ modules.
"""

from .local_store import DayRecord, LocalStoreReadError, LocalWorkoutStore
from .models import Day, Exercise, ExerciseSet, Profile, Split
from .service import DatabaseService

__all__ = [
    # Models
    "Day",
    "Exercise",
    "ExerciseSet",
    "Profile",
    "Split",
    # Services
    "DatabaseService",
    "LocalWorkoutStore",
    "DayRecord",
    "LocalStoreReadError",
]
