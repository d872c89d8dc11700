"""Gymly Sync.

Data synchronization core for the Gymly fitness tracker: reconciles
replicated fitness preferences, the cloud document database and the local
workout store into one consistent state at sign-in and afterwards.
"""

__version__ = "1.0.0"
__author__ = "Gymly"
__email__ = ""

from .config import Config, SyncSettings
from .models import FitnessPreferences, WorkoutDaySnapshot

__all__ = [
    "Config",
    "FitnessPreferences",
    "SyncSettings",
    "WorkoutDaySnapshot",
]
