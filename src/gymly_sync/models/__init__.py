"""Models for the Gymly sync application."""

from .models import (
    DEFAULT_TRAINING_DAYS,
    PREFERENCE_KEYS,
    ExerciseSnapshot,
    FitnessPreferences,
    RemoteProfileRecord,
    SetSnapshot,
    SplitSnapshot,
    WorkoutDaySnapshot,
    natural_day_key,
)

__all__ = [
    "DEFAULT_TRAINING_DAYS",
    "PREFERENCE_KEYS",
    "ExerciseSnapshot",
    "FitnessPreferences",
    "RemoteProfileRecord",
    "SetSnapshot",
    "SplitSnapshot",
    "WorkoutDaySnapshot",
    "natural_day_key",
]
