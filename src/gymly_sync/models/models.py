"""Data models exchanged between the sync components."""

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_TRAINING_DAYS = 4

# Key names used in the replicated key-value store. Other devices read and
# write the same keys, so they must not change.
KEY_HAS_COMPLETED_PROFILE = "hasCompletedFitnessProfile"
KEY_FITNESS_GOAL = "fitnessGoal"
KEY_EQUIPMENT_ACCESS = "equipmentAccess"
KEY_EXPERIENCE_LEVEL = "experienceLevel"
KEY_TRAINING_DAYS_PER_WEEK = "trainingDaysPerWeek"

PREFERENCE_KEYS = (
    KEY_HAS_COMPLETED_PROFILE,
    KEY_FITNESS_GOAL,
    KEY_EQUIPMENT_ACCESS,
    KEY_EXPERIENCE_LEVEL,
    KEY_TRAINING_DAYS_PER_WEEK,
)


class FitnessPreferences(BaseModel):
    """Scalar fitness profile preferences."""

    has_completed_profile: bool = False
    fitness_goal: str = ""
    equipment_access: str = ""
    experience_level: str = ""
    training_days_per_week: int = DEFAULT_TRAINING_DAYS

    @field_validator("training_days_per_week", mode="before")
    @classmethod
    def validate_training_days(cls, v: Any) -> int:
        """Fall back to the default for missing or non-positive values."""
        try:
            days = int(v)
        except (TypeError, ValueError):
            return DEFAULT_TRAINING_DAYS
        return days if days > 0 else DEFAULT_TRAINING_DAYS

    @classmethod
    def from_kv(cls, values: Dict[str, Any]) -> "FitnessPreferences":
        """Build preferences from replicated key-value entries."""
        return cls(
            has_completed_profile=bool(values.get(KEY_HAS_COMPLETED_PROFILE, False)),
            fitness_goal=values.get(KEY_FITNESS_GOAL) or "",
            equipment_access=values.get(KEY_EQUIPMENT_ACCESS) or "",
            experience_level=values.get(KEY_EXPERIENCE_LEVEL) or "",
            training_days_per_week=values.get(KEY_TRAINING_DAYS_PER_WEEK, 0),
        )

    def to_kv(self) -> Dict[str, Any]:
        """Convert to replicated key-value entries."""
        return {
            KEY_HAS_COMPLETED_PROFILE: self.has_completed_profile,
            KEY_FITNESS_GOAL: self.fitness_goal,
            KEY_EQUIPMENT_ACCESS: self.equipment_access,
            KEY_EXPERIENCE_LEVEL: self.experience_level,
            KEY_TRAINING_DAYS_PER_WEEK: self.training_days_per_week,
        }


class RemoteProfileRecord(BaseModel):
    """The per-account profile document in the private partition."""

    account_id: str
    username: str = "User"
    email: str = ""
    weight_kg: Optional[float] = None
    height_cm: Optional[float] = None
    updated_at: Optional[datetime] = None


class SetSnapshot(BaseModel):
    """One logged set of an exercise."""

    weight: float = 0.0
    reps: int = 0
    failure: bool = False
    warm_up: bool = False
    rest_pause: bool = False
    drop_set: bool = False
    body_weight: bool = False
    time: str = ""
    note: str = ""
    created_at: Optional[datetime] = None


class ExerciseSnapshot(BaseModel):
    """An exercise inside a remote day record."""

    name: str
    exercise_order: int = 0
    rep_goal: str = ""
    muscle_group: str = ""
    sets: List[SetSnapshot] = []
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class WorkoutDaySnapshot(BaseModel):
    """A day-level workout record as stored in the remote private partition."""

    record_id: str
    date: str = ""  # "" for split template days
    day_name: str
    day_of_split: int = 0
    split_id: Optional[str] = None
    exercises: List[ExerciseSnapshot] = []

    model_config = ConfigDict(frozen=True)

    @field_validator("exercises", mode="after")
    @classmethod
    def order_exercises(cls, v: List[ExerciseSnapshot]) -> List[ExerciseSnapshot]:
        """Keep exercises in their logged order."""
        return sorted(v, key=lambda exercise: exercise.exercise_order)

    @property
    def natural_key(self) -> Tuple[str, str]:
        """Identity used to detect that a record already exists locally."""
        return natural_day_key(self.date, self.day_name)

    @property
    def exercise_names(self) -> List[str]:
        """Exercise names in order."""
        return [exercise.name for exercise in self.exercises]


class SplitSnapshot(BaseModel):
    """A training split (program) record from the remote private partition."""

    split_id: str
    name: str
    is_active: bool = False
    start_date: Optional[datetime] = None
    days: List[WorkoutDaySnapshot] = Field(default_factory=list)


def natural_day_key(date: str, day_name: str) -> Tuple[str, str]:
    """Normalize a (date, day name) pair into a natural key."""
    return (date or "").strip(), (day_name or "").strip()
