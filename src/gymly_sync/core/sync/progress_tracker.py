"""Progress tracking for sync sessions.

Stage and progress changes are published to callbacks (the sign-in screen,
the CLI progress bar). Callbacks have no effect on correctness; a failing
callback is logged and ignored.
"""

import logging
import time
from dataclasses import dataclass
from dataclasses import field as dataclass_field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


class SyncStage(str, Enum):
    """Ordered stages of a sync session."""

    CHECKING_AVAILABILITY = "checking_availability"
    SYNCING_PREFERENCES = "syncing_preferences"
    SYNCING_FITNESS_PROFILE = "syncing_fitness_profile"
    AWAITING_LOCAL_CONVERGENCE = "awaiting_local_convergence"
    FALLBACK_REMOTE_FETCH = "fallback_remote_fetch"
    COMPLETE = "complete"

    @classmethod
    def ordered(cls) -> List["SyncStage"]:
        """Return stages in execution order."""
        return [
            cls.CHECKING_AVAILABILITY,
            cls.SYNCING_PREFERENCES,
            cls.SYNCING_FITNESS_PROFILE,
            cls.AWAITING_LOCAL_CONVERGENCE,
            cls.FALLBACK_REMOTE_FETCH,
            cls.COMPLETE,
        ]

    @property
    def position(self) -> int:
        """Index of this stage in execution order."""
        return SyncStage.ordered().index(self)

    @property
    def label(self) -> str:
        """Human-readable stage description."""
        return _STAGE_LABELS[self]


_STAGE_LABELS = {
    SyncStage.CHECKING_AVAILABILITY: "Checking cloud account",
    SyncStage.SYNCING_PREFERENCES: "Syncing fitness preferences",
    SyncStage.SYNCING_FITNESS_PROFILE: "Syncing fitness profile",
    SyncStage.AWAITING_LOCAL_CONVERGENCE: "Waiting for workouts",
    SyncStage.FALLBACK_REMOTE_FETCH: "Fetching workouts from cloud",
    SyncStage.COMPLETE: "Complete",
}


@dataclass
class ProgressUpdate:
    """Progress update information."""

    stage: SyncStage
    progress: float
    message: str = ""
    metadata: Dict[str, Any] = dataclass_field(default_factory=dict)
    elapsed_time: float = 0.0

    @property
    def percentage(self) -> float:
        """Progress as a percentage."""
        return self.progress * 100.0

    @property
    def is_complete(self) -> bool:
        """Check if the session reached its final stage."""
        return self.stage == SyncStage.COMPLETE and self.progress >= 1.0

    def __str__(self) -> str:
        """String representation of progress."""
        parts = [f"[{self.stage.value}]", f"({self.percentage:.1f}%)"]
        if self.message:
            parts.append(f"- {self.message}")
        return " ".join(parts)


# Type alias for progress callback function
ProgressCallback = Callable[[ProgressUpdate], None]


class ProgressTracker:
    """Publishes stage and progress changes for one session."""

    def __init__(self, callbacks: Optional[List[ProgressCallback]] = None):
        """Initialize progress tracker.

        Args:
            callbacks: Functions to call with progress updates
        """
        self.callbacks: List[ProgressCallback] = list(callbacks or [])
        self.history: List[ProgressUpdate] = []
        self._start_time = 0.0
        self._stage_start_time = 0.0
        self._current_stage: Optional[SyncStage] = None
        self._stage_history: Dict[SyncStage, float] = {}

    def add_callback(self, callback: ProgressCallback) -> None:
        """Register another progress callback."""
        self.callbacks.append(callback)

    def publish(
        self,
        stage: SyncStage,
        progress: float,
        message: str = "",
        metadata: Optional[Dict[str, Any]] = None,
    ) -> ProgressUpdate:
        """Record a progress change and notify callbacks.

        Args:
            stage: Current stage
            progress: Overall session progress (0.0 - 1.0)
            message: Optional progress message
            metadata: Optional metadata dictionary

        Returns:
            The published update
        """
        now = time.time()
        if self._start_time == 0.0:
            self._start_time = now

        if stage != self._current_stage:
            if self._current_stage is not None:
                self._stage_history[self._current_stage] = now - self._stage_start_time
            self._current_stage = stage
            self._stage_start_time = now

        update = ProgressUpdate(
            stage=stage,
            progress=progress,
            message=message or stage.label,
            metadata=metadata or {},
            elapsed_time=now - self._start_time,
        )
        self.history.append(update)

        for callback in self.callbacks:
            try:
                callback(update)
            except Exception as e:
                logger.error("Error in progress callback: %s", e)

        return update

    def get_summary(self) -> Dict[str, Any]:
        """Get summary of progress tracking.

        Returns:
            Dictionary with tracking summary
        """
        total_time = time.time() - self._start_time if self._start_time > 0 else 0
        last = self.history[-1] if self.history else None
        return {
            "total_time": total_time,
            "stage_history": {
                stage.value: duration for stage, duration in self._stage_history.items()
            },
            "current_stage": self._current_stage.value if self._current_stage else None,
            "percentage": last.percentage if last else 0.0,
            "updates": len(self.history),
        }


class ConsoleProgressReporter:
    """Simple console progress reporter."""

    def __init__(self, verbose: bool = True):
        """Initialize console reporter.

        Args:
            verbose: Whether to print every update or only stage changes
        """
        self.verbose = verbose
        self._last_stage: Optional[SyncStage] = None

    def __call__(self, update: ProgressUpdate) -> None:
        """Handle progress update.

        Args:
            update: Progress update
        """
        if update.stage != self._last_stage:
            print(f"\n{'='*60}")
            print(f"Stage: {update.stage.label.upper()}")
            print(f"{'='*60}")
            self._last_stage = update.stage

        if self.verbose or update.is_complete:
            print(f"  {update}")
