"""State of one sync session."""

import logging
import uuid
from dataclasses import dataclass
from dataclasses import field as dataclass_field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Optional

from .progress_tracker import ProgressTracker, SyncStage

if TYPE_CHECKING:
    from .merge import MergeResult

logger = logging.getLogger(__name__)

DATABASE_UNAVAILABLE_MESSAGE = "Database temporarily unavailable"
SYNC_ISSUES_MESSAGE = "Sync completed with some issues"


class SyncOutcome(str, Enum):
    """How a session ended."""

    FOUND = "found"
    NOT_FOUND = "not_found"  # legitimately new user, not an error
    DEGRADED = "degraded"
    CANCELLED = "cancelled"


@dataclass
class SyncSession:
    """One run of the sync orchestrator.

    Stages only move forward and progress never decreases. All mutation
    happens on the event loop thread, through ``advance`` and
    ``report_progress``, which publish every change to the tracker.

    Attributes:
        account_id: Account being synced
        stage: Current stage (None before the first stage)
        progress: Overall progress, 0.0 - 1.0
        last_error: Non-fatal advisory message for the user
        outcome: Final outcome once the session has finished
        remote_available: Result of the availability check
        poll_attempts: Local reads issued by the session poll
        merge_result: Result of the fallback merge, if it ran
    """

    account_id: Optional[str] = None
    tracker: ProgressTracker = dataclass_field(default_factory=ProgressTracker)
    session_id: str = dataclass_field(default_factory=lambda: uuid.uuid4().hex[:12])
    stage: Optional[SyncStage] = None
    progress: float = 0.0
    last_error: Optional[str] = None
    outcome: Optional[SyncOutcome] = None
    remote_available: bool = False
    poll_attempts: int = 0
    merge_result: Optional["MergeResult"] = None
    refresh_emitted: bool = False
    started_at: datetime = dataclass_field(default_factory=datetime.now)
    finished_at: Optional[datetime] = None
    _cancel_requested: bool = dataclass_field(default=False, repr=False)

    def advance(self, stage: SyncStage, progress: float, message: str = "") -> None:
        """Enter the next stage.

        Raises:
            ValueError: If ``stage`` is not after the current stage
        """
        if self.stage is not None and stage.position <= self.stage.position:
            raise ValueError(
                f"Cannot move from {self.stage.value} back to {stage.value}"
            )
        logger.debug("Session %s entering %s", self.session_id, stage.value)
        self.stage = stage
        self._set_progress(stage, progress, message)

    def report_progress(self, progress: float, message: str = "") -> None:
        """Update progress within the current stage."""
        if self.stage is None:
            raise ValueError("Session has not entered a stage yet")
        self._set_progress(self.stage, progress, message)

    def _set_progress(self, stage: SyncStage, progress: float, message: str) -> None:
        # A late, lower value is ignored
        self.progress = min(1.0, max(self.progress, progress))
        self.tracker.publish(
            stage,
            self.progress,
            message=message,
            metadata={"session_id": self.session_id},
        )

    def set_advisory(self, message: Optional[str]) -> None:
        """Set or clear the user-visible, non-blocking advisory."""
        self.last_error = message

    def cancel(self) -> None:
        """Ask the session to stop at the next boundary."""
        if not self._cancel_requested:
            logger.info("Cancellation requested for session %s", self.session_id)
        self._cancel_requested = True

    @property
    def cancelled(self) -> bool:
        """True once cancellation has been requested."""
        return self._cancel_requested

    @property
    def is_finished(self) -> bool:
        """True once the session has an outcome."""
        return self.outcome is not None

    def finish(self, outcome: SyncOutcome) -> None:
        """Record the final outcome."""
        self.outcome = outcome
        self.finished_at = datetime.now()

    def get_summary(self) -> Dict[str, Any]:
        """Get summary of the session."""
        summary: Dict[str, Any] = {
            "session_id": self.session_id,
            "account_id": self.account_id,
            "stage": self.stage.value if self.stage else None,
            "progress": self.progress,
            "outcome": self.outcome.value if self.outcome else None,
            "remote_available": self.remote_available,
            "poll_attempts": self.poll_attempts,
            "advisory": self.last_error,
        }
        if self.finished_at is not None:
            summary["duration"] = (self.finished_at - self.started_at).total_seconds()
        if self.merge_result is not None:
            summary["merge"] = self.merge_result.get_summary()
        return summary
