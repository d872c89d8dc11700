"""Synchronization module.

Handles the sign-in sync session, local convergence polling, fallback merge,
and the background watcher.
"""

from .clock import BudgetResult, Clock, run_with_budget
from .coordinator import SignInCoordinator, SignOutRequest
from .merge import MergeError, MergeReconciler, MergeResult
from .orchestrator import SyncOrchestrator
from .poller import ConvergencePoller, PollResult
from .progress_tracker import (
    ConsoleProgressReporter,
    ProgressTracker,
    ProgressUpdate,
    SyncStage,
)
from .session import SyncOutcome, SyncSession
from .signals import DataRefreshBroadcaster
from .watcher import BackgroundConvergenceWatcher, WatcherRegistry, watcher_registry

__all__ = [
    # Clock
    "BudgetResult",
    "Clock",
    "run_with_budget",
    # Orchestration
    "SignInCoordinator",
    "SignOutRequest",
    "SyncOrchestrator",
    "SyncOutcome",
    "SyncSession",
    "SyncStage",
    # Polling
    "BackgroundConvergenceWatcher",
    "ConvergencePoller",
    "PollResult",
    "WatcherRegistry",
    "watcher_registry",
    # Merge
    "MergeError",
    "MergeReconciler",
    "MergeResult",
    # Progress and signals
    "ConsoleProgressReporter",
    "DataRefreshBroadcaster",
    "ProgressTracker",
    "ProgressUpdate",
]
