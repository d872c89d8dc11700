"""Configuration management for the Gymly sync application."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load .env file from config directory or project root
config_env = Path(__file__).parent.parent.parent / "config" / ".env"
if config_env.exists():
    load_dotenv(config_env)
else:
    # Fallback to project root .env
    load_dotenv()


# Product-tuned timing constants. None of these has a documented derivation;
# they are kept overridable so they can be re-validated without code changes.
PREFERENCE_FETCH_TIMEOUT = 2.0
PROFILE_FETCH_TIMEOUT = 5.0
POLL_INTERVAL = 0.5
POLL_MAX_ATTEMPTS = 40
MAX_CONSECUTIVE_READ_ERRORS = 3
BACKGROUND_POLL_INTERVAL = 1.0
BACKGROUND_MAX_ATTEMPTS = 60
COMPLETE_HOLD = 0.5
PREFERENCE_WATCH_INTERVAL = 5.0
SIGN_OUT_CHECK_INTERVAL = 1.0


@dataclass(frozen=True)
class SyncSettings:
    """Timing budgets used by the sync orchestrator and background watcher.

    Attributes:
        preference_timeout: Budget for the replicated preference pull (seconds)
        profile_timeout: Budget for the remote profile pull (seconds)
        poll_interval: Delay between local convergence reads (seconds)
        poll_max_attempts: Read ceiling for the session poll
        max_consecutive_errors: Consecutive read errors that abort the session poll
        background_interval: Delay before each background watcher read (seconds)
        background_max_attempts: Read ceiling for the background watcher
        complete_hold: Pause at 100% before the refresh signal (seconds)
        preference_watch_interval: Delay between checks of the replicated
            preference store for changes made on another device (seconds)
        sign_out_check_interval: Delay between checks for a sign-out
            requested by another process (seconds)
        poll_progress_start: Session progress when local polling begins
        poll_progress_end: Session progress reached by a full poll
    """

    preference_timeout: float = PREFERENCE_FETCH_TIMEOUT
    profile_timeout: float = PROFILE_FETCH_TIMEOUT
    poll_interval: float = POLL_INTERVAL
    poll_max_attempts: int = POLL_MAX_ATTEMPTS
    max_consecutive_errors: int = MAX_CONSECUTIVE_READ_ERRORS
    background_interval: float = BACKGROUND_POLL_INTERVAL
    background_max_attempts: int = BACKGROUND_MAX_ATTEMPTS
    complete_hold: float = COMPLETE_HOLD
    preference_watch_interval: float = PREFERENCE_WATCH_INTERVAL
    sign_out_check_interval: float = SIGN_OUT_CHECK_INTERVAL
    poll_progress_start: float = 0.35
    poll_progress_end: float = 0.85


class Config:
    """Application configuration."""

    def __init__(self) -> None:
        """Initialize configuration from environment variables."""
        app_dir = Path.home() / ".gymly-sync"

        # Account settings
        self.account_id: Optional[str] = os.getenv("GYMLY_SYNC_ACCOUNT_ID") or None

        # Remote document database settings
        self.remote_base_url = os.getenv(
            "GYMLY_SYNC_REMOTE_URL", "http://localhost:8080/api/v1"
        ).rstrip("/")
        self.remote_api_token: Optional[str] = (
            os.getenv("GYMLY_SYNC_REMOTE_TOKEN") or None
        )
        self.remote_request_timeout = float(
            os.getenv("GYMLY_SYNC_REMOTE_REQUEST_TIMEOUT", "10")
        )

        # Preference settings
        self.replicated_preferences_path = Path(
            os.getenv(
                "GYMLY_SYNC_REPLICATED_PREFERENCES",
                str(app_dir / "replicated" / "fitness_profile.json"),
            )
        )
        self.local_preferences_path = Path(
            os.getenv(
                "GYMLY_SYNC_LOCAL_PREFERENCES", str(app_dir / "preferences.json")
            )
        )

        # Flag file a separate sign-out process uses to stop a running sign-in
        self.sign_out_request_path = Path(
            os.getenv("GYMLY_SYNC_SIGN_OUT_FLAG", str(app_dir / "sign-out.request"))
        )

        # Logging settings
        self.log_level = os.getenv("GYMLY_SYNC_LOG_LEVEL", "INFO").upper()
        log_file = os.getenv("GYMLY_SYNC_LOG_FILE")
        self.log_file: Optional[Path] = Path(log_file) if log_file else None

        # Database settings
        default_db_path = str(app_dir / "workouts.db")
        self.database_path = Path(
            os.getenv("GYMLY_SYNC_DATABASE_PATH", default_db_path)
        )

        # Timing budgets
        self.preference_timeout = float(
            os.getenv("GYMLY_SYNC_PREFERENCE_TIMEOUT", str(PREFERENCE_FETCH_TIMEOUT))
        )
        self.profile_timeout = float(
            os.getenv("GYMLY_SYNC_PROFILE_TIMEOUT", str(PROFILE_FETCH_TIMEOUT))
        )
        self.poll_interval = float(
            os.getenv("GYMLY_SYNC_POLL_INTERVAL", str(POLL_INTERVAL))
        )
        self.poll_max_attempts = int(
            os.getenv("GYMLY_SYNC_POLL_MAX_ATTEMPTS", str(POLL_MAX_ATTEMPTS))
        )
        self.max_consecutive_errors = int(
            os.getenv(
                "GYMLY_SYNC_MAX_CONSECUTIVE_ERRORS", str(MAX_CONSECUTIVE_READ_ERRORS)
            )
        )
        self.background_interval = float(
            os.getenv("GYMLY_SYNC_BACKGROUND_INTERVAL", str(BACKGROUND_POLL_INTERVAL))
        )
        self.background_max_attempts = int(
            os.getenv(
                "GYMLY_SYNC_BACKGROUND_MAX_ATTEMPTS", str(BACKGROUND_MAX_ATTEMPTS)
            )
        )
        self.complete_hold = float(
            os.getenv("GYMLY_SYNC_COMPLETE_HOLD", str(COMPLETE_HOLD))
        )
        self.preference_watch_interval = float(
            os.getenv(
                "GYMLY_SYNC_PREFERENCE_WATCH_INTERVAL", str(PREFERENCE_WATCH_INTERVAL)
            )
        )
        self.sign_out_check_interval = float(
            os.getenv("GYMLY_SYNC_SIGN_OUT_CHECK_INTERVAL", str(SIGN_OUT_CHECK_INTERVAL))
        )

        # Ensure directories exist
        self._ensure_directories()

    def _ensure_directories(self) -> None:
        """Ensure required directories exist."""
        self.database_path.parent.mkdir(parents=True, exist_ok=True)
        self.local_preferences_path.parent.mkdir(parents=True, exist_ok=True)
        self.replicated_preferences_path.parent.mkdir(parents=True, exist_ok=True)
        self.sign_out_request_path.parent.mkdir(parents=True, exist_ok=True)

    def sync_settings(self) -> SyncSettings:
        """Build the timing budgets for a sync session."""
        return SyncSettings(
            preference_timeout=self.preference_timeout,
            profile_timeout=self.profile_timeout,
            poll_interval=self.poll_interval,
            poll_max_attempts=self.poll_max_attempts,
            max_consecutive_errors=self.max_consecutive_errors,
            background_interval=self.background_interval,
            background_max_attempts=self.background_max_attempts,
            complete_hold=self.complete_hold,
            preference_watch_interval=self.preference_watch_interval,
            sign_out_check_interval=self.sign_out_check_interval,
        )
