"""Service construction for CLI commands.

This module provides simple initialization functions that return service instances:
- init_db() -> DatabaseService
- init_remote_store() -> HttpRemoteStore
- init_preference_sync() -> PreferenceSync
- init_coordinator() -> SignInCoordinator (wired with all of the above)
"""

import logging
from typing import Optional

from ...config import Config
from ...core.preferences import (
    JsonFilePreferenceStore,
    LocalPreferenceConfig,
    PreferenceSync,
)
from ...core.remote import HttpRemoteStore, ProfileSync
from ...core.sync import (
    Clock,
    DataRefreshBroadcaster,
    SignInCoordinator,
    SignOutRequest,
    SyncOrchestrator,
)
from ...database import DatabaseService, LocalWorkoutStore

logger = logging.getLogger(__name__)


class InitializationError(Exception):
    """Raised when initialization fails."""

    pass


def init_db(config: Optional[Config] = None) -> DatabaseService:
    """Initialize or get DatabaseService instance.

    Args:
        config: Application configuration (creates new if not provided)

    Returns:
        DatabaseService instance

    Raises:
        InitializationError: If database cannot be initialized
    """
    if config is None:
        config = Config()

    try:
        db_service = DatabaseService(db_path=config.database_path)

        # Initialize if needed
        if not db_service.is_initialized():
            logger.info("Initializing database schema...")
            db_service.init_db()

        # Verify connection works
        stats = db_service.get_statistics()
        logger.debug(
            f"Database connected: {stats['days']} days, {stats['splits']} splits"
        )

        return db_service

    except Exception as e:
        logger.exception("Database initialization failed")
        raise InitializationError(f"Database initialization failed: {e}")


def init_remote_store(config: Optional[Config] = None) -> HttpRemoteStore:
    """Create the remote store client.

    Args:
        config: Application configuration (creates new if not provided)

    Returns:
        HttpRemoteStore instance
    """
    if config is None:
        config = Config()

    logger.debug(f"Remote store at {config.remote_base_url}")
    return HttpRemoteStore(
        config.remote_base_url,
        api_token=config.remote_api_token,
        timeout=config.remote_request_timeout,
    )


def init_preference_sync(
    config: Optional[Config] = None, clock: Optional[Clock] = None
) -> PreferenceSync:
    """Create preference sync over the file-backed replicated store.

    Args:
        config: Application configuration (creates new if not provided)
        clock: Clock for fetch budgets

    Returns:
        PreferenceSync instance
    """
    if config is None:
        config = Config()

    return PreferenceSync(
        JsonFilePreferenceStore(config.replicated_preferences_path),
        LocalPreferenceConfig(config.local_preferences_path),
        clock or Clock(),
    )


def init_coordinator(
    config: Optional[Config] = None,
    broadcaster: Optional[DataRefreshBroadcaster] = None,
) -> SignInCoordinator:
    """Wire up a sign-in coordinator with every sync collaborator.

    Args:
        config: Application configuration (creates new if not provided)
        broadcaster: Data-refreshed broadcaster to signal through

    Returns:
        SignInCoordinator instance

    Raises:
        InitializationError: If any service fails to initialize
    """
    if config is None:
        config = Config()

    try:
        clock = Clock()
        db_service = init_db(config)
        remote_store = init_remote_store(config)
        preference_sync = init_preference_sync(config, clock)

        orchestrator = SyncOrchestrator(
            local_store=LocalWorkoutStore(db_service),
            remote_store=remote_store,
            preference_sync=preference_sync,
            profile_sync=ProfileSync(remote_store, db_service, clock),
            broadcaster=broadcaster or DataRefreshBroadcaster(),
            clock=clock,
            settings=config.sync_settings(),
        )
        logger.info("Sync services initialized successfully")
        return SignInCoordinator(
            orchestrator,
            preference_sync,
            sign_out_request=SignOutRequest(config.sign_out_request_path),
        )

    except InitializationError:
        raise
    except Exception as e:
        logger.exception("Service initialization failed")
        raise InitializationError(f"Service initialization failed: {e}")
