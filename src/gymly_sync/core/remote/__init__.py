"""Remote document database access."""

from .profile import ProfileSync
from .store import (
    HttpRemoteStore,
    RemoteRecordStore,
    RemoteStoreError,
    RemoteUnavailableError,
)

__all__ = [
    "HttpRemoteStore",
    "ProfileSync",
    "RemoteRecordStore",
    "RemoteStoreError",
    "RemoteUnavailableError",
]
