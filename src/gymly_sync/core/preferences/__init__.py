"""Fitness preference storage and replication."""

from .local import LocalPreferenceConfig
from .store import (
    JsonFilePreferenceStore,
    PreferenceStoreError,
    ReplicatedPreferenceStore,
)
from .sync import PreferenceSync

__all__ = [
    "JsonFilePreferenceStore",
    "LocalPreferenceConfig",
    "PreferenceStoreError",
    "PreferenceSync",
    "ReplicatedPreferenceStore",
]
