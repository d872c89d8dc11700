"""Replicated key-value store for the fitness preference set.

The store is replicated between a user's devices by the platform. Writes are
eventually visible elsewhere, and changes made on another device arrive as
an external-change notification.
"""

import asyncio
import json
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional

from ..sync.clock import Clock

logger = logging.getLogger(__name__)

# Called with the store's current values after another device changed them
ExternalChangeCallback = Callable[[Dict[str, Any]], None]


class PreferenceStoreError(Exception):
    """Custom exception for replicated preference store issues."""


class ReplicatedPreferenceStore(ABC):
    """Narrow interface to the replicated key-value store."""

    def __init__(self) -> None:
        """Initialize observer list."""
        self._observers: List[ExternalChangeCallback] = []

    @abstractmethod
    async def fetch(self) -> Dict[str, Any]:
        """Synchronize with the replica and return every stored value."""

    @abstractmethod
    async def push(self, values: Dict[str, Any]) -> None:
        """Write values (other keys are left alone)."""

    @abstractmethod
    async def clear(self, keys: Iterable[str]) -> None:
        """Remove keys."""

    def on_external_change(self, callback: ExternalChangeCallback) -> Callable[[], None]:
        """Register a handler for changes made on another device.

        Returns:
            Function that removes the handler again
        """
        self._observers.append(callback)

        def unsubscribe() -> None:
            if callback in self._observers:
                self._observers.remove(callback)

        return unsubscribe

    async def watch(
        self,
        clock: Clock,
        interval: float = 5.0,
        should_stop: Optional[Callable[[], bool]] = None,
    ) -> None:
        """Look for changes made on another device until stopped.

        Stores whose platform pushes change notifications have nothing to
        poll, so the base implementation returns immediately.
        """

    def _notify_external_change(self, values: Dict[str, Any]) -> None:
        for callback in list(self._observers):
            try:
                callback(values)
            except Exception as e:
                logger.error("Error in external-change handler: %s", e)


class JsonFilePreferenceStore(ReplicatedPreferenceStore):
    """Replicated store backed by a JSON file in a synced folder.

    Another device (or the platform's replication) rewriting the file is
    detected by its modification time changing without a local write.
    """

    def __init__(self, path: Path):
        """Initialize file-backed store.

        Args:
            path: JSON file holding the replicated values
        """
        super().__init__()
        self.path = Path(path)
        self._last_seen_mtime: Optional[float] = self._mtime()

    def _mtime(self) -> Optional[float]:
        try:
            return self.path.stat().st_mtime
        except FileNotFoundError:
            return None

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise PreferenceStoreError(f"Cannot read {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise PreferenceStoreError(f"{self.path} does not hold a JSON object")
        return data

    def _write(self, data: Dict[str, Any]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, sort_keys=True)
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise PreferenceStoreError(f"Cannot write {self.path}: {e}") from e
        self._last_seen_mtime = self._mtime()

    def _update(self, values: Dict[str, Any]) -> None:
        data = self._read()
        data.update(values)
        self._write(data)

    def _remove(self, keys: List[str]) -> None:
        data = self._read()
        for key in keys:
            data.pop(key, None)
        self._write(data)

    async def fetch(self) -> Dict[str, Any]:
        """Read every stored value."""
        return await asyncio.to_thread(self._read)

    async def push(self, values: Dict[str, Any]) -> None:
        """Merge values into the file."""
        await asyncio.to_thread(self._update, dict(values))
        logger.debug("Pushed %d preference keys to %s", len(values), self.path)

    async def clear(self, keys: Iterable[str]) -> None:
        """Remove keys from the file."""
        await asyncio.to_thread(self._remove, list(keys))

    def check_for_external_change(self) -> bool:
        """Notify handlers if the file changed since the last local access.

        Returns:
            True if a change was detected
        """
        mtime = self._mtime()
        if mtime == self._last_seen_mtime:
            return False
        self._last_seen_mtime = mtime
        try:
            values = self._read()
        except PreferenceStoreError as e:
            logger.warning("Ignoring unreadable external change: %s", e)
            return False
        logger.info("Replicated preferences changed externally")
        self._notify_external_change(values)
        return True

    async def watch(
        self,
        clock: Clock,
        interval: float = 5.0,
        should_stop: Optional[Callable[[], bool]] = None,
    ) -> None:
        """Check for external changes every ``interval`` seconds until stopped."""
        while should_stop is None or not should_stop():
            self.check_for_external_change()
            await clock.sleep(interval)
