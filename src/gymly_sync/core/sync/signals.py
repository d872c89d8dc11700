"""Outbound "data refreshed" signal.

Screens subscribe and re-query their own view state when the signal fires.
Receiving it more than once is harmless.
"""

import logging
from typing import Callable, List

logger = logging.getLogger(__name__)

DataRefreshedCallback = Callable[[str], None]


class DataRefreshBroadcaster:
    """Fan-out of the data-refreshed signal to observers."""

    def __init__(self) -> None:
        """Initialize broadcaster with no observers."""
        self._observers: List[DataRefreshedCallback] = []
        self.emitted = 0

    def subscribe(self, callback: DataRefreshedCallback) -> Callable[[], None]:
        """Register an observer.

        Args:
            callback: Called with the signal source ("session" or "background")

        Returns:
            Function that removes the observer again
        """
        self._observers.append(callback)

        def unsubscribe() -> None:
            if callback in self._observers:
                self._observers.remove(callback)

        return unsubscribe

    def emit(self, source: str) -> None:
        """Notify every observer that workout data was refreshed."""
        self.emitted += 1
        logger.info("Data refreshed (source=%s), notifying %d observers",
                    source, len(self._observers))
        for callback in list(self._observers):
            try:
                callback(source)
            except Exception as e:
                logger.error("Error in data-refreshed observer: %s", e)
