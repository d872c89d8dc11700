"""Access to the managed remote document database.

Records live in two partitions: a private partition per account (profile,
splits, workout days) and a public partition holding splits shared by ID.
The database is eventually consistent and may be unreachable at any time.
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional

import requests

from ...models import RemoteProfileRecord, SplitSnapshot, WorkoutDaySnapshot

logger = logging.getLogger(__name__)


class RemoteStoreError(Exception):
    """Custom exception for remote store issues."""


class RemoteUnavailableError(RemoteStoreError):
    """Raised when the remote store cannot be reached."""


class RemoteRecordStore(ABC):
    """Narrow interface to the remote document database."""

    @abstractmethod
    async def is_available(self) -> bool:
        """Check whether the account's private partition is reachable."""

    @abstractmethod
    async def fetch_profile(self, account_id: str) -> Optional[RemoteProfileRecord]:
        """Fetch the account's profile record, or None if it has none."""

    @abstractmethod
    async def save_profile(self, record: RemoteProfileRecord) -> None:
        """Create or update the account's profile record."""

    @abstractmethod
    async def fetch_day_snapshots(self, account_id: str) -> List[WorkoutDaySnapshot]:
        """Fetch all workout-day records from the private partition."""

    @abstractmethod
    async def fetch_split_snapshots(self, account_id: str) -> List[SplitSnapshot]:
        """Fetch all split records from the private partition."""

    @abstractmethod
    async def fetch_shared_split(self, share_id: str) -> Optional[SplitSnapshot]:
        """Fetch a split shared through the public partition."""


class HttpRemoteStore(RemoteRecordStore):
    """Remote store reached over a JSON HTTP API.

    Calls are made with a blocking ``requests`` session on a worker thread.
    """

    def __init__(
        self,
        base_url: str,
        api_token: Optional[str] = None,
        timeout: float = 10.0,
        max_retries: int = 3,
        base_delay: float = 1.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        """Initialize remote store.

        Args:
            base_url: API root, e.g. https://sync.example.com/api/v1
            api_token: Bearer token for the account
            timeout: Per-request timeout in seconds
            max_retries: Retries for 5xx responses
            base_delay: First retry delay (doubles each retry)
            session: Optional preconfigured requests session
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/json"})
        if api_token:
            self.session.headers.update({"Authorization": f"Bearer {api_token}"})

    def _retry_api_call(self, func: Callable[[], Any]) -> Any:
        """Retry API calls with exponential backoff for transient errors.

        Args:
            func: Function to call (should return API result)

        Returns:
            Result from the API call

        Raises:
            RemoteUnavailableError: If the server cannot be reached
            RemoteStoreError: If all retries fail or the error is not retryable
        """
        last_error = None
        for attempt in range(self.max_retries + 1):
            try:
                return func()
            except requests.exceptions.HTTPError as e:
                # Only retry on server errors (5xx)
                status = e.response.status_code if e.response is not None else None
                if status is not None and 500 <= status < 600:
                    last_error = e
                    if attempt < self.max_retries:
                        delay = self.base_delay * (2**attempt)
                        logger.warning(
                            f"Remote API error {status}, "
                            f"retrying in {delay:.1f}s... "
                            f"(attempt {attempt + 1}/{self.max_retries})"
                        )
                        time.sleep(delay)
                        continue
                    break
                raise RemoteStoreError(str(e)) from e
            except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as e:
                raise RemoteUnavailableError(str(e)) from e
            except requests.exceptions.RequestException as e:
                raise RemoteStoreError(str(e)) from e

        raise RemoteStoreError(
            f"API call failed after {self.max_retries} retries: {last_error}"
        )

    def _request(
        self, method: str, path: str, allow_missing: bool = False, **kwargs: Any
    ) -> Optional[Any]:
        """Issue a request and decode its JSON body.

        Returns None for a 404 when ``allow_missing`` is set.
        """
        url = f"{self.base_url}{path}"

        def call() -> Optional[Any]:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
            if allow_missing and response.status_code == 404:
                return None
            response.raise_for_status()
            if response.status_code == 204 or not response.content:
                return None
            return response.json()

        logger.debug("%s %s", method, url)
        try:
            return self._retry_api_call(call)
        except ValueError as e:
            raise RemoteStoreError(f"Invalid JSON from {url}: {e}") from e

    async def _call(self, method: str, path: str, **kwargs: Any) -> Optional[Any]:
        return await asyncio.to_thread(self._request, method, path, **kwargs)

    async def is_available(self) -> bool:
        """Check whether the API answers its status endpoint."""
        try:
            payload = await self._call("GET", "/status")
        except RemoteStoreError as e:
            logger.info("Remote store unavailable: %s", e)
            return False
        if isinstance(payload, dict):
            return bool(payload.get("available", True))
        return True

    async def fetch_profile(self, account_id: str) -> Optional[RemoteProfileRecord]:
        """Fetch the account's profile record."""
        payload = await self._call(
            "GET", f"/accounts/{account_id}/profile", allow_missing=True
        )
        if payload is None:
            return None
        return RemoteProfileRecord.model_validate({"account_id": account_id, **payload})

    async def save_profile(self, record: RemoteProfileRecord) -> None:
        """Create or update the account's profile record."""
        await self._call(
            "PUT",
            f"/accounts/{record.account_id}/profile",
            json=record.model_dump(mode="json"),
        )
        logger.info("Saved remote profile for account %s", record.account_id)

    async def fetch_day_snapshots(self, account_id: str) -> List[WorkoutDaySnapshot]:
        """Fetch all workout-day records for the account."""
        payload = await self._call("GET", f"/accounts/{account_id}/days")
        records = _records(payload)
        logger.debug("Fetched %d remote day records", len(records))
        return [WorkoutDaySnapshot.model_validate(record) for record in records]

    async def fetch_split_snapshots(self, account_id: str) -> List[SplitSnapshot]:
        """Fetch all split records for the account."""
        payload = await self._call("GET", f"/accounts/{account_id}/splits")
        records = _records(payload)
        logger.debug("Fetched %d remote split records", len(records))
        return [SplitSnapshot.model_validate(record) for record in records]

    async def fetch_shared_split(self, share_id: str) -> Optional[SplitSnapshot]:
        """Fetch a split from the public partition by its share ID."""
        payload = await self._call(
            "GET", f"/public/splits/{share_id}", allow_missing=True
        )
        if payload is None:
            return None
        return SplitSnapshot.model_validate(payload)

    def close(self) -> None:
        """Close the HTTP session."""
        self.session.close()


def _records(payload: Optional[Any]) -> List[Dict[str, Any]]:
    if payload is None:
        return []
    if isinstance(payload, dict):
        return list(payload.get("records", []))
    return list(payload)
