"""Retry queue and dead-letter storage.

This module provides storage interfaces and in-memory implementations for the
two persisted collections of the retry system: the retry queue
(``webhook_retry_queue``, keyed by retry id) and the dead-letter queue
(``webhook_dead_letter``, keyed by ``dlq_<retry_id>``).

The protocol-based design allows for multiple storage backends (in-memory,
DynamoDB). Stores never read the clock themselves; callers pass ``now`` so the
worker and the admin operations stay deterministic under test.
"""

import copy
import threading
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Protocol

from infrastructure.logging import get_module_logger
from infrastructure.resilience.retry.models import DeadLetterEntry, RetryEntry

logger = get_module_logger()


class RetryStoreError(Exception):
    """Raised when a store cannot persist or read an entry."""

    def __init__(self, message: str, error_code: Optional[str] = None):
        self.message = message
        self.error_code = error_code
        super().__init__(message)


class RetryStore(Protocol):
    """Storage interface for retry queue entries.

    Implementations must provide atomic claim semantics and a conditional
    attempts update so that overlapping worker runs cannot both apply the
    same failure to an entry.

    Methods:
        save: Persist a new entry
        get: Return an entry by id
        fetch_due: Return unclaimed entries whose next_retry_at has passed
        claim_entry: Attempt to lease an entry for processing
        release_claim: Drop a lease without changing the entry
        update_attempt: Conditionally persist a failed attempt
        delete: Remove an entry
        list_entries: Return every entry (health reporting)
    """

    def save(self, entry: RetryEntry) -> None:
        """Persist a new retry entry.

        Raises:
            RetryStoreError: If the entry could not be written
        """
        ...

    def get(self, retry_id: str) -> Optional[RetryEntry]:
        """Return the entry or None if it does not exist."""
        ...

    def fetch_due(self, now: datetime, limit: int) -> List[RetryEntry]:
        """Return up to ``limit`` entries with ``next_retry_at <= now``.

        Entries under a live claim are excluded. No ordering is guaranteed.
        """
        ...

    def claim_entry(
        self, retry_id: str, worker_id: str, lease_seconds: int, now: datetime
    ) -> bool:
        """Attempt to claim an entry for processing.

        Returns:
            True if the claim succeeded, False if the entry is missing or
            already claimed by a live lease
        """
        ...

    def release_claim(self, retry_id: str, worker_id: str) -> None:
        """Release a claim held by ``worker_id``, if any."""
        ...

    def update_attempt(self, entry: RetryEntry, expected_attempts: int) -> bool:
        """Persist a failed attempt and release the claim.

        The write only applies if the stored ``attempts`` still equals
        ``expected_attempts``.

        Returns:
            True if applied, False if the entry changed or no longer exists

        Raises:
            RetryStoreError: If the write failed for another reason
        """
        ...

    def delete(self, retry_id: str) -> bool:
        """Remove an entry. Returns True if it existed."""
        ...

    def list_entries(self) -> List[RetryEntry]:
        """Return every entry in the queue."""
        ...


class DeadLetterStore(Protocol):
    """Storage interface for dead-letter entries.

    Methods:
        put: Create an entry unless one with the same id exists
        get: Return an entry by id
        update: Persist review metadata, optionally guarded by version
        list_entries: Return entries, optionally only unreviewed ones
        delete: Remove an entry
    """

    def put(self, entry: DeadLetterEntry) -> bool:
        """Create the entry if absent.

        Returns:
            True if created, False if an entry with this id already existed

        Raises:
            RetryStoreError: If the write failed
        """
        ...

    def get(self, dlq_id: str) -> Optional[DeadLetterEntry]:
        """Return the entry or None if it does not exist."""
        ...

    def update(
        self, entry: DeadLetterEntry, expected_version: Optional[int] = None
    ) -> bool:
        """Overwrite an existing entry and bump its version.

        Returns:
            False if ``expected_version`` is given and does not match the
            stored version, or the entry no longer exists

        Raises:
            RetryStoreError: If the write failed
        """
        ...

    def list_entries(self, only_unreviewed: bool = False) -> List[DeadLetterEntry]:
        """Return dead-letter entries in no particular order."""
        ...

    def delete(self, dlq_id: str) -> bool:
        """Remove an entry. Returns True if it existed."""
        ...


class InMemoryRetryStore:
    """In-memory implementation of RetryStore.

    Thread-safe store for retry entries with support for:
    - Lease-based claims (expired leases are reclaimable)
    - Conditional attempts updates

    Entries are copied on the way in and out, so callers only change stored
    state through the store methods.

    This implementation is suitable for single-instance deployments or
    development. For production multi-instance deployments use the DynamoDB
    store.
    """

    def __init__(self) -> None:
        self._store: Dict[str, RetryEntry] = {}
        self._claims: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()

    def save(self, entry: RetryEntry) -> None:
        with self._lock:
            self._store[entry.id] = copy.deepcopy(entry)
            logger.debug("retry_entry_saved", retry_id=entry.id, event=entry.event)

    def get(self, retry_id: str) -> Optional[RetryEntry]:
        with self._lock:
            entry = self._store.get(retry_id)
            return copy.deepcopy(entry) if entry else None

    def _is_claimed(self, retry_id: str, now: datetime) -> bool:
        claim = self._claims.get(retry_id)
        if claim is None:
            return False
        if claim["expires_at"] > now:
            return True
        del self._claims[retry_id]
        logger.debug(
            "retry_claim_expired",
            retry_id=retry_id,
            worker=claim["worker"],
        )
        return False

    def fetch_due(self, now: datetime, limit: int) -> List[RetryEntry]:
        with self._lock:
            due: List[RetryEntry] = []
            for retry_id, entry in list(self._store.items()):
                if len(due) >= limit:
                    break
                if self._is_claimed(retry_id, now):
                    continue
                if entry.is_due(now):
                    due.append(copy.deepcopy(entry))

            logger.debug(
                "fetched_due_retry_entries",
                count=len(due),
                total_store_size=len(self._store),
            )
            return due

    def claim_entry(
        self, retry_id: str, worker_id: str, lease_seconds: int, now: datetime
    ) -> bool:
        with self._lock:
            if retry_id not in self._store:
                logger.warning("retry_claim_failed_not_found", retry_id=retry_id)
                return False

            if self._is_claimed(retry_id, now):
                logger.debug(
                    "retry_claim_failed_already_claimed",
                    retry_id=retry_id,
                    current_worker=self._claims[retry_id]["worker"],
                )
                return False

            self._claims[retry_id] = {
                "worker": worker_id,
                "expires_at": now + timedelta(seconds=lease_seconds),
            }
            logger.debug("retry_entry_claimed", retry_id=retry_id, worker=worker_id)
            return True

    def release_claim(self, retry_id: str, worker_id: str) -> None:
        with self._lock:
            claim = self._claims.get(retry_id)
            if claim and claim["worker"] == worker_id:
                del self._claims[retry_id]

    def update_attempt(self, entry: RetryEntry, expected_attempts: int) -> bool:
        with self._lock:
            current = self._store.get(entry.id)
            if current is None or current.attempts != expected_attempts:
                logger.warning(
                    "retry_attempt_update_conflict",
                    retry_id=entry.id,
                    expected_attempts=expected_attempts,
                    stored_attempts=current.attempts if current else None,
                )
                return False
            self._store[entry.id] = copy.deepcopy(entry)
            self._claims.pop(entry.id, None)
            return True

    def delete(self, retry_id: str) -> bool:
        with self._lock:
            self._claims.pop(retry_id, None)
            return self._store.pop(retry_id, None) is not None

    def list_entries(self) -> List[RetryEntry]:
        with self._lock:
            return [copy.deepcopy(entry) for entry in self._store.values()]


class InMemoryDeadLetterStore:
    """In-memory implementation of DeadLetterStore."""

    def __init__(self) -> None:
        self._dlq: Dict[str, DeadLetterEntry] = {}
        self._lock = threading.Lock()

    def put(self, entry: DeadLetterEntry) -> bool:
        with self._lock:
            if entry.id in self._dlq:
                logger.info("dead_letter_entry_exists", dlq_id=entry.id)
                return False
            self._dlq[entry.id] = copy.deepcopy(entry)
            return True

    def get(self, dlq_id: str) -> Optional[DeadLetterEntry]:
        with self._lock:
            entry = self._dlq.get(dlq_id)
            return copy.deepcopy(entry) if entry else None

    def update(
        self, entry: DeadLetterEntry, expected_version: Optional[int] = None
    ) -> bool:
        with self._lock:
            current = self._dlq.get(entry.id)
            if current is None:
                return False
            if expected_version is not None and current.version != expected_version:
                return False
            stored = copy.deepcopy(entry)
            stored.version = current.version + 1
            self._dlq[entry.id] = stored
            entry.version = stored.version
            return True

    def list_entries(self, only_unreviewed: bool = False) -> List[DeadLetterEntry]:
        with self._lock:
            return [
                copy.deepcopy(entry)
                for entry in self._dlq.values()
                if not (only_unreviewed and entry.is_reviewed)
            ]

    def delete(self, dlq_id: str) -> bool:
        with self._lock:
            return self._dlq.pop(dlq_id, None) is not None
