"""Factory functions for retry queue and dead-letter test data."""

from datetime import datetime, timedelta, timezone
from typing import Dict, Optional, Set

from infrastructure.resilience.retry.models import (
    DeadLetterEntry,
    ErrorRecord,
    Priority,
    Resolution,
    RetryEntry,
    dead_letter_id,
)

BASE_TIME = datetime(2024, 1, 15, 12, 0, 0, tzinfo=timezone.utc)
DEFAULT_PAYLOAD = b'{"event":"orders/create","merchant":"acme","data":{"id":"42"}}'


def make_retry_entry(
    id: str = "retry_1705320000000_abc123def",
    event: str = "orders/create",
    merchant: Optional[str] = "acme",
    raw_payload: bytes = DEFAULT_PAYLOAD,
    headers: Optional[Dict[str, str]] = None,
    order_id: Optional[str] = "42",
    attempts: int = 0,
    max_attempts: int = 5,
    next_retry_at: Optional[datetime] = None,
    last_error: Optional[str] = "Processor returned status 500",
    store_uid: Optional[str] = "store-1",
    priority: Priority = Priority.NORMAL,
    tags: Optional[Set[str]] = None,
    created_at: datetime = BASE_TIME,
) -> RetryEntry:
    """Create a RetryEntry due at ``BASE_TIME`` unless told otherwise."""
    return RetryEntry(
        id=id,
        event=event,
        merchant=merchant,
        raw_payload=raw_payload,
        headers=headers if headers is not None else {"content-type": "application/json"},
        order_id=order_id,
        attempts=attempts,
        max_attempts=max_attempts,
        next_retry_at=next_retry_at or BASE_TIME,
        last_error=last_error,
        store_uid=store_uid,
        priority=priority,
        tags=tags if tags is not None else {event, store_uid or "unknown"},
        error_history=[ErrorRecord(attempt=0, timestamp=created_at, message=last_error or "")],
        created_at=created_at,
        updated_at=created_at,
    )


def make_dead_letter_entry(
    retry_id: str = "retry_1705320000000_abc123def",
    event: str = "orders/create",
    merchant: Optional[str] = "acme",
    raw_payload: bytes = DEFAULT_PAYLOAD,
    failed_at: datetime = BASE_TIME,
    total_attempts: int = 5,
    reviewed_at: Optional[datetime] = None,
    reviewed_by: Optional[str] = None,
    resolution: Optional[Resolution] = None,
    notes: Optional[str] = None,
    version: int = 0,
    store_uid: Optional[str] = "store-1",
) -> DeadLetterEntry:
    """Create a DeadLetterEntry keyed by ``dlq_<retry_id>``."""
    return DeadLetterEntry(
        id=dead_letter_id(retry_id),
        retry_id=retry_id,
        event=event,
        merchant=merchant,
        raw_payload=raw_payload,
        headers={"content-type": "application/json"},
        order_id="42",
        total_attempts=total_attempts,
        failed_at=failed_at,
        created_at=failed_at - timedelta(hours=7),
        store_uid=store_uid,
        tags={event, store_uid or "unknown"},
        errors=[
            ErrorRecord(attempt=n, timestamp=failed_at, message="Processor returned status 500")
            for n in range(total_attempts + 1)
        ],
        last_error="Processor returned status 500",
        reviewed_at=reviewed_at,
        reviewed_by=reviewed_by,
        resolution=resolution,
        notes=notes,
        version=version,
    )
