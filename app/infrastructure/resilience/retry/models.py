"""Webhook retry models.

Core data structures for the retry queue and the dead-letter queue (DLQ).
Timestamps are timezone-aware UTC datetimes; payloads are raw bytes so the
body re-delivered on retry is byte-identical to the one first received.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Set

DLQ_ID_PREFIX = "dlq_"


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def dead_letter_id(retry_id: str) -> str:
    """Deterministic dead-letter id for a retry entry."""
    return f"{DLQ_ID_PREFIX}{retry_id}"


class Priority(str, Enum):
    """Informational priority of a retry entry. Does not affect ordering."""

    HIGH = "high"
    NORMAL = "normal"
    LOW = "low"


class Resolution(str, Enum):
    """Outcome recorded when an admin reviews a dead-letter entry.

    Values:
        RETRIED: Payload was re-enqueued as a new retry entry
        IGNORED: Delivery intentionally abandoned
        MANUAL_FIX: Fixed out-of-band, no re-delivery needed
    """

    RETRIED = "retried"
    IGNORED = "ignored"
    MANUAL_FIX = "manual_fix"


@dataclass
class ErrorRecord:
    """One failed attempt in an entry's error history.

    Attempt 0 is the original failure at capture time.
    """

    attempt: int
    timestamp: datetime
    message: str
    trace: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "attempt": self.attempt,
            "timestamp": self.timestamp.isoformat(),
            "message": self.message,
            "trace": self.trace,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ErrorRecord":
        return cls(
            attempt=int(data["attempt"]),
            timestamp=datetime.fromisoformat(data["timestamp"]),
            message=data["message"],
            trace=data.get("trace"),
        )


@dataclass
class RetryEntry:
    """A failed webhook delivery waiting in the retry queue.

    Fields:
        id: Unique identifier (``retry_<epoch-ms>_<random>``)
        event: Webhook event name (e.g. "orders/create")
        merchant: Merchant the webhook belongs to
        raw_payload: Exact request body bytes
        headers: Request headers, one value per name
        order_id: Optional order identifier for lookup
        attempts: Processing attempts made by the worker (capture is not one)
        max_attempts: Attempt budget before dead-lettering
        next_retry_at: Earliest time the worker may pick the entry
        last_error: Most recent failure message
        last_attempt_at: Time of the most recent failure
        store_uid: Platform store identifier, if known
        priority: Informational priority
        tags: Free-form labels (event and store id by default)
        error_history: Every failure, oldest first

    Example:
        entry = RetryEntry(
            id="retry_1700000000000_a1b2c3d4e",
            event="orders/create",
            merchant="acme",
            raw_payload=b'{"id": 42}',
            headers={"content-type": "application/json"},
            max_attempts=5,
            next_retry_at=now + timedelta(minutes=1),
        )
    """

    id: str
    event: str
    merchant: Optional[str]
    raw_payload: bytes
    headers: Dict[str, str]
    max_attempts: int
    next_retry_at: datetime
    order_id: Optional[str] = None
    attempts: int = 0
    last_error: Optional[str] = None
    last_attempt_at: Optional[datetime] = None
    store_uid: Optional[str] = None
    priority: Priority = Priority.NORMAL
    tags: Set[str] = field(default_factory=set)
    error_history: List[ErrorRecord] = field(default_factory=list)
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        """Validate required fields."""
        if not self.id:
            raise ValueError("id is required")
        if not self.event:
            raise ValueError("event is required")
        if not isinstance(self.raw_payload, bytes):
            raise ValueError("raw_payload must be bytes")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    def is_due(self, now: datetime) -> bool:
        return self.next_retry_at <= now

    def to_summary(self) -> Dict[str, Any]:
        """JSON-friendly view without the payload body."""
        return {
            "id": self.id,
            "event": self.event,
            "merchant": self.merchant,
            "order_id": self.order_id,
            "store_uid": self.store_uid,
            "attempts": self.attempts,
            "max_attempts": self.max_attempts,
            "next_retry_at": self.next_retry_at.isoformat(),
            "last_error": self.last_error,
            "priority": self.priority.value,
            "tags": sorted(self.tags),
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class DeadLetterEntry:
    """A webhook delivery that exhausted its retry budget.

    Created once per retry entry (``id = "dlq_" + retry_id``). Only manual
    review mutates it; ``version`` increases on every review write.
    ``reviewed_at`` and ``resolution`` are set together.
    """

    id: str
    retry_id: str
    event: str
    merchant: Optional[str]
    raw_payload: bytes
    headers: Dict[str, str]
    total_attempts: int
    failed_at: datetime
    created_at: datetime
    order_id: Optional[str] = None
    store_uid: Optional[str] = None
    priority: Priority = Priority.NORMAL
    tags: Set[str] = field(default_factory=set)
    errors: List[ErrorRecord] = field(default_factory=list)
    last_error: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    reviewed_by: Optional[str] = None
    resolution: Optional[Resolution] = None
    notes: Optional[str] = None
    version: int = 0

    @classmethod
    def from_retry_entry(
        cls, entry: RetryEntry, failed_at: datetime
    ) -> "DeadLetterEntry":
        """Build the dead-letter record for an exhausted retry entry."""
        return cls(
            id=dead_letter_id(entry.id),
            retry_id=entry.id,
            event=entry.event,
            merchant=entry.merchant,
            raw_payload=entry.raw_payload,
            headers=dict(entry.headers),
            total_attempts=entry.attempts,
            failed_at=failed_at,
            created_at=entry.created_at,
            order_id=entry.order_id,
            store_uid=entry.store_uid,
            priority=entry.priority,
            tags=set(entry.tags),
            errors=list(entry.error_history),
            last_error=entry.last_error,
        )

    @property
    def is_reviewed(self) -> bool:
        return self.reviewed_at is not None

    def to_summary(self) -> Dict[str, Any]:
        """JSON-friendly view for the admin API.

        The payload is decoded as UTF-8 for display; undecodable bytes are
        replaced.
        """
        return {
            "id": self.id,
            "retry_id": self.retry_id,
            "event": self.event,
            "merchant": self.merchant,
            "order_id": self.order_id,
            "store_uid": self.store_uid,
            "payload": self.raw_payload.decode("utf-8", errors="replace"),
            "headers": dict(self.headers),
            "total_attempts": self.total_attempts,
            "last_error": self.last_error,
            "errors": [error.to_dict() for error in self.errors],
            "failed_at": self.failed_at.isoformat(),
            "created_at": self.created_at.isoformat(),
            "reviewed_at": self.reviewed_at.isoformat() if self.reviewed_at else None,
            "reviewed_by": self.reviewed_by,
            "resolution": self.resolution.value if self.resolution else None,
            "notes": self.notes,
            "version": self.version,
            "tags": sorted(self.tags),
        }


@dataclass
class BatchResult:
    """Counters for one retry worker batch."""

    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    moved_to_dlq: int = 0
    dropped: int = 0
    skipped: int = 0
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "processed": self.processed,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "moved_to_dlq": self.moved_to_dlq,
            "dropped": self.dropped,
            "skipped": self.skipped,
            "errors": list(self.errors),
        }


@dataclass
class WebhookRequest:
    """Request reconstructed from a stored entry for re-processing."""

    method: str
    headers: Dict[str, str]
    raw_payload: bytes


@dataclass
class ProcessingOutcome:
    """Result reported by a webhook processor.

    A 2xx ``status_code`` is success; anything else is a failed attempt.
    """

    status_code: int
    message: Optional[str] = None

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300
