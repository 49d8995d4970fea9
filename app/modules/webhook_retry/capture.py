"""Ingestion failure capture.

Turns a webhook that failed on first delivery into a persisted retry entry.
The payload is stored byte-exact because downstream signature checks may
depend on the exact body.
"""

import secrets
from datetime import datetime
from typing import Any, Callable, Dict, Mapping, Optional, Set, Union

from infrastructure.logging import get_module_logger
from infrastructure.observability.metrics import RetryMetrics
from infrastructure.operations import OperationResult
from infrastructure.resilience.retry.config import RetryConfig
from infrastructure.resilience.retry.models import (
    ErrorRecord,
    Priority,
    RetryEntry,
    utc_now,
)
from infrastructure.resilience.retry.store import RetryStore

logger = get_module_logger()

UNKNOWN_STORE = "unknown"


def generate_retry_id(now: datetime) -> str:
    """Return ``retry_<epoch-ms>_<9 random hex chars>``."""
    return f"retry_{int(now.timestamp() * 1000)}_{secrets.token_hex(5)[:9]}"


def normalize_headers(headers: Optional[Mapping[str, Any]]) -> Dict[str, str]:
    """Collapse multi-valued headers to their first value.

    Keys are kept as given. ``None`` values are dropped.

    Example:
        >>> normalize_headers({"x-forwarded-for": ["1.1.1.1", "2.2.2.2"]})
        {'x-forwarded-for': '1.1.1.1'}
    """
    normalized: Dict[str, str] = {}
    for key, value in (headers or {}).items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            normalized[key] = str(value[0]) if value else ""
        else:
            normalized[key] = str(value)
    return normalized


def build_tags(event: str, store_uid: Optional[str]) -> Set[str]:
    return {event, store_uid or UNKNOWN_STORE}


def _to_bytes(raw_payload: Union[bytes, bytearray, str]) -> bytes:
    if isinstance(raw_payload, (bytes, bytearray)):
        return bytes(raw_payload)
    if isinstance(raw_payload, str):
        return raw_payload.encode("utf-8")
    raise TypeError("raw_payload must be bytes or str")


class WebhookRetryCapture:
    """Creates retry entries for failed webhook deliveries.

    Args:
        store: Retry queue store
        config: RetryConfig (attempt budget, schedule, enabled flag)
        metrics: Optional metrics recorder
        clock: Returns the current aware UTC time
    """

    def __init__(
        self,
        store: RetryStore,
        config: RetryConfig,
        metrics: Optional[RetryMetrics] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.config = config
        self.metrics = metrics or RetryMetrics(enabled=False)
        self.clock = clock

    def enqueue_retry(
        self,
        event: str,
        merchant: Optional[str],
        order_id: Optional[str],
        raw_payload: Union[bytes, bytearray, str],
        headers: Optional[Mapping[str, Any]],
        error: Union[str, BaseException],
        store_uid: Optional[str] = None,
        priority: Union[str, Priority] = Priority.NORMAL,
    ) -> OperationResult:
        """Persist a failed webhook for later re-processing.

        Returns:
            OperationResult with ``data={"retry_id": ...}`` on success.
            PERMANENT_ERROR (``RETRY_DISABLED``) when capture is turned off,
            PERMANENT_ERROR (``INVALID_EVENT`` / ``INVALID_PRIORITY`` /
            ``INVALID_PAYLOAD``) for bad input, TRANSIENT_ERROR
            (``ENQUEUE_FAILED``) when the store write fails. Nothing is
            persisted on any error.
        """
        if not self.config.enabled:
            logger.info(
                "webhook_retry_disabled",
                event=event,
                merchant=merchant,
                order_id=order_id,
            )
            return OperationResult.permanent_error(
                "Webhook retry is disabled", error_code="RETRY_DISABLED"
            )

        if not event:
            return OperationResult.permanent_error(
                "Event is required", error_code="INVALID_EVENT"
            )

        try:
            entry_priority = Priority(priority)
        except ValueError:
            return OperationResult.permanent_error(
                f"Invalid priority: {priority}", error_code="INVALID_PRIORITY"
            )

        try:
            payload = _to_bytes(raw_payload)
        except TypeError as e:
            return OperationResult.permanent_error(str(e), error_code="INVALID_PAYLOAD")

        now = self.clock()
        message = str(error)
        entry = RetryEntry(
            id=generate_retry_id(now),
            event=event,
            merchant=merchant,
            order_id=order_id,
            raw_payload=payload,
            headers=normalize_headers(headers),
            attempts=0,
            max_attempts=self.config.max_attempts,
            next_retry_at=now + self.config.backoff_delay(0),
            last_error=message,
            last_attempt_at=now,
            store_uid=store_uid,
            priority=entry_priority,
            tags=build_tags(event, store_uid),
            error_history=[ErrorRecord(attempt=0, timestamp=now, message=message)],
            created_at=now,
            updated_at=now,
        )

        try:
            self.store.save(entry)
        except Exception as e:  # pylint: disable=broad-except
            logger.error(
                "webhook_retry_enqueue_failed",
                event=event,
                merchant=merchant,
                order_id=order_id,
                error=str(e),
            )
            return OperationResult.transient_error(
                f"Failed to enqueue webhook retry: {e}", error_code="ENQUEUE_FAILED"
            )

        self.metrics.record_enqueued(event, store_uid, entry_priority.value)
        logger.info(
            "webhook_retry_enqueued",
            retry_id=entry.id,
            event=event,
            merchant=merchant,
            order_id=order_id,
            store_uid=store_uid,
            priority=entry_priority.value,
            next_retry_at=entry.next_retry_at.isoformat(),
        )
        return OperationResult.success(
            data={"retry_id": entry.id}, message="Webhook queued for retry"
        )
