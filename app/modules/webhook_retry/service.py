"""Service layer for the webhook retry module.

Single entry point used by the HTTP routes, the scheduled jobs and in-process
callers. It wires capture, the retry worker, dead-letter management, manual
operations and health reporting around one pair of stores.
"""

import json
from datetime import datetime
from typing import Any, Callable, Dict, Mapping, Optional, Union

from infrastructure.logging import get_module_logger
from infrastructure.observability.metrics import RetryMetrics
from infrastructure.operations import OperationResult
from infrastructure.resilience.retry.config import RetryConfig
from infrastructure.resilience.retry.models import (
    BatchResult,
    Priority,
    Resolution,
    WebhookRequest,
    utc_now,
)
from infrastructure.resilience.retry.store import DeadLetterStore, RetryStore
from infrastructure.resilience.retry.worker import RetryWorker, WebhookProcessor
from modules.webhook_retry.capture import WebhookRetryCapture, normalize_headers
from modules.webhook_retry.dead_letter import (
    DEFAULT_PAGE_SIZE,
    DEFAULT_RETENTION_DAYS,
    DeadLetterManager,
)
from modules.webhook_retry.health import RetryHealthReporter
from modules.webhook_retry.manual import ManualOperations
from modules.webhook_retry.models import (
    DLQPage,
    DLQStatus,
    HealthReport,
    HealthThresholds,
    RetryQueueStatus,
)

logger = get_module_logger()

UNKNOWN_EVENT = "unknown"


def extract_webhook_metadata(raw_payload: bytes) -> Dict[str, Optional[str]]:
    """Pull event, merchant, order id and store uid from a JSON webhook body.

    The order id is read from ``data.id`` (or ``data.order_id``).

    Missing fields come back as None; a body that is not a JSON object yields
    an ``unknown`` event.
    """
    try:
        body = json.loads(raw_payload)
    except (ValueError, UnicodeDecodeError):
        body = None
    if not isinstance(body, dict):
        return {"event": UNKNOWN_EVENT, "merchant": None, "order_id": None, "store_uid": None}

    data = body.get("data") if isinstance(body.get("data"), dict) else {}
    merchant = body.get("merchant")
    order_id = data.get("id") or data.get("order_id")
    store_uid = body.get("store_uid")
    return {
        "event": str(body.get("event") or UNKNOWN_EVENT),
        "merchant": str(merchant) if merchant is not None else None,
        "order_id": str(order_id) if order_id is not None else None,
        "store_uid": str(store_uid) if store_uid is not None else None,
    }


class WebhookRetryService:
    """Facade over the webhook retry and dead-letter subsystem.

    Args:
        retry_store: Retry queue store
        dead_letter_store: Dead-letter store
        processor: Injected WebhookProcessor used for deliveries
        config: RetryConfig (attempt budget, schedule, flags)
        thresholds: Health alert thresholds
        metrics: Optional metrics recorder
        clock: Returns the current aware UTC time

    Example:
        service = WebhookRetryService(
            InMemoryRetryStore(), InMemoryDeadLetterStore(), processor, RetryConfig()
        )
        service.enqueue_retry("orders/create", "acme", "42", body, headers, "timeout")
        service.process_retry_queue()
    """

    def __init__(
        self,
        retry_store: RetryStore,
        dead_letter_store: DeadLetterStore,
        processor: WebhookProcessor,
        config: Optional[RetryConfig] = None,
        thresholds: Optional[HealthThresholds] = None,
        metrics: Optional[RetryMetrics] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.config = config or RetryConfig()
        self.processor = processor
        self.metrics = metrics or RetryMetrics(enabled=False)
        self.clock = clock
        self.retry_store = retry_store
        self.dead_letter_store = dead_letter_store

        self.capture = WebhookRetryCapture(retry_store, self.config, self.metrics, clock)
        self.worker = RetryWorker(
            retry_store,
            dead_letter_store,
            processor,
            self.config,
            metrics=self.metrics,
            clock=clock,
        )
        self.dead_letters = DeadLetterManager(dead_letter_store, clock)
        self.manual = ManualOperations(dead_letter_store, self.capture, clock)
        self.health = RetryHealthReporter(
            retry_store, self.dead_letters, thresholds, clock
        )

    # Capture

    def enqueue_retry(
        self,
        event: str,
        merchant: Optional[str],
        order_id: Optional[str],
        raw_payload: Union[bytes, str],
        headers: Optional[Mapping[str, Any]],
        error: Union[str, BaseException],
        store_uid: Optional[str] = None,
        priority: Union[str, Priority] = Priority.NORMAL,
    ) -> OperationResult:
        return self.capture.enqueue_retry(
            event=event,
            merchant=merchant,
            order_id=order_id,
            raw_payload=raw_payload,
            headers=headers,
            error=error,
            store_uid=store_uid,
            priority=priority,
        )

    def receive_webhook(
        self, raw_payload: bytes, headers: Mapping[str, Any]
    ) -> OperationResult:
        """Deliver an incoming webhook once and capture it on failure.

        Returns:
            SUCCESS with ``{"delivered": True}`` when the processor accepted
            it, SUCCESS with ``{"delivered": False, "retry_id": ...}`` when it
            was queued for retry, or the capture error otherwise.
        """
        metadata = extract_webhook_metadata(raw_payload)
        normalized = normalize_headers(headers)
        request = WebhookRequest(method="POST", headers=normalized, raw_payload=raw_payload)

        try:
            outcome = self.processor.process(request)
            error: Optional[str] = None
            if not outcome.is_success:
                error = f"Processor returned status {outcome.status_code}"
                if outcome.message:
                    error = f"{error}: {outcome.message}"
        except Exception as e:  # pylint: disable=broad-except
            error = f"Processor exception: {e}"

        if error is None:
            logger.info("webhook_delivered", event=metadata["event"])
            return OperationResult.success(data={"delivered": True})

        logger.warning("webhook_delivery_failed", event=metadata["event"], error=error)
        captured = self.capture.enqueue_retry(
            event=metadata["event"] or UNKNOWN_EVENT,
            merchant=metadata["merchant"] or "",
            order_id=metadata["order_id"],
            raw_payload=raw_payload,
            headers=normalized,
            error=error,
            store_uid=metadata["store_uid"],
        )
        if not captured.is_success:
            return captured
        return OperationResult.success(
            data={"delivered": False, "retry_id": captured.data["retry_id"]},
            message="Webhook delivery failed, queued for retry",
        )

    # Scheduler

    def process_retry_queue(self) -> BatchResult:
        return self.worker.process_batch()

    # Dead-letter queue

    def get_dlq_status(self) -> DLQStatus:
        return self.dead_letters.get_dlq_status()

    def list_dlq_entries(
        self,
        limit: int = DEFAULT_PAGE_SIZE,
        start_after: Optional[str] = None,
        only_unreviewed: bool = False,
    ) -> DLQPage:
        return self.dead_letters.list_dlq_entries(
            limit=limit, start_after=start_after, only_unreviewed=only_unreviewed
        )

    def cleanup_old_dlq_entries(
        self, older_than_days: int = DEFAULT_RETENTION_DAYS
    ) -> int:
        return self.dead_letters.cleanup_old_dlq_entries(older_than_days)

    # Manual operations

    def manual_retry_webhook(
        self, dlq_id: str, user_id: str, expected_version: Optional[int] = None
    ) -> OperationResult:
        return self.manual.manual_retry_webhook(dlq_id, user_id, expected_version)

    def resolve_dlq_entry(
        self,
        dlq_id: str,
        user_id: str,
        resolution: Union[str, Resolution],
        notes: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> OperationResult:
        return self.manual.resolve_dlq_entry(
            dlq_id, user_id, resolution, notes, expected_version
        )

    # Health

    def get_retry_queue_status(self) -> RetryQueueStatus:
        return self.health.get_retry_queue_status()

    def check_retry_system_health(self) -> HealthReport:
        return self.health.check_retry_system_health()
