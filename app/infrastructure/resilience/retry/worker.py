"""Retry worker and webhook processor protocol.

This module provides the worker that drains due entries from the retry queue.
The actual webhook handling is injected via the WebhookProcessor protocol.
"""

import time
import traceback
import uuid
from datetime import datetime
from typing import Callable, Optional, Protocol

from infrastructure.logging import get_module_logger
from infrastructure.observability.metrics import RetryMetrics
from infrastructure.resilience.retry.config import RetryConfig
from infrastructure.resilience.retry.models import (
    BatchResult,
    DeadLetterEntry,
    ErrorRecord,
    ProcessingOutcome,
    RetryEntry,
    WebhookRequest,
    utc_now,
)
from infrastructure.resilience.retry.store import DeadLetterStore, RetryStore

logger = get_module_logger()


class WebhookProcessor(Protocol):
    """Protocol for the operation that actually handles a webhook.

    Implementations must be safe to invoke more than once for the same
    webhook: overlapping worker runs may both deliver an entry.

    Example:
        class OrdersProcessor:
            def process(self, request: WebhookRequest) -> ProcessingOutcome:
                payload = json.loads(request.raw_payload)
                handle_order(payload)
                return ProcessingOutcome(status_code=200)
    """

    def process(self, request: WebhookRequest) -> ProcessingOutcome:
        """Process a reconstructed webhook request.

        Args:
            request: Method, headers and raw payload as captured

        Returns:
            ProcessingOutcome; any non-2xx status is a failed attempt
        """
        ...


class RetryWorker:
    """Worker for processing batches of retry entries.

    This worker handles the mechanics of retry processing:
    - Fetching due entries from the store (bounded by batch_size)
    - Claiming entries to prevent duplicate processing
    - Delegating to a WebhookProcessor for actual processing
    - Rescheduling, dead-lettering or deleting entries based on the outcome

    The worker never schedules itself; an external trigger calls
    ``process_batch`` once per run.

    Attributes:
        store: RetryStore holding the queue
        dead_letter_store: DeadLetterStore receiving exhausted entries
        processor: WebhookProcessor performing delivery
        config: RetryConfig controlling backoff, batch size and claim lease
        worker_id: Identifier for this worker instance
    """

    def __init__(
        self,
        store: RetryStore,
        dead_letter_store: DeadLetterStore,
        processor: WebhookProcessor,
        config: RetryConfig | None = None,
        metrics: RetryMetrics | None = None,
        clock: Callable[[], datetime] = utc_now,
        worker_id: Optional[str] = None,
    ) -> None:
        """Initialize the retry worker.

        Args:
            store: RetryStore implementation
            dead_letter_store: DeadLetterStore implementation
            processor: WebhookProcessor implementation
            config: Optional RetryConfig. If not provided, uses defaults.
            metrics: Optional metrics recorder
            clock: Returns the current aware UTC time
            worker_id: Identifier for this worker (for claim tracking)
        """
        self.store = store
        self.dead_letter_store = dead_letter_store
        self.processor = processor
        self.config = config or RetryConfig()
        self.metrics = metrics or RetryMetrics(enabled=False)
        self.clock = clock
        self.worker_id = worker_id or f"retry-worker-{uuid.uuid4().hex[:8]}"
        self.log = logger.bind(component="retry_worker", worker_id=self.worker_id)

    def process_batch(self) -> BatchResult:
        """Process one batch of due retry entries.

        Per-entry store failures are caught and recorded in ``errors`` as
        ``"<retry_id>: <message>"`` so the rest of the batch still runs.

        Returns:
            BatchResult with processing counters

        Example:
            result = worker.process_batch()
            log.info("batch_complete", **result.to_dict())
        """
        started = time.monotonic()
        result = BatchResult()
        now = self.clock()

        try:
            entries = self.store.fetch_due(now, self.config.batch_size)
        except Exception as e:  # pylint: disable=broad-except
            self.log.error("retry_batch_fetch_failed", error=str(e), exc_info=True)
            result.errors.append(f"fetch_due: {e}")
            return result

        if not entries:
            self.log.debug("retry_batch_no_entries")
            return result

        self.log.info("retry_batch_start", entry_count=len(entries))

        for entry in entries:
            try:
                claimed = self.store.claim_entry(
                    entry.id, self.worker_id, self.config.claim_lease_seconds, now
                )
            except Exception as e:  # pylint: disable=broad-except
                self.log.error("retry_claim_exception", retry_id=entry.id, error=str(e))
                result.errors.append(f"{entry.id}: {e}")
                continue

            if not claimed:
                self.log.debug("retry_entry_skipped_claim_failed", retry_id=entry.id)
                result.skipped += 1
                continue

            result.processed += 1
            try:
                self._process_entry(entry, result)
            except Exception as e:  # pylint: disable=broad-except
                self.log.error(
                    "retry_processing_exception",
                    retry_id=entry.id,
                    event=entry.event,
                    error=str(e),
                    exc_info=True,
                )
                result.errors.append(f"{entry.id}: {e}")
                self._release(entry)

        self.metrics.observe_batch(time.monotonic() - started)
        self.log.info("retry_batch_complete", **result.to_dict())
        return result

    def _deliver(self, entry: RetryEntry) -> tuple[bool, Optional[str], Optional[str]]:
        """Invoke the processor. Returns (success, error message, trace)."""
        request = WebhookRequest(
            method="POST",
            headers=dict(entry.headers),
            raw_payload=entry.raw_payload,
        )
        try:
            outcome = self.processor.process(request)
        except Exception as e:  # pylint: disable=broad-except
            self.log.warning(
                "retry_processor_exception",
                retry_id=entry.id,
                event=entry.event,
                error=str(e),
            )
            return False, f"Processor exception: {e}", traceback.format_exc()

        if outcome.is_success:
            return True, None, None
        message = f"Processor returned status {outcome.status_code}"
        if outcome.message:
            message = f"{message}: {outcome.message}"
        return False, message, None

    def _process_entry(self, entry: RetryEntry, result: BatchResult) -> None:
        self.log.info(
            "retry_entry_processing",
            retry_id=entry.id,
            event=entry.event,
            attempt=entry.attempts + 1,
        )

        success, error, trace = self._deliver(entry)

        if success:
            self.store.delete(entry.id)
            result.succeeded += 1
            self.metrics.record_succeeded(
                entry.event, entry.store_uid, entry.priority.value
            )
            self.log.info(
                "retry_entry_succeeded",
                retry_id=entry.id,
                event=entry.event,
                attempts=entry.attempts + 1,
            )
            return

        failed_at = self.clock()
        expected_attempts = entry.attempts
        entry.attempts += 1
        entry.last_error = error
        entry.last_attempt_at = failed_at
        entry.updated_at = failed_at
        entry.error_history.append(
            ErrorRecord(
                attempt=entry.attempts,
                timestamp=failed_at,
                message=error or "",
                trace=trace,
            )
        )

        if entry.attempts >= entry.max_attempts:
            self._exhaust(entry, failed_at, result)
            return

        entry.next_retry_at = failed_at + self.config.backoff_delay(entry.attempts)
        if not self.store.update_attempt(entry, expected_attempts):
            result.errors.append(
                f"{entry.id}: attempts changed by another run, update skipped"
            )
            return

        result.failed += 1
        self.log.info(
            "retry_entry_rescheduled",
            retry_id=entry.id,
            event=entry.event,
            attempts=entry.attempts,
            max_attempts=entry.max_attempts,
            next_retry_at=entry.next_retry_at.isoformat(),
            error=error,
        )

    def _exhaust(
        self, entry: RetryEntry, failed_at: datetime, result: BatchResult
    ) -> None:
        """Dead-letter (or drop) an entry that used its last attempt."""
        if not self.config.dlq_enabled:
            self.store.delete(entry.id)
            result.dropped += 1
            self.log.warning(
                "retry_entry_dropped_dlq_disabled",
                retry_id=entry.id,
                event=entry.event,
                attempts=entry.attempts,
                last_error=entry.last_error,
            )
            return

        dead_letter = DeadLetterEntry.from_retry_entry(entry, failed_at)
        created = self.dead_letter_store.put(dead_letter)
        self.store.delete(entry.id)
        result.moved_to_dlq += 1
        self.metrics.record_moved_to_dlq(
            entry.event, entry.store_uid, entry.priority.value
        )
        self.log.warning(
            "retry_entry_moved_to_dlq",
            retry_id=entry.id,
            dlq_id=dead_letter.id,
            event=entry.event,
            attempts=entry.attempts,
            last_error=entry.last_error,
            already_existed=not created,
        )

    def _release(self, entry: RetryEntry) -> None:
        try:
            self.store.release_claim(entry.id, self.worker_id)
        except Exception as e:  # pylint: disable=broad-except
            self.log.warning("retry_release_claim_failed", retry_id=entry.id, error=str(e))
