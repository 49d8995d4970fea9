"""Manual review operations on dead-letter entries."""

from datetime import datetime
from typing import Callable, Optional, Union

from infrastructure.logging import get_module_logger
from infrastructure.operations import OperationResult
from infrastructure.resilience.retry.models import Priority, Resolution, utc_now
from infrastructure.resilience.retry.store import DeadLetterStore
from modules.webhook_retry.capture import WebhookRetryCapture

logger = get_module_logger()

NOT_FOUND_MESSAGE = "Webhook not found in DLQ"
MANUAL_RETRY_ERROR = "Manual retry"
MANUAL_RETRY_NOTES = "Manually retried by admin"
RESOLVABLE = (Resolution.IGNORED, Resolution.MANUAL_FIX)


class ManualOperations:
    """Admin actions that close out dead-letter entries.

    Both actions keep the dead-letter record as an audit trail. Without
    ``expected_version`` the last writer wins; with it, a stale write fails
    with ``VERSION_CONFLICT``.
    """

    def __init__(
        self,
        store: DeadLetterStore,
        capture: WebhookRetryCapture,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.capture = capture
        self.clock = clock

    def _version_conflict(self, dlq_id: str, expected: int, actual: int):
        logger.warning(
            "dlq_version_conflict",
            dlq_id=dlq_id,
            expected_version=expected,
            stored_version=actual,
        )
        return OperationResult.conflict(
            f"DLQ entry {dlq_id} was modified (version {actual}, expected {expected})"
        )

    def manual_retry_webhook(
        self,
        dlq_id: str,
        user_id: str,
        expected_version: Optional[int] = None,
    ) -> OperationResult:
        """Re-enqueue a dead-lettered webhook with high priority.

        Returns:
            OperationResult with ``data={"retry_id", "dlq_id"}`` on success;
            NOT_FOUND if the entry does not exist; the capture error if the
            re-enqueue fails, in which case the entry is left unreviewed.
        """
        entry = self.store.get(dlq_id)
        if entry is None:
            return OperationResult.not_found(NOT_FOUND_MESSAGE)

        if expected_version is not None and entry.version != expected_version:
            return self._version_conflict(dlq_id, expected_version, entry.version)

        enqueued = self.capture.enqueue_retry(
            event=entry.event,
            merchant=entry.merchant,
            order_id=entry.order_id,
            raw_payload=entry.raw_payload,
            headers=entry.headers,
            error=MANUAL_RETRY_ERROR,
            store_uid=entry.store_uid,
            priority=Priority.HIGH,
        )
        if not enqueued.is_success:
            logger.error(
                "dlq_manual_retry_enqueue_failed",
                dlq_id=dlq_id,
                user_id=user_id,
                error=enqueued.message,
                error_code=enqueued.error_code,
            )
            return enqueued

        retry_id = enqueued.data["retry_id"]
        entry.resolution = Resolution.RETRIED
        entry.reviewed_at = self.clock()
        entry.reviewed_by = user_id
        entry.notes = MANUAL_RETRY_NOTES

        if not self.store.update(entry, expected_version):
            # The new retry entry already exists; the review write lost a race.
            logger.warning(
                "dlq_manual_retry_review_not_recorded",
                dlq_id=dlq_id,
                retry_id=retry_id,
            )
            return OperationResult.conflict(
                f"DLQ entry {dlq_id} was modified while retrying"
            )

        logger.info(
            "dlq_manual_retry_initiated",
            dlq_id=dlq_id,
            retry_id=retry_id,
            user_id=user_id,
        )
        return OperationResult.success(
            data={"retry_id": retry_id, "dlq_id": dlq_id, "version": entry.version},
            message="Webhook re-queued for retry",
        )

    def resolve_dlq_entry(
        self,
        dlq_id: str,
        user_id: str,
        resolution: Union[str, Resolution],
        notes: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> OperationResult:
        """Mark a dead-letter entry reviewed without re-enqueueing it.

        Args:
            resolution: ``ignored`` or ``manual_fix``

        Returns:
            OperationResult; PERMANENT_ERROR (``INVALID_RESOLUTION``) for any
            other resolution, NOT_FOUND for an unknown id
        """
        try:
            chosen = Resolution(resolution)
        except ValueError:
            chosen = None
        if chosen not in RESOLVABLE:
            return OperationResult.permanent_error(
                f"Invalid resolution: {resolution}. Expected one of: "
                + ", ".join(r.value for r in RESOLVABLE),
                error_code="INVALID_RESOLUTION",
            )

        entry = self.store.get(dlq_id)
        if entry is None:
            return OperationResult.not_found(NOT_FOUND_MESSAGE)

        if expected_version is not None and entry.version != expected_version:
            return self._version_conflict(dlq_id, expected_version, entry.version)

        entry.resolution = chosen
        entry.reviewed_at = self.clock()
        entry.reviewed_by = user_id
        entry.notes = notes

        if not self.store.update(entry, expected_version):
            current = self.store.get(dlq_id)
            if current is None:
                return OperationResult.not_found(NOT_FOUND_MESSAGE)
            return self._version_conflict(dlq_id, expected_version or 0, current.version)

        logger.info(
            "dlq_entry_resolved",
            dlq_id=dlq_id,
            resolution=chosen.value,
            user_id=user_id,
        )
        return OperationResult.success(
            data={"dlq_id": dlq_id, "resolution": chosen.value, "version": entry.version},
            message="DLQ entry resolved",
        )
