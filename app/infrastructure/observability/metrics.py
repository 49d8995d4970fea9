"""Prometheus metrics for the webhook retry system.

Counters are registered once on the default registry and exposed by the
``/metrics`` route. ``RetryMetrics`` is the object injected into the capture
path and the retry worker; when metrics are disabled it records nothing.
"""

from typing import Iterable, Optional

from prometheus_client import Counter, Histogram

WEBHOOK_RETRY_ENQUEUED_TOTAL = Counter(
    "webhook_retry_enqueued_total",
    "Failed webhooks captured into the retry queue",
    ["event", "store_uid", "priority"],
)

WEBHOOK_RETRY_SUCCEEDED_TOTAL = Counter(
    "webhook_retry_succeeded_total",
    "Retry entries processed successfully",
    ["event", "store_uid", "priority"],
)

WEBHOOK_RETRY_MOVED_TO_DLQ_TOTAL = Counter(
    "webhook_retry_moved_to_dlq_total",
    "Retry entries that exhausted their attempts",
    ["event", "store_uid", "priority"],
)

WEBHOOK_RETRY_BATCH_SECONDS = Histogram(
    "webhook_retry_batch_duration_seconds",
    "Wall-clock duration of one retry worker batch",
)

UNKNOWN_LABEL = "unknown"


def _labels(event: str, store_uid: Optional[str], priority: str) -> Iterable[str]:
    return (event or UNKNOWN_LABEL, store_uid or UNKNOWN_LABEL, priority)


class RetryMetrics:
    """Records retry lifecycle events as Prometheus samples.

    Args:
        enabled: When False every method is a no-op.
    """

    def __init__(self, enabled: bool = True):
        self.enabled = enabled

    def record_enqueued(
        self, event: str, store_uid: Optional[str], priority: str
    ) -> None:
        if self.enabled:
            WEBHOOK_RETRY_ENQUEUED_TOTAL.labels(
                *_labels(event, store_uid, priority)
            ).inc()

    def record_succeeded(
        self, event: str, store_uid: Optional[str], priority: str
    ) -> None:
        if self.enabled:
            WEBHOOK_RETRY_SUCCEEDED_TOTAL.labels(
                *_labels(event, store_uid, priority)
            ).inc()

    def record_moved_to_dlq(
        self, event: str, store_uid: Optional[str], priority: str
    ) -> None:
        if self.enabled:
            WEBHOOK_RETRY_MOVED_TO_DLQ_TOTAL.labels(
                *_labels(event, store_uid, priority)
            ).inc()

    def observe_batch(self, seconds: float) -> None:
        if self.enabled:
            WEBHOOK_RETRY_BATCH_SECONDS.observe(seconds)
