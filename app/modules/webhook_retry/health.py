"""Read-only health reporting for the retry queue and the dead-letter queue."""

from datetime import datetime
from typing import Callable, Optional

from infrastructure.logging import get_module_logger
from infrastructure.resilience.retry.models import utc_now
from infrastructure.resilience.retry.store import RetryStore
from modules.webhook_retry.dead_letter import DeadLetterManager
from modules.webhook_retry.models import HealthReport, HealthThresholds, RetryQueueStatus

logger = get_module_logger()

HEALTH_CHECK_FAILED = "Health check failed"


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class RetryHealthReporter:
    """Aggregates queue counts and evaluates alert thresholds.

    Nothing in this class writes to either store.
    """

    def __init__(
        self,
        retry_store: RetryStore,
        dead_letters: DeadLetterManager,
        thresholds: Optional[HealthThresholds] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.retry_store = retry_store
        self.dead_letters = dead_letters
        self.thresholds = thresholds or HealthThresholds()
        self.clock = clock

    def get_retry_queue_status(self) -> RetryQueueStatus:
        now = self.clock()
        status = RetryQueueStatus()
        for entry in self.retry_store.list_entries():
            status.total += 1
            if entry.is_due(now):
                status.pending += 1
            else:
                status.scheduled += 1
            priority = entry.priority.value
            status.by_priority[priority] = status.by_priority.get(priority, 0) + 1
            if status.oldest_entry is None or entry.created_at < status.oldest_entry:
                status.oldest_entry = entry.created_at
        return status

    def check_retry_system_health(self) -> HealthReport:
        """Evaluate the retry system against the configured thresholds.

        A store failure is reported as unhealthy with a single
        "Health check failed" issue rather than raised.
        """
        try:
            retry_status = self.get_retry_queue_status()
            dlq_status = self.dead_letters.get_dlq_status()
        except Exception as e:  # pylint: disable=broad-except
            logger.error("retry_health_check_failed", error=str(e), exc_info=True)
            return HealthReport(
                healthy=False,
                issues=[HEALTH_CHECK_FAILED],
                metrics={
                    "retry_queue_size": 0,
                    "dlq_size": 0,
                    "oldest_retry": None,
                    "oldest_dlq": None,
                },
            )

        limits = self.thresholds
        cutoff = self.clock() - limits.max_age
        max_age_hours = int(limits.max_age.total_seconds() // 3600)
        issues = []

        if retry_status.total > limits.max_queue_size:
            issues.append(f"Retry queue is large: {retry_status.total} entries")

        if dlq_status.total > limits.max_dlq_size:
            issues.append(f"DLQ is large: {dlq_status.total} entries")

        if dlq_status.unreviewed > limits.max_unreviewed:
            issues.append(f"Many unreviewed DLQ entries: {dlq_status.unreviewed}")

        if retry_status.oldest_entry and retry_status.oldest_entry < cutoff:
            issues.append(f"Old retry entries detected (older than {max_age_hours}h)")

        if (
            dlq_status.oldest_entry
            and dlq_status.oldest_entry < cutoff
            and dlq_status.unreviewed > 0
        ):
            issues.append(f"Unreviewed DLQ entries older than {max_age_hours}h")

        report = HealthReport(
            healthy=not issues,
            issues=issues,
            metrics={
                "retry_queue_size": retry_status.total,
                "dlq_size": dlq_status.total,
                "dlq_unreviewed": dlq_status.unreviewed,
                "oldest_retry": _iso(retry_status.oldest_entry),
                "oldest_dlq": _iso(dlq_status.oldest_entry),
            },
        )
        if issues:
            logger.warning("retry_system_unhealthy", issues=issues)
        return report
