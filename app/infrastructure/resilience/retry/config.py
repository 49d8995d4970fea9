"""Retry system configuration.

This module defines configuration for the webhook retry queue behavior.
"""

from dataclasses import dataclass, field
from datetime import timedelta
from typing import List

DEFAULT_BACKOFF_SCHEDULE_SECONDS = [60, 300, 900, 3600, 21600]


@dataclass
class RetryConfig:
    """Configuration for retry system behavior.

    Controls the backoff schedule, the attempt budget, batch processing and
    claim leases. Built from ``WebhookRetrySettings`` by the service providers.

    Attributes:
        max_attempts: Processing attempts before an entry is dead-lettered
        backoff_schedule: Delays (seconds) between attempts; last value reused
        batch_size: Number of due entries processed in a single batch
        claim_lease_seconds: How long a worker can hold a claim on an entry
        enabled: Whether failed webhooks are captured at all
        dlq_enabled: Whether exhausted entries go to the dead-letter queue

    Example:
        # Default configuration (1m, 5m, 15m, 1h, 6h)
        config = RetryConfig()

        # Custom configuration
        config = RetryConfig(
            max_attempts=3,
            backoff_schedule=[30, 120],
            batch_size=10,
        )
    """

    max_attempts: int = 5
    backoff_schedule: List[int] = field(
        default_factory=lambda: list(DEFAULT_BACKOFF_SCHEDULE_SECONDS)
    )
    batch_size: int = 50
    claim_lease_seconds: int = 300  # 5 minutes
    enabled: bool = True
    dlq_enabled: bool = True

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if not self.backoff_schedule:
            raise ValueError("backoff_schedule must not be empty")
        if any(delay <= 0 for delay in self.backoff_schedule):
            raise ValueError("backoff_schedule delays must be positive")
        if any(
            later < earlier
            for earlier, later in zip(self.backoff_schedule, self.backoff_schedule[1:])
        ):
            raise ValueError("backoff_schedule must be non-decreasing")
        if self.batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        if self.claim_lease_seconds < 1:
            raise ValueError("claim_lease_seconds must be at least 1")

    def backoff_delay(self, attempts: int) -> timedelta:
        """Delay before the next attempt after ``attempts`` completed attempts.

        Indices past the end of the schedule reuse its last value.
        """
        index = min(max(attempts, 0), len(self.backoff_schedule) - 1)
        return timedelta(seconds=self.backoff_schedule[index])
