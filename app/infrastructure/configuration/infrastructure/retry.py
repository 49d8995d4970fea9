"""Webhook retry system infrastructure settings."""

from typing import List

from pydantic import AliasChoices, Field

from infrastructure.configuration.base import InfrastructureSettings


class WebhookRetrySettings(InfrastructureSettings):
    """Webhook retry queue and dead-letter configuration.

    Controls capture of failed webhook deliveries, the backoff schedule used by
    the retry worker, and the dead-letter queue (DLQ) that holds exhausted
    deliveries for manual review.

    Environment Variables:
        ENABLE_WEBHOOK_RETRY / RETRY_ENABLED: Enable retry capture (default: True)
        ENABLE_WEBHOOK_DLQ: Move exhausted entries to the DLQ (default: True)
        RETRY_BACKEND: Store backend - 'memory' or 'dynamodb'
        WEBHOOK_MAX_RETRY_ATTEMPTS: Attempts before dead-lettering (default: 5)
        RETRY_BACKOFF_SCHEDULE_SECONDS: JSON list of delays (default: 1m..6h)
        RETRY_BATCH_SIZE: Entries processed per run (default: 50)
        RETRY_CLAIM_LEASE_SECONDS: Claim duration (default: 300s = 5min)
        RETRY_QUEUE_TABLE_NAME: DynamoDB retry queue table
        RETRY_DEAD_LETTER_TABLE_NAME: DynamoDB dead-letter table
        RETRY_METRICS_ENABLED: Emit Prometheus counters (default: True)
        DLQ_RETENTION_DAYS: Age of reviewed DLQ entries before cleanup (default: 90)
        RETRY_HEALTH_MAX_QUEUE_SIZE: Retry queue size alert threshold (default: 1000)
        RETRY_HEALTH_MAX_DLQ_SIZE: DLQ size alert threshold (default: 500)
        RETRY_HEALTH_MAX_UNREVIEWED: Unreviewed DLQ alert threshold (default: 100)
        RETRY_HEALTH_MAX_AGE_HOURS: Oldest entry age alert threshold (default: 24)
        RETRY_SCHEDULER_ENABLED: Run the in-process job runner (default: False)
        RETRY_SCHEDULE_INTERVAL_SECONDS: Job runner interval (default: 60)

    Backoff Schedule:
        Delay before attempt n+1 is ``schedule[min(n, len(schedule) - 1)]``.

        Example with defaults ([60, 300, 900, 3600, 21600]):
            Capture: retry in 1m
            Attempt 1 failed: retry in 5m
            Attempt 2 failed: retry in 15m
            Attempt 3 failed: retry in 1h
            Attempt 4 failed: retry in 6h

    Example:
        ```python
        from infrastructure.services import get_settings

        settings = get_settings()

        if settings.retry.enabled:
            schedule = settings.retry.backoff_schedule_seconds
        ```
    """

    enabled: bool = Field(
        default=True,
        validation_alias=AliasChoices("ENABLE_WEBHOOK_RETRY", "RETRY_ENABLED"),
        description="Capture failed webhooks into the retry queue",
    )
    dlq_enabled: bool = Field(
        default=True,
        alias="ENABLE_WEBHOOK_DLQ",
        description="Move exhausted entries to the dead-letter queue",
    )
    backend: str = Field(
        default="memory",
        alias="RETRY_BACKEND",
        description="Retry store backend: 'memory' or 'dynamodb'",
    )
    max_attempts: int = Field(
        default=5,
        alias="WEBHOOK_MAX_RETRY_ATTEMPTS",
        description="Maximum processing attempts before dead-lettering",
    )
    backoff_schedule_seconds: List[int] = Field(
        default=[60, 300, 900, 3600, 21600],
        alias="RETRY_BACKOFF_SCHEDULE_SECONDS",
        description="Delays between attempts (seconds), last value reused",
    )
    batch_size: int = Field(
        default=50,
        alias="RETRY_BATCH_SIZE",
        description="Number of due entries processed per run",
    )
    claim_lease_seconds: int = Field(
        default=300,
        alias="RETRY_CLAIM_LEASE_SECONDS",
        description="Duration to hold claim on a retry entry (seconds)",
    )
    queue_table_name: str = Field(
        default="webhook_retry_queue",
        alias="RETRY_QUEUE_TABLE_NAME",
        description="DynamoDB table name for the retry queue",
    )
    dead_letter_table_name: str = Field(
        default="webhook_dead_letter",
        alias="RETRY_DEAD_LETTER_TABLE_NAME",
        description="DynamoDB table name for the dead-letter queue",
    )
    metrics_enabled: bool = Field(
        default=True,
        alias="RETRY_METRICS_ENABLED",
        description="Emit Prometheus counters for retry events",
    )
    dlq_retention_days: int = Field(
        default=90,
        alias="DLQ_RETENTION_DAYS",
        description="Days a reviewed DLQ entry is kept before cleanup",
    )
    health_max_queue_size: int = Field(
        default=1000, alias="RETRY_HEALTH_MAX_QUEUE_SIZE"
    )
    health_max_dlq_size: int = Field(default=500, alias="RETRY_HEALTH_MAX_DLQ_SIZE")
    health_max_unreviewed: int = Field(
        default=100, alias="RETRY_HEALTH_MAX_UNREVIEWED"
    )
    health_max_age_hours: int = Field(default=24, alias="RETRY_HEALTH_MAX_AGE_HOURS")
    scheduler_enabled: bool = Field(
        default=False,
        alias="RETRY_SCHEDULER_ENABLED",
        description="Run retry and cleanup jobs on an in-process thread",
    )
    schedule_interval_seconds: int = Field(
        default=60,
        alias="RETRY_SCHEDULE_INTERVAL_SECONDS",
        description="Seconds between in-process retry runs",
    )
