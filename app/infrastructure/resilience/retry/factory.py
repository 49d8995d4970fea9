"""Factory for creating retry stores based on configuration."""

from typing import Tuple

from infrastructure.configuration.infrastructure.retry import WebhookRetrySettings
from infrastructure.logging import get_module_logger
from infrastructure.resilience.retry.config import RetryConfig
from infrastructure.resilience.retry.dynamodb_store import (
    DynamoDBDeadLetterStore,
    DynamoDBRetryStore,
)
from infrastructure.resilience.retry.store import (
    DeadLetterStore,
    InMemoryDeadLetterStore,
    InMemoryRetryStore,
    RetryStore,
)

logger = get_module_logger()

SUPPORTED_BACKENDS = ("memory", "dynamodb")


def create_retry_config(settings: WebhookRetrySettings) -> RetryConfig:
    """Build a validated RetryConfig from settings.

    Raises:
        ValueError: If the configured values are invalid
    """
    return RetryConfig(
        max_attempts=settings.max_attempts,
        backoff_schedule=list(settings.backoff_schedule_seconds),
        batch_size=settings.batch_size,
        claim_lease_seconds=settings.claim_lease_seconds,
        enabled=settings.enabled,
        dlq_enabled=settings.dlq_enabled,
    )


def create_retry_stores(
    settings: WebhookRetrySettings, backend: str | None = None
) -> Tuple[RetryStore, DeadLetterStore]:
    """Factory to create the retry queue and dead-letter stores.

    Args:
        settings: Retry settings (table names, default backend)
        backend: Optional backend override (memory, dynamodb).
                If None, uses settings.backend

    Returns:
        Tuple of (RetryStore, DeadLetterStore) for the same backend

    Raises:
        ValueError: If unknown backend specified

    Examples:
        >>> queue, dlq = create_retry_stores(settings.retry)
        >>> queue, dlq = create_retry_stores(settings.retry, backend="memory")
    """
    backend = backend or settings.backend

    if backend == "memory":
        logger.info("creating_in_memory_retry_stores")
        return InMemoryRetryStore(), InMemoryDeadLetterStore()

    if backend == "dynamodb":
        logger.info(
            "creating_dynamodb_retry_stores",
            queue_table=settings.queue_table_name,
            dead_letter_table=settings.dead_letter_table_name,
        )
        return (
            DynamoDBRetryStore(table_name=settings.queue_table_name),
            DynamoDBDeadLetterStore(table_name=settings.dead_letter_table_name),
        )

    raise ValueError(
        f"Unknown retry backend: {backend}. Supported: {', '.join(SUPPORTED_BACKENDS)}"
    )
