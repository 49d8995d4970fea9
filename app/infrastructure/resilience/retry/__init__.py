"""Persisted retry system for failed webhook deliveries.

Architecture:
- RetryEntry / DeadLetterEntry: Data models for the two persisted collections
- RetryStore / DeadLetterStore: Storage interfaces with in-memory and DynamoDB
  implementations
- RetryWorker: Batch processor draining due entries
- WebhookProcessor: Protocol for the injected delivery logic
- RetryConfig: Backoff schedule, attempt budget, batch size and lease

Usage:
    from infrastructure.resilience.retry import (
        InMemoryDeadLetterStore,
        InMemoryRetryStore,
        RetryConfig,
        RetryWorker,
    )

    worker = RetryWorker(
        InMemoryRetryStore(),
        InMemoryDeadLetterStore(),
        processor,
        RetryConfig(max_attempts=5),
    )
    result = worker.process_batch()
"""

from infrastructure.resilience.retry.config import RetryConfig
from infrastructure.resilience.retry.models import (
    BatchResult,
    DeadLetterEntry,
    ErrorRecord,
    Priority,
    ProcessingOutcome,
    Resolution,
    RetryEntry,
    WebhookRequest,
)
from infrastructure.resilience.retry.store import (
    DeadLetterStore,
    InMemoryDeadLetterStore,
    InMemoryRetryStore,
    RetryStore,
    RetryStoreError,
)
from infrastructure.resilience.retry.worker import RetryWorker, WebhookProcessor
from infrastructure.resilience.retry.factory import (
    create_retry_config,
    create_retry_stores,
)

__all__ = [
    # Models
    "BatchResult",
    "DeadLetterEntry",
    "ErrorRecord",
    "Priority",
    "ProcessingOutcome",
    "Resolution",
    "RetryEntry",
    "WebhookRequest",
    # Configuration
    "RetryConfig",
    # Store
    "DeadLetterStore",
    "InMemoryDeadLetterStore",
    "InMemoryRetryStore",
    "RetryStore",
    "RetryStoreError",
    # Worker
    "RetryWorker",
    "WebhookProcessor",
    # Factory
    "create_retry_config",
    "create_retry_stores",
]
