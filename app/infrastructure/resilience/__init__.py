"""Resilience patterns and implementations.

This module contains the persisted retry queue, the dead-letter queue and the
retry worker used to re-deliver failed webhooks.
"""

from infrastructure.resilience.retry import (
    DeadLetterStore,
    InMemoryDeadLetterStore,
    InMemoryRetryStore,
    RetryConfig,
    RetryStore,
    RetryWorker,
    WebhookProcessor,
)

__all__ = [
    "DeadLetterStore",
    "InMemoryDeadLetterStore",
    "InMemoryRetryStore",
    "RetryConfig",
    "RetryStore",
    "RetryWorker",
    "WebhookProcessor",
]
