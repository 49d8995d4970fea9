"""Unit tests for retry store and config factories."""

import pytest

from infrastructure.configuration import WebhookRetrySettings
from infrastructure.resilience.retry import (
    InMemoryDeadLetterStore,
    InMemoryRetryStore,
    create_retry_config,
    create_retry_stores,
)
from infrastructure.resilience.retry.dynamodb_store import (
    DynamoDBDeadLetterStore,
    DynamoDBRetryStore,
)


@pytest.fixture
def retry_settings():
    return WebhookRetrySettings(
        WEBHOOK_MAX_RETRY_ATTEMPTS=3,
        RETRY_BACKOFF_SCHEDULE_SECONDS=[10, 20],
        RETRY_BATCH_SIZE=7,
        RETRY_CLAIM_LEASE_SECONDS=120,
        ENABLE_WEBHOOK_DLQ=False,
        RETRY_QUEUE_TABLE_NAME="queue-table",
        RETRY_DEAD_LETTER_TABLE_NAME="dlq-table",
    )


class TestCreateRetryConfig:
    def test_maps_settings(self, retry_settings):
        config = create_retry_config(retry_settings)

        assert config.max_attempts == 3
        assert config.backoff_schedule == [10, 20]
        assert config.batch_size == 7
        assert config.claim_lease_seconds == 120
        assert config.enabled is True
        assert config.dlq_enabled is False

    def test_invalid_settings_raise(self):
        settings = WebhookRetrySettings(WEBHOOK_MAX_RETRY_ATTEMPTS=0)

        with pytest.raises(ValueError):
            create_retry_config(settings)


class TestCreateRetryStores:
    def test_memory_backend(self, retry_settings):
        queue, dlq = create_retry_stores(retry_settings)

        assert isinstance(queue, InMemoryRetryStore)
        assert isinstance(dlq, InMemoryDeadLetterStore)

    def test_dynamodb_backend(self, retry_settings):
        queue, dlq = create_retry_stores(retry_settings, backend="dynamodb")

        assert isinstance(queue, DynamoDBRetryStore)
        assert isinstance(dlq, DynamoDBDeadLetterStore)
        assert queue.table_name == "queue-table"
        assert dlq.table_name == "dlq-table"

    def test_unknown_backend(self, retry_settings):
        with pytest.raises(ValueError, match="Unknown retry backend: redis"):
            create_retry_stores(retry_settings, backend="redis")
