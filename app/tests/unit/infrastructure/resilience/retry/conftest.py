"""Shared fixtures for retry system tests."""

import pytest
from unittest.mock import MagicMock

from infrastructure.operations import OperationResult, OperationStatus


@pytest.fixture
def mock_dynamodb_next(monkeypatch):
    """Mock dynamodb_next module used by the DynamoDB stores."""
    mock = MagicMock()

    # Default successful responses
    mock.put_item.return_value = OperationResult.success(data={})
    mock.get_item.return_value = OperationResult.success(data={})
    mock.query.return_value = OperationResult.success(data=[])
    mock.scan.return_value = OperationResult.success(data=[])
    mock.update_item.return_value = OperationResult.success(data={})
    mock.delete_item.return_value = OperationResult.success(
        data={"Attributes": {"id": {"S": "x"}}}
    )

    monkeypatch.setattr(
        "infrastructure.resilience.retry.dynamodb_store.dynamodb_next",
        mock,
    )
    return mock


@pytest.fixture
def dynamodb_retry_store(mock_dynamodb_next):
    from infrastructure.resilience.retry.dynamodb_store import DynamoDBRetryStore

    return DynamoDBRetryStore(table_name="test-retry-queue")


@pytest.fixture
def dynamodb_dead_letter_store(mock_dynamodb_next):
    from infrastructure.resilience.retry.dynamodb_store import DynamoDBDeadLetterStore

    return DynamoDBDeadLetterStore(table_name="test-dead-letter")


@pytest.fixture
def conditional_failure():
    return OperationResult.error(
        OperationStatus.CONFLICT,
        "Conditional check failed",
        error_code="ConditionalCheckFailedException",
    )


@pytest.fixture
def throttled_failure():
    return OperationResult.transient_error(
        "AWS API throttled", error_code="RATE_LIMITED", retry_after=60
    )
