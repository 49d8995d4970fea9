"""Unit tests for DynamoDB retry stores using standardized dynamodb_next utilities."""

import json
from datetime import timedelta

import pytest

from infrastructure.operations import OperationResult
from infrastructure.resilience.retry import Resolution, RetryStoreError
from tests.factories import BASE_TIME, make_dead_letter_entry, make_retry_entry


def _item_for(store, entry):
    return store._entry_to_item(entry)  # pylint: disable=protected-access


class TestDynamoDBRetryStoreSave:
    def test_save_calls_put_item(self, dynamodb_retry_store, mock_dynamodb_next):
        entry = make_retry_entry()

        dynamodb_retry_store.save(entry)

        kwargs = mock_dynamodb_next.put_item.call_args.kwargs
        assert kwargs["table_name"] == "test-retry-queue"
        item = kwargs["Item"]
        assert item["id"] == {"S": entry.id}
        assert item["raw_payload"] == {"B": entry.raw_payload}
        assert item["status"] == {"S": "PENDING"}
        assert item["next_retry_at"] == {"N": str(BASE_TIME.timestamp())}
        assert json.loads(item["headers"]["S"]) == entry.headers

    def test_save_without_merchant_stores_empty_string(
        self, dynamodb_retry_store, mock_dynamodb_next
    ):
        dynamodb_retry_store.save(make_retry_entry(merchant=None))

        item = mock_dynamodb_next.put_item.call_args.kwargs["Item"]
        assert item["merchant"] == {"S": ""}

    def test_save_failure_raises(
        self, dynamodb_retry_store, mock_dynamodb_next, throttled_failure
    ):
        mock_dynamodb_next.put_item.return_value = throttled_failure

        with pytest.raises(RetryStoreError) as exc_info:
            dynamodb_retry_store.save(make_retry_entry())

        assert exc_info.value.error_code == "RATE_LIMITED"

    def test_item_round_trip(self, dynamodb_retry_store):
        entry = make_retry_entry(attempts=2, tags={"orders/create", "store-1"})
        entry.last_attempt_at = BASE_TIME

        restored = dynamodb_retry_store._item_to_entry(  # pylint: disable=protected-access
            _item_for(dynamodb_retry_store, entry)
        )

        assert restored == entry


class TestDynamoDBRetryStoreGet:
    def test_get_found(self, dynamodb_retry_store, mock_dynamodb_next):
        entry = make_retry_entry()
        mock_dynamodb_next.get_item.return_value = OperationResult.success(
            data={"Item": _item_for(dynamodb_retry_store, entry)}
        )

        assert dynamodb_retry_store.get(entry.id) == entry
        kwargs = mock_dynamodb_next.get_item.call_args.kwargs
        assert kwargs["Key"] == {"id": {"S": entry.id}}
        assert kwargs["ConsistentRead"] is True

    def test_get_missing(self, dynamodb_retry_store):
        assert dynamodb_retry_store.get("retry_missing") is None


class TestDynamoDBRetryStoreFetchDue:
    def test_queries_gsi_and_skips_live_claims(
        self, dynamodb_retry_store, mock_dynamodb_next
    ):
        free = _item_for(dynamodb_retry_store, make_retry_entry(id="retry_free"))
        claimed = _item_for(dynamodb_retry_store, make_retry_entry(id="retry_claimed"))
        claimed["claim_expires_at"] = {"N": str(BASE_TIME.timestamp() + 60)}
        expired = _item_for(dynamodb_retry_store, make_retry_entry(id="retry_expired"))
        expired["claim_expires_at"] = {"N": str(BASE_TIME.timestamp() - 60)}
        mock_dynamodb_next.query.return_value = OperationResult.success(
            data=[free, claimed, expired]
        )

        due = dynamodb_retry_store.fetch_due(BASE_TIME, limit=10)

        assert [entry.id for entry in due] == ["retry_free", "retry_expired"]
        kwargs = mock_dynamodb_next.query.call_args.kwargs
        assert kwargs["IndexName"] == "status-next_retry_at-index"
        assert kwargs["ExpressionAttributeValues"][":now"] == {
            "N": str(BASE_TIME.timestamp())
        }

    def test_limit_applies(self, dynamodb_retry_store, mock_dynamodb_next):
        items = [
            _item_for(dynamodb_retry_store, make_retry_entry(id=f"retry_{i}"))
            for i in range(5)
        ]
        mock_dynamodb_next.query.return_value = OperationResult.success(data=items)

        assert len(dynamodb_retry_store.fetch_due(BASE_TIME, limit=2)) == 2

    def test_query_failure_raises(
        self, dynamodb_retry_store, mock_dynamodb_next, throttled_failure
    ):
        mock_dynamodb_next.query.return_value = throttled_failure

        with pytest.raises(RetryStoreError):
            dynamodb_retry_store.fetch_due(BASE_TIME, limit=10)


class TestDynamoDBRetryStoreClaims:
    def test_claim_success(self, dynamodb_retry_store, mock_dynamodb_next):
        assert dynamodb_retry_store.claim_entry("retry_1", "w1", 300, BASE_TIME)

        kwargs = mock_dynamodb_next.update_item.call_args.kwargs
        assert "attribute_not_exists(claim_worker)" in kwargs["ConditionExpression"]
        values = kwargs["ExpressionAttributeValues"]
        assert values[":worker"] == {"S": "w1"}
        assert values[":expires"] == {"N": str(BASE_TIME.timestamp() + 300)}

    def test_claim_conflict_returns_false(
        self, dynamodb_retry_store, mock_dynamodb_next, conditional_failure
    ):
        mock_dynamodb_next.update_item.return_value = conditional_failure

        assert not dynamodb_retry_store.claim_entry("retry_1", "w1", 300, BASE_TIME)

    def test_claim_error_raises(
        self, dynamodb_retry_store, mock_dynamodb_next, throttled_failure
    ):
        mock_dynamodb_next.update_item.return_value = throttled_failure

        with pytest.raises(RetryStoreError):
            dynamodb_retry_store.claim_entry("retry_1", "w1", 300, BASE_TIME)

    def test_release_ignores_lost_claim(
        self, dynamodb_retry_store, mock_dynamodb_next, conditional_failure
    ):
        mock_dynamodb_next.update_item.return_value = conditional_failure

        dynamodb_retry_store.release_claim("retry_1", "w1")

        kwargs = mock_dynamodb_next.update_item.call_args.kwargs
        assert kwargs["UpdateExpression"].startswith("REMOVE claim_worker")


class TestDynamoDBRetryStoreUpdateAttempt:
    def test_conditional_on_expected_attempts(
        self, dynamodb_retry_store, mock_dynamodb_next
    ):
        entry = make_retry_entry(attempts=2)

        assert dynamodb_retry_store.update_attempt(entry, expected_attempts=1)

        kwargs = mock_dynamodb_next.put_item.call_args.kwargs
        assert kwargs["ConditionExpression"] == "attempts = :expected"
        assert kwargs["ExpressionAttributeValues"] == {":expected": {"N": "1"}}
        assert "claim_worker" not in kwargs["Item"]

    def test_conflict_returns_false(
        self, dynamodb_retry_store, mock_dynamodb_next, conditional_failure
    ):
        mock_dynamodb_next.put_item.return_value = conditional_failure

        assert not dynamodb_retry_store.update_attempt(make_retry_entry(), 0)


class TestDynamoDBRetryStoreDeleteAndList:
    def test_delete_reports_existence(self, dynamodb_retry_store, mock_dynamodb_next):
        assert dynamodb_retry_store.delete("retry_1")

        mock_dynamodb_next.delete_item.return_value = OperationResult.success(data={})
        assert not dynamodb_retry_store.delete("retry_1")

    def test_list_entries_scans(self, dynamodb_retry_store, mock_dynamodb_next):
        entry = make_retry_entry()
        mock_dynamodb_next.scan.return_value = OperationResult.success(
            data=[_item_for(dynamodb_retry_store, entry)]
        )

        assert dynamodb_retry_store.list_entries() == [entry]
        assert mock_dynamodb_next.scan.call_args.kwargs == {
            "table_name": "test-retry-queue"
        }


class TestDynamoDBDeadLetterStore:
    def test_put_is_conditional(self, dynamodb_dead_letter_store, mock_dynamodb_next):
        assert dynamodb_dead_letter_store.put(make_dead_letter_entry())

        kwargs = mock_dynamodb_next.put_item.call_args.kwargs
        assert kwargs["ConditionExpression"] == "attribute_not_exists(#id)"
        assert kwargs["table_name"] == "test-dead-letter"

    def test_put_without_merchant_stores_empty_string(
        self, dynamodb_dead_letter_store, mock_dynamodb_next
    ):
        dynamodb_dead_letter_store.put(make_dead_letter_entry(merchant=None))

        item = mock_dynamodb_next.put_item.call_args.kwargs["Item"]
        assert item["merchant"] == {"S": ""}

    def test_put_existing_returns_false(
        self, dynamodb_dead_letter_store, mock_dynamodb_next, conditional_failure
    ):
        mock_dynamodb_next.put_item.return_value = conditional_failure

        assert not dynamodb_dead_letter_store.put(make_dead_letter_entry())

    def test_item_round_trip(self, dynamodb_dead_letter_store):
        entry = make_dead_letter_entry(
            reviewed_at=BASE_TIME + timedelta(hours=1),
            reviewed_by="ops@example.com",
            resolution=Resolution.MANUAL_FIX,
            notes="patched order",
            version=3,
        )

        item = dynamodb_dead_letter_store._entry_to_item(entry)  # pylint: disable=protected-access
        restored = dynamodb_dead_letter_store._item_to_entry(item)  # pylint: disable=protected-access

        assert restored == entry

    def test_update_with_version_guard(
        self, dynamodb_dead_letter_store, mock_dynamodb_next
    ):
        mock_dynamodb_next.update_item.return_value = OperationResult.success(
            data={"Attributes": {"version": {"N": "3"}}}
        )
        entry = make_dead_letter_entry(version=2)
        entry.resolution = Resolution.IGNORED
        entry.reviewed_at = BASE_TIME
        entry.reviewed_by = "ops"

        assert dynamodb_dead_letter_store.update(entry, expected_version=2)

        assert entry.version == 3
        kwargs = mock_dynamodb_next.update_item.call_args.kwargs
        assert kwargs["ConditionExpression"] == (
            "attribute_exists(#id) AND #version = :expected"
        )
        assert kwargs["ExpressionAttributeValues"][":expected"] == {"N": "2"}
        assert kwargs["ExpressionAttributeValues"][":resolution"] == {"S": "ignored"}
        assert "REMOVE #notes" in kwargs["UpdateExpression"]

    def test_update_without_guard(self, dynamodb_dead_letter_store, mock_dynamodb_next):
        entry = make_dead_letter_entry()

        assert dynamodb_dead_letter_store.update(entry)

        kwargs = mock_dynamodb_next.update_item.call_args.kwargs
        assert kwargs["ConditionExpression"] == "attribute_exists(#id)"
        assert entry.version == 1

    def test_update_conflict(
        self, dynamodb_dead_letter_store, mock_dynamodb_next, conditional_failure
    ):
        mock_dynamodb_next.update_item.return_value = conditional_failure

        assert not dynamodb_dead_letter_store.update(
            make_dead_letter_entry(), expected_version=0
        )

    def test_list_only_unreviewed_filters(
        self, dynamodb_dead_letter_store, mock_dynamodb_next
    ):
        dynamodb_dead_letter_store.list_entries(only_unreviewed=True)

        kwargs = mock_dynamodb_next.scan.call_args.kwargs
        assert kwargs["FilterExpression"] == "attribute_not_exists(reviewed_at)"

    def test_get_failure_raises(
        self, dynamodb_dead_letter_store, mock_dynamodb_next, throttled_failure
    ):
        mock_dynamodb_next.get_item.return_value = throttled_failure

        with pytest.raises(RetryStoreError):
            dynamodb_dead_letter_store.get("dlq_retry_1")
