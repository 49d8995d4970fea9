"""DynamoDB-backed retry and dead-letter stores for multi-instance deployments.

Both stores go through ``integrations.aws.dynamodb_next`` so throttling retries
and error classification are shared with the rest of the AWS integration.
"""

import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from infrastructure.logging import get_module_logger
from infrastructure.operations import OperationResult
from infrastructure.resilience.retry.models import (
    DeadLetterEntry,
    ErrorRecord,
    Priority,
    Resolution,
    RetryEntry,
)
from infrastructure.resilience.retry.store import RetryStoreError
from integrations.aws import dynamodb_next

logger = get_module_logger()

QUEUE_STATUS = "PENDING"
DUE_INDEX_NAME = "status-next_retry_at-index"
CONDITIONAL_CHECK_FAILED = "ConditionalCheckFailedException"


def _s(value: str) -> Dict[str, str]:
    return {"S": value}


def _n(value: float) -> Dict[str, str]:
    return {"N": str(value)}


def _get(item: Dict[str, Any], key: str, default: Any = None) -> Any:
    """Extract a scalar from a DynamoDB attribute value."""
    attr = item.get(key)
    if not isinstance(attr, dict):
        return default
    if "S" in attr:
        return attr["S"]
    if "N" in attr:
        return attr["N"]
    if "B" in attr:
        return attr["B"]
    if "NULL" in attr:
        return default
    return default


def _ts(value: datetime) -> float:
    return value.timestamp()


def _from_ts(value: Any) -> datetime:
    return datetime.fromtimestamp(float(value), tz=timezone.utc)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _from_iso(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _errors_to_json(errors: List[ErrorRecord]) -> str:
    return json.dumps([error.to_dict() for error in errors])


def _errors_from_json(value: Optional[str]) -> List[ErrorRecord]:
    if not value:
        return []
    return [ErrorRecord.from_dict(error) for error in json.loads(value)]


def _payload(item: Dict[str, Any]) -> bytes:
    raw = _get(item, "raw_payload", b"")
    if isinstance(raw, str):
        # boto3 returns bytes for B attributes; strings only appear in fixtures
        return raw.encode("utf-8")
    return bytes(raw)


def _is_conditional_failure(result: OperationResult) -> bool:
    return result.error_code == CONDITIONAL_CHECK_FAILED


def _raise_for(result: OperationResult, event: str, **context: Any) -> None:
    logger.error(
        event,
        error=result.message,
        error_code=result.error_code,
        **context,
    )
    raise RetryStoreError(result.message, error_code=result.error_code)


class DynamoDBRetryStore:
    """DynamoDB-backed retry queue.

    This implementation provides:
    - Shared state across multiple instances
    - Atomic claim operations using conditional writes
    - Conditional attempts updates (lost races are reported, not applied)
    - Efficient due-entry queries using a GSI

    Table Schema:
        PK: id (String)
        Attributes: event, merchant, order_id, raw_payload (Binary), headers,
                   attempts, max_attempts, next_retry_at (Number, epoch),
                   last_error, last_attempt_at, store_uid, priority, tags,
                   error_history, created_at, updated_at, status,
                   claim_worker, claim_expires_at
        GSI: status-next_retry_at-index (status + next_retry_at)

    Args:
        table_name: DynamoDB table name
    """

    def __init__(self, table_name: str):
        self.table_name = table_name
        logger.info("dynamodb_retry_store_initialized", table_name=table_name)

    def _entry_to_item(self, entry: RetryEntry) -> Dict[str, Any]:
        item: Dict[str, Any] = {
            "id": _s(entry.id),
            "event": _s(entry.event),
            "merchant": _s(entry.merchant or ""),
            "raw_payload": {"B": entry.raw_payload},
            "headers": _s(json.dumps(entry.headers)),
            "attempts": _n(entry.attempts),
            "max_attempts": _n(entry.max_attempts),
            "next_retry_at": _n(_ts(entry.next_retry_at)),
            "priority": _s(entry.priority.value),
            "tags": _s(json.dumps(sorted(entry.tags))),
            "error_history": _s(_errors_to_json(entry.error_history)),
            "created_at": _s(entry.created_at.isoformat()),
            "updated_at": _s(entry.updated_at.isoformat()),
            "status": _s(QUEUE_STATUS),
        }
        if entry.order_id is not None:
            item["order_id"] = _s(entry.order_id)
        if entry.last_error is not None:
            item["last_error"] = _s(entry.last_error)
        if entry.last_attempt_at is not None:
            item["last_attempt_at"] = _s(entry.last_attempt_at.isoformat())
        if entry.store_uid is not None:
            item["store_uid"] = _s(entry.store_uid)
        return item

    def _item_to_entry(self, item: Dict[str, Any]) -> RetryEntry:
        return RetryEntry(
            id=_get(item, "id"),
            event=_get(item, "event"),
            merchant=_get(item, "merchant", ""),
            raw_payload=_payload(item),
            headers=json.loads(_get(item, "headers", "{}")),
            order_id=_get(item, "order_id"),
            attempts=int(_get(item, "attempts", 0)),
            max_attempts=int(_get(item, "max_attempts", 1)),
            next_retry_at=_from_ts(_get(item, "next_retry_at", 0)),
            last_error=_get(item, "last_error"),
            last_attempt_at=_from_iso(_get(item, "last_attempt_at")),
            store_uid=_get(item, "store_uid"),
            priority=Priority(_get(item, "priority", Priority.NORMAL.value)),
            tags=set(json.loads(_get(item, "tags", "[]"))),
            error_history=_errors_from_json(_get(item, "error_history")),
            created_at=datetime.fromisoformat(_get(item, "created_at")),
            updated_at=datetime.fromisoformat(_get(item, "updated_at")),
        )

    def save(self, entry: RetryEntry) -> None:
        result = dynamodb_next.put_item(
            table_name=self.table_name,
            Item=self._entry_to_item(entry),
        )
        if not result.is_success:
            _raise_for(result, "dynamodb_save_failed", retry_id=entry.id)
        logger.debug("retry_entry_saved", retry_id=entry.id, event=entry.event)

    def get(self, retry_id: str) -> Optional[RetryEntry]:
        result = dynamodb_next.get_item(
            table_name=self.table_name,
            Key={"id": _s(retry_id)},
            ConsistentRead=True,
        )
        if not result.is_success:
            _raise_for(result, "dynamodb_get_failed", retry_id=retry_id)
        item = (result.data or {}).get("Item")
        return self._item_to_entry(item) if item else None

    def fetch_due(self, now: datetime, limit: int) -> List[RetryEntry]:
        """Fetch due entries using the GSI, skipping live claims."""
        now_ts = _ts(now)
        result = dynamodb_next.query(
            table_name=self.table_name,
            IndexName=DUE_INDEX_NAME,
            KeyConditionExpression="#status = :status AND next_retry_at <= :now",
            ExpressionAttributeNames={"#status": "status"},
            ExpressionAttributeValues={
                ":status": _s(QUEUE_STATUS),
                ":now": _n(now_ts),
            },
            PaginationConfig={"MaxItems": limit * 2},
        )
        if not result.is_success:
            _raise_for(result, "dynamodb_fetch_due_failed")

        due: List[RetryEntry] = []
        for item in result.data or []:
            claim_expires = _get(item, "claim_expires_at")
            if claim_expires is not None and float(claim_expires) > now_ts:
                continue
            due.append(self._item_to_entry(item))
            if len(due) >= limit:
                break

        logger.debug(
            "fetched_due_retry_entries",
            count=len(due),
            total_queried=len(result.data or []),
        )
        return due

    def claim_entry(
        self, retry_id: str, worker_id: str, lease_seconds: int, now: datetime
    ) -> bool:
        """Claim an entry using an atomic conditional write."""
        now_ts = _ts(now)
        result = dynamodb_next.update_item(
            table_name=self.table_name,
            Key={"id": _s(retry_id)},
            UpdateExpression="SET claim_worker = :worker, claim_expires_at = :expires",
            ConditionExpression=(
                "attribute_exists(#id) AND "
                "(attribute_not_exists(claim_worker) OR claim_expires_at < :now)"
            ),
            ExpressionAttributeNames={"#id": "id"},
            ExpressionAttributeValues={
                ":worker": _s(worker_id),
                ":expires": _n(now_ts + lease_seconds),
                ":now": _n(now_ts),
            },
        )
        if result.is_success:
            logger.debug("retry_entry_claimed", retry_id=retry_id, worker=worker_id)
            return True
        if _is_conditional_failure(result):
            logger.debug(
                "retry_claim_failed_already_claimed",
                retry_id=retry_id,
                worker=worker_id,
            )
            return False
        _raise_for(result, "dynamodb_claim_failed", retry_id=retry_id)
        return False

    def release_claim(self, retry_id: str, worker_id: str) -> None:
        result = dynamodb_next.update_item(
            table_name=self.table_name,
            Key={"id": _s(retry_id)},
            UpdateExpression="REMOVE claim_worker, claim_expires_at",
            ConditionExpression="claim_worker = :worker",
            ExpressionAttributeValues={":worker": _s(worker_id)},
        )
        if not result.is_success and not _is_conditional_failure(result):
            _raise_for(result, "dynamodb_release_claim_failed", retry_id=retry_id)

    def update_attempt(self, entry: RetryEntry, expected_attempts: int) -> bool:
        """Overwrite the entry if its stored attempts still match.

        The full-item put drops the claim attributes, releasing the lease.
        """
        result = dynamodb_next.put_item(
            table_name=self.table_name,
            Item=self._entry_to_item(entry),
            ConditionExpression="attempts = :expected",
            ExpressionAttributeValues={":expected": _n(expected_attempts)},
        )
        if result.is_success:
            return True
        if _is_conditional_failure(result):
            logger.warning(
                "retry_attempt_update_conflict",
                retry_id=entry.id,
                expected_attempts=expected_attempts,
            )
            return False
        _raise_for(result, "dynamodb_update_attempt_failed", retry_id=entry.id)
        return False

    def delete(self, retry_id: str) -> bool:
        result = dynamodb_next.delete_item(
            table_name=self.table_name,
            Key={"id": _s(retry_id)},
            ReturnValues="ALL_OLD",
        )
        if not result.is_success:
            _raise_for(result, "dynamodb_delete_failed", retry_id=retry_id)
        return bool((result.data or {}).get("Attributes"))

    def list_entries(self) -> List[RetryEntry]:
        result = dynamodb_next.scan(table_name=self.table_name)
        if not result.is_success:
            _raise_for(result, "dynamodb_scan_failed", table_name=self.table_name)
        return [self._item_to_entry(item) for item in result.data or []]


class DynamoDBDeadLetterStore:
    """DynamoDB-backed dead-letter queue.

    Table Schema:
        PK: id (String, ``dlq_<retry_id>``)
        Attributes: retry_id, event, merchant, order_id, raw_payload (Binary),
                   headers, total_attempts, errors, last_error, failed_at,
                   created_at, store_uid, priority, tags, reviewed_at,
                   reviewed_by, resolution, notes, version

    Listing scans the table; the DLQ is bounded by the health thresholds and
    the retention cleanup.

    Args:
        table_name: DynamoDB table name
    """

    def __init__(self, table_name: str):
        self.table_name = table_name
        logger.info("dynamodb_dead_letter_store_initialized", table_name=table_name)

    def _entry_to_item(self, entry: DeadLetterEntry) -> Dict[str, Any]:
        item: Dict[str, Any] = {
            "id": _s(entry.id),
            "retry_id": _s(entry.retry_id),
            "event": _s(entry.event),
            "merchant": _s(entry.merchant or ""),
            "raw_payload": {"B": entry.raw_payload},
            "headers": _s(json.dumps(entry.headers)),
            "total_attempts": _n(entry.total_attempts),
            "errors": _s(_errors_to_json(entry.errors)),
            "failed_at": _s(entry.failed_at.isoformat()),
            "created_at": _s(entry.created_at.isoformat()),
            "priority": _s(entry.priority.value),
            "tags": _s(json.dumps(sorted(entry.tags))),
            "version": _n(entry.version),
        }
        optional = {
            "order_id": entry.order_id,
            "store_uid": entry.store_uid,
            "last_error": entry.last_error,
            "reviewed_at": _iso(entry.reviewed_at),
            "reviewed_by": entry.reviewed_by,
            "resolution": entry.resolution.value if entry.resolution else None,
            "notes": entry.notes,
        }
        for key, value in optional.items():
            if value is not None:
                item[key] = _s(value)
        return item

    def _item_to_entry(self, item: Dict[str, Any]) -> DeadLetterEntry:
        resolution = _get(item, "resolution")
        return DeadLetterEntry(
            id=_get(item, "id"),
            retry_id=_get(item, "retry_id"),
            event=_get(item, "event"),
            merchant=_get(item, "merchant", ""),
            raw_payload=_payload(item),
            headers=json.loads(_get(item, "headers", "{}")),
            total_attempts=int(_get(item, "total_attempts", 0)),
            errors=_errors_from_json(_get(item, "errors")),
            last_error=_get(item, "last_error"),
            failed_at=datetime.fromisoformat(_get(item, "failed_at")),
            created_at=datetime.fromisoformat(_get(item, "created_at")),
            order_id=_get(item, "order_id"),
            store_uid=_get(item, "store_uid"),
            priority=Priority(_get(item, "priority", Priority.NORMAL.value)),
            tags=set(json.loads(_get(item, "tags", "[]"))),
            reviewed_at=_from_iso(_get(item, "reviewed_at")),
            reviewed_by=_get(item, "reviewed_by"),
            resolution=Resolution(resolution) if resolution else None,
            notes=_get(item, "notes"),
            version=int(_get(item, "version", 0)),
        )

    def put(self, entry: DeadLetterEntry) -> bool:
        result = dynamodb_next.put_item(
            table_name=self.table_name,
            Item=self._entry_to_item(entry),
            ConditionExpression="attribute_not_exists(#id)",
            ExpressionAttributeNames={"#id": "id"},
        )
        if result.is_success:
            return True
        if _is_conditional_failure(result):
            logger.info("dead_letter_entry_exists", dlq_id=entry.id)
            return False
        _raise_for(result, "dynamodb_dead_letter_put_failed", dlq_id=entry.id)
        return False

    def get(self, dlq_id: str) -> Optional[DeadLetterEntry]:
        result = dynamodb_next.get_item(
            table_name=self.table_name,
            Key={"id": _s(dlq_id)},
            ConsistentRead=True,
        )
        if not result.is_success:
            _raise_for(result, "dynamodb_dead_letter_get_failed", dlq_id=dlq_id)
        item = (result.data or {}).get("Item")
        return self._item_to_entry(item) if item else None

    def update(
        self, entry: DeadLetterEntry, expected_version: Optional[int] = None
    ) -> bool:
        """Write review metadata and atomically bump the version."""
        set_parts = ["#version = if_not_exists(#version, :zero) + :one"]
        remove_parts: List[str] = []
        names: Dict[str, str] = {"#id": "id", "#version": "version"}
        values: Dict[str, Any] = {":zero": _n(0), ":one": _n(1)}
        review_fields = {
            "reviewed_at": _iso(entry.reviewed_at),
            "reviewed_by": entry.reviewed_by,
            "resolution": entry.resolution.value if entry.resolution else None,
            "notes": entry.notes,
        }
        for key, value in review_fields.items():
            names[f"#{key}"] = key
            if value is None:
                remove_parts.append(f"#{key}")
            else:
                set_parts.append(f"#{key} = :{key}")
                values[f":{key}"] = _s(value)

        update_expression = "SET " + ", ".join(set_parts)
        if remove_parts:
            update_expression += " REMOVE " + ", ".join(remove_parts)

        condition = "attribute_exists(#id)"
        if expected_version is not None:
            condition += " AND #version = :expected"
            values[":expected"] = _n(expected_version)

        result = dynamodb_next.update_item(
            table_name=self.table_name,
            Key={"id": _s(entry.id)},
            UpdateExpression=update_expression,
            ConditionExpression=condition,
            ExpressionAttributeNames=names,
            ExpressionAttributeValues=values,
            ReturnValues="UPDATED_NEW",
        )
        if result.is_success:
            attributes = (result.data or {}).get("Attributes", {})
            entry.version = int(_get(attributes, "version", entry.version + 1))
            return True
        if _is_conditional_failure(result):
            logger.warning(
                "dead_letter_update_conflict",
                dlq_id=entry.id,
                expected_version=expected_version,
            )
            return False
        _raise_for(result, "dynamodb_dead_letter_update_failed", dlq_id=entry.id)
        return False

    def list_entries(self, only_unreviewed: bool = False) -> List[DeadLetterEntry]:
        kwargs: Dict[str, Any] = {}
        if only_unreviewed:
            kwargs["FilterExpression"] = "attribute_not_exists(reviewed_at)"
        result = dynamodb_next.scan(table_name=self.table_name, **kwargs)
        if not result.is_success:
            _raise_for(result, "dynamodb_scan_failed", table_name=self.table_name)
        return [self._item_to_entry(item) for item in result.data or []]

    def delete(self, dlq_id: str) -> bool:
        result = dynamodb_next.delete_item(
            table_name=self.table_name,
            Key={"id": _s(dlq_id)},
            ReturnValues="ALL_OLD",
        )
        if not result.is_success:
            _raise_for(result, "dynamodb_dead_letter_delete_failed", dlq_id=dlq_id)
        return bool((result.data or {}).get("Attributes"))
