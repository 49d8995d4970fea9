"""Unit tests for OperationResult and OperationStatus."""

import pytest

from infrastructure.operations.result import OperationResult
from infrastructure.operations.status import OperationStatus


@pytest.mark.unit
class TestOperationStatus:
    @pytest.mark.parametrize(
        "status,value",
        [
            (OperationStatus.SUCCESS, "success"),
            (OperationStatus.TRANSIENT_ERROR, "transient_error"),
            (OperationStatus.PERMANENT_ERROR, "permanent_error"),
            (OperationStatus.UNAUTHORIZED, "unauthorized"),
            (OperationStatus.NOT_FOUND, "not_found"),
            (OperationStatus.CONFLICT, "conflict"),
        ],
    )
    def test_values(self, status, value):
        assert status.value == value


@pytest.mark.unit
class TestOperationResultFactories:
    def test_success(self):
        result = OperationResult.success(data={"retry_id": "retry_1"})

        assert result.is_success
        assert result.message == "ok"
        assert result.data == {"retry_id": "retry_1"}

    def test_transient_error(self):
        result = OperationResult.transient_error(
            "Storage unavailable", error_code="STORE_ERROR", retry_after=30
        )

        assert not result.is_success
        assert result.status == OperationStatus.TRANSIENT_ERROR
        assert result.retry_after == 30

    def test_permanent_error(self):
        result = OperationResult.permanent_error("Retry disabled", error_code="DISABLED")

        assert result.status == OperationStatus.PERMANENT_ERROR
        assert result.error_code == "DISABLED"

    def test_not_found_default_code(self):
        result = OperationResult.not_found("Webhook not found in DLQ")

        assert result.status == OperationStatus.NOT_FOUND
        assert result.error_code == "NOT_FOUND"

    def test_conflict_default_code(self):
        result = OperationResult.conflict("stale")

        assert result.status == OperationStatus.CONFLICT
        assert result.error_code == "VERSION_CONFLICT"

    def test_error_carries_data(self):
        result = OperationResult.error(
            OperationStatus.UNAUTHORIZED, "nope", data={"user": "bob"}
        )
        assert result.data == {"user": "bob"}


@pytest.mark.unit
class TestOperationResultToDict:
    def test_success_shape(self):
        body = OperationResult.success(data={"delivered": True}).to_dict()

        assert body == {"ok": True, "message": "ok", "data": {"delivered": True}}

    def test_success_without_data(self):
        assert OperationResult.success(message="done").to_dict() == {
            "ok": True,
            "message": "done",
        }

    def test_error_shape(self):
        body = OperationResult.not_found("Webhook not found in DLQ").to_dict()

        assert body == {
            "ok": False,
            "message": "Webhook not found in DLQ",
            "error": "Webhook not found in DLQ",
            "error_code": "NOT_FOUND",
        }
