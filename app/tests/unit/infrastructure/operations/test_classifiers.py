"""Unit tests for AWS error classification.

Tests cover:
- Error code mapping to OperationStatus
- Conditional check failures surfacing as CONFLICT
- Connection errors and missing response data
"""

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from infrastructure.operations.classifiers import classify_aws_error
from infrastructure.operations.status import OperationStatus


def client_error(code, operation="PutItem"):
    return ClientError({"Error": {"Code": code, "Message": "boom"}}, operation)


class TestClassifyAwsError:
    @pytest.mark.parametrize(
        "code",
        [
            "ThrottlingException",
            "Throttling",
            "RequestLimitExceeded",
            "ProvisionedThroughputExceededException",
        ],
    )
    def test_throttling_is_transient_with_retry_after(self, code):
        result = classify_aws_error(client_error(code))

        assert result.status == OperationStatus.TRANSIENT_ERROR
        assert result.error_code == "RATE_LIMITED"
        assert result.retry_after == 60

    def test_conditional_check_failed_is_conflict(self):
        result = classify_aws_error(client_error("ConditionalCheckFailedException"))

        assert result.status == OperationStatus.CONFLICT
        assert result.error_code == "ConditionalCheckFailedException"

    def test_access_denied_is_permanent(self):
        result = classify_aws_error(client_error("AccessDeniedException"))

        assert result.status == OperationStatus.PERMANENT_ERROR
        assert result.error_code == "FORBIDDEN"

    def test_missing_table_is_not_found(self):
        result = classify_aws_error(client_error("ResourceNotFoundException"))

        assert result.status == OperationStatus.NOT_FOUND

    @pytest.mark.parametrize(
        "code", ["ValidationException", "InvalidParameterException", "SerializationException"]
    )
    def test_validation_errors_are_permanent(self, code):
        result = classify_aws_error(client_error(code))

        assert result.status == OperationStatus.PERMANENT_ERROR
        assert result.error_code == "INVALID_REQUEST"
        assert code in result.message

    def test_unknown_client_error_is_transient(self):
        result = classify_aws_error(client_error("InternalServerError"))

        assert result.status == OperationStatus.TRANSIENT_ERROR
        assert result.error_code == "AWS_CLIENT_ERROR"

    def test_client_error_without_code(self):
        result = classify_aws_error(ClientError({}, "GetItem"))

        assert result.status == OperationStatus.TRANSIENT_ERROR
        assert "Unknown" in result.message

    def test_connection_error_is_transient(self):
        exc = EndpointConnectionError(endpoint_url="http://localhost:8000")

        result = classify_aws_error(exc)

        assert result.status == OperationStatus.TRANSIENT_ERROR
        assert result.error_code == "CONNECTION_ERROR"
        assert "EndpointConnectionError" in result.message

    def test_generic_exception_is_transient(self):
        result = classify_aws_error(RuntimeError("socket closed"))

        assert result.status == OperationStatus.TRANSIENT_ERROR
        assert "socket closed" in result.message
