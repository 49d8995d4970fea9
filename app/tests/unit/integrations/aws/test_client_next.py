"""Unit tests for the boto3 call wrapper."""

from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import EndpointConnectionError

from infrastructure.configuration import Settings
from infrastructure.configuration.integrations import AwsSettings
from infrastructure.operations import OperationStatus
from integrations.aws import client_next
from integrations.aws.client_next import execute_api_call, execute_aws_api_call

pytestmark = pytest.mark.unit


class TestExecuteApiCall:
    def test_success_wraps_return_value(self):
        result = execute_api_call("dynamodb_get_item", lambda: {"Item": {}})

        assert result.is_success
        assert result.data == {"Item": {}}

    def test_retries_throttling_then_succeeds(self, make_client_error, no_sleep):
        api_call = MagicMock(
            side_effect=[make_client_error("ThrottlingException"), {"ok": 1}]
        )

        result = execute_api_call("dynamodb_put_item", api_call)

        assert result.is_success
        assert api_call.call_count == 2
        no_sleep.assert_called_once_with(1.0)

    def test_gives_up_after_max_retries(self, make_client_error, no_sleep):
        api_call = MagicMock(side_effect=make_client_error("ThrottlingException"))

        result = execute_api_call("dynamodb_put_item", api_call, max_retries=2)

        assert api_call.call_count == 3
        assert result.status == OperationStatus.TRANSIENT_ERROR
        assert result.error_code == "RATE_LIMITED"

    def test_conditional_failure_not_retried(self, make_client_error, no_sleep):
        api_call = MagicMock(
            side_effect=make_client_error("ConditionalCheckFailedException")
        )

        result = execute_api_call("dynamodb_update_item", api_call)

        api_call.assert_called_once()
        no_sleep.assert_not_called()
        assert result.status == OperationStatus.CONFLICT

    def test_connection_error_classified(self):
        def api_call():
            raise EndpointConnectionError(endpoint_url="http://localhost:8000")

        result = execute_api_call("dynamodb_scan", api_call)

        assert result.status == OperationStatus.TRANSIENT_ERROR
        assert result.error_code == "CONNECTION_ERROR"


class TestExecuteAwsApiCall:
    def test_calls_client_method(self, mock_aws_client):
        mock_aws_client.get_item.return_value = {"Item": {"id": {"S": "retry_1"}}}

        result = execute_aws_api_call(
            "dynamodb", "get_item", TableName="t", Key={"id": {"S": "retry_1"}}
        )

        mock_aws_client.get_item.assert_called_once_with(
            TableName="t", Key={"id": {"S": "retry_1"}}
        )
        assert result.data == {"Item": {"id": {"S": "retry_1"}}}

    def test_force_paginate_collects_pages(self, mock_aws_client):
        mock_aws_client.can_paginate.return_value = True
        mock_aws_client.get_paginator.return_value.paginate.return_value = [
            {"Items": [{"id": 1}], "Count": 1},
            {"Items": [{"id": 2}], "Count": 1},
        ]

        result = execute_aws_api_call(
            "dynamodb", "scan", keys=["Items"], force_paginate=True, TableName="t"
        )

        assert result.data == [{"id": 1}, {"id": 2}]
        mock_aws_client.get_paginator.return_value.paginate.assert_called_once_with(
            TableName="t"
        )

    def test_without_force_paginate_returns_single_response(self, mock_aws_client):
        mock_aws_client.can_paginate.return_value = True
        mock_aws_client.scan.return_value = {"Items": [], "Count": 0}

        result = execute_aws_api_call("dynamodb", "scan", TableName="t")

        assert result.data == {"Items": [], "Count": 0}
        mock_aws_client.get_paginator.assert_not_called()


class TestGetAwsClient:
    def test_uses_configured_region_and_endpoint(self):
        settings = Settings(
            aws=AwsSettings(
                AWS_REGION="us-west-2", AWS_ENDPOINT_URL="http://localhost:8000"
            )
        )

        with patch.object(client_next, "get_settings", return_value=settings), patch(
            "integrations.aws.client_next.boto3.Session"
        ) as mock_session:
            client_next.get_aws_client("dynamodb")

        mock_session.assert_called_once_with(region_name="us-west-2")
        mock_session.return_value.client.assert_called_once_with(
            "dynamodb", region_name="us-west-2", endpoint_url="http://localhost:8000"
        )
