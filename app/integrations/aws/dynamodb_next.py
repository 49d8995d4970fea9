"""DynamoDB calls used by the retry and dead-letter stores.

Each function is a thin pass-through to ``client_next.execute_aws_api_call``:
keys and items are in DynamoDB attribute-value format and every call returns
an OperationResult. ``query`` and ``scan`` follow pagination and return the
collected ``Items`` list as ``data``.
"""

from typing import Any, Dict

from integrations.aws.client_next import execute_aws_api_call
from infrastructure.operations.result import OperationResult

SERVICE = "dynamodb"
PAGINATED = {"keys": ["Items"], "force_paginate": True}


def get_item(table_name: str, Key: Dict[str, Any], **kwargs) -> OperationResult:
    """``data`` holds the raw response; ``Item`` is absent when not found."""
    return execute_aws_api_call(
        service_name=SERVICE, method="get_item", TableName=table_name, Key=Key, **kwargs
    )


def put_item(table_name: str, Item: Dict[str, Any], **kwargs) -> OperationResult:
    return execute_aws_api_call(
        service_name=SERVICE, method="put_item", TableName=table_name, Item=Item, **kwargs
    )


def update_item(table_name: str, Key: Dict[str, Any], **kwargs) -> OperationResult:
    return execute_aws_api_call(
        service_name=SERVICE,
        method="update_item",
        TableName=table_name,
        Key=Key,
        **kwargs,
    )


def delete_item(table_name: str, Key: Dict[str, Any], **kwargs) -> OperationResult:
    return execute_aws_api_call(
        service_name=SERVICE,
        method="delete_item",
        TableName=table_name,
        Key=Key,
        **kwargs,
    )


def query(
    table_name: str, KeyConditionExpression: str, **kwargs
) -> OperationResult:
    return execute_aws_api_call(
        service_name=SERVICE,
        method="query",
        TableName=table_name,
        KeyConditionExpression=KeyConditionExpression,
        **PAGINATED,
        **kwargs,
    )


def scan(table_name: str, **kwargs) -> OperationResult:
    return execute_aws_api_call(
        service_name=SERVICE, method="scan", TableName=table_name, **PAGINATED, **kwargs
    )
