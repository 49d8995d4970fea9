"""AWS client module.

Centralized error handling, throttling retries and pagination for boto3 calls.
Every call returns an ``OperationResult`` so callers branch on ``is_success``
instead of catching botocore exceptions.

Usage:
    # Auto-paginates operations that support it
    result = execute_aws_api_call(
        service_name="dynamodb",
        method="scan",
        keys=["Items"],
        TableName="webhook_retry_queue",
    )
    if result.is_success:
        items = result.data

    # Single call, raw boto3 response in result.data
    result = execute_aws_api_call(
        service_name="dynamodb",
        method="get_item",
        TableName="webhook_retry_queue",
        Key={"id": {"S": "retry_..."}},
    )
"""

import time
from typing import Any, List, Optional, Callable

import boto3  # type: ignore
from botocore.client import BaseClient  # type: ignore
from botocore.exceptions import BotoCoreError, ClientError  # type: ignore

from infrastructure.logging import get_module_logger
from infrastructure.operations import OperationResult, classify_aws_error
from infrastructure.services.providers import get_settings

logger = get_module_logger()

DEFAULT_MAX_RETRIES = 3
DEFAULT_BACKOFF_FACTOR = 1.0

# Error codes that are expected outcomes of conditional writes, not failures
EXPECTED_ERROR_CODES = frozenset({"ConditionalCheckFailedException"})


def _error_code(error: Exception) -> Optional[str]:
    if isinstance(error, ClientError):
        return error.response.get("Error", {}).get("Code")
    return None


def _should_retry(error: Exception, attempt: int, max_attempts: int) -> bool:
    throttling_errors = get_settings().aws.THROTTLING_ERRS
    return _error_code(error) in throttling_errors and attempt < max_attempts


def _calculate_retry_delay(attempt: int) -> float:
    return DEFAULT_BACKOFF_FACTOR * (2**attempt)


def _handle_final_error(error: Exception, function_name: str) -> OperationResult:
    """Log the final error after retries and classify it into an OperationResult."""
    error_code = _error_code(error)
    if error_code in EXPECTED_ERROR_CODES:
        logger.debug(
            "aws_api_condition_not_met",
            function=function_name,
            error_code=error_code,
        )
    else:
        logger.error(
            "aws_api_error_final",
            function=function_name,
            error=str(error),
            error_code=error_code,
        )
    return classify_aws_error(error)


def _can_paginate_method(client: BaseClient, method: str) -> bool:
    try:
        return client.can_paginate(method)
    except (AttributeError, TypeError, ValueError):
        return False


def get_aws_client(
    service_name: str,
    session_config: Optional[dict] = None,
    client_config: Optional[dict] = None,
) -> BaseClient:
    """Create a boto3 AWS service client.

    Args:
        service_name: The name of the AWS service.
        session_config: Session configuration (defaults to the configured region).
        client_config: Client configuration (defaults to the configured region
            and, when set, ``AWS_ENDPOINT_URL``).
    """
    aws = get_settings().aws
    session_config = session_config or {"region_name": aws.AWS_REGION}
    if client_config is None:
        client_config = {"region_name": aws.AWS_REGION}
        if aws.ENDPOINT_URL:
            client_config["endpoint_url"] = aws.ENDPOINT_URL
    session = boto3.Session(**session_config)
    return session.client(service_name, **client_config)


def _paginate_all_results(
    client: BaseClient, method: str, keys: Optional[List[str]] = None, **kwargs
) -> List[dict]:
    paginator = client.get_paginator(method)
    results: List[dict] = []
    for page in paginator.paginate(**kwargs):
        if keys is None:
            for key, value in page.items():
                if key != "ResponseMetadata":
                    if isinstance(value, list):
                        results.extend(value)
                    else:
                        results.append(value)
        else:
            for key in keys:
                if key in page:
                    results.extend(page[key])
    return results


def execute_api_call(
    func_name: str,
    api_call: Callable[[], Any],
    max_retries: Optional[int] = None,
) -> OperationResult:
    """Run an AWS API call with throttling retries and error classification.

    Args:
        func_name: Name of the call for logging (``<service>_<method>``)
        api_call: Zero-argument callable performing the request
        max_retries: Override default max retries for throttling errors

    Returns:
        OperationResult: success with the call's return value, or a classified error.
    """
    max_retry_attempts = (
        max_retries if max_retries is not None else DEFAULT_MAX_RETRIES
    )
    last_exception: Optional[Exception] = None

    for attempt in range(max_retry_attempts + 1):
        try:
            logger.debug(
                "aws_api_call_start",
                function=func_name,
                attempt=attempt + 1,
                max_attempts=max_retry_attempts + 1,
            )

            result = api_call()

            if attempt > 0:
                logger.info(
                    "aws_api_retry_success",
                    function=func_name,
                    attempt=attempt + 1,
                )

            return OperationResult.success(data=result)

        except (BotoCoreError, ClientError) as e:
            last_exception = e

            if _should_retry(e, attempt, max_retry_attempts):
                delay = _calculate_retry_delay(attempt)
                logger.warning(
                    "aws_api_retrying",
                    function=func_name,
                    attempt=attempt + 1,
                    error=str(e),
                    delay=delay,
                )
                time.sleep(delay)
                continue

            return _handle_final_error(e, func_name)

    if last_exception is None:
        last_exception = BotoCoreError()

    return _handle_final_error(last_exception, func_name)


def execute_aws_api_call(
    service_name: str,
    method: str,
    keys: Optional[List[str]] = None,
    session_config: Optional[dict] = None,
    client_config: Optional[dict] = None,
    max_retries: Optional[int] = None,
    force_paginate: bool = False,
    **kwargs,
) -> OperationResult:
    """Execute an AWS API call through the centralized error handling.

    Operations that boto3 can paginate are auto-paginated when
    ``force_paginate`` is set; the result data is then the flattened list of
    items under ``keys``. Otherwise the raw boto3 response dict is returned.

    Args:
        service_name: The name of the AWS service.
        method: The method to call on the service.
        keys: The keys to extract from paginated results.
        session_config: Session configuration.
        client_config: Client configuration.
        max_retries: Override default max retries.
        force_paginate: Collect every page instead of a single response.
        **kwargs: Additional keyword arguments for the API call.

    Returns:
        OperationResult: Standardized result of the call.
    """

    def api_call():
        client = get_aws_client(service_name, session_config, client_config)
        if force_paginate and _can_paginate_method(client, method):
            return _paginate_all_results(client, method, keys, **kwargs)
        return getattr(client, method)(**kwargs)

    func_name = f"{service_name}_{method}"
    return execute_api_call(func_name, api_call, max_retries=max_retries)
