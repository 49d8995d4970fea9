"""Error classifiers for AWS SDK exceptions.

Converts botocore exceptions into standardized OperationResult objects so the
DynamoDB stores never need to inspect raw boto responses.

Usage:
    from infrastructure.operations.classifiers import classify_aws_error

    try:
        client.put_item(TableName=table, Item=item)
    except ClientError as exc:
        return classify_aws_error(exc)
"""

from botocore.exceptions import ClientError

from infrastructure.operations.result import OperationResult
from infrastructure.operations.status import OperationStatus

THROTTLING_CODES = frozenset(
    {
        "ThrottlingException",
        "Throttling",
        "RequestLimitExceeded",
        "ProvisionedThroughputExceededException",
    }
)


def classify_aws_error(exc: Exception) -> OperationResult:
    """Classify AWS SDK errors into OperationResult.

    Error Code Mapping:
    - Throttling codes: Rate limiting -> TRANSIENT_ERROR with retry_after
    - ConditionalCheckFailedException: Conditional write lost -> CONFLICT
    - AccessDeniedException: Permission denied -> PERMANENT_ERROR
    - ResourceNotFoundException: Missing table -> NOT_FOUND
    - ValidationException: Bad input -> PERMANENT_ERROR
    - Other: Unknown error -> TRANSIENT_ERROR (AWS convention)

    The original AWS error code is preserved in ``error_code`` for conditional
    check failures so stores can tell a lost race from an outage.

    Args:
        exc: Exception raised by AWS SDK (boto3/botocore)

    Returns:
        OperationResult with appropriate status, message and error_code
    """
    if not isinstance(exc, ClientError):
        # BotoCoreError (endpoint, credentials, connection)
        return OperationResult.transient_error(
            f"AWS connection error: {type(exc).__name__}: {str(exc)}",
            error_code="CONNECTION_ERROR",
        )

    error_code = "Unknown"
    if hasattr(exc, "response") and exc.response:
        error_code = exc.response.get("Error", {}).get("Code", "Unknown")

    if error_code in THROTTLING_CODES:
        return OperationResult.error(
            OperationStatus.TRANSIENT_ERROR,
            "AWS API throttled",
            error_code="RATE_LIMITED",
            retry_after=60,
        )

    if error_code == "ConditionalCheckFailedException":
        return OperationResult.error(
            OperationStatus.CONFLICT,
            "Conditional check failed",
            error_code="ConditionalCheckFailedException",
        )

    if error_code == "AccessDeniedException":
        return OperationResult.permanent_error(
            "AWS API access denied",
            error_code="FORBIDDEN",
        )

    if error_code == "ResourceNotFoundException":
        return OperationResult.error(
            OperationStatus.NOT_FOUND,
            "AWS resource not found",
            error_code="NOT_FOUND",
        )

    if error_code in (
        "ValidationException",
        "InvalidParameterException",
        "SerializationException",
    ):
        return OperationResult.permanent_error(
            f"AWS validation error: {error_code}",
            error_code="INVALID_REQUEST",
        )

    return OperationResult.transient_error(
        f"AWS client error: {error_code}",
        error_code="AWS_CLIENT_ERROR",
    )
