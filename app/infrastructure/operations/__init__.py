"""Operation result types and status enums.

This module contains standardized result types for operations across
the application, including the status enum, the result dataclass, and the
AWS error classifier used by the DynamoDB-backed stores.
"""

from infrastructure.operations.classifiers import classify_aws_error
from infrastructure.operations.result import OperationResult
from infrastructure.operations.status import OperationStatus

__all__ = [
    "OperationResult",
    "OperationStatus",
    "classify_aws_error",
]
