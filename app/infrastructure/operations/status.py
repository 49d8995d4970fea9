"""Operation status enumeration.

Status codes for operation results, used to classify outcomes of operations
across the application for appropriate error handling and HTTP mapping.
"""

from enum import Enum


class OperationStatus(Enum):
    """Status codes for operation results.

    Attributes:
        SUCCESS: Operation completed successfully
        TRANSIENT_ERROR: Retryable error (network, timeout, rate limit, storage)
        PERMANENT_ERROR: Non-retryable error (validation, disabled feature)
        UNAUTHORIZED: Authentication or authorization failure
        NOT_FOUND: Resource not found
        CONFLICT: Concurrent modification detected (stale version)
    """

    SUCCESS = "success"
    TRANSIENT_ERROR = "transient_error"
    PERMANENT_ERROR = "permanent_error"
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
