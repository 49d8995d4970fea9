"""Custom log processors for structured logging.

Processors in this module are appended to the structlog pipeline by
``configure_logging``. Webhook deliveries carry signature headers and raw
payloads, so the default pipeline masks secrets and truncates long values.

Usage:
    from infrastructure.logging.formatters import add_app_info, mask_sensitive_data
"""

from typing import Any


def add_app_info(app_name: str, app_version: str = "unknown"):
    """Create a processor that adds application info to log entries.

    Args:
        app_name: Name of the application.
        app_version: Version string for the application (usually the git sha).

    Returns:
        A structlog processor function.
    """

    def processor(
        logger: Any, method_name: str, event_dict: dict[str, Any]
    ) -> dict[str, Any]:
        event_dict["app_name"] = app_name
        event_dict["app_version"] = app_version
        return event_dict

    return processor


# Key fragments whose values are masked in logs
SENSITIVE_PATTERNS = frozenset(
    {
        "password",
        "secret",
        "token",
        "api_key",
        "apikey",
        "authorization",
        "credential",
        "private_key",
        "cookie",
        "bearer",
        "signature",
        "hmac",
    }
)


def _is_sensitive(key: str, patterns: frozenset[str]) -> bool:
    key_lower = key.lower()
    return any(pattern in key_lower for pattern in patterns)


def mask_sensitive_data(
    mask_value: str = "***REDACTED***",
    additional_patterns: frozenset[str] | None = None,
):
    """Create a processor that masks sensitive data in log entries.

    Values of keys containing a sensitive pattern are replaced, matched
    case-insensitively. Dict values (e.g. logged webhook headers) are masked
    one level deep so a ``headers`` field keeps its non-secret entries.

    Args:
        mask_value: The string to replace sensitive values with.
        additional_patterns: Extra patterns to consider sensitive.

    Returns:
        A structlog processor function.

    Example:
        configure_logging(
            extra_processors=[mask_sensitive_data(additional_patterns={"store_key"})]
        )
    """
    patterns = SENSITIVE_PATTERNS
    if additional_patterns:
        patterns = patterns | additional_patterns

    def processor(
        logger: Any, method_name: str, event_dict: dict[str, Any]
    ) -> dict[str, Any]:
        masked_dict: dict[str, Any] = {}
        for key, value in event_dict.items():
            if value is not None and _is_sensitive(key, patterns):
                masked_dict[key] = mask_value
            elif isinstance(value, dict):
                masked_dict[key] = {
                    k: (
                        mask_value
                        if v is not None and _is_sensitive(str(k), patterns)
                        else v
                    )
                    for k, v in value.items()
                }
            else:
                masked_dict[key] = value
        return masked_dict

    return processor


def truncate_large_values(max_length: int = 500):
    """Create a processor that truncates overly large string values.

    Keeps raw webhook payloads that end up in error messages from flooding
    the log stream.

    Args:
        max_length: Maximum string length before truncation.

    Returns:
        A structlog processor function.
    """

    def processor(
        logger: Any, method_name: str, event_dict: dict[str, Any]
    ) -> dict[str, Any]:
        for key, value in event_dict.items():
            if isinstance(value, bytes):
                value = value.decode("utf-8", errors="replace")
                event_dict[key] = value
            if isinstance(value, str) and len(value) > max_length:
                event_dict[key] = (
                    value[:max_length] + f"...[truncated, {len(value)} chars total]"
                )
        return event_dict

    return processor
