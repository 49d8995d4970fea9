"""Infrastructure configuration module - public API.

This module provides centralized configuration management for the webhook
retry service using Pydantic BaseSettings with domain-based organization.

Exports:
    Settings: Main settings class (for testing/overrides)
    WebhookRetrySettings: Retry system settings class (for testing)

Example:
    ```python
    from infrastructure.services import get_settings

    settings = get_settings()

    aws_region = settings.aws.AWS_REGION
    retry_enabled = settings.retry.enabled
    ```
"""

from infrastructure.configuration.settings import Settings
from infrastructure.configuration.infrastructure.retry import WebhookRetrySettings

__all__ = ["Settings", "WebhookRetrySettings"]
