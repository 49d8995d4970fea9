"""
Dependency injection services.

Provides type aliases and provider functions for FastAPI dependency injection.
"""

from infrastructure.services.dependencies import (
    SettingsDep,
    WebhookRetryServiceDep,
)
from infrastructure.services.providers import (
    get_settings,
    get_webhook_retry_service,
)

__all__ = [
    "SettingsDep",
    "WebhookRetryServiceDep",
    "get_settings",
    "get_webhook_retry_service",
]
