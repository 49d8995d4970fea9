"""
Type aliases for FastAPI dependency injection.

Provides annotated type hints for common infrastructure dependencies.
"""

from typing import Annotated
from fastapi import Depends
from infrastructure.configuration import Settings
from infrastructure.services.providers import (
    get_settings,
    get_webhook_retry_service,
)
from modules.webhook_retry import WebhookRetryService

# Settings dependency
SettingsDep = Annotated[Settings, Depends(get_settings)]

# Webhook retry service dependency
# Usage: service.process_retry_queue(), service.list_dlq_entries(...), etc.
WebhookRetryServiceDep = Annotated[
    WebhookRetryService, Depends(get_webhook_retry_service)
]

__all__ = [
    "SettingsDep",
    "WebhookRetryServiceDep",
]
