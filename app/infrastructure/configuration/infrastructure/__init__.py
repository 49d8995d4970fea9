"""Infrastructure settings __init__ - exports all infrastructure settings."""

from infrastructure.configuration.infrastructure.processor import ProcessorSettings
from infrastructure.configuration.infrastructure.retry import WebhookRetrySettings
from infrastructure.configuration.infrastructure.server import ServerSettings

__all__ = [
    "ProcessorSettings",
    "WebhookRetrySettings",
    "ServerSettings",
]
