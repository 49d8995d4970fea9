"""Downstream webhook processor settings."""

from pydantic import Field

from infrastructure.configuration.base import InfrastructureSettings


class ProcessorSettings(InfrastructureSettings):
    """Configuration for the HTTP processor that handles webhook deliveries.

    Environment Variables:
        WEBHOOK_PROCESSOR_URL: Downstream URL receiving re-posted webhooks
        WEBHOOK_PROCESSOR_TIMEOUT_SECONDS: Request timeout (default: 10)

    Example:
        ```python
        from infrastructure.services import get_settings

        settings = get_settings()

        url = settings.processor.WEBHOOK_PROCESSOR_URL
        ```
    """

    WEBHOOK_PROCESSOR_URL: str = Field(
        default="http://127.0.0.1:8080/webhooks", alias="WEBHOOK_PROCESSOR_URL"
    )
    WEBHOOK_PROCESSOR_TIMEOUT_SECONDS: float = Field(
        default=10.0, alias="WEBHOOK_PROCESSOR_TIMEOUT_SECONDS"
    )
