"""
Factory functions for dependency injection.

Provides application-scoped singleton providers for core infrastructure services.

Service imports happen inside the provider functions: the logging setup
resolves settings through this module, and every service module logs.
"""

from datetime import timedelta
from functools import lru_cache
from typing import TYPE_CHECKING, Tuple

from infrastructure.configuration import Settings

if TYPE_CHECKING:  # avoid runtime import cycles for typing
    from infrastructure.observability.metrics import RetryMetrics
    from infrastructure.resilience.retry import (
        DeadLetterStore,
        RetryConfig,
        RetryStore,
        WebhookProcessor,
    )
    from modules.webhook_retry import WebhookRetryService


@lru_cache
def get_settings() -> Settings:
    """
    Get application-scoped settings singleton.

    This is the single source of truth for settings across the entire application.
    The @lru_cache decorator ensures only ONE instance is created per process,
    even if called from multiple packages.

    Infrastructure packages should use this directly to ensure singleton consistency:
        from infrastructure.services.providers import get_settings
        settings = get_settings()

    Application code should use the DI type alias for testability:
        from infrastructure.services import SettingsDep
        @router.get("/config")
        def get_config(settings: SettingsDep):
            return settings.retry.model_dump()

    Returns:
        Settings: Cached settings instance loaded from environment.
    """
    return Settings()


@lru_cache
def get_retry_config() -> "RetryConfig":
    """Validated RetryConfig built from ``settings.retry``.

    Raises:
        ValueError: If the configured schedule or limits are invalid
    """
    from infrastructure.resilience.retry import create_retry_config

    return create_retry_config(get_settings().retry)


@lru_cache
def get_retry_stores() -> Tuple["RetryStore", "DeadLetterStore"]:
    """Retry queue and dead-letter stores for the configured backend.

    Cached so the in-memory backend keeps one queue per process.
    """
    from infrastructure.resilience.retry import create_retry_stores

    return create_retry_stores(get_settings().retry)


@lru_cache
def get_retry_metrics() -> "RetryMetrics":
    from infrastructure.observability.metrics import RetryMetrics

    return RetryMetrics(enabled=get_settings().retry.metrics_enabled)


@lru_cache
def get_webhook_processor() -> "WebhookProcessor":
    """HTTP processor forwarding webhooks to ``WEBHOOK_PROCESSOR_URL``."""
    from modules.webhook_retry.processing import HttpForwardProcessor

    processor_settings = get_settings().processor
    return HttpForwardProcessor(
        url=processor_settings.WEBHOOK_PROCESSOR_URL,
        timeout=processor_settings.WEBHOOK_PROCESSOR_TIMEOUT_SECONDS,
    )


@lru_cache
def get_webhook_retry_service() -> "WebhookRetryService":
    """
    Get application-scoped webhook retry service singleton.

    Returns:
        WebhookRetryService: Service wired with the configured stores,
        processor, metrics and health thresholds.

    Usage:
        @router.post("/cron/webhook-retry")
        def run(service: WebhookRetryServiceDep):
            return service.process_retry_queue().to_dict()
    """
    from modules.webhook_retry import WebhookRetryService
    from modules.webhook_retry.models import HealthThresholds

    retry_settings = get_settings().retry
    retry_store, dead_letter_store = get_retry_stores()
    return WebhookRetryService(
        retry_store=retry_store,
        dead_letter_store=dead_letter_store,
        processor=get_webhook_processor(),
        config=get_retry_config(),
        thresholds=HealthThresholds(
            max_queue_size=retry_settings.health_max_queue_size,
            max_dlq_size=retry_settings.health_max_dlq_size,
            max_unreviewed=retry_settings.health_max_unreviewed,
            max_age=timedelta(hours=retry_settings.health_max_age_hours),
        ),
        metrics=get_retry_metrics(),
    )
