"""Webhook retry module.

Captures failed webhook deliveries, re-delivers them on a backoff schedule,
dead-letters the ones that exhaust their attempts and exposes the manual
review and health operations used by the admin API.
"""

from modules.webhook_retry.service import WebhookRetryService

__all__ = ["WebhookRetryService"]
