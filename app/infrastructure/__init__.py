"""Infrastructure modules for the webhook retry service.

Centralized infrastructure components:
- configuration: Settings management (Settings, WebhookRetrySettings)
- logging: Structured logging (configure_logging, get_module_logger)
- operations: Operation results and error classification
- resilience: Persisted retry queue, dead-letter store and retry worker
- services: Dependency injection providers (get_settings, SettingsDep, ...)
"""
