"""Fixtures for the HTTP layer.

Level: API tests run against a test app with settings and the retry service
overridden, so no AWS or environment configuration is needed.
"""

import pytest
from fastapi.testclient import TestClient

from api.dependencies.rate_limits import get_limiter
from api.router import api_router
from infrastructure.configuration import Settings
from infrastructure.configuration.infrastructure import ServerSettings
from infrastructure.services.providers import get_settings, get_webhook_retry_service
from modules.webhook_retry.service import WebhookRetryService
from utils.tests import create_test_app

CRON_SECRET = "cron-secret"
ADMIN_TOKEN = "admin-token"


@pytest.fixture(autouse=True)
def reset_rate_limits():
    get_limiter().reset()
    yield
    get_limiter().reset()


@pytest.fixture
def api_settings():
    return Settings(
        PREFIX="test-",
        GIT_SHA="abc123",
        server=ServerSettings(CRON_SECRET=CRON_SECRET, ADMIN_API_TOKEN=ADMIN_TOKEN),
    )


@pytest.fixture
def api_service(retry_store, dead_letter_store, processor, retry_config, clock):
    return WebhookRetryService(
        retry_store=retry_store,
        dead_letter_store=dead_letter_store,
        processor=processor,
        config=retry_config,
        clock=clock,
    )


@pytest.fixture
def client(api_settings, api_service):
    app = create_test_app(
        api_router,
        dependency_overrides={
            get_settings: lambda: api_settings,
            get_webhook_retry_service: lambda: api_service,
        },
    )
    return TestClient(app)


@pytest.fixture
def cron_headers():
    return {"Authorization": f"Bearer {CRON_SECRET}"}


@pytest.fixture
def admin_headers():
    return {"Authorization": f"Bearer {ADMIN_TOKEN}", "X-Admin-User": "alice"}
