"""Fixtures for server module unit tests."""

from unittest.mock import MagicMock

import pytest

from infrastructure.configuration import Settings
from infrastructure.configuration.infrastructure import (
    ServerSettings,
    WebhookRetrySettings,
)


@pytest.fixture
def server_settings():
    """Settings for a non-production deployment with the scheduler enabled."""
    return Settings(
        PREFIX="dev-",
        server=ServerSettings(ALLOWED_ORIGINS="https://admin.example.com"),
        retry=WebhookRetrySettings(RETRY_SCHEDULER_ENABLED=True),
    )


@pytest.fixture
def mock_retry_service():
    return MagicMock(name="WebhookRetryService")
