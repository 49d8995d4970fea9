"""Shared fixtures for the webhook retry test suite.

Level: Session-wide fixtures (clock, stores, processors, factories)
"""

import pytest

from infrastructure.resilience.retry import (
    InMemoryDeadLetterStore,
    InMemoryRetryStore,
    RetryConfig,
)
from infrastructure.services import providers
from tests.factories import make_dead_letter_entry, make_retry_entry
from tests.fakes import FakeClock, FakeProcessor


@pytest.fixture(autouse=True)
def clear_provider_caches():
    """Drop cached settings and services so env changes apply per test."""
    yield
    for provider in (
        providers.get_settings,
        providers.get_retry_config,
        providers.get_retry_stores,
        providers.get_retry_metrics,
        providers.get_webhook_processor,
        providers.get_webhook_retry_service,
    ):
        provider.cache_clear()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def processor():
    return FakeProcessor()


@pytest.fixture
def retry_config():
    return RetryConfig(
        max_attempts=5,
        backoff_schedule=[60, 300, 900, 3600, 21600],
        batch_size=50,
        claim_lease_seconds=300,
    )


@pytest.fixture
def retry_store():
    return InMemoryRetryStore()


@pytest.fixture
def dead_letter_store():
    return InMemoryDeadLetterStore()


@pytest.fixture
def retry_entry_factory():
    return make_retry_entry


@pytest.fixture
def dead_letter_entry_factory():
    return make_dead_letter_entry
