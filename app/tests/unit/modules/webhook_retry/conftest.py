"""Fixtures for webhook retry module tests."""

import pytest

from modules.webhook_retry.capture import WebhookRetryCapture
from modules.webhook_retry.dead_letter import DeadLetterManager
from modules.webhook_retry.manual import ManualOperations
from modules.webhook_retry.service import WebhookRetryService


@pytest.fixture
def capture(retry_store, retry_config, clock):
    return WebhookRetryCapture(retry_store, retry_config, clock=clock)


@pytest.fixture
def dead_letters(dead_letter_store, clock):
    return DeadLetterManager(dead_letter_store, clock)


@pytest.fixture
def manual(dead_letter_store, capture, clock):
    return ManualOperations(dead_letter_store, capture, clock)


@pytest.fixture
def service(retry_store, dead_letter_store, processor, retry_config, clock):
    return WebhookRetryService(
        retry_store=retry_store,
        dead_letter_store=dead_letter_store,
        processor=processor,
        config=retry_config,
        clock=clock,
    )
