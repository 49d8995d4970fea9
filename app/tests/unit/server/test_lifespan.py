"""Unit tests for application startup and shutdown."""

import threading
from unittest.mock import MagicMock, patch

import pytest
from fastapi import FastAPI

from infrastructure.configuration import Settings
from infrastructure.configuration.infrastructure import WebhookRetrySettings
from server import lifespan as lifespan_module


@pytest.mark.unit
@pytest.mark.asyncio
async def test_lifespan_sets_app_state(server_settings, mock_retry_service):
    app = FastAPI()

    with patch.object(
        lifespan_module, "get_settings", return_value=server_settings
    ), patch.object(
        lifespan_module, "get_webhook_retry_service", return_value=mock_retry_service
    ):
        async with lifespan_module.lifespan(app):
            assert app.state.settings is server_settings
            assert app.state.webhook_retry_service is mock_retry_service
            assert app.state.logger is not None
            # Never started under pytest
            assert app.state.scheduled_stop_event is None


@pytest.mark.unit
def test_scheduler_skipped_when_disabled(mock_retry_service):
    settings = Settings(retry=WebhookRetrySettings(RETRY_SCHEDULER_ENABLED=False))
    logger = MagicMock()

    with patch.object(lifespan_module, "scheduled_tasks") as mock_tasks:
        result = lifespan_module._start_scheduled_tasks(settings, logger)

    assert result is None
    mock_tasks.init.assert_not_called()
    logger.info.assert_called_with("scheduled_tasks_skipped", reason="scheduler_disabled")


@pytest.mark.unit
def test_scheduler_started_outside_tests(server_settings, mock_retry_service):
    logger = MagicMock()
    stop_event = threading.Event()

    with patch.object(
        lifespan_module, "_is_test_environment", return_value=False
    ), patch.object(
        lifespan_module, "get_webhook_retry_service", return_value=mock_retry_service
    ), patch.object(
        lifespan_module, "scheduled_tasks"
    ) as mock_tasks:
        mock_tasks.run_continuously.return_value = stop_event
        result = lifespan_module._start_scheduled_tasks(server_settings, logger)

    assert result is stop_event
    mock_tasks.init.assert_called_once_with(mock_retry_service, server_settings)


@pytest.mark.unit
def test_stop_scheduled_tasks_sets_event():
    stop_event = threading.Event()

    lifespan_module._stop_scheduled_tasks(stop_event)
    lifespan_module._stop_scheduled_tasks(None)

    assert stop_event.is_set()
