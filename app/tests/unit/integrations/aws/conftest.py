"""Fixtures for AWS integrations tests.

Level: Component-level fixtures for AWS integrations
"""

from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError


@pytest.fixture
def mock_aws_client():
    """Boto3 client returned by get_aws_client."""
    client = MagicMock()
    client.can_paginate.return_value = False
    with patch("integrations.aws.client_next.get_aws_client", return_value=client):
        yield client


@pytest.fixture
def no_sleep():
    with patch("integrations.aws.client_next.time.sleep") as mock_sleep:
        yield mock_sleep


@pytest.fixture
def make_client_error():
    def _make(code, operation="PutItem"):
        return ClientError({"Error": {"Code": code, "Message": code}}, operation)

    return _make
