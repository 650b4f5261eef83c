"""Tests for database URL resolution."""

import json
from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError

from event_tracking.core.config import Settings
from event_tracking.core.exceptions import ConfigurationError
from event_tracking.core.secrets import database_url_from_secret, resolve_database_url

pytestmark = pytest.mark.unit

SECRET = {"username": "relay", "password": "p@ss", "host": "db.internal", "port": 5433, "dbname": "events"}


def test_url_from_secret():
    url = database_url_from_secret(SECRET)
    assert url.startswith("postgresql+asyncpg://relay:")
    assert url.endswith("@db.internal:5433/events")


def test_url_from_secret_defaults_port():
    url = database_url_from_secret({**SECRET, "port": None})
    assert ":5432/events" in url


def test_url_from_secret_missing_keys():
    with pytest.raises(ConfigurationError, match="host"):
        database_url_from_secret({"username": "u", "password": "p", "dbname": "d"})


async def test_explicit_url_skips_secret_lookup():
    with patch("event_tracking.core.secrets.boto3") as boto3_mock:
        url = await resolve_database_url(Settings(database_url="postgresql+asyncpg://x/y", db_secret_arn="arn"))

    assert url == "postgresql+asyncpg://x/y"
    boto3_mock.client.assert_not_called()


async def test_secret_lookup():
    client = MagicMock()
    client.get_secret_value.return_value = {"SecretString": json.dumps(SECRET)}

    with patch("event_tracking.core.secrets.boto3.client", return_value=client):
        url = await resolve_database_url(Settings(database_url="", db_secret_arn="arn:secret"))

    client.get_secret_value.assert_called_once_with(SecretId="arn:secret")
    assert url.endswith("@db.internal:5433/events")


async def test_secret_lookup_error_becomes_configuration_error():
    client = MagicMock()
    client.get_secret_value.side_effect = ClientError(
        {"Error": {"Code": "AccessDeniedException", "Message": "denied"}}, "GetSecretValue"
    )

    with patch("event_tracking.core.secrets.boto3.client", return_value=client):
        with pytest.raises(ConfigurationError, match="arn:secret"):
            await resolve_database_url(Settings(database_url="", db_secret_arn="arn:secret"))


async def test_nothing_configured():
    with pytest.raises(ConfigurationError, match="DATABASE_URL"):
        await resolve_database_url(Settings(database_url="", db_secret_arn=""))
