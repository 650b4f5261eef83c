"""Database credential resolution.

The database URL comes either straight from settings or from a Secrets
Manager secret shaped like the RDS-generated one::

    {"username": ..., "password": ..., "host": ..., "port": 5432, "dbname": ...}
"""

from __future__ import annotations

import asyncio
import json

import boto3
import structlog
from botocore.exceptions import BotoCoreError, ClientError
from sqlalchemy.engine import URL

from event_tracking.core.config import Settings
from event_tracking.core.exceptions import ConfigurationError

logger = structlog.get_logger(__name__)

_REQUIRED_KEYS = ("username", "password", "host", "dbname")


def database_url_from_secret(secret: dict) -> str:
    """Render an asyncpg SQLAlchemy URL from an RDS credentials secret."""
    missing = [key for key in _REQUIRED_KEYS if not secret.get(key)]
    if missing:
        raise ConfigurationError(f"Database secret is missing keys: {', '.join(missing)}")

    url = URL.create(
        "postgresql+asyncpg",
        username=secret["username"],
        password=secret["password"],
        host=secret["host"],
        port=int(secret.get("port") or 5432),
        database=secret["dbname"],
    )
    return url.render_as_string(hide_password=False)


def _fetch_secret(secret_arn: str, region: str) -> dict:
    """Blocking Secrets Manager lookup. Runs in a thread via asyncio.to_thread()."""
    client = boto3.client("secretsmanager", region_name=region)
    response = client.get_secret_value(SecretId=secret_arn)
    secret_string = response.get("SecretString")
    if not secret_string:
        raise ConfigurationError(f"Secret {secret_arn} has no SecretString")
    return json.loads(secret_string)


async def resolve_database_url(settings: Settings) -> str:
    """Return the database URL, looking it up in Secrets Manager when needed.

    Raises ConfigurationError when neither DATABASE_URL nor DB_SECRET_ARN is set,
    or when the secret cannot be read.
    """
    if settings.database_url:
        return settings.database_url

    if not settings.db_secret_arn:
        raise ConfigurationError("DATABASE_URL or DB_SECRET_ARN environment variable is required")

    try:
        secret = await asyncio.to_thread(_fetch_secret, settings.db_secret_arn, settings.aws_region)
    except (BotoCoreError, ClientError, json.JSONDecodeError) as exc:
        logger.error("db_secret_lookup_failed", secret_arn=settings.db_secret_arn, error=str(exc))
        raise ConfigurationError(f"Could not read database secret {settings.db_secret_arn}") from exc

    logger.info("db_secret_resolved", secret_arn=settings.db_secret_arn, host=secret.get("host"))
    return database_url_from_secret(secret)
