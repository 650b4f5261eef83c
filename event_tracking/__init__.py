"""Tracked-event relay: dual publish to SQS + EventBridge, idempotent ingestion into PostgreSQL."""

__version__ = "0.1.0"
