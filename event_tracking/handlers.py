"""Lambda entrypoints and the process-wide RuntimeContext.

This module is the composition root: it owns the single RuntimeContext of
the execution environment and hands it explicitly to the pipelines.

- consume_events: SQS-triggered consumer that persists tracked events
- tracked: decorator for business handlers, publishing through the shared runtime
- lambda_entrypoint: runs an async handler from Lambda's synchronous interface
"""

from __future__ import annotations

import asyncio
import functools
from collections.abc import Callable, Mapping
from typing import Any

import structlog

from event_tracking.core.config import get_settings
from event_tracking.core.logging import configure_structlog, invocation_context
from event_tracking.ingestion.validation import QueueMessage
from event_tracking.runtime import RuntimeContext
from event_tracking.tracking.wrapper import Handler, Overrides, track_event

logger = structlog.get_logger(__name__)


@functools.lru_cache
def get_runtime() -> RuntimeContext:
    """Build the environment's RuntimeContext on first call, then reuse it."""
    settings = get_settings()
    configure_structlog(settings.log_level, json_logs=settings.log_json, service=settings.app_name)
    return RuntimeContext.from_settings(settings)


def tracked(
    entity_type: str,
    event_type: str,
    overrides: Overrides | None = None,
) -> Callable[[Handler], Handler]:
    """track_event bound to the shared runtime's publisher.

    The runtime is resolved on the first successful call, so decorating at
    import time does not create any clients.
    """
    return track_event(
        entity_type,
        event_type,
        publisher=lambda: get_runtime().publisher,
        overrides=overrides,
        propagate_durable_failures=get_settings().propagate_durable_failures,
    )


def lambda_entrypoint(handler: Handler) -> Callable[[Any, Any], Any]:
    """Expose an async ``(event, context)`` handler as a synchronous Lambda handler."""

    @functools.wraps(handler)
    def entrypoint(event: Any, context: Any = None) -> Any:
        return asyncio.run(handler(event, context))

    return entrypoint


async def process_sqs_event(
    event: Mapping[str, Any],
    context: Any,
    runtime: RuntimeContext,
) -> dict[str, int]:
    """Run one SQS delivery through the ingestion pipeline.

    PersistenceFailure propagates so the whole delivery is retried and,
    after maxReceiveCount attempts, moved to the dead-letter queue.
    Database connections are released whatever the outcome.
    """
    with invocation_context(context, records=len(event.get("Records", []))):
        try:
            messages = [QueueMessage.from_sqs_record(record) for record in event.get("Records", [])]
            pipeline = await runtime.ingestion_pipeline()
            result = await pipeline.process_batch(messages)
            return {
                "received": result.received,
                "valid": result.valid,
                "dropped": result.dropped,
                "inserted": result.inserted,
            }
        except Exception as exc:
            logger.error("sqs_batch_failed", error=str(exc), error_type=type(exc).__name__)
            raise
        finally:
            await runtime.release_connections()


def consume_events(event: Mapping[str, Any], context: Any = None) -> dict[str, int]:
    """SQS event source handler."""
    return asyncio.run(process_sqs_event(event, context, get_runtime()))
