"""Dispatch Wrapper: tracks successful business-handler invocations.

Usage:
    publisher = runtime.publisher

    @track_event("user", "user_created", publisher=publisher)
    async def create_user(request, context):
        ...

The wrapped handler keeps its signature and return value. Failed handlers
are never tracked; publish problems never change the business response,
except that a failed queue send (DurablePublishFailure) propagates by default
so the platform's retry policy can run the invocation again.
"""

from __future__ import annotations

import functools
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, Protocol

import structlog

from event_tracking.core.exceptions import DurablePublishFailure
from event_tracking.schemas.event import EventRecord
from event_tracking.tracking.builder import BuildFailure, build_event
from event_tracking.tracking.extractor import InboundRequest

logger = structlog.get_logger(__name__)

Handler = Callable[[Any, Any], Awaitable[Any]]
# Static overrides, or a callable computing them from (request, context, result)
Overrides = Mapping[str, Any] | Callable[[Any, Any, Any], Mapping[str, Any] | None]


class SupportsPublish(Protocol):
    async def publish(self, record: EventRecord) -> None: ...


def _resolve_publisher(publisher: SupportsPublish | Callable[[], SupportsPublish]) -> SupportsPublish:
    # A zero-arg factory lets entrypoints decorate at import time and build clients lazily
    if hasattr(publisher, "publish"):
        return publisher
    return publisher()


def _as_inbound(request: Any) -> InboundRequest:
    if isinstance(request, InboundRequest):
        return request
    return InboundRequest.from_invocation(request)


def track_event(
    entity_type: str,
    event_type: str,
    *,
    publisher: SupportsPublish | Callable[[], SupportsPublish],
    overrides: Overrides | None = None,
    propagate_durable_failures: bool = True,
) -> Callable[[Handler], Handler]:
    """Decorator factory that publishes one tracked event per successful call.

    Args:
        entity_type: Coarse category, e.g. "user"
        event_type: Specific action, e.g. "user_created"
        publisher: EventPublisher (or factory returning one)
        overrides: Extra record fields, or callable(request, context, result) returning them
        propagate_durable_failures: Re-raise DurablePublishFailure out of the wrapper
    """

    def decorator(handler: Handler) -> Handler:
        @functools.wraps(handler)
        async def wrapper(request: Any, context: Any = None) -> Any:
            # Exceptions from the business handler propagate untouched; nothing is tracked
            result = await handler(request, context)

            try:
                extra = overrides(request, context, result) if callable(overrides) else overrides
                built = build_event(entity_type, event_type, _as_inbound(request), context, extra)
            except Exception as exc:
                logger.warning(
                    "tracked_event_skipped",
                    handler=handler.__name__,
                    reason="OverridesFailed",
                    entity_type=entity_type,
                    event_type=event_type,
                    error=str(exc),
                    error_type=type(exc).__name__,
                )
                return result

            if isinstance(built, BuildFailure):
                logger.warning(
                    "tracked_event_skipped",
                    handler=handler.__name__,
                    reason=built.kind.value,
                    entity_type=entity_type,
                    event_type=event_type,
                )
                return result

            try:
                await _resolve_publisher(publisher).publish(built)
            except DurablePublishFailure:
                if propagate_durable_failures:
                    raise
                logger.error(
                    "tracked_event_durable_publish_failed",
                    handler=handler.__name__,
                    event_id=built.event_id,
                    routing_key=built.routing_key,
                )
            except Exception as exc:
                logger.error(
                    "tracked_event_publish_failed",
                    handler=handler.__name__,
                    event_id=built.event_id,
                    routing_key=built.routing_key,
                    error=str(exc),
                    error_type=type(exc).__name__,
                )

            return result

        return wrapper

    return decorator
