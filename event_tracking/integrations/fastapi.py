"""FastAPI integration: request adaptation and correlation IDs.

Provides:
- inbound_request_from: turn a Starlette Request into an InboundRequest so
  HTTP routes use the same field extraction as Lambda handlers
- setup_correlation_middleware: X-Request-ID propagation, picked up by the
  structlog correlation_id processor
"""

import uuid

from asgi_correlation_id import CorrelationIdMiddleware
from fastapi import FastAPI, Request

from event_tracking.tracking.extractor import InboundRequest


async def inbound_request_from(request: Request) -> InboundRequest:
    """Build an InboundRequest from an HTTP request.

    The body is passed on as text and decoded lazily by the extractor.
    Authenticated identity is read from ``request.state.identity`` when an
    auth dependency or middleware has set it.
    """
    raw_body = await request.body()
    identity = getattr(request.state, "identity", None)
    return InboundRequest(
        headers=dict(request.headers),
        query=dict(request.query_params),
        body=raw_body.decode("utf-8", errors="replace") if raw_body else None,
        identity=identity if isinstance(identity, dict) else None,
        fields=dict(request.path_params),
    )


def setup_correlation_middleware(app: FastAPI) -> None:
    """Add correlation ID middleware to FastAPI app.

    Adds X-Request-ID header to every response. If client sends X-Request-ID,
    it's echoed back. Otherwise, a new UUID is generated.
    """
    app.add_middleware(
        CorrelationIdMiddleware,
        header_name="X-Request-ID",
        generator=lambda: str(uuid.uuid4()),
        validator=None,  # Accept any format
        transformer=lambda a: a,  # No transformation
    )


__all__ = ["inbound_request_from", "setup_correlation_middleware"]
