"""Field extraction from heterogeneous inbound requests.

A request can arrive as an API Gateway proxy event (headers, query string,
JSON body, authorizer context), as a plain worker invocation (fields at the
top level), or as an HTTP request adapted by an integration. All of them are
normalised into InboundRequest, then probed by an ordered list of named
accessors. The first accessor that yields a non-empty string wins.

Extraction is best-effort: it never raises.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

import structlog

logger = structlog.get_logger(__name__)

CLIENT_ID_HEADERS = ("x-client-id", "client-id")
PREVIOUS_EVENT_ID_HEADERS = ("x-previous-event-id", "previous-event-id")


@dataclass(frozen=True)
class InboundRequest:
    """Normalised view of a business-handler invocation."""

    headers: Mapping[str, Any] | None = None
    query: Mapping[str, Any] | None = None
    body: str | Mapping[str, Any] | None = None
    identity: Mapping[str, Any] | None = None
    fields: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_invocation(cls, event: Mapping[str, Any] | None) -> InboundRequest:
        """Build from a Lambda-style invocation payload.

        ``requestContext.authorizer`` becomes the identity context; every
        top-level key stays reachable as a direct field.
        """
        if not isinstance(event, Mapping):
            return cls()

        request_context = event.get("requestContext")
        identity = None
        if isinstance(request_context, Mapping):
            authorizer = request_context.get("authorizer")
            if isinstance(authorizer, Mapping):
                identity = authorizer

        headers = event.get("headers")
        query = event.get("queryStringParameters")
        body = event.get("body")
        return cls(
            headers=headers if isinstance(headers, Mapping) else None,
            query=query if isinstance(query, Mapping) else None,
            body=body if isinstance(body, (str, Mapping)) else None,
            identity=identity,
            fields=event,
        )


Accessor = Callable[[InboundRequest, str], str | None]


def _non_empty(value: Any) -> str | None:
    if isinstance(value, str) and value:
        return value
    return None


def _header(names: tuple[str, ...]) -> Accessor:
    def lookup(request: InboundRequest, key: str) -> str | None:
        if not request.headers:
            return None
        for header_name, value in request.headers.items():
            if isinstance(header_name, str) and header_name.lower() in names:
                found = _non_empty(value)
                if found:
                    return found
        return None

    return lookup


def _query(request: InboundRequest, key: str) -> str | None:
    if not request.query:
        return None
    return _non_empty(request.query.get(key))


def parse_body(body: str | Mapping[str, Any] | None) -> Mapping[str, Any] | None:
    """Decode a request body into a mapping. Undecodable or non-object bodies give None."""
    if body is None:
        return None
    if isinstance(body, Mapping):
        return body
    if not body:
        return None
    try:
        decoded = json.loads(body)
    except (TypeError, ValueError):
        logger.debug("request_body_not_json")
        return None
    return decoded if isinstance(decoded, Mapping) else None


def _body(request: InboundRequest, key: str) -> str | None:
    parsed = parse_body(request.body)
    if parsed is None:
        return None
    return _non_empty(parsed.get(key))


def _identity(request: InboundRequest, key: str) -> str | None:
    if not request.identity:
        return None
    return _non_empty(request.identity.get(key))


def _direct(request: InboundRequest, key: str) -> str | None:
    return _non_empty(request.fields.get(key))


# Priority order is fixed: headers > query > body > identity > direct fields
CLIENT_ID_SOURCES: list[tuple[str, Accessor]] = [
    ("header", _header(CLIENT_ID_HEADERS)),
    ("query", _query),
    ("body", _body),
    ("identity", _identity),
    ("direct", _direct),
]

# Same order without the identity context
PREVIOUS_EVENT_ID_SOURCES: list[tuple[str, Accessor]] = [
    ("header", _header(PREVIOUS_EVENT_ID_HEADERS)),
    ("query", _query),
    ("body", _body),
    ("direct", _direct),
]


def _first_match(request: InboundRequest, key: str, sources: list[tuple[str, Accessor]]) -> str | None:
    for source_name, accessor in sources:
        value = accessor(request, key)
        if value:
            logger.debug("request_field_extracted", field=key, source=source_name)
            return value
    return None


def extract_client_id(request: InboundRequest, context: Any = None) -> str | None:
    """Return the client id from the highest-priority source that has one, else None.

    ``context`` is the invocation context; it is accepted for handler-shaped
    call sites and is not consulted.
    """
    return _first_match(request, "clientId", CLIENT_ID_SOURCES)


def extract_previous_event_id(request: InboundRequest) -> str | None:
    """Return the causal predecessor id, or None when this event starts a journey."""
    return _first_match(request, "previousEventId", PREVIOUS_EVENT_ID_SOURCES)
