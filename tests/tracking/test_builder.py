"""Tests for build_event: defaults, overrides, and BuildFailure results."""

import json
import uuid
from datetime import UTC, datetime

import pytest

from event_tracking.schemas.event import parse_timestamp
from event_tracking.tracking.builder import BuildFailure, BuildFailureKind, build_event
from event_tracking.tracking.extractor import InboundRequest

pytestmark = pytest.mark.unit


def test_scenario_header_client_with_entity_override():
    """Header client id, JSON body without ids, entityId override."""
    request = InboundRequest(
        headers={"x-client-id": "client_123"},
        body=json.dumps({"email": "a@b.com"}),
    )

    record = build_event("user", "user_created", request, overrides={"entityId": "user_1"})

    assert not isinstance(record, BuildFailure)
    assert record.client_id == "client_123"
    assert record.previous_event_id is None
    assert record.entity_type == "user"
    assert record.event_type == "user_created"
    assert record.entity_id == "user_1"
    assert record.routing_key == "user.user_created"


def test_fresh_uuid4_and_current_timestamp():
    request = InboundRequest(fields={"clientId": "c1"})
    before = datetime.now(UTC)

    first = build_event("order", "order_placed", request)
    second = build_event("order", "order_placed", request)

    assert uuid.UUID(first.event_id).version == 4
    assert first.event_id != second.event_id
    occurred = parse_timestamp(first.occurred_at)
    assert occurred.tzinfo is not None
    assert (occurred - before).total_seconds() > -1


def test_missing_client_id_is_a_value_not_an_exception():
    result = build_event("user", "user_created", InboundRequest(body='{"email": "a@b.com"}'))

    assert isinstance(result, BuildFailure)
    assert result.kind == BuildFailureKind.MISSING_CLIENT_ID
    assert result.kind.value == "MissingClientId"


def test_previous_event_id_extracted_from_request():
    prev = str(uuid.uuid4())
    request = InboundRequest(headers={"x-client-id": "c1", "x-previous-event-id": prev})

    record = build_event("user", "user_updated", request)

    assert record.previous_event_id == prev


def test_overrides_win_over_computed_defaults():
    prev_from_request = str(uuid.uuid4())
    prev_override = str(uuid.uuid4())
    request = InboundRequest(headers={"x-client-id": "c1", "x-previous-event-id": prev_from_request})

    record = build_event(
        "payment",
        "payment_completed",
        request,
        overrides={
            "previousEventId": prev_override,
            "occurredAt": "2026-01-01T00:00:00Z",
            "userId": "u1",
            "source": "payment-service",
            "pointsAwarded": 12,
            "sessionId": "s1",
            "campaignId": "spring",
            "metadata": {"amount": 120, "currency": "USD"},
        },
    )

    assert record.previous_event_id == prev_override
    assert record.occurred_at == "2026-01-01T00:00:00Z"
    assert record.user_id == "u1"
    assert record.source == "payment-service"
    assert record.points_awarded == 12
    assert record.session_id == "s1"
    assert record.campaign_id == "spring"
    assert record.metadata == {"amount": 120, "currency": "USD"}


def test_snake_case_overrides_accepted():
    record = build_event("user", "user_created", InboundRequest(fields={"clientId": "c1"}), overrides={"entity_id": "e1"})
    assert record.entity_id == "e1"


def test_datetime_occurred_at_override_is_serialized():
    when = datetime(2026, 5, 1, 8, 30, tzinfo=UTC)
    record = build_event("user", "user_created", InboundRequest(fields={"clientId": "c1"}), overrides={"occurredAt": when})
    assert parse_timestamp(record.occurred_at) == when


def test_client_id_override_used_when_request_has_none():
    record = build_event("user", "user_created", InboundRequest(), overrides={"clientId": "explicit"})
    assert record.client_id == "explicit"


def test_unknown_override_keys_are_ignored():
    record = build_event("user", "user_created", InboundRequest(fields={"clientId": "c1"}), overrides={"colour": "blue"})
    assert not isinstance(record, BuildFailure)


def test_invalid_override_types_give_build_failure():
    result = build_event(
        "user",
        "user_created",
        InboundRequest(fields={"clientId": "c1"}),
        overrides={"metadata": ["not", "an", "object"]},
    )
    assert isinstance(result, BuildFailure)
    assert result.kind == BuildFailureKind.INVALID_OVERRIDES


def test_chain_of_two_builds():
    """Second build points at the first through previousEventId."""
    request = InboundRequest(headers={"x-client-id": "client_123"})

    first = build_event("user", "user_created", request)
    second = build_event("user", "user_verified", request, overrides={"previousEventId": first.event_id})

    assert first.previous_event_id is None
    assert second.previous_event_id == first.event_id
