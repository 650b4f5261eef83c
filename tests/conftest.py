"""Shared test fixtures for all test groups."""

import uuid
from unittest.mock import MagicMock

import pytest

from event_tracking.publishing.bus import BusSink
from event_tracking.publishing.publisher import EventPublisher
from event_tracking.publishing.queue import QueueSink
from event_tracking.schemas.event import EventRecord

QUEUE_URL = "https://sqs.us-east-1.amazonaws.com/123456789012/events-queue"
BUS_NAME = "event-tracking-bus"


def make_record(**overrides) -> EventRecord:
    """EventRecord with sensible defaults; keyword overrides use attribute names."""
    data = {
        "event_id": str(uuid.uuid4()),
        "client_id": "client_123",
        "previous_event_id": None,
        "entity_type": "user",
        "event_type": "user_created",
        "occurred_at": "2026-10-16T12:00:00.000Z",
    }
    data.update(overrides)
    return EventRecord(**data)


@pytest.fixture
def record_factory():
    return make_record


@pytest.fixture
def sqs_client():
    """Fake boto3 SQS client that accepts everything."""
    client = MagicMock()
    client.send_message = MagicMock(return_value={"MessageId": "msg-001"})

    def _send_batch(QueueUrl, Entries):
        return {"Successful": [{"Id": e["Id"], "MessageId": f"msg-{e['Id']}"} for e in Entries], "Failed": []}

    client.send_message_batch = MagicMock(side_effect=_send_batch)
    return client


@pytest.fixture
def events_client():
    """Fake boto3 EventBridge client that accepts everything."""
    client = MagicMock()

    def _put_events(Entries):
        return {"FailedEntryCount": 0, "Entries": [{"EventId": f"eb-{i}"} for i in range(len(Entries))]}

    client.put_events = MagicMock(side_effect=_put_events)
    return client


@pytest.fixture
def queue_sink(sqs_client):
    return QueueSink(client=sqs_client, queue_url=QUEUE_URL)


@pytest.fixture
def bus_sink(events_client):
    return BusSink(client=events_client, bus_name=BUS_NAME)


@pytest.fixture
def publisher(queue_sink, bus_sink):
    return EventPublisher(queue_sink=queue_sink, bus_sink=bus_sink)
