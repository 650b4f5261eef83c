"""Tests for EventPublisher: concurrent dual publish with asymmetric failures."""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from event_tracking.core.exceptions import DurablePublishFailure, RealtimePublishFailure
from event_tracking.publishing.bus import EVENT_SOURCE
from event_tracking.publishing.publisher import EventPublisher
from event_tracking.schemas.event import EventRecord

pytestmark = pytest.mark.unit


async def test_publish_sends_to_queue_and_bus(publisher, sqs_client, events_client, record_factory):
    record = record_factory(entity_id="user_1")

    await publisher.publish(record)

    sqs_client.send_message.assert_called_once()
    body = json.loads(sqs_client.send_message.call_args.kwargs["MessageBody"])
    assert body["eventId"] == record.event_id
    assert body["previousEventId"] is None

    events_client.put_events.assert_called_once()
    entry = events_client.put_events.call_args.kwargs["Entries"][0]
    assert entry["Source"] == EVENT_SOURCE
    assert entry["DetailType"] == "user.user_created"
    assert json.loads(entry["Detail"]) == body


async def test_bus_failure_does_not_raise(publisher, events_client, sqs_client, record_factory):
    """Bus down, queue fine: publish completes and the durable path was used."""
    events_client.put_events.side_effect = RuntimeError("EventBridge unavailable")

    await publisher.publish(record_factory())

    sqs_client.send_message.assert_called_once()


async def test_bus_rejected_entry_does_not_raise(publisher, events_client, record_factory):
    events_client.put_events.side_effect = None
    events_client.put_events.return_value = {
        "FailedEntryCount": 1,
        "Entries": [{"ErrorCode": "InternalFailure", "ErrorMessage": "boom"}],
    }

    await publisher.publish(record_factory())


async def test_queue_failure_raises_regardless_of_bus(publisher, sqs_client, events_client, record_factory):
    sqs_client.send_message.side_effect = RuntimeError("SQS unavailable")
    record = record_factory()

    with pytest.raises(DurablePublishFailure) as exc_info:
        await publisher.publish(record)

    assert exc_info.value.event_id == record.event_id
    # Bus was still attempted
    events_client.put_events.assert_called_once()


async def test_queue_failure_raises_when_bus_also_fails(publisher, sqs_client, events_client, record_factory):
    sqs_client.send_message.side_effect = RuntimeError("SQS unavailable")
    events_client.put_events.side_effect = RuntimeError("EventBridge unavailable")

    with pytest.raises(DurablePublishFailure):
        await publisher.publish(record_factory())


async def test_missing_required_field_aborts_without_sending(publisher, sqs_client, events_client):
    # model_construct bypasses validation to simulate a hand-assembled record
    record = EventRecord.model_construct(
        event_id="",
        client_id="c1",
        previous_event_id=None,
        entity_type="user",
        event_type="user_created",
        occurred_at="2026-10-16T12:00:00Z",
    )

    await publisher.publish(record)

    sqs_client.send_message.assert_not_called()
    events_client.put_events.assert_not_called()


async def test_sinks_run_concurrently_and_both_outcomes_awaited(record_factory):
    """A fast bus failure must not short-circuit a slow queue send."""
    started = []
    queue_done = asyncio.Event()

    async def slow_queue_send(record):
        started.append("queue")
        await asyncio.sleep(0.05)
        queue_done.set()
        return "msg-1"

    async def fast_bus_failure(record):
        started.append("bus")
        raise RealtimePublishFailure("rejected")

    queue_sink = MagicMock()
    queue_sink.send = AsyncMock(side_effect=slow_queue_send)
    bus_sink = MagicMock()
    bus_sink.publish = AsyncMock(side_effect=fast_bus_failure)

    await EventPublisher(queue_sink, bus_sink).publish(record_factory())

    assert sorted(started) == ["bus", "queue"]
    assert queue_done.is_set()


async def test_publish_batch_chunks_both_sinks(publisher, sqs_client, events_client, record_factory):
    records = [record_factory() for _ in range(12)]

    report = await publisher.publish_batch(records)

    assert sqs_client.send_message_batch.call_count == 2
    assert events_client.put_events.call_count == 2
    assert report.attempted == 12
    assert report.failed_count == 0


async def test_publish_batch_raises_on_queue_entry_failure(publisher, sqs_client, record_factory):
    records = [record_factory() for _ in range(3)]
    sqs_client.send_message_batch.side_effect = None
    sqs_client.send_message_batch.return_value = {
        "Successful": [{"Id": "0"}, {"Id": "2"}],
        "Failed": [{"Id": "1", "Code": "InternalError", "Message": "try again", "SenderFault": False}],
    }

    with pytest.raises(DurablePublishFailure) as exc_info:
        await publisher.publish_batch(records)

    assert exc_info.value.event_id == records[1].event_id
