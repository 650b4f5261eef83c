"""Tests for BusSink: entry shape, single publish failures, chunked fan-out."""

import json
from datetime import UTC, datetime
from unittest.mock import MagicMock

import pytest

from event_tracking.core.exceptions import ConfigurationError, RealtimePublishFailure
from event_tracking.publishing.bus import EVENT_SOURCE, MAX_ENTRIES_PER_CALL, BusSink, build_entry

pytestmark = pytest.mark.unit


def test_build_entry_shape(record_factory):
    record = record_factory(entity_type="payment", event_type="payment_completed")

    entry = build_entry(record, "my-bus")

    assert entry["Source"] == EVENT_SOURCE
    assert entry["DetailType"] == "payment.payment_completed"
    assert entry["EventBusName"] == "my-bus"
    assert entry["Time"] == datetime(2026, 10, 16, 12, 0, tzinfo=UTC)
    assert json.loads(entry["Detail"])["eventId"] == record.event_id


async def test_publish_raises_on_rejected_entry(bus_sink, events_client, record_factory):
    events_client.put_events.side_effect = None
    events_client.put_events.return_value = {
        "FailedEntryCount": 1,
        "Entries": [{"ErrorCode": "AccessDeniedException", "ErrorMessage": "no events:PutEvents"}],
    }

    with pytest.raises(RealtimePublishFailure, match="AccessDeniedException") as exc_info:
        await bus_sink.publish(record_factory())

    assert exc_info.value.failed_entries[0]["error_code"] == "AccessDeniedException"


async def test_publish_without_bus_name_raises_configuration_error(events_client, record_factory):
    sink = BusSink(client=events_client, bus_name="")

    with pytest.raises(ConfigurationError):
        await sink.publish(record_factory())

    events_client.put_events.assert_not_called()


async def test_twelve_events_go_out_as_ten_plus_two(bus_sink, events_client, record_factory):
    records = [record_factory() for _ in range(12)]

    report = await bus_sink.publish_many(records)

    assert MAX_ENTRIES_PER_CALL == 10
    assert events_client.put_events.call_count == 2
    sizes = [len(call.kwargs["Entries"]) for call in events_client.put_events.call_args_list]
    assert sizes == [10, 2]
    assert [chunk.attempted for chunk in report.chunks] == [10, 2]
    assert report.succeeded == 12


async def test_partial_failures_reported_per_chunk(bus_sink, events_client, record_factory):
    records = [record_factory() for _ in range(12)]

    def _put_events(Entries):
        if len(Entries) == 10:
            results = [{"EventId": f"eb-{i}"} for i in range(10)]
            results[3] = {"ErrorCode": "ThrottlingException", "ErrorMessage": "slow down"}
            results[7] = {"ErrorCode": "InternalFailure", "ErrorMessage": "oops"}
            return {"FailedEntryCount": 2, "Entries": results}
        return {
            "FailedEntryCount": 1,
            "Entries": [{"EventId": "eb-10"}, {"ErrorCode": "InternalFailure", "ErrorMessage": "oops"}],
        }

    events_client.put_events.side_effect = _put_events

    report = await bus_sink.publish_many(records)

    first, second = report.chunks
    assert [f["event_id"] for f in first.failed] == [records[3].event_id, records[7].event_id]
    assert [f["event_id"] for f in second.failed] == [records[11].event_id]
    assert report.failed_count == 3
    assert report.succeeded == 9


async def test_chunk_exception_does_not_stop_later_chunks(bus_sink, events_client, record_factory):
    records = [record_factory() for _ in range(12)]
    calls = {"n": 0}

    def _put_events(Entries):
        calls["n"] += 1
        if calls["n"] == 1:
            raise RuntimeError("network error")
        return {"FailedEntryCount": 0, "Entries": [{"EventId": "ok"} for _ in Entries]}

    events_client.put_events.side_effect = _put_events

    report = await bus_sink.publish_many(records)

    assert events_client.put_events.call_count == 2
    assert report.chunks[0].error == "network error"
    assert report.chunks[0].failed_count == 10
    assert report.chunks[1].failed_count == 0
    assert report.succeeded == 2


async def test_publish_many_empty_makes_no_calls(record_factory):
    client = MagicMock()
    report = await BusSink(client=client, bus_name="bus").publish_many([])

    client.put_events.assert_not_called()
    assert report.attempted == 0
