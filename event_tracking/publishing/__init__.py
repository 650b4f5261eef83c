"""Dual-publish sinks: SQS (durable) and EventBridge (real-time)."""

from event_tracking.publishing.bus import EVENT_SOURCE, MAX_ENTRIES_PER_CALL, BusPublishReport, BusSink
from event_tracking.publishing.publisher import EventPublisher
from event_tracking.publishing.queue import QueueSink

__all__ = [
    "EVENT_SOURCE",
    "MAX_ENTRIES_PER_CALL",
    "BusPublishReport",
    "BusSink",
    "EventPublisher",
    "QueueSink",
]
