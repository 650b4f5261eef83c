"""Real-time-bus sink: EventBridge fan-out of tracked events.

Best effort. ``publish`` raises RealtimePublishFailure so the publisher can
log it; ``publish_many`` never raises and returns a per-chunk report instead.
PutEvents accepts at most 10 entries per call, so larger sets are chunked and
every chunk is sent and awaited on its own. A chunk can partially fail: some
entries rejected, the rest delivered.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass, field

import structlog

from event_tracking.core.exceptions import ConfigurationError, RealtimePublishFailure
from event_tracking.schemas.event import EventRecord

logger = structlog.get_logger(__name__)

# Source tag on every bus entry; subscribers filter on it
EVENT_SOURCE = "event-tracking"

MAX_ENTRIES_PER_CALL = 10


def build_entry(record: EventRecord, bus_name: str) -> dict:
    """PutEvents entry for one record."""
    return {
        "Source": EVENT_SOURCE,
        "DetailType": record.routing_key,
        "Detail": record.to_message(),
        "EventBusName": bus_name,
        "Time": record.occurred_at_datetime,
    }


@dataclass
class ChunkResult:
    index: int
    attempted: int
    failed: list[dict] = field(default_factory=list)  # {"event_id", "error_code", "error_message"}
    error: str | None = None  # set when the whole call raised

    @property
    def failed_count(self) -> int:
        return self.attempted if self.error else len(self.failed)


@dataclass
class BusPublishReport:
    chunks: list[ChunkResult] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return sum(chunk.attempted for chunk in self.chunks)

    @property
    def failed_count(self) -> int:
        return sum(chunk.failed_count for chunk in self.chunks)

    @property
    def succeeded(self) -> int:
        return self.attempted - self.failed_count


def _failed_entries(response: dict, records: Sequence[EventRecord]) -> list[dict]:
    # Result entries line up with request entries by position
    failed = []
    for record, result in zip(records, response.get("Entries", [])):
        if result.get("ErrorCode"):
            failed.append({
                "event_id": record.event_id,
                "error_code": result.get("ErrorCode"),
                "error_message": result.get("ErrorMessage"),
            })
    return failed


class BusSink:
    """Publishes EventRecords to an EventBridge bus.

    Usage:
        sink = BusSink(client=boto3.client("events"), bus_name=settings.resolved_bus_name())
        await sink.publish(record)
    """

    def __init__(self, client, bus_name: str) -> None:
        self._client = client
        self._bus_name = bus_name

    @property
    def bus_name(self) -> str:
        if not self._bus_name:
            raise ConfigurationError("EVENT_BUS_NAME or EVENT_BUS_ARN environment variable is required")
        return self._bus_name

    async def _put(self, records: Sequence[EventRecord]) -> dict:
        bus_name = self.bus_name
        entries = [build_entry(record, bus_name) for record in records]
        return await asyncio.to_thread(self._client.put_events, Entries=entries)

    async def publish(self, record: EventRecord) -> None:
        """Publish one record. Raises RealtimePublishFailure if the entry was rejected."""
        logger.debug("bus_publish_started", event_id=record.event_id, routing_key=record.routing_key)
        response = await self._put([record])

        if response.get("FailedEntryCount", 0) > 0:
            failed = _failed_entries(response, [record])
            detail = failed[0] if failed else {}
            raise RealtimePublishFailure(
                f"EventBridge entry failed: {detail.get('error_code')} - {detail.get('error_message')}",
                failed_entries=failed,
            )

        logger.info("bus_publish_succeeded", event_id=record.event_id, routing_key=record.routing_key)

    async def publish_many(self, records: Sequence[EventRecord]) -> BusPublishReport:
        """Publish records in chunks of MAX_ENTRIES_PER_CALL, accounting failures per chunk."""
        report = BusPublishReport()

        for index, start in enumerate(range(0, len(records), MAX_ENTRIES_PER_CALL)):
            chunk = list(records[start:start + MAX_ENTRIES_PER_CALL])
            result = ChunkResult(index=index, attempted=len(chunk))
            report.chunks.append(result)

            try:
                response = await self._put(chunk)
            except Exception as exc:
                result.error = str(exc)
                logger.warning("bus_chunk_failed", chunk=index, size=len(chunk), error=str(exc))
                continue

            result.failed = _failed_entries(response, chunk)
            if result.failed:
                logger.warning(
                    "bus_chunk_partially_failed",
                    chunk=index,
                    size=len(chunk),
                    failed=len(result.failed),
                )
                for entry in result.failed:
                    logger.warning("bus_entry_failed", chunk=index, **entry)
            logger.info(
                "bus_chunk_published",
                chunk=index,
                size=len(chunk),
                succeeded=len(chunk) - len(result.failed),
            )

        return report
