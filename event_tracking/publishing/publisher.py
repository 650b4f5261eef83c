"""Publisher: dual dispatch of tracked events to the queue and the bus.

Both sinks are started together and awaited together with
asyncio.gather(return_exceptions=True). The outcomes are asymmetric:

- queue failure  -> DurablePublishFailure, raised after both sinks finished
- bus failure    -> warning only, never raised
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence

import structlog

from event_tracking.core.exceptions import DurablePublishFailure
from event_tracking.metrics.cloudwatch import (
    DURABLE_PUBLISH_FAILURES,
    EVENTS_PUBLISHED,
    REALTIME_PUBLISH_FAILURES,
    PipelineMetrics,
)
from event_tracking.publishing.bus import BusPublishReport, BusSink
from event_tracking.publishing.queue import QueueSink
from event_tracking.schemas.event import EventRecord

logger = structlog.get_logger(__name__)


class EventPublisher:
    def __init__(
        self,
        queue_sink: QueueSink,
        bus_sink: BusSink,
        metrics: PipelineMetrics | None = None,
    ) -> None:
        self._queue = queue_sink
        self._bus = bus_sink
        self._metrics = metrics or PipelineMetrics()

    async def publish(self, record: EventRecord) -> None:
        """Send one record to both sinks.

        Returns without sending anything if a required field is empty.

        Raises:
            DurablePublishFailure: the queue send failed (whatever the bus did)
        """
        # Validated records always pass; this catches ones made with model_construct()
        missing = record.missing_required_fields()
        if missing:
            logger.error("tracked_event_invalid", event_id=record.event_id, missing_fields=missing)
            return

        logger.info("dual_publish_started", event_id=record.event_id, routing_key=record.routing_key)

        queue_outcome, bus_outcome = await asyncio.gather(
            self._queue.send(record),
            self._bus.publish(record),
            return_exceptions=True,
        )

        if isinstance(bus_outcome, BaseException):
            logger.warning(
                "realtime_publish_failed",
                event_id=record.event_id,
                routing_key=record.routing_key,
                error=str(bus_outcome),
                error_type=type(bus_outcome).__name__,
            )
            await self._metrics.emit(REALTIME_PUBLISH_FAILURES, entity_type=record.entity_type)

        if isinstance(queue_outcome, BaseException):
            logger.error(
                "durable_publish_failed",
                event_id=record.event_id,
                routing_key=record.routing_key,
                error=str(queue_outcome),
                error_type=type(queue_outcome).__name__,
            )
            await self._metrics.emit(DURABLE_PUBLISH_FAILURES, entity_type=record.entity_type)
            raise DurablePublishFailure(record.event_id, queue_outcome) from queue_outcome

        await self._metrics.emit(EVENTS_PUBLISHED, entity_type=record.entity_type)
        logger.info(
            "dual_publish_completed",
            event_id=record.event_id,
            routing_key=record.routing_key,
            realtime_delivered=not isinstance(bus_outcome, BaseException),
        )

    async def publish_batch(self, records: Sequence[EventRecord]) -> BusPublishReport:
        """Send many records: chunked queue batches and chunked bus puts, concurrently.

        Records with empty required fields are skipped. Bus failures are
        reported per chunk in the returned report and never raised.

        Raises:
            DurablePublishFailure: any queue entry was not accepted
        """
        valid = []
        for record in records:
            missing = record.missing_required_fields()
            if missing:
                logger.error("tracked_event_invalid", event_id=record.event_id, missing_fields=missing)
            else:
                valid.append(record)

        if not valid:
            return BusPublishReport()

        queue_outcome, bus_outcome = await asyncio.gather(
            self._queue.send_many(valid),
            self._bus.publish_many(valid),
            return_exceptions=True,
        )

        if isinstance(bus_outcome, BaseException):
            # publish_many reports per chunk; reaching here means it could not start at all
            logger.warning("realtime_batch_publish_failed", count=len(valid), error=str(bus_outcome))
            report = BusPublishReport()
            await self._metrics.emit(REALTIME_PUBLISH_FAILURES, len(valid))
        else:
            report = bus_outcome
            await self._metrics.emit(REALTIME_PUBLISH_FAILURES, report.failed_count)

        if isinstance(queue_outcome, BaseException):
            await self._metrics.emit(DURABLE_PUBLISH_FAILURES, len(valid))
            if isinstance(queue_outcome, DurablePublishFailure):
                raise queue_outcome
            raise DurablePublishFailure(valid[0].event_id, queue_outcome) from queue_outcome

        await self._metrics.emit(EVENTS_PUBLISHED, len(valid))
        logger.info(
            "batch_publish_completed",
            count=len(valid),
            realtime_succeeded=report.succeeded,
            realtime_failed=report.failed_count,
        )
        return report
