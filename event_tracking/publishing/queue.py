"""Durable-queue sink: one tracked event per SQS message.

This is the system-of-record path (queue -> ingestion -> PostgreSQL), so every
failure is raised to the caller. boto3 is blocking; calls run in a thread via
asyncio.to_thread so the event loop keeps serving the concurrent bus publish.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence

import structlog

from event_tracking.core.exceptions import ConfigurationError, DurablePublishFailure
from event_tracking.schemas.event import EventRecord

logger = structlog.get_logger(__name__)

# SendMessageBatch accepts at most 10 entries per call
MAX_MESSAGES_PER_BATCH = 10


class QueueSink:
    """Sends serialized EventRecords to the events queue.

    Usage:
        sink = QueueSink(client=boto3.client("sqs"), queue_url=settings.events_queue_url)
        message_id = await sink.send(record)
    """

    def __init__(self, client, queue_url: str) -> None:
        self._client = client
        self._queue_url = queue_url

    @property
    def queue_url(self) -> str:
        if not self._queue_url:
            raise ConfigurationError("EVENTS_QUEUE_URL environment variable is required")
        return self._queue_url

    async def send(self, record: EventRecord) -> str | None:
        """Send one record. Returns the SQS MessageId; raises on any failure."""
        queue_url = self.queue_url
        logger.debug("queue_send_started", event_id=record.event_id, routing_key=record.routing_key)

        response = await asyncio.to_thread(
            self._client.send_message,
            QueueUrl=queue_url,
            MessageBody=record.to_message(),
        )

        message_id = response.get("MessageId")
        logger.info(
            "queue_send_succeeded",
            event_id=record.event_id,
            routing_key=record.routing_key,
            message_id=message_id,
        )
        return message_id

    async def send_many(self, records: Sequence[EventRecord]) -> int:
        """Send records in SendMessageBatch chunks of at most 10.

        Every chunk is attempted. Raises DurablePublishFailure naming the first
        failed event if any entry in any chunk was rejected or any call errored.

        Returns:
            Number of messages the queue accepted.
        """
        queue_url = self.queue_url
        by_entry_id = {str(i): record for i, record in enumerate(records)}
        entry_ids = list(by_entry_id)
        accepted = 0
        failed_event_ids: list[str] = []
        first_error: BaseException | None = None

        for start in range(0, len(entry_ids), MAX_MESSAGES_PER_BATCH):
            chunk_ids = entry_ids[start:start + MAX_MESSAGES_PER_BATCH]
            entries = [
                {"Id": entry_id, "MessageBody": by_entry_id[entry_id].to_message()}
                for entry_id in chunk_ids
            ]
            try:
                response = await asyncio.to_thread(
                    self._client.send_message_batch,
                    QueueUrl=queue_url,
                    Entries=entries,
                )
            except Exception as exc:
                logger.error("queue_batch_send_failed", chunk_start=start, chunk_size=len(entries), error=str(exc))
                failed_event_ids.extend(by_entry_id[entry_id].event_id for entry_id in chunk_ids)
                first_error = first_error or exc
                continue

            accepted += len(response.get("Successful", []))
            for failure in response.get("Failed", []):
                record = by_entry_id.get(failure.get("Id"))
                event_id = record.event_id if record else failure.get("Id")
                logger.error(
                    "queue_batch_entry_failed",
                    event_id=event_id,
                    error_code=failure.get("Code"),
                    error_message=failure.get("Message"),
                )
                failed_event_ids.append(event_id)

        if failed_event_ids:
            raise DurablePublishFailure(failed_event_ids[0], first_error)

        logger.info("queue_batch_send_succeeded", count=accepted)
        return accepted
