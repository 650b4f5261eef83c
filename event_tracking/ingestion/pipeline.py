"""IngestionPipeline: queue batch -> validated records -> idempotent insert.

The pipeline's only output is durable persistence. Real-time fan-out already
happened on the producer side and is NOT repeated here.

Failure semantics:
- malformed messages are dropped per message (logged, counted)
- a failed insert transaction raises PersistenceFailure for the whole batch,
  so the queue's visibility timeout / redrive policy takes over
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

import structlog

from event_tracking.db.repository import EventRepository
from event_tracking.ingestion.validation import QueueMessage, validate_batch
from event_tracking.metrics.cloudwatch import EVENTS_INGESTED, MESSAGES_DROPPED, PipelineMetrics

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class IngestionResult:
    received: int
    valid: int
    dropped: int
    inserted: int = 0

    @property
    def duplicates(self) -> int:
        return self.valid - self.inserted


class IngestionPipeline:
    def __init__(self, repository: EventRepository, metrics: PipelineMetrics | None = None) -> None:
        self._repository = repository
        self._metrics = metrics or PipelineMetrics()

    async def process_batch(self, messages: Sequence[QueueMessage | str]) -> IngestionResult:
        """Validate a batch and persist the valid records in one transaction.

        Plain strings are accepted as message bodies without ids.

        Raises:
            PersistenceFailure: the batch transaction was rolled back
        """
        normalized = [m if isinstance(m, QueueMessage) else QueueMessage(body=m) for m in messages]
        logger.info("ingestion_batch_received", count=len(normalized))

        records, dropped = validate_batch(normalized)
        await self._metrics.emit(MESSAGES_DROPPED, dropped)

        if not records:
            logger.info("ingestion_batch_empty", received=len(normalized), dropped=dropped)
            return IngestionResult(received=len(normalized), valid=0, dropped=dropped)

        inserted = await self._repository.insert_events(records)
        await self._metrics.emit(EVENTS_INGESTED, inserted)

        result = IngestionResult(
            received=len(normalized),
            valid=len(records),
            dropped=dropped,
            inserted=inserted,
        )
        logger.info(
            "ingestion_batch_completed",
            received=result.received,
            valid=result.valid,
            dropped=result.dropped,
            inserted=result.inserted,
            duplicates=result.duplicates,
        )
        return result
