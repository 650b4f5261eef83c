"""EventRepository: idempotent batch persistence of tracked events.

One transaction per batch. Each record is inserted with
``ON CONFLICT (event_id) DO NOTHING``, so redelivered events are skipped
silently. Any other database error rolls back the whole batch and is raised
as PersistenceFailure, which lets the queue redeliver (and eventually
dead-letter) the batch.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence

import structlog
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from event_tracking.core.exceptions import PersistenceFailure
from event_tracking.db.models.event import TrackedEvent
from event_tracking.schemas.event import EventRecord

logger = structlog.get_logger(__name__)


def to_row(record: EventRecord) -> dict:
    """Column values for one record, keyed by table column name."""
    return {
        "event_id": uuid.UUID(record.event_id),
        "client_id": record.client_id,
        "previous_event_id": uuid.UUID(record.previous_event_id) if record.previous_event_id else None,
        "user_id": record.user_id,
        "entity_id": record.entity_id,
        "entity_type": record.entity_type,
        "event_type": record.event_type,
        "source": record.source,
        "campaign_id": record.campaign_id,
        "points_awarded": record.points_awarded,
        "session_id": record.session_id,
        "occurred_at": record.occurred_at_datetime,
        "metadata": record.metadata,
    }


def order_for_insert(records: Sequence[EventRecord]) -> list[EventRecord]:
    """Order a batch so a predecessor in the same batch is inserted before its successors.

    Input order is kept otherwise. Cycles and predecessors outside the batch
    leave the order untouched.
    """
    index_by_id: dict[str, int] = {}
    for i, record in enumerate(records):
        index_by_id.setdefault(record.event_id, i)

    ordered: list[EventRecord] = []
    placed: set[int] = set()
    for i in range(len(records)):
        chain: list[int] = []
        seen: set[int] = set()
        j: int | None = i
        while j is not None and j not in placed and j not in seen:
            chain.append(j)
            seen.add(j)
            prev = records[j].previous_event_id
            j = index_by_id.get(prev) if prev else None
        for k in reversed(chain):
            placed.add(k)
            ordered.append(records[k])
    return ordered


class EventRepository:
    """Writes EventRecords to the ``events`` table.

    Usage:
        repo = EventRepository(session_factory)
        inserted = await repo.insert_events(records)
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def insert_events(self, records: Sequence[EventRecord]) -> int:
        """Insert a batch atomically, ignoring event ids that already exist.

        Returns:
            Number of rows actually inserted (duplicates excluded).

        Raises:
            PersistenceFailure: the transaction failed and was rolled back
        """
        if not records:
            return 0

        ordered = order_for_insert(records)
        inserted = 0
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    for record in ordered:
                        stmt = (
                            pg_insert(TrackedEvent.__table__)
                            .values(**to_row(record))
                            .on_conflict_do_nothing(index_elements=[TrackedEvent.__table__.c.event_id])
                        )
                        result = await session.execute(stmt)
                        inserted += result.rowcount or 0
        except SQLAlchemyError as exc:
            logger.error("event_batch_insert_failed", batch_size=len(ordered), error=str(exc))
            raise PersistenceFailure(len(ordered), exc) from exc

        duplicates = len(ordered) - inserted
        if duplicates:
            logger.info("event_duplicates_ignored", count=duplicates)
        logger.info("event_batch_inserted", inserted=inserted, batch_size=len(ordered))
        return inserted
