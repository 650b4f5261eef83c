"""RuntimeContext: the client handles one execution environment shares.

Built once per environment (e.g. per Lambda container) by the entrypoint and
passed explicitly to the pipeline components. Handles may be reused across
invocations within that lifetime, never across environment teardown.

The database engine is created lazily on first use, because producer-only
environments never need it and the credentials may require a Secrets
Manager round trip.
"""

from __future__ import annotations

import boto3
import structlog
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from event_tracking.core.config import Settings
from event_tracking.core.secrets import resolve_database_url
from event_tracking.db.base import create_engine, create_session_factory, ensure_schema
from event_tracking.db.repository import EventRepository
from event_tracking.ingestion.pipeline import IngestionPipeline
from event_tracking.metrics.cloudwatch import PipelineMetrics
from event_tracking.publishing.bus import BusSink
from event_tracking.publishing.publisher import EventPublisher
from event_tracking.publishing.queue import QueueSink

logger = structlog.get_logger(__name__)


class RuntimeContext:
    def __init__(
        self,
        settings: Settings,
        publisher: EventPublisher,
        metrics: PipelineMetrics | None = None,
    ) -> None:
        self.settings = settings
        self.publisher = publisher
        self.metrics = metrics or PipelineMetrics()
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None
        self._schema_ready = False

    @classmethod
    def from_settings(cls, settings: Settings) -> RuntimeContext:
        """Create boto3 clients for the configured region and wire the publisher."""
        session = boto3.session.Session(region_name=settings.aws_region)

        metrics = PipelineMetrics()
        if settings.metrics_namespace:
            metrics = PipelineMetrics(session.client("cloudwatch"), settings.metrics_namespace)

        publisher = EventPublisher(
            queue_sink=QueueSink(session.client("sqs"), settings.events_queue_url),
            bus_sink=BusSink(session.client("events"), settings.resolved_bus_name()),
            metrics=metrics,
        )
        logger.info(
            "runtime_initialized",
            region=settings.aws_region,
            queue_configured=bool(settings.events_queue_url),
            bus_name=settings.resolved_bus_name() or None,
        )
        return cls(settings=settings, publisher=publisher, metrics=metrics)

    async def session_factory(self) -> async_sessionmaker[AsyncSession]:
        """Return the session factory, creating the engine (and schema) on first use."""
        if self._session_factory is None:
            url = await resolve_database_url(self.settings)
            self._engine = create_engine(url, echo=self.settings.db_echo)
            self._session_factory = create_session_factory(self._engine)

        if not self._schema_ready:
            await ensure_schema(self._engine)
            self._schema_ready = True
            logger.info("events_schema_ready")

        return self._session_factory

    async def ingestion_pipeline(self) -> IngestionPipeline:
        repository = EventRepository(await self.session_factory())
        return IngestionPipeline(repository, metrics=self.metrics)

    async def release_connections(self) -> None:
        """Close pooled database connections; the engine reconnects on next use."""
        if self._engine is not None:
            await self._engine.dispose()
            logger.debug("db_connections_released")
