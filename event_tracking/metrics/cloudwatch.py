"""CloudWatch custom metrics for the publish and ingestion pipelines.

All emission is fire-and-forget: failures are caught internally and logged
as warnings via structlog. Metrics NEVER raise into or block the caller.

boto3 is synchronous, so put_metric_data runs on a small ThreadPoolExecutor
and the coroutine returns as soon as the work is scheduled.
"""

import asyncio
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone

import structlog

logger = structlog.get_logger(__name__)

EVENTS_PUBLISHED = "EventsPublished"
DURABLE_PUBLISH_FAILURES = "DurablePublishFailures"
REALTIME_PUBLISH_FAILURES = "RealtimePublishFailures"
EVENTS_INGESTED = "EventsIngested"
MESSAGES_DROPPED = "MessagesDropped"


class PipelineMetrics:
    """Counts pipeline outcomes under a CloudWatch namespace.

    A metrics object without a namespace (or without a client) is a no-op,
    which is what local runs and tests get by default.
    """

    def __init__(self, client=None, namespace: str = "") -> None:
        self._client = client
        self._namespace = namespace
        self._executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="cw-metrics") if client else None

    @property
    def enabled(self) -> bool:
        return bool(self._client and self._namespace)

    def _put(self, metric_name: str, value: float, dimensions: dict[str, str]) -> None:
        """Synchronous put_metric_data. Runs in the thread pool."""
        try:
            self._client.put_metric_data(
                Namespace=self._namespace,
                MetricData=[{
                    "MetricName": metric_name,
                    "Dimensions": [{"Name": k, "Value": v} for k, v in dimensions.items()],
                    "Value": value,
                    "Unit": "Count",
                    "Timestamp": datetime.now(timezone.utc),
                }],
            )
        except Exception as e:
            logger.warning("metric_emit_failed", error=str(e), metric=metric_name)

    async def emit(self, metric_name: str, value: float = 1.0, **dimensions: str) -> None:
        """Emit a count metric. Non-blocking, fire-and-forget."""
        if not self.enabled or value <= 0:
            return
        loop = asyncio.get_running_loop()
        loop.run_in_executor(self._executor, self._put, metric_name, float(value), dimensions)
