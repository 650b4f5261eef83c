"""Consumer side: queue message validation and idempotent persistence."""

from event_tracking.ingestion.pipeline import IngestionPipeline, IngestionResult
from event_tracking.ingestion.validation import QueueMessage, parse_message, parse_message_strict, validate_batch

__all__ = [
    "IngestionPipeline",
    "IngestionResult",
    "QueueMessage",
    "parse_message",
    "parse_message_strict",
    "validate_batch",
]
