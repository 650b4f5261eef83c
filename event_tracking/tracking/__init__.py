"""Producer side: field extraction, event building, handler wrapping."""

from event_tracking.tracking.builder import BuildFailure, BuildFailureKind, build_event
from event_tracking.tracking.extractor import InboundRequest, extract_client_id, extract_previous_event_id
from event_tracking.tracking.wrapper import track_event

__all__ = [
    "BuildFailure",
    "BuildFailureKind",
    "InboundRequest",
    "build_event",
    "extract_client_id",
    "extract_previous_event_id",
    "track_event",
]
