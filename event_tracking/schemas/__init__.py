"""Pydantic schemas shared by the producer and consumer sides."""

from event_tracking.schemas.event import REQUIRED_FIELDS, EventRecord, parse_timestamp, utc_now_iso

__all__ = ["REQUIRED_FIELDS", "EventRecord", "parse_timestamp", "utc_now_iso"]
