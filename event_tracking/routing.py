"""Subscriber-side helpers for tracked events delivered by the bus.

Bus events carry ``detail-type`` = ``entityType.eventType`` and the record
JSON as ``detail``. These helpers build EventBridge rule patterns and pick
events apart on the receiving end.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from event_tracking.publishing.bus import EVENT_SOURCE


def build_event_pattern(
    entity_types: Iterable[str] | None = None,
    event_types: Iterable[str] | None = None,
    client_ids: Iterable[str] | None = None,
    sources: Iterable[str] | None = None,
    detail_type_prefix: str | None = None,
) -> dict[str, Any]:
    """EventBridge rule pattern matching tracked events.

    detail-type precedence: an explicit prefix, else every entityType.eventType
    combination, else a ``<entityType>.`` prefix per entity type. Event types
    without entity types do not constrain detail-type.
    """
    pattern: dict[str, Any] = {"source": [EVENT_SOURCE]}

    entity_types = list(entity_types or [])
    event_types = list(event_types or [])

    if detail_type_prefix:
        pattern["detail-type"] = [{"prefix": detail_type_prefix}]
    elif entity_types and event_types:
        pattern["detail-type"] = [
            f"{entity_type}.{event_type}" for entity_type in entity_types for event_type in event_types
        ]
    elif entity_types:
        pattern["detail-type"] = [{"prefix": f"{entity_type}."} for entity_type in entity_types]

    detail: dict[str, list[str]] = {}
    if client_ids:
        detail["clientId"] = list(client_ids)
    if sources:
        detail["source"] = list(sources)
    if detail:
        pattern["detail"] = detail

    return pattern


def parse_detail_type(detail_type: str) -> tuple[str, str]:
    """Split ``entityType.eventType``. Event types may themselves contain dots.

    Raises ValueError when there is no dot.
    """
    entity_type, sep, event_type = detail_type.partition(".")
    if not sep:
        raise ValueError(f"Invalid detail-type format: {detail_type}. Expected: entityType.eventType")
    return entity_type, event_type


@dataclass(frozen=True)
class BusEventInfo:
    source: str | None
    detail_type: str | None
    detail: Mapping[str, Any]
    time: str | None
    region: str | None
    account: str | None


def extract_event_info(bus_event: Mapping[str, Any]) -> BusEventInfo:
    return BusEventInfo(
        source=bus_event.get("source"),
        detail_type=bus_event.get("detail-type"),
        detail=bus_event.get("detail") or {},
        time=bus_event.get("time"),
        region=bus_event.get("region"),
        account=bus_event.get("account"),
    )


def matches_event(
    bus_event: Mapping[str, Any],
    entity_type: str | None = None,
    event_type: str | None = None,
    client_id: str | None = None,
    source: str | None = None,
) -> bool:
    """True when the event satisfies every criterion given."""
    parsed_entity, parsed_event = parse_detail_type(bus_event["detail-type"])
    detail = bus_event.get("detail") or {}

    if entity_type and parsed_entity != entity_type:
        return False
    if event_type and parsed_event != event_type:
        return False
    if client_id and detail.get("clientId") != client_id:
        return False
    if source and detail.get("source") != source:
        return False
    return True
