"""Event Builder: turns a successful invocation into an EventRecord.

Pure apart from id/timestamp generation. A request without a client id is a
BuildFailure value, not an exception, so the caller can skip publishing
without disturbing the business response.
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any

import structlog
from pydantic import ValidationError

from event_tracking.schemas.event import EventRecord, utc_now_iso
from event_tracking.tracking.extractor import (
    InboundRequest,
    extract_client_id,
    extract_previous_event_id,
)

logger = structlog.get_logger(__name__)

# camelCase wire name -> attribute name, for overrides given either way
_FIELD_BY_ALIAS = {info.alias: name for name, info in EventRecord.model_fields.items()}


class BuildFailureKind(str, Enum):
    MISSING_CLIENT_ID = "MissingClientId"
    INVALID_OVERRIDES = "InvalidOverrides"


@dataclass(frozen=True)
class BuildFailure:
    kind: BuildFailureKind
    entity_type: str
    event_type: str
    detail: str = ""


def normalize_overrides(overrides: Mapping[str, Any] | None) -> dict[str, Any]:
    """Map override keys to EventRecord attribute names; unknown keys are dropped."""
    normalized: dict[str, Any] = {}
    if not overrides:
        return normalized

    for key, value in overrides.items():
        name = key if key in EventRecord.model_fields else _FIELD_BY_ALIAS.get(key)
        if name is None:
            logger.warning("event_override_ignored", key=key)
            continue
        if name == "occurred_at" and isinstance(value, datetime):
            value = (value if value.tzinfo else value.replace(tzinfo=UTC)).isoformat()
        normalized[name] = value
    return normalized


def build_event(
    entity_type: str,
    event_type: str,
    request: InboundRequest,
    context: Any = None,
    overrides: Mapping[str, Any] | None = None,
) -> EventRecord | BuildFailure:
    """Assemble an EventRecord for ``entity_type.event_type``.

    Defaults (fresh uuid4 event id, current UTC time, extracted client id and
    predecessor) are computed first; ``overrides`` are applied on top and win.

    Returns:
        EventRecord on success, BuildFailure when no client id can be found
        or the overrides do not satisfy the record contract.
    """
    fields = normalize_overrides(overrides)

    client_id = fields.get("client_id") or extract_client_id(request, context)
    if not client_id:
        logger.error(
            "event_build_missing_client_id",
            entity_type=entity_type,
            event_type=event_type,
        )
        return BuildFailure(BuildFailureKind.MISSING_CLIENT_ID, entity_type, event_type)

    data: dict[str, Any] = {
        "event_id": str(uuid.uuid4()),
        "client_id": client_id,
        "previous_event_id": extract_previous_event_id(request),
        "entity_type": entity_type,
        "event_type": event_type,
        "occurred_at": utc_now_iso(),
    }
    data.update(fields)

    try:
        return EventRecord.model_validate(data)
    except ValidationError as exc:
        logger.error(
            "event_build_invalid",
            entity_type=entity_type,
            event_type=event_type,
            errors=exc.errors(include_url=False, include_input=False),
        )
        return BuildFailure(BuildFailureKind.INVALID_OVERRIDES, entity_type, event_type, detail=str(exc))
