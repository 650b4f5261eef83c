"""EventRecord: the canonical tracked event that moves through the pipeline.

Wire format is camelCase JSON (one event per queue message / bus entry).
Python attribute names are snake_case; both spellings are accepted on input.
"""

import json
import uuid
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

# Fields that must be present and non-empty before anything is sent anywhere
REQUIRED_FIELDS = ("event_id", "client_id", "entity_type", "event_type", "occurred_at")

# Column widths of the events table; longer values are malformed, not storable
ID_MAX_LENGTH = 128
TYPE_MAX_LENGTH = 48
SOURCE_MAX_LENGTH = 32
INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp. Naive values are taken as UTC.

    Raises ValueError for anything fromisoformat() rejects.
    """
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def utc_now_iso() -> str:
    """Current time as an ISO-8601 string with millisecond precision and a Z suffix."""
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class EventRecord(BaseModel):
    """Immutable tracked event.

    Strict typing mirrors the queue contract: no coercion of numbers into
    strings or strings into numbers. pointsAwarded accepts integral floats
    (JSON producers often emit 10.0) but rejects booleans and fractions.
    """

    model_config = ConfigDict(
        frozen=True,
        strict=True,
        populate_by_name=True,
        alias_generator=to_camel,
        extra="ignore",
    )

    event_id: str = Field(min_length=1)
    client_id: str = Field(min_length=1, max_length=ID_MAX_LENGTH)
    previous_event_id: str | None = None
    user_id: str | None = Field(default=None, max_length=ID_MAX_LENGTH)
    entity_id: str | None = Field(default=None, max_length=ID_MAX_LENGTH)
    entity_type: str = Field(min_length=1, max_length=TYPE_MAX_LENGTH)
    event_type: str = Field(min_length=1, max_length=TYPE_MAX_LENGTH)
    source: str | None = Field(default=None, max_length=SOURCE_MAX_LENGTH)
    campaign_id: str | None = Field(default=None, max_length=ID_MAX_LENGTH)
    points_awarded: int | None = Field(default=None, ge=INT32_MIN, le=INT32_MAX)
    session_id: str | None = Field(default=None, max_length=ID_MAX_LENGTH)
    occurred_at: str = Field(min_length=1)
    metadata: dict[str, Any] | None = None

    @field_validator("event_id", "previous_event_id")
    @classmethod
    def _must_be_uuid(cls, value: str | None) -> str | None:
        # Rows are keyed by UUID; anything else would fail the whole insert batch
        if value is not None:
            uuid.UUID(value)
        return value

    @field_validator("occurred_at")
    @classmethod
    def _must_be_timestamp(cls, value: str) -> str:
        parse_timestamp(value)
        return value

    @field_validator("points_awarded", mode="before")
    @classmethod
    def _integral_number(cls, value: Any) -> Any:
        if value is None:
            return value
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError("pointsAwarded must be a number")
        if isinstance(value, float):
            if not value.is_integer():
                raise ValueError("pointsAwarded must be a whole number")
            return int(value)
        return value

    @property
    def routing_key(self) -> str:
        """``entityType.eventType``, used as the bus detail-type."""
        return f"{self.entity_type}.{self.event_type}"

    @property
    def occurred_at_datetime(self) -> datetime:
        return parse_timestamp(self.occurred_at)

    def missing_required_fields(self) -> list[str]:
        return [name for name in REQUIRED_FIELDS if not getattr(self, name)]

    def to_payload(self) -> dict[str, Any]:
        """camelCase dict; unset optionals omitted, previousEventId always present."""
        payload = self.model_dump(mode="json", by_alias=True, exclude_none=True)
        payload["previousEventId"] = self.previous_event_id
        return payload

    def to_message(self) -> str:
        """Serialize to the queue message body / bus entry detail."""
        return json.dumps(self.to_payload())

    @classmethod
    def from_message(cls, body: str) -> "EventRecord":
        """Parse a queue message body. Raises ValueError / pydantic.ValidationError."""
        payload = json.loads(body)
        if not isinstance(payload, dict):
            raise ValueError("message body is not a JSON object")
        return cls.model_validate(payload)
