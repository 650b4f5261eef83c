"""Queue message validation against the EventRecord contract.

Every message is judged on its own. A message that is not JSON, is not a
JSON object, or breaks a field rule is dropped and logged; it never affects
the rest of its batch.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

import structlog
from pydantic import ValidationError

from event_tracking.core.exceptions import MalformedMessage
from event_tracking.schemas.event import EventRecord

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class QueueMessage:
    body: Any
    message_id: str | None = None

    @classmethod
    def from_sqs_record(cls, record: Mapping[str, Any]) -> QueueMessage:
        """From one entry of an SQS event's ``Records`` list."""
        return cls(body=record.get("body"), message_id=record.get("messageId"))


def _describe(exc: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in error['loc']) or '<root>'}: {error['msg']}"
        for error in exc.errors(include_url=False)
    )


def parse_message_strict(message: QueueMessage) -> EventRecord:
    """Parse and validate one message.

    Raises:
        MalformedMessage: body is not a JSON object or violates the contract
    """
    if not isinstance(message.body, str):
        raise MalformedMessage("body is not a string", message.message_id)

    try:
        payload = json.loads(message.body)
    except json.JSONDecodeError as exc:
        raise MalformedMessage(f"invalid JSON: {exc.msg}", message.message_id) from exc

    if not isinstance(payload, dict):
        raise MalformedMessage("body is not a JSON object", message.message_id)

    try:
        return EventRecord.model_validate(payload)
    except ValidationError as exc:
        raise MalformedMessage(_describe(exc), message.message_id) from exc


def parse_message(message: QueueMessage) -> EventRecord | None:
    """Parse one message; malformed messages are logged and give None."""
    try:
        return parse_message_strict(message)
    except MalformedMessage as exc:
        logger.error("queue_message_dropped", message_id=message.message_id, reason=exc.reason)
        return None


def validate_batch(messages: Iterable[QueueMessage]) -> tuple[list[EventRecord], int]:
    """Split a batch into valid records and a count of dropped messages."""
    valid: list[EventRecord] = []
    dropped = 0
    for message in messages:
        record = parse_message(message)
        if record is None:
            dropped += 1
        else:
            valid.append(record)
    return valid, dropped
