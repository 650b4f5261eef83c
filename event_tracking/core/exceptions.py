class EventTrackingError(Exception):
    """Base exception for the event tracking relay."""

    pass


class ConfigurationError(EventTrackingError):
    """Raised when a sink target or database credential is not configured."""

    pass


class MalformedMessage(EventTrackingError):
    """Raised when a queue message is not valid JSON or breaks the event contract."""

    def __init__(self, reason: str, message_id: str | None = None):
        self.reason = reason
        self.message_id = message_id
        super().__init__(f"Malformed message {message_id or '<unknown>'}: {reason}")


class DurablePublishFailure(EventTrackingError):
    """Raised when the queue send fails. Durability is at stake, so callers must see it."""

    def __init__(self, event_id: str, cause: BaseException | None = None):
        self.event_id = event_id
        self.cause = cause
        super().__init__(f"Durable publish failed for event {event_id}: {cause}")


class RealtimePublishFailure(EventTrackingError):
    """Raised by the bus sink when one or more entries were rejected."""

    def __init__(self, message: str, failed_entries: list[dict] | None = None):
        self.failed_entries = failed_entries or []
        super().__init__(message)


class PersistenceFailure(EventTrackingError):
    """Raised when the batch insert transaction fails and has been rolled back."""

    def __init__(self, batch_size: int, cause: BaseException | None = None):
        self.batch_size = batch_size
        self.cause = cause
        super().__init__(f"Failed to persist batch of {batch_size} events: {cause}")
