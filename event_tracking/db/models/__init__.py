"""Re-export all models so Base.metadata sees them."""

from event_tracking.db.models.event import TrackedEvent

__all__ = ["TrackedEvent"]
