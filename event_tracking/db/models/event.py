"""TrackedEvent model: append-only event rows linked into journeys."""

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, func
from sqlalchemy.dialects.postgresql import JSONB, UUID

from event_tracking.db.base import Base
from event_tracking.schemas.event import ID_MAX_LENGTH, SOURCE_MAX_LENGTH, TYPE_MAX_LENGTH


class TrackedEvent(Base):
    __tablename__ = "events"

    event_id = Column(UUID(as_uuid=True), primary_key=True)
    client_id = Column(String(ID_MAX_LENGTH), nullable=False)
    # Self-reference: deleting an ancestor orphans the pointer instead of cascading
    previous_event_id = Column(
        UUID(as_uuid=True),
        ForeignKey("events.event_id", name="fk_events_previous", ondelete="SET NULL"),
        nullable=True,
    )
    user_id = Column(String(ID_MAX_LENGTH), nullable=True)
    entity_id = Column(String(ID_MAX_LENGTH), nullable=True)
    entity_type = Column(String(TYPE_MAX_LENGTH), nullable=False)
    event_type = Column(String(TYPE_MAX_LENGTH), nullable=False)
    source = Column(String(SOURCE_MAX_LENGTH), nullable=True)
    campaign_id = Column(String(ID_MAX_LENGTH), nullable=True)
    points_awarded = Column(Integer, nullable=True)
    session_id = Column(String(ID_MAX_LENGTH), nullable=True)
    occurred_at = Column(DateTime(timezone=True), nullable=False)
    # "metadata" is reserved on declarative classes; None binds as SQL NULL, not JSON null
    event_metadata = Column("metadata", JSONB(none_as_null=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    # NO updated_at -- events are immutable (append-only)

    __table_args__ = (
        Index("idx_events_client_time", client_id, occurred_at.desc()),
        Index("idx_events_user_time", user_id, occurred_at.desc()),
        Index("idx_events_type_time", event_type, occurred_at.desc()),
        Index("idx_events_campaign_time", campaign_id, occurred_at.desc()),
        Index("idx_events_prev", previous_event_id),
        Index("idx_events_metadata_gin", event_metadata, postgresql_using="gin"),
    )
