"""Database package: declarative base, engine helpers, event repository."""

from event_tracking.db.base import Base, create_engine, create_session_factory, ensure_schema

__all__ = [
    "Base",
    "create_engine",
    "create_session_factory",
    "ensure_schema",
]
