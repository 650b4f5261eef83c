"""Shared SQLAlchemy base and engine construction."""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


def create_engine(url: str, echo: bool = False) -> AsyncEngine:
    """Create the async engine for the events store."""
    return create_async_engine(url, echo=echo, pool_pre_ping=True)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def ensure_schema(engine: AsyncEngine) -> None:
    """Create the events table and its indexes if they do not exist yet.

    Cold-start convenience for the consumer; migrations under alembic/ remain
    the source of truth for deployed databases.
    """
    # Import all models so metadata is populated before create_all
    import event_tracking.db.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
