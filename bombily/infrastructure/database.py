"""
Order storage: async SQLAlchemy engine, sessions and the declarative base.

One ``AsyncSession`` per request (see ``api.dependencies.get_db``); the
lifecycle service never commits on its own.  ``pool_pre_ping`` recycles
connections the database dropped while idle, so a restarted PostgreSQL
shows up as one failed request rather than a stuck pool.
"""

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from bombily.config import settings

engine = create_async_engine(
    settings.database_url,
    echo=settings.database_echo,
    pool_size=settings.database_pool_size,
    max_overflow=settings.database_max_overflow,
    pool_pre_ping=True,
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Declarative base for cities, shops, users and orders."""


async def dispose_engine() -> None:
    """Close pooled connections on shutdown."""
    await engine.dispose()
