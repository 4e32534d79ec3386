"""Database connection and session management."""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from blobfs.config import settings
from blobfs.models import Base


def make_engine(url: str, *, echo: bool = False) -> AsyncEngine:
    """Create an async engine for ``url``.

    SQLite connections are not pooled so an engine can be shared by
    several ``asyncio.run`` calls.
    """
    if url.startswith("sqlite"):
        return create_async_engine(url, echo=echo, poolclass=NullPool)
    return create_async_engine(url, echo=echo)


def make_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
    )


engine = make_engine(settings.database_url, echo=settings.database_echo)

async_session_factory = make_session_factory(engine)


async def init_db(bind: AsyncEngine | None = None) -> None:
    """Initialize database tables."""
    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def reset_db(bind: AsyncEngine | None = None) -> None:
    """Drop all tables and recreate them. Destroys all data."""
    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
