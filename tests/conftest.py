"""Shared pytest fixtures for blobfs tests."""

from __future__ import annotations

from collections.abc import AsyncGenerator, Awaitable, Callable
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from blobfs.db import init_db, make_engine, make_session_factory
from blobfs.filesystem import BlobFS
from blobfs.store import BlobStore, MemoryBlobStore, SqlBlobStore

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine


# Small chunks so that even short test files span several chunks
TEST_CHUNK_SIZE = 4


def sqlite_url(tmp_path: Path) -> str:
    return f"sqlite+aiosqlite:///{(tmp_path / 'blobfs_test.sqlite').as_posix()}"


@pytest.fixture
async def sql_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """A SQLite database in a temporary file with all tables created."""
    engine = make_engine(sqlite_url(tmp_path))
    await init_db(engine)

    yield engine

    await engine.dispose()


@pytest.fixture
def sql_store(sql_engine: AsyncEngine) -> SqlBlobStore:
    return SqlBlobStore(make_session_factory(sql_engine), chunk_size=TEST_CHUNK_SIZE)


@pytest.fixture
def memory_store() -> MemoryBlobStore:
    return MemoryBlobStore(chunk_size=TEST_CHUNK_SIZE)


@pytest.fixture(params=["memory", "sql"])
async def store(request: pytest.FixtureRequest, tmp_path: Path) -> AsyncGenerator[BlobStore, None]:
    """Every store backend in turn."""
    if request.param == "memory":
        yield MemoryBlobStore(chunk_size=TEST_CHUNK_SIZE)
        return

    engine = make_engine(sqlite_url(tmp_path))
    await init_db(engine)

    yield SqlBlobStore(make_session_factory(engine), chunk_size=TEST_CHUNK_SIZE)

    await engine.dispose()


@pytest.fixture
def notifications() -> list[str]:
    """Messages passed to the filesystem's on_modified hook."""
    return []


@pytest.fixture
def fs(store: BlobStore, notifications: list[str]) -> BlobFS:
    return BlobFS(store, on_modified=notifications.append)


# Type alias for the seeding fixture
Seed = Callable[..., Awaitable[None]]


@pytest.fixture
def seed(fs: BlobFS, notifications: list[str]) -> Seed:
    """Create files with default content, then forget their notifications."""

    async def _seed(*pathnames: str, data: str = "test") -> None:
        for pathname in pathnames:
            await fs.create_file(pathname, data)
        notifications.clear()

    return _seed
